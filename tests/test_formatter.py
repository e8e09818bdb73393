import pytest

from logsink.formatter import FormatterArgs, KeyValue, parse_formatter_args

FIRST = (
    '{"time":"2019-07-10T05:35:54.277Z","level":"debug","level":"error",'
    '"caller":"pretty.go:42","error":"这是一个🌐哦\\n","foo":"bar","n":42,'
    '"t":true,"f":false,"o":null,"a":[1,2,3],"obj":{"a":[1,2], "b":{"c":3}},'
    '"message":"hello json console color writer\\t123"}'
)

SECOND = (
    '{"ts":1234567890,"level":"info","caller":"pretty.go:42","foo":"bad value",'
    '"foo":"haha","message":"hello self-define time field\\t\\n"}'
)


def test_parse_full_line():
    args = parse_formatter_args(FIRST.encode("utf-8"))
    assert args.time == "2019-07-10T05:35:54.277Z"
    assert args.level == "debug"
    assert args.caller == "pretty.go:42"
    assert args.message == "hello json console color writer\t123"
    assert args.key_values == [
        KeyValue("error", "这是一个🌐哦\n", "s"),
        KeyValue("foo", "bar", "s"),
        KeyValue("n", "42", "n"),
        KeyValue("t", "true", "t"),
        KeyValue("f", "false", "f"),
        KeyValue("o", "null", ""),
        KeyValue("a", "[1,2,3]", "o"),
        KeyValue("obj", '{"a":[1,2], "b":{"c":3}}', "o"),
    ]
    assert args.get("foo") == "bar"


def test_parse_self_defined_time_field():
    args = parse_formatter_args(SECOND)
    assert args.time == "1234567890"
    assert args.level == "info"
    assert args.message == "hello self-define time field\t\n"
    assert args.get("foo") == "haha"
    assert [kv.key for kv in args.key_values] == ["foo", "foo"]


def test_formatter_args_parse():
    timestamp = "2019-07-10T05:35:54.277Z"
    level = "debug"
    msg = "hello json console color writer\t123"
    line = (
        '{"time":"' + timestamp + '","level":"' + level
        + '","category":"cat1","message":"' + msg + '"}'
    )
    args = parse_formatter_args(line)
    assert args.time == timestamp
    assert args.level == level
    assert args.message == msg
    assert args.get("category") == "cat1"


def test_get_missing_key_is_empty():
    args = parse_formatter_args('{"time":"x","a":"1"}')
    assert args.get("b") == ""


def test_missing_level_becomes_question_marks():
    args = parse_formatter_args('{"time":"x","msg":"hello world\\n"}')
    assert args.level == "????"
    assert args.message == "hello world\n"


def test_level_trailing_newline_is_stripped():
    args = parse_formatter_args('{"time":"x","level":"info\\n"}')
    assert args.level == "info"


@pytest.mark.parametrize("key", ["message", "msg", "_msg"])
def test_message_aliases(key):
    args = parse_formatter_args('{"time":"x","' + key + '":"hi"}')
    assert args.message == "hi"
    assert args.key_values == []


def test_well_known_fields():
    args = parse_formatter_args(
        '{"time":"t","goid":123,"callerfunc":"main.main","stack":"s1\\n\\ts2"}'
    )
    assert args.goid == "123"
    assert args.caller_func == "main.main"
    assert args.stack == "s1\n\ts2"


def test_object_stack_kept_raw():
    args = parse_formatter_args('{"time":"t","stack":{"a":[1,2], "b":{"c":3}}}')
    assert args.stack == '{"a":[1,2], "b":{"c":3}}'


def test_plain_text_is_not_parsed():
    args = parse_formatter_args("a long long message not a json format\n")
    assert args == FormatterArgs()


def test_empty_input():
    assert parse_formatter_args(b"") == FormatterArgs()


def test_unicode_escapes_and_surrogates():
    args = parse_formatter_args('{"time":"t","k":"\\u00e9\\ud83c\\udf10"}')
    assert args.get("k") == "é🌐"


def test_lone_surrogate_becomes_replacement():
    args = parse_formatter_args('{"time":"t","k":"a\\ud800b"}')
    assert args.get("k") == "a\ufffdb"


def test_escaped_quote_in_value():
    args = parse_formatter_args('{"time":"t","k":"say \\"hi\\"","z":1}')
    assert args.get("k") == 'say "hi"'
    assert args.get("z") == "1"


def test_unterminated_string_stops_parsing():
    args = parse_formatter_args('{"time":"t","k":"open')
    assert args.time == "t"
    assert args.key_values == []
    assert args.level == ""