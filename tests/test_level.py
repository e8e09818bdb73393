import pytest

from logsink.level import Level, parse_level

CASES = [
    (Level.TRACE, "trace"),
    (Level.DEBUG, "debug"),
    (Level.INFO, "info"),
    (Level.WARN, "warn"),
    (Level.ERROR, "error"),
    (Level.FATAL, "fatal"),
    (Level.PANIC, "panic"),
    (Level.NO_LEVEL, "????"),
]


@pytest.mark.parametrize("level,text", CASES)
def test_parse_level(level, text):
    assert parse_level(text) == level


@pytest.mark.parametrize("level,text", CASES)
def test_level_str(level, text):
    assert level.__str__() == text
    assert str(parse_level(text)) == text


@pytest.mark.parametrize(
    "text,level",
    [
        ("WARNING", Level.WARN),
        ("Warning", Level.WARN),
        ("WRN", Level.WARN),
        ("TRC", Level.TRACE),
        ("DBG", Level.DEBUG),
        ("INF", Level.INFO),
        ("ERR", Level.ERROR),
        ("FTL", Level.FATAL),
        ("PNC", Level.PANIC),
        ("Panic", Level.PANIC),
        ("hahaha", Level.NO_LEVEL),
        ("iNfO", Level.NO_LEVEL),
        ("", Level.NO_LEVEL),
    ],
)
def test_parse_level_aliases(text, level):
    assert parse_level(text) is level


def test_levels_are_ordered():
    names = ["trace", "debug", "info", "warn", "error", "fatal", "panic", "unknown"]
    levels = [parse_level(name) for name in names]
    assert levels == sorted(levels)
    assert len(set(levels)) == len(levels)