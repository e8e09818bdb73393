"""Lenient extraction of well-known fields from a JSON log line."""

from __future__ import annotations

import string
from dataclasses import dataclass, field

__all__ = ["KeyValue", "FormatterArgs", "parse_formatter_args"]

_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_SPACE = ord(" ")
_HEXDIGITS = frozenset(string.hexdigits)


@dataclass
class KeyValue:
    """A field that is not one of the well-known ones.

    ``value_type`` is ``"s"`` for strings, ``"n"`` for numbers, ``"t"`` and
    ``"f"`` for booleans, ``"o"`` for objects and arrays and ``""`` for null.
    """

    key: str
    value: str
    value_type: str


@dataclass
class FormatterArgs:
    """Fields parsed out of a JSON log line."""

    time: str = ""
    level: str = ""
    caller: str = ""
    caller_func: str = ""
    goid: str = ""
    stack: str = ""
    message: str = ""
    key_values: list[KeyValue] = field(default_factory=list)

    def get(self, key: str) -> str:
        """Return the value of the last field named ``key``, or ``""``."""
        for kv in reversed(self.key_values):
            if kv.key == key:
                return kv.value
        return ""


_FIELD_FOR_KEY = {
    "time": "time",
    "level": "level",
    "caller": "caller",
    "callerfunc": "caller_func",
    "goid": "goid",
    "stack": "stack",
    "message": "message",
    "msg": "message",
    "_msg": "message",
}


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def parse_formatter_args(data: bytes | str) -> FormatterArgs:
    """Parse a JSON object log line into FormatterArgs.

    The first occurrence of a well-known field wins. While no time has been
    seen, the first unknown field is taken as the time. Input that is not a
    JSON object leaves every field empty.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    args = FormatterArgs()
    n = len(data)
    if n == 0 or data[0] != ord("{"):
        return args

    key = b""
    i = 1
    while i < n:
        if data[i] != _QUOTE:
            i += 1
            continue
        i, raw, _, ok = _parse_string(data, i + 1)
        if not ok:
            return args
        key = raw[1:-1]
        while i < n and (data[i] <= _SPACE or data[i] in b",:"):
            i += 1
        i, typ, raw, ok = _parse_any(data, i)
        if not ok:
            return args
        if typ == "s":
            raw = raw[1:-1]
        elif typ == "S":
            raw = _unescape(raw[1:-1])
            typ = "s"

        name = _text(key)
        attr = _FIELD_FOR_KEY.get(name)
        if attr is None and args.time == "":
            attr = "time"
        if attr is not None:
            if attr == "level" and raw.endswith(b"\n"):
                raw = raw[:-1]
            if getattr(args, attr) == "":
                setattr(args, attr, _text(raw))
        else:
            args.key_values.append(KeyValue(name, _text(raw), typ))
        i += 1

    if args.level == "":
        args.level = "????"
    return args


def _escaped_quote(data: bytes, i: int, low: int) -> bool:
    """Whether the quote at ``i`` is escaped by an odd run of backslashes."""
    if data[i - 1] != _BACKSLASH:
        return False
    run = 0
    j = i - 2
    while j > low:
        if data[j] != _BACKSLASH:
            break
        run += 1
        j -= 1
    return run % 2 == 0


def _parse_string(data: bytes, i: int) -> tuple[int, bytes, bool, bool]:
    """Scan a string whose opening quote is at ``i - 1``.

    Returns (next index, raw quoted bytes, has escapes, ok).
    """
    start = i
    n = len(data)
    while i < n:
        c = data[i]
        if c > _BACKSLASH:
            i += 1
            continue
        if c == _QUOTE:
            return i + 1, data[start - 1 : i + 1], False, True
        if c == _BACKSLASH:
            i += 1
            while i < n:
                c = data[i]
                if c == _QUOTE and not _escaped_quote(data, i, 0):
                    return i + 1, data[start - 1 : i + 1], True, True
                i += 1
            break
        i += 1
    return i, data[start - 1 :], False, False


def _parse_any(data: bytes, i: int) -> tuple[int, str, bytes, bool]:
    """Parse the next value; returns (next index, type, raw bytes, ok)."""
    n = len(data)
    while i < n:
        c = data[i]
        if c in b"{[":
            i, raw = _parse_squash(data, i)
            return i, "o", raw, True
        if c <= _SPACE:
            i += 1
            continue
        if c == _QUOTE:
            i, raw, escaped, ok = _parse_string(data, i + 1)
            if not ok:
                return i, "s", raw, False
            return i, "S" if escaped else "s", raw, True
        if c in b"-0123456789":
            i, raw = _parse_number(data, i)
            return i, "n", raw, True
        if c in b"tfn":
            i, raw = _parse_literal(data, i)
            typ = {ord("t"): "t", ord("f"): "f"}.get(c, "")
            return i, typ, raw, True
        i += 1
    return i, "", b"", False


def _parse_squash(data: bytes, i: int) -> tuple[int, bytes]:
    """Skip a nested object or array starting at ``i``."""
    start = i
    i += 1
    depth = 1
    n = len(data)
    while i < n:
        c = data[i]
        if c == _QUOTE:
            i += 1
            inner_start = i
            while i < n:
                if data[i] == _QUOTE and not _escaped_quote(data, i, inner_start - 1):
                    break
                i += 1
        elif c in b"{[(":
            depth += 1
        elif c in b"}])":
            depth -= 1
            if depth == 0:
                i += 1
                return i, data[start:i]
        i += 1
    return i, data[start:]


def _parse_number(data: bytes, i: int) -> tuple[int, bytes]:
    start = i
    i += 1
    n = len(data)
    while i < n:
        c = data[i]
        if c <= _SPACE or c in b",]}":
            return i, data[start:i]
        i += 1
    return i, data[start:]


def _parse_literal(data: bytes, i: int) -> tuple[int, bytes]:
    start = i
    i += 1
    n = len(data)
    while i < n:
        c = data[i]
        if c < ord("a") or c > ord("z"):
            return i, data[start:i]
        i += 1
    return i, data[start:]


def _hex4(raw: bytes) -> int:
    text = raw.decode("ascii", errors="replace")
    if len(text) == 4 and all(ch in _HEXDIGITS for ch in text):
        return int(text, 16)
    return 0


def _encode_rune(r: int) -> bytes:
    if 0xD800 <= r < 0xE000 or r > 0x10FFFF:
        return "\ufffd".encode("utf-8")
    return chr(r).encode("utf-8")


_SIMPLE_ESCAPES = {
    ord("\\"): b"\\",
    ord("/"): b"/",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord('"'): b'"',
}


def _unescape(raw: bytes) -> bytes:
    """Decode JSON string escapes, stopping at the first malformed one."""
    out = bytearray()
    n = len(raw)
    i = 0
    while i < n:
        c = raw[i]
        if c < _SPACE:
            break
        if c != _BACKSLASH:
            out.append(c)
            i += 1
            continue
        i += 1
        if i >= n:
            break
        esc = raw[i]
        if esc in _SIMPLE_ESCAPES:
            out += _SIMPLE_ESCAPES[esc]
            i += 1
            continue
        if esc != ord("u") or i + 5 > n:
            break
        r = _hex4(raw[i + 1 : i + 5])
        i += 5
        if 0xD800 <= r < 0xE000:
            if n - i >= 6 and raw[i] == _BACKSLASH and raw[i + 1] == ord("u"):
                low = _hex4(raw[i + 2 : i + 6])
                if 0xD800 <= r < 0xDC00 and 0xDC00 <= low < 0xE000:
                    r = 0x10000 + ((r - 0xD800) << 10) + (low - 0xDC00)
                else:
                    r = 0xFFFD
                i += 6
        out += _encode_rune(r)
    return bytes(out)