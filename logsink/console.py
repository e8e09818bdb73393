"""Human-friendly rendering of JSON log lines for terminals."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional, TextIO

from .formatter import FormatterArgs, parse_formatter_args

__all__ = ["is_terminal", "ConsoleWriter", "LogfmtFormatter"]

Formatter = Callable[[Any, FormatterArgs], int]

_RESET = "\x1b[0m"
_RED = "\x1b[31m"
_GREEN = "\x1b[32m"
_YELLOW = "\x1b[33m"
_MAGENTA = "\x1b[35m"
_CYAN = "\x1b[36m"
_GRAY = "\x1b[90m"

_LEVEL_STYLE = {
    "trace": (_MAGENTA, "TRC"),
    "debug": (_YELLOW, "DBG"),
    "info": (_GREEN, "INF"),
    "warn": (_RED, "WRN"),
    "error": (_RED, "ERR"),
    "fatal": (_RED, "FTL"),
    "panic": (_RED, "PNC"),
}
_UNKNOWN_STYLE = (_GRAY, "???")

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def is_terminal(fd: int) -> bool:
    """Return whether the file descriptor refers to a terminal."""
    try:
        return os.isatty(fd)
    except OSError:
        return False


def _quote(s: str) -> str:
    """Double-quote ``s``, escaping control and non-printable characters."""
    parts = ['"']
    for ch in s:
        escaped = _ESCAPES.get(ch)
        if escaped is not None:
            parts.append(escaped)
        elif ch.isprintable():
            parts.append(ch)
        else:
            cp = ord(ch)
            if cp < 0x80:
                parts.append(f"\\x{cp:02x}")
            elif cp <= 0xFFFF:
                parts.append(f"\\u{cp:04x}")
            else:
                parts.append(f"\\U{cp:08x}")
    parts.append('"')
    return "".join(parts)


def _emit(out: Any, text: str) -> int:
    """Write ``text`` to a text or binary stream and return the count written."""
    try:
        written = out.write(text)
    except TypeError:
        encoded = text.encode("utf-8")
        written = out.write(encoded)
        return len(encoded) if written is None else written
    return len(text) if written is None else written


def _as_bytes(data: bytes | bytearray | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


@dataclass
class ConsoleWriter:
    """Parses JSON log lines and writes them in a readable, optionally coloured form.

    Default layout::

        {Time} {Level} {Goid} {Caller} > {Message} {Key}={Value} ...

    Input without a time field is written through unchanged. When
    ``formatter`` is set it renders every line and the other options are
    ignored. ``writer`` defaults to standard error.
    """

    color_output: bool = False
    quote_string: bool = False
    end_with_message: bool = False
    formatter: Optional[Formatter] = None
    writer: Optional[TextIO] = None

    def write(self, data: bytes | bytearray | str) -> int:
        """Render one log line and return the amount written."""
        out = self.writer if self.writer is not None else sys.stderr
        raw = _as_bytes(data)
        args = parse_formatter_args(raw)
        if args.time == "":
            return _emit(out, raw.decode("utf-8", errors="replace"))
        if self.formatter is not None:
            return self.formatter(out, args)
        return _emit(out, self._format(args))

    def write_entry(self, level: int, data: bytes | bytearray | str) -> int:
        """Write a log entry; the level is taken from the line itself."""
        return self.write(data)

    def close(self) -> None:
        """Close the underlying writer if one was given."""
        if self.writer is not None:
            closer = getattr(self.writer, "close", None)
            if closer is not None:
                closer()

    def _format(self, args: FormatterArgs) -> str:
        color, three = _LEVEL_STYLE.get(args.level, _UNKNOWN_STYLE)
        parts: list[str] = []
        if self.color_output:
            parts.append(f"{_GRAY}{args.time}{_RESET} {color}{three}{_RESET} ")
            if args.caller:
                parts.append(f"{args.goid} {args.caller} {_CYAN}>{_RESET}")
            else:
                parts.append(f"{_CYAN}>{_RESET}")
            if not self.end_with_message:
                parts.append(f" {args.message}")
            for kv in args.key_values:
                value = kv.value
                if self.quote_string and kv.value_type == "s":
                    value = _quote(value)
                if kv.key == "error" and value != "null":
                    parts.append(f" {_RED}{kv.key}={value}{_RESET}")
                else:
                    parts.append(f" {_CYAN}{kv.key}={_GRAY}{value}{_RESET}")
            if self.end_with_message:
                parts.append(f"{_RESET} {args.message}")
        else:
            parts.append(f"{args.time} {three} ")
            if args.caller:
                parts.append(f"{args.goid} {args.caller} >")
            else:
                parts.append(">")
            if not self.end_with_message:
                parts.append(f" {args.message}")
            for kv in args.key_values:
                if self.quote_string and kv.value_type == "s":
                    parts.append(f" {kv.key}={_quote(kv.value)}")
                else:
                    parts.append(f" {kv.key}={kv.value}")
            if self.end_with_message:
                parts.append(f" {args.message}")

        text = "".join(parts)
        if not text.endswith("\n"):
            text += "\n"
        if args.stack:
            text += args.stack
            if not args.stack.endswith("\n"):
                text += "\n"
        return text


@dataclass(frozen=True)
class LogfmtFormatter:
    """Formatter for ConsoleWriter that renders lines in logfmt style."""

    time_field: str = "time"

    def format(self, out: Any, args: FormatterArgs) -> int:
        """Write ``args`` to ``out`` as one logfmt line."""
        parts = [f"{self.time_field}={args.time} "]
        if args.level and not args.level.startswith("?"):
            parts.append(f"level={args.level} ")
        if args.caller:
            parts.append(f"goid={args.goid} caller={_quote(args.caller)} ")
        if args.stack:
            parts.append(f"stack={_quote(args.stack)} ")
        for kv in args.key_values:
            if kv.value_type == "t":
                parts.append(f"{kv.key} ")
            elif kv.value_type == "f":
                parts.append(f"{kv.key}=false ")
            elif kv.value_type in ("n", "S"):
                parts.append(f"{kv.key}={kv.value} ")
            else:
                parts.append(f"{kv.key}={_quote(kv.value)} ")
        parts.append(_quote(args.message))
        parts.append("\n")
        return _emit(out, "".join(parts))