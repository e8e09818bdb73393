"""Log levels and their textual names."""

from __future__ import annotations

from enum import IntEnum

__all__ = ["Level", "parse_level"]


class Level(IntEnum):
    """Severity of a log entry; higher values are more severe."""

    TRACE = 1
    DEBUG = 2
    INFO = 3
    WARN = 4
    ERROR = 5
    FATAL = 6
    PANIC = 7
    NO_LEVEL = 8

    def __str__(self) -> str:
        return _NAMES.get(self, "????")


_NAMES = {
    Level.TRACE: "trace",
    Level.DEBUG: "debug",
    Level.INFO: "info",
    Level.WARN: "warn",
    Level.ERROR: "error",
    Level.FATAL: "fatal",
    Level.PANIC: "panic",
}

_ALIASES = {
    Level.TRACE: ("trace", "Trace", "TRACE", "TRC"),
    Level.DEBUG: ("debug", "Debug", "DEBUG", "DBG"),
    Level.INFO: ("info", "Info", "INFO", "INF"),
    Level.WARN: ("warn", "Warn", "WARN", "warning", "Warning", "WARNING", "WRN"),
    Level.ERROR: ("error", "Error", "ERROR", "ERR"),
    Level.FATAL: ("fatal", "Fatal", "FATAL", "FTL"),
    Level.PANIC: ("panic", "Panic", "PANIC", "PNC"),
}

_BY_NAME = {alias: level for level, aliases in _ALIASES.items() for alias in aliases}


def parse_level(s: str) -> Level:
    """Convert a level name into a Level; unknown names give Level.NO_LEVEL."""
    return _BY_NAME.get(s, Level.NO_LEVEL)