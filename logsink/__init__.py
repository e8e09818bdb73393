"""Writers for JSON log lines: console, logfmt, journald, rotating file and asynchronous."""

__version__ = "0.1.0"
__all__ = ["level", "formatter", "console", "journal", "file", "asyncwriter"]