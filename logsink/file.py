"""A log file writer with size-based rotation and backup cleanup."""

from __future__ import annotations

import os
import random
import socket
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Callable, Iterable, Optional

__all__ = [
    "FileWriter",
    "TIME_FORMAT_UNIX",
    "TIME_FORMAT_UNIX_MS",
    "HOSTNAME",
    "PID",
]

TIME_FORMAT_UNIX = "\x01"
"""Name rotated files with the UNIX time in seconds."""

TIME_FORMAT_UNIX_MS = "\x02"
"""Name rotated files with the UNIX time in milliseconds."""

_DEFAULT_TIME_FORMAT = "%Y-%m-%dT%H-%M-%S"
_DEFAULT_MODE = 0o644
_FOLDER_MODE = 0o755
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _hostname() -> str:
    try:
        host = socket.gethostname()
    except OSError:
        host = "localhost"
    if host.startswith("localhost"):
        host = f"localhost-{random.randrange(1000000)}"
    return host


HOSTNAME = _hostname()
PID = os.getpid()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _ext(path: str) -> str:
    """Extension of the last path element, including the dot."""
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _as_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _write_stderr(data: bytes) -> int:
    stream = sys.stderr
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        stream.write(data.decode("utf-8", errors="replace"))
        stream.flush()
        return len(data)
    stream.flush()
    written = buffer.write(data)
    buffer.flush()
    return len(data) if written is None else written


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        pass


def _mtime_seconds(entry: os.DirEntry) -> int:
    try:
        return int(entry.stat(follow_symlinks=False).st_mtime)
    except OSError:
        return 0


Header = Callable[[os.stat_result], Optional[bytes]]
Cleaner = Callable[[str, int, list], None]


@dataclass(eq=False)
class FileWriter:
    """Writes log data to a timestamped file and rotates it.

    The real file is named ``name.timestamp.ext`` next to ``filename``;
    ``filename`` itself becomes a symbolic link to the current file unless
    ``process_id`` is set. Without a ``filename`` data goes to standard
    error. After each rotation the newest ``max_backups + 1`` matching files
    are kept, unless a ``cleaner`` takes over that job.
    """

    filename: str = ""
    max_size: int = 0
    max_backups: int = 0
    file_mode: int = 0
    time_format: str = ""
    local_time: bool = False
    host_name: bool = False
    process_id: bool = False
    ensure_folder: bool = False
    header: Optional[Header] = None
    cleaner: Optional[Cleaner] = None

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _file: Optional[BinaryIO] = field(default=None, init=False, repr=False)
    _path: str = field(default="", init=False, repr=False)
    _size: int = field(default=0, init=False, repr=False)

    def write(self, data: bytes | bytearray | memoryview | str) -> int:
        """Append data, rotating once the file grows past ``max_size``."""
        with self._lock:
            return self._write(_as_bytes(data))

    def write_entry(self, level: int, data: bytes | bytearray | memoryview | str) -> int:
        """Write one log entry; the level does not affect file output."""
        return self.write(data)

    def write_many(self, chunks: Iterable[bytes | bytearray | memoryview | str]) -> int:
        """Append several chunks in a single write."""
        with self._lock:
            return self._write(b"".join(_as_bytes(chunk) for chunk in chunks))

    def rotate(self) -> None:
        """Switch to a freshly named file and clean up old backups."""
        with self._lock:
            self._rotate()

    def close(self) -> None:
        """Close the current log file; the next write opens a new one."""
        with self._lock:
            if self._file is not None:
                try:
                    self._file.close()
                finally:
                    self._file = None
                    self._size = 0

    def __enter__(self) -> "FileWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def filename_for(self, now: datetime) -> str:
        """Return the name of the log file to use at time ``now``."""
        now = now.astimezone() if self.local_time else now.astimezone(timezone.utc)
        ext = _ext(self.filename)
        prefix = self.filename[: len(self.filename) - len(ext)]
        if not self.time_format:
            stamp = now.strftime(_DEFAULT_TIME_FORMAT)
        elif self.time_format == TIME_FORMAT_UNIX:
            stamp = str((now - _EPOCH) // timedelta(seconds=1))
        elif self.time_format == TIME_FORMAT_UNIX_MS:
            stamp = str((now - _EPOCH) // timedelta(milliseconds=1))
        else:
            stamp = now.strftime(self.time_format)
        name = f"{prefix}.{stamp}"
        if self.host_name and self.process_id:
            name += f".{HOSTNAME}-{PID}"
        elif self.host_name:
            name += f".{HOSTNAME}"
        elif self.process_id:
            name += f".{PID}"
        return name + ext

    @property
    def _folder(self) -> str:
        return os.path.dirname(self.filename) or "."

    def _open(self, path: str) -> BinaryIO:
        mode = self.file_mode or _DEFAULT_MODE
        fd = os.open(path, os.O_APPEND | os.O_CREAT | os.O_WRONLY, mode)
        return os.fdopen(fd, "ab", buffering=0)

    def _write(self, data: bytes) -> int:
        if self._file is None:
            if not self.filename:
                return _write_stderr(data)
            if self.ensure_folder:
                os.makedirs(self._folder, mode=_FOLDER_MODE, exist_ok=True)
            self._create()

        written = self._file.write(data)
        written = len(data) if written is None else written
        self._size += written
        if self.max_size > 0 and self._size > self.max_size and self.filename:
            self._rotate()
        return written

    def _create(self) -> None:
        path = self.filename_for(_now())
        self._file = self._open(path)
        self._path = path
        self._size = 0
        st = os.fstat(self._file.fileno())
        self._size = st.st_size

        self._rotate()

        if self._size == 0 and self.header is not None:
            head = self.header(st)
            if head:
                self._size += self._file.write(head)

        self._relink(self._path)

    def _rotate(self) -> None:
        path = self.filename_for(_now())
        try:
            new_file = self._open(path)
        except FileNotFoundError:
            if not self.ensure_folder:
                raise
            os.makedirs(self._folder, mode=_FOLDER_MODE, exist_ok=True)
            new_file = self._open(path)

        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                pass
        self._file = new_file
        self._path = path
        self._size = 0

        if self.header is not None:
            head = self.header(os.fstat(new_file.fileno()))
            if head:
                try:
                    self._size += new_file.write(head)
                except OSError:
                    return

        self._tidy(path)

    def _relink(self, target: str) -> None:
        _remove_quietly(self.filename)
        if not self.process_id:
            try:
                os.symlink(os.path.basename(target), self.filename)
            except (OSError, NotImplementedError):
                pass

    def _chown(self, target: str) -> None:
        try:
            uid = int(os.environ.get("SUDO_UID", "0"))
            gid = int(os.environ.get("SUDO_GID", "0"))
        except ValueError:
            return
        geteuid = getattr(os, "geteuid", None)
        if uid == 0 or gid == 0 or geteuid is None or geteuid() != 0:
            return
        for chown, path in ((os.lchown, self.filename), (os.chown, target)):
            try:
                chown(path, uid, gid)
            except OSError:
                pass

    def _tidy(self, target: str) -> None:
        self._relink(target)
        self._chown(target)

        folder = self._folder
        try:
            with os.scandir(folder) as it:
                entries = list(it)
        except OSError:
            return

        base = os.path.basename(self.filename)
        ext = _ext(self.filename)
        prefix = base[: len(base) - len(ext)] + "."
        gz_ext = ext + ".gz"
        excluded = prefix + "error" + ext

        matches = [
            entry
            for entry in entries
            if entry.name not in (base, excluded)
            and entry.name.startswith(prefix)
            and (entry.name.endswith(ext) or entry.name.endswith(gz_ext))
        ]
        matches.sort(key=_mtime_seconds)

        if self.cleaner is not None:
            self.cleaner(self.filename, self.max_backups, matches)
            return
        for entry in matches[: max(len(matches) - self.max_backups - 1, 0)]:
            _remove_quietly(os.path.join(folder, entry.name))