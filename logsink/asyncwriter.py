"""A writer that hands log entries to a background thread."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from .file import FileWriter
from .level import Level

__all__ = ["AsyncWriter", "AsyncWriterFullError"]

_BATCH_MAX = 1024


class AsyncWriterFullError(Exception):
    """Raised when an entry is dropped because the queue is full."""


def _as_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


@dataclass(eq=False)
class AsyncWriter:
    """Queues log entries and writes them to ``writer`` from a worker thread.

    ``writer`` needs ``write_entry(level, data)`` or ``write(data)``. The
    queue holds ``channel_size`` entries (at least one). With
    ``discard_on_full`` a full queue makes writes fail instead of block.
    When the target is a FileWriter, queued entries are written in batches
    unless ``disable_writev`` is set.
    """

    writer: Any
    channel_size: int = 0
    discard_on_full: bool = False
    disable_writev: bool = False

    _init_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _queue: Optional[queue.Queue] = field(default=None, init=False, repr=False)
    _thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _error: Optional[BaseException] = field(default=None, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def write(self, data: bytes | bytearray | memoryview | str) -> int:
        """Queue data as an info-level entry."""
        return self.write_entry(Level.INFO, data)

    def write_entry(self, level: int, data: bytes | bytearray | memoryview | str) -> int:
        """Queue one entry and return its length."""
        if self._closed:
            raise ValueError("write to a closed AsyncWriter")
        q = self._start()
        payload = _as_bytes(data)
        item = (level, payload)
        if self.discard_on_full:
            try:
                q.put_nowait(item)
            except queue.Full:
                raise AsyncWriterFullError("async writer is full") from None
        else:
            q.put(item)
        return len(payload)

    def close(self) -> None:
        """Flush queued entries, stop the worker and close ``writer``.

        Re-raises the error of the last failed write, or the error from
        closing ``writer``, which takes precedence.
        """
        with self._init_lock:
            if self._closed:
                return
            self._closed = True
        q = self._start()
        q.put(None)
        self._thread.join()
        error = self._error
        closer = getattr(self.writer, "close", None)
        if callable(closer):
            closer()
        if error is not None:
            raise error

    def __enter__(self) -> "AsyncWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _start(self) -> queue.Queue:
        with self._init_lock:
            if self._queue is None:
                self._queue = queue.Queue(maxsize=max(self.channel_size, 1))
                batched = isinstance(self.writer, FileWriter) and not self.disable_writev
                target = self._drain_batches if batched else self._drain
                self._thread = threading.Thread(target=target, name="logsink-async", daemon=True)
                self._thread.start()
            return self._queue

    def _deliver(self, level: int, data: bytes) -> None:
        write_entry = getattr(self.writer, "write_entry", None)
        if write_entry is not None:
            write_entry(level, data)
        else:
            self.writer.write(data)

    def _drain(self) -> None:
        q = self._queue
        error: Optional[BaseException] = None
        while True:
            item = q.get()
            if item is None:
                break
            try:
                self._deliver(*item)
                error = None
            except Exception as exc:
                error = exc
        self._error = error

    def _drain_batches(self) -> None:
        q = self._queue
        error: Optional[BaseException] = None
        done = False
        while not done:
            first = q.get()
            if first is None:
                break
            chunks = [first[1]]
            while len(chunks) < _BATCH_MAX:
                try:
                    item = q.get_nowait()
                except queue.Empty:
                    break
                if item is None:
                    done = True
                    break
                chunks.append(item[1])
            try:
                self.writer.write_many(chunks)
                error = None
            except Exception as exc:
                error = exc
        self._error = error