"""Sending log entries to the systemd journal over its datagram socket."""

from __future__ import annotations

import errno
import socket
import struct
import tempfile
import threading
from dataclasses import dataclass, field
from typing import Optional

from .formatter import parse_formatter_args
from .level import Level

__all__ = ["JournalWriter"]

_DEFAULT_SOCKET = "/run/systemd/journal/socket"

_PRIORITY = {
    Level.TRACE: "7",
    Level.DEBUG: "7",
    Level.INFO: "6",
    Level.WARN: "4",
    Level.ERROR: "3",
    Level.FATAL: "2",
    Level.PANIC: "0",
}
_NOTICE = "5"


def _field(buf: bytearray, name: bytes, value: str) -> None:
    encoded = value.encode("utf-8")
    buf += name
    if b"\n" in encoded:
        buf += b"\n"
        buf += struct.pack("<Q", len(encoded))
        buf += encoded
        buf += b"\n"
    else:
        buf += b"="
        buf += encoded
        buf += b"\n"


@dataclass
class JournalWriter:
    """Writes JSON log lines to journald using its native protocol.

    Lines that are not JSON objects with a time field are dropped.
    """

    journal_socket: str = ""
    _sock: Optional[socket.socket] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def _address(self) -> str:
        return self.journal_socket or _DEFAULT_SOCKET

    def _connect(self) -> socket.socket:
        with self._lock:
            if self._sock is None:
                sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
                try:
                    sock.bind("")  # autobind to an abstract address
                except OSError:
                    sock.close()
                    raise
                self._sock = sock
            return self._sock

    def write_entry(self, level: int, data: bytes | bytearray | str) -> int:
        """Send one entry; returns the number of bytes handed to journald."""
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        sock = self._connect()

        args = parse_formatter_args(raw)
        if args.time == "":
            return 0

        payload = bytearray()
        _field(payload, b"PRIORITY", _PRIORITY.get(level, _NOTICE))
        _field(payload, b"MESSAGE", args.message)
        if args.caller:
            _field(payload, b"CALLER", args.caller)
        if args.goid:
            _field(payload, b"GOID", args.goid)
        if args.stack:
            _field(payload, b"STACK", args.stack)
        for kv in args.key_values:
            _field(payload, kv.key.encode("utf-8").upper(), kv.value)
        _field(payload, b"JSON", raw.decode("utf-8", errors="replace"))

        try:
            return sock.sendto(bytes(payload), self._address)
        except OSError as exc:
            if exc.errno not in (errno.EMSGSIZE, errno.ENOBUFS):
                raise

        # Too large for a datagram: pass it through an unlinked shared-memory file.
        with tempfile.TemporaryFile(dir="/dev/shm/", prefix="journal.") as tmp:
            tmp.write(payload)
            tmp.flush()
            socket.send_fds(sock, [b""], [tmp.fileno()], 0, self._address)
        return len(raw)

    def close(self) -> None:
        """Close the connection to journald."""
        with self._lock:
            if self._sock is not None:
                self._sock.close()
                self._sock = None

    def __enter__(self) -> "JournalWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()