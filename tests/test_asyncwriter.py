import threading

import pytest

from logsink.asyncwriter import AsyncWriter, AsyncWriterFullError
from logsink.file import FileWriter
from logsink.level import Level


class _Collector:
    def __init__(self):
        self.entries = []
        self.closed = False

    def write_entry(self, level, data):
        self.entries.append((level, bytes(data)))
        return len(data)

    def close(self):
        self.closed = True


class _StreamOnly:
    def __init__(self):
        self.chunks = []

    def write(self, data):
        self.chunks.append(bytes(data))
        return len(data)


class _Blocking:
    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.entries = []

    def write_entry(self, level, data):
        self.started.set()
        self.release.wait(5)
        self.entries.append(bytes(data))
        return len(data)


def _lines(count):
    return [f"{i}, during async writer test\n".encode() for i in range(count)]


@pytest.mark.parametrize("channel_size", [0, 5])
def test_entries_delivered_in_order(channel_size):
    target = _Collector()
    w = AsyncWriter(writer=target, channel_size=channel_size)
    lines = _lines(10)
    for line in lines:
        assert w.write_entry(Level.INFO, line) == len(line)
    w.close()
    assert target.entries == [(Level.INFO, line) for line in lines]
    assert target.closed


def test_write_uses_info_level():
    target = _Collector()
    w = AsyncWriter(writer=target)
    assert w.write("hello\n") == 6
    w.write_entry(Level.ERROR, b"bad\n")
    w.close()
    assert target.entries == [(Level.INFO, b"hello\n"), (Level.ERROR, b"bad\n")]


def test_writer_with_only_write():
    target = _StreamOnly()
    with AsyncWriter(writer=target, channel_size=3) as w:
        w.write(b"a\n")
        w.write(b"b\n")
    assert target.chunks == [b"a\n", b"b\n"]


@pytest.mark.parametrize("disable_writev", [False, True])
def test_file_writer_sizes_match(tmp_path, disable_writev):
    direct = FileWriter(filename=str(tmp_path / "async_file_test1.log"))
    target = FileWriter(filename=str(tmp_path / "async_file_test2.log"))
    w = AsyncWriter(writer=target, channel_size=4096, disable_writev=disable_writev)

    line = b"hello file writer\n"
    count = 5000
    for _ in range(count):
        direct.write(line)
        w.write(line)

    direct.close()
    w.close()

    size1 = (tmp_path / "async_file_test1.log").stat().st_size
    size2 = (tmp_path / "async_file_test2.log").stat().st_size
    assert size1 == size2 == count * len(line)
    assert (tmp_path / "async_file_test2.log").read_bytes() == line * count


def test_discard_on_full_raises():
    target = _Blocking()
    w = AsyncWriter(writer=target, channel_size=1, discard_on_full=True)

    w.write(b"one")
    assert target.started.wait(5)
    w.write(b"two")
    with pytest.raises(AsyncWriterFullError):
        w.write(b"three")

    target.release.set()
    w.close()
    assert target.entries == [b"one", b"two"]


def test_close_reports_last_write_error():
    class Failing:
        def write_entry(self, level, data):
            raise OSError("disk full")

    w = AsyncWriter(writer=Failing())
    w.write(b"x")
    with pytest.raises(OSError, match="disk full"):
        w.close()


def test_later_success_clears_write_error():
    class FlakyOnce:
        def __init__(self):
            self.calls = 0
            self.entries = []

        def write_entry(self, level, data):
            self.calls += 1
            if self.calls == 1:
                raise OSError("transient")
            self.entries.append(data)
            return len(data)

    target = FlakyOnce()
    w = AsyncWriter(writer=target)
    w.write(b"first")
    w.write(b"second")
    w.close()
    assert target.entries == [b"second"]


def test_close_error_of_writer_propagates():
    class BadClose(_Collector):
        def close(self):
            raise OSError("cannot close")

    target = BadClose()
    w = AsyncWriter(writer=target)
    w.write(b"x")
    with pytest.raises(OSError, match="cannot close"):
        w.close()
    assert target.entries == [(Level.INFO, b"x")]


def test_write_after_close_rejected():
    target = _Collector()
    w = AsyncWriter(writer=target)
    w.close()
    assert target.closed
    with pytest.raises(ValueError):
        w.write(b"late")