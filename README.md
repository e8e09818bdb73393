# logsink

Writers for line-oriented JSON log records. Each writer takes one encoded
JSON record, usually together with its level, and sends it to a destination.

## Modules

- `logsink.level`: the `Level` enum (`TRACE`, `DEBUG`, `INFO`, `WARN`,
  `ERROR`, `FATAL`, `PANIC`, `NO_LEVEL`). `str(level)` gives the lower-case
  name, or `"????"` for `NO_LEVEL`. `parse_level` accepts the usual
  spellings (`"warn"`, `"WARNING"`, `"WRN"`, ...) and returns
  `Level.NO_LEVEL` for anything it does not recognise.
- `logsink.formatter`: `parse_formatter_args(data)` reads one JSON object
  line into a `FormatterArgs`. That object holds `time`, `level`, `caller`,
  `caller_func`, `goid`, `stack` and `message`, and keeps every other field
  as a `KeyValue(key, value, value_type)` in `key_values`. The first
  occurrence of a well-known field wins. `message`, `msg` and `_msg` all
  fill `message`. While no time has been seen, the first unknown field is
  taken as the time. A missing level becomes `"????"`.
  `FormatterArgs.get(key)` returns the value of the last field with that
  name.
- `logsink.console`:
  - `ConsoleWriter` renders records as
    `{time} {LVL} {goid} {caller} > {message} key=value ...`. The options
    are `color_output` (ANSI colours), `quote_string` (quote string
    values), `end_with_message` (put the message last) and `formatter` (a
    callable `(out, args) -> int` that replaces the built-in layout).
  - Records without a time field are written through unchanged.
  - `writer` defaults to standard error, and `close()` closes it if one was
    given.
  - `LogfmtFormatter(time_field).format` writes logfmt lines and can be
    passed as `formatter`.
  - `is_terminal(fd)` reports whether a descriptor is a terminal.
- `logsink.journal`:
  - `JournalWriter` sends records to systemd-journald over its datagram
    socket. The socket is `journal_socket`, or
    `/run/systemd/journal/socket` when that is empty.
  - Each record's level becomes a journald priority, and its fields become
    upper-case journal fields.
  - Records that are too large for one datagram go through a file in
    `/dev/shm`.
  - Records without a time field are dropped.
  - It works on Linux only.
- `logsink.file`:
  - `FileWriter` writes to files named `name.<timestamp>.ext` next to
    `filename`. Unless `process_id` is set, `filename` itself becomes a
    symlink to the current file.
  - Options: `max_size` (rotate once the file grows past it), `max_backups`,
    `file_mode`, `time_format` (an `strftime` pattern, or
    `TIME_FORMAT_UNIX` / `TIME_FORMAT_UNIX_MS`), `local_time`, `host_name`,
    `process_id`, `ensure_folder`, `header` (bytes written at the top of
    each new file) and `cleaner` (replaces the default removal of old
    backups).
  - Methods: `write`, `write_entry`, `write_many`, `rotate`, `close` and
    `filename_for(now)`.
  - Without a `filename`, data goes to standard error.
  - After each rotation the newest `max_backups + 1` matching files are
    kept.
- `logsink.asyncwriter`:
  - `AsyncWriter` puts a queue of `channel_size` entries (at least one) and
    a background thread in front of any writer that has `write_entry` or
    `write`.
  - With `discard_on_full`, a full queue raises `AsyncWriterFullError`
    instead of blocking.
  - When the target is a `FileWriter`, queued entries are written in
    batches through `write_many`, unless `disable_writev` is set.
  - `close()` flushes the queue, closes the target, and re-raises the error
    of the last failed write.

`FileWriter`, `JournalWriter` and `AsyncWriter` can also be used as context
managers.

## Example

```python
from logsink.level import Level
from logsink.console import ConsoleWriter, LogfmtFormatter
from logsink.file import FileWriter
from logsink.asyncwriter import AsyncWriter

line = b'{"time":"2019-07-10T05:35:54.277Z","level":"info","foo":"bar","message":"hello"}\n'

ConsoleWriter(color_output=True).write_entry(Level.INFO, line)
ConsoleWriter(formatter=LogfmtFormatter("time").format).write(line)

with AsyncWriter(writer=FileWriter(filename="app.log", max_size=10 * 1024 * 1024, max_backups=3)) as writer:
    writer.write(line)
```

## What it does not do

The package has no logger that builds records. It does not offer levelled
logging calls, field helpers or caller capture. You produce the JSON lines
yourself and hand them to a writer. There is also no command-line program.

## Tests

```
pip install -e .[test]
pytest
```