"""Trace output sinks for observability.

Sinks receive trace records and handle their output to various destinations:
- FileSink: JSONL file output
- ConsoleSink: Formatted console output
- MemorySink: In-memory buffer for testing/analysis
- NullSink: Discards everything
"""

import sys
import threading
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, TextIO, Callable, TYPE_CHECKING

from procfuture.observability import ObservabilityHub, Sink, TraceLevel
from procfuture.observability.records import (
    TraceRecord,
    ProcessStartRecord,
    ProcessExitRecord,
    TaskResultRecord,
    MessageRecord,
)

if TYPE_CHECKING:
    from procfuture.config.schema import ObservabilitySchema, SinkSchema


class FileSink(Sink):
    """Sink that writes trace records to a JSONL file.

    Args:
        path: Path to the output file.
        buffer_size: Number of records to buffer before flushing (default: 100).
        append: Whether to append to existing file (default: False).

    Failure records (abnormal exits, task errors) are written through at
    once so they survive a caller that dies right after.
    """

    def __init__(
        self,
        path: str,
        buffer_size: int = 100,
        append: bool = False,
    ):
        self._path = Path(path)
        self._buffer_size = buffer_size

        self._buffer: List[str] = []
        self._lock = threading.Lock()

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file: Optional[TextIO] = open(self._path, "a" if append else "w", encoding="utf-8")

    def write(self, record: TraceRecord) -> None:
        line = record.to_json()

        with self._lock:
            self._buffer.append(line)
            if (
                len(self._buffer) >= self._buffer_size
                or record.min_level <= TraceLevel.MINIMAL
            ):
                self._flush_buffer()

    def _flush_buffer(self) -> None:
        """Must be called with lock held."""
        if not self._buffer or self._file is None:
            return

        self._file.write("".join(line + "\n" for line in self._buffer))
        self._file.flush()
        self._buffer.clear()

    def flush(self) -> None:
        with self._lock:
            self._flush_buffer()

    def close(self) -> None:
        with self._lock:
            self._flush_buffer()
            if self._file is not None:
                self._file.close()
                self._file = None


class ConsoleSink(Sink):
    """Sink that writes one human-readable line per record.

    Args:
        stream: Output stream (default: sys.stderr).
        color: Enable ANSI color codes when the stream is a terminal.
        format_fn: Optional custom format function; returning None skips
            the record.
    """

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "gray": "\033[90m",
    }

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        color: bool = True,
        format_fn: Optional[Callable[[TraceRecord], Optional[str]]] = None,
    ):
        self._stream = stream or sys.stderr
        self._color = color and hasattr(self._stream, "isatty") and self._stream.isatty()
        self._format_fn = format_fn
        self._lock = threading.Lock()

    def _colorize(self, text: str, color: str) -> str:
        if not self._color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def write(self, record: TraceRecord) -> None:
        if self._format_fn:
            line = self._format_fn(record)
        else:
            line = self._format_record(record)

        if line:
            with self._lock:
                self._stream.write(line + "\n")
                self._stream.flush()

    def _format_record(self, record: TraceRecord) -> Optional[str]:
        if isinstance(record, ProcessStartRecord):
            tag = self._colorize("[START]", "cyan")
            return f"{tag} {record.name} pid={record.pid} ({record.flavor}): {' '.join(record.argv)}"
        if isinstance(record, ProcessExitRecord):
            if record.returncode == 0:
                tag = self._colorize("[EXIT]", "green")
            else:
                tag = self._colorize("[EXIT]", "red")
            return (
                f"{tag} {record.name} pid={record.pid} code={record.returncode} "
                f"after {record.duration_ms:.0f}ms"
            )
        if isinstance(record, TaskResultRecord):
            if record.ok:
                return f"{self._colorize('[TASK]', 'green')} {record.name} ok"
            return f"{self._colorize('[TASK]', 'red')} {record.name} raised {record.category}"
        if isinstance(record, MessageRecord):
            return f"{self._colorize('[MSG]', 'gray')} {record.name}: {record.value_repr}"
        return None

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()


class MemorySink(Sink):
    """Sink that stores trace records in memory.

    Useful for testing and for in-session analysis.

    Args:
        max_records: Maximum number of records to keep (default: 10000).
    """

    def __init__(self, max_records: int = 10000):
        self._records: Deque[TraceRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def write(self, record: TraceRecord) -> None:
        with self._lock:
            self._records.append(record)

    def get_records(self, record_type: Optional[str] = None) -> List[TraceRecord]:
        """Get stored records, optionally filtered by record type."""
        with self._lock:
            records = list(self._records)

        if record_type:
            records = [r for r in records if r.record_type == record_type]

        return records

    def get_by_name(self, name: str) -> List[TraceRecord]:
        """Get all records of one process label."""
        return [r for r in self.get_records() if getattr(r, "name", None) == name]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class NullSink(Sink):
    """Sink that discards all records."""

    def write(self, record: TraceRecord) -> None:
        pass


def create_sink(schema: "SinkSchema") -> Sink:
    """Build a sink from its configuration."""
    if schema.type == "file":
        return FileSink(schema.path, **schema.options)
    if schema.type == "console":
        return ConsoleSink(**schema.options)
    if schema.type == "memory":
        return MemorySink(**schema.options)
    return NullSink()


def configure_from_schema(
    schema: "ObservabilitySchema",
    hub: Optional[ObservabilityHub] = None,
) -> ObservabilityHub:
    """Configure a hub (default: the singleton) from configuration."""
    hub = hub or ObservabilityHub.get_instance()
    hub.configure(
        level=TraceLevel.from_string(schema.level),
        sinks=[create_sink(s) for s in schema.sinks],
    )
    return hub


__all__ = [
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
    "create_sink",
    "configure_from_schema",
]
