"""Observability system for procfuture.

Emits structured trace records for the lifecycle of launched processes:
- Process start (command line, flavor)
- Process exit (status, duration, output size)
- Task outcome (success or error category)
- Messages sent by running tasks

Trace Levels:
- OFF: No tracing (default)
- MINIMAL: Abnormal exits and task errors only
- NORMAL: Every start, exit and task outcome
- VERBOSE: Also worker messages

Example:
    >>> from procfuture.observability import ObservabilityHub, TraceLevel, MemorySink
    >>> hub = ObservabilityHub.get_instance()
    >>> sink = MemorySink()
    >>> hub.configure(level=TraceLevel.NORMAL, sinks=[sink])
    >>> launch_task(lambda: 1).get()
    >>> [r.record_type for r in sink.get_records()]
    ['process_start', 'process_exit', 'task_result']
"""

from enum import IntEnum
from typing import List, Optional
import logging
import threading

logger = logging.getLogger(__name__)


class TraceLevel(IntEnum):
    """Observability trace levels.

    Higher levels include all lower level information.
    """
    OFF = 0       # No tracing
    MINIMAL = 1   # Failures only
    NORMAL = 2    # Process lifecycle
    VERBOSE = 3   # Lifecycle + worker messages

    @classmethod
    def from_string(cls, s: str) -> "TraceLevel":
        """Parse a level name such as "normal"."""
        try:
            return cls[s.upper()]
        except KeyError:
            raise ValueError(
                f"Unknown trace level: {s}. "
                f"Valid levels: {', '.join(m.name.lower() for m in cls)}"
            ) from None


class Sink:
    """Base class for trace sinks.

    Sinks receive trace records and handle their output
    (file, console, memory buffer, etc.).
    """

    def write(self, record: "TraceRecord") -> None:
        raise NotImplementedError

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class ObservabilityHub:
    """Central hub for trace configuration and record emission.

    Singleton pattern - use get_instance() to access.

    Thread Safety:
        Records are emitted from process watcher threads; emission and sink
        management are guarded by a lock.
    """

    _instance: Optional["ObservabilityHub"] = None
    _lock = threading.Lock()

    def __init__(self):
        """Initialize the hub. Use get_instance() instead."""
        self._level = TraceLevel.OFF
        self._sinks: List[Sink] = []
        self._emit_lock = threading.Lock()
        self._enabled = False

    @classmethod
    def get_instance(cls) -> "ObservabilityHub":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. For testing only."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
            cls._instance = None

    def configure(
        self,
        level: TraceLevel = TraceLevel.OFF,
        sinks: Optional[List[Sink]] = None,
    ) -> None:
        """Set the trace level and optionally add sinks."""
        self._level = level
        self._enabled = level > TraceLevel.OFF

        for sink in sinks or []:
            self.add_sink(sink)

    def add_sink(self, sink: Sink) -> None:
        with self._emit_lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> None:
        with self._emit_lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    def emit(self, record: "TraceRecord") -> None:
        """Emit a trace record to all sinks.

        A failing sink is logged and skipped; it never affects the process
        being traced.
        """
        if not self._enabled or record.min_level > self._level:
            return

        with self._emit_lock:
            for sink in self._sinks:
                try:
                    sink.write(record)
                except Exception as e:
                    logger.warning(f"Trace sink {type(sink).__name__} failed: {e}")

    def flush(self) -> None:
        with self._emit_lock:
            for sink in self._sinks:
                sink.flush()

    def shutdown(self) -> None:
        """Flush and close all sinks, then disable tracing."""
        with self._emit_lock:
            for sink in self._sinks:
                try:
                    sink.flush()
                    sink.close()
                except Exception as e:
                    logger.warning(f"Error closing trace sink {type(sink).__name__}: {e}")
            self._sinks.clear()

        self._level = TraceLevel.OFF
        self._enabled = False

    @property
    def enabled(self) -> bool:
        """Fast check if tracing is enabled."""
        return self._enabled

    @property
    def level(self) -> TraceLevel:
        return self._level

    def is_level_enabled(self, level: TraceLevel) -> bool:
        return self._level >= level


# Import TraceRecord and sinks after defining TraceLevel
from procfuture.observability.records import (  # noqa: E402
    TraceRecord,
    ProcessStartRecord,
    ProcessExitRecord,
    TaskResultRecord,
    MessageRecord,
)
from procfuture.observability.sinks import (  # noqa: E402
    FileSink,
    ConsoleSink,
    MemorySink,
    NullSink,
    create_sink,
    configure_from_schema,
)

__all__ = [
    # Core
    "TraceLevel",
    "Sink",
    "ObservabilityHub",
    # Records
    "TraceRecord",
    "ProcessStartRecord",
    "ProcessExitRecord",
    "TaskResultRecord",
    "MessageRecord",
    # Sinks
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
    "create_sink",
    "configure_from_schema",
]
