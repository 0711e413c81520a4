"""Trace record data classes for observability.

Record Categories:
- Base: TraceRecord base class
- Process: start and exit of launched processes
- Task: outcome of task workers and their messages
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any
import time
import json


# Forward reference for TraceLevel
from procfuture.observability import TraceLevel


@dataclass
class TraceRecord:
    """Base class for all trace records.

    All trace records have:
    - record_type: String identifying the record type
    - timestamp_ns: When the record was created (monotonic)
    - min_level: Minimum trace level required to emit this record
    """
    record_type: str = field(default="base", init=False)
    timestamp_ns: int = field(default_factory=lambda: time.perf_counter_ns())
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        # min_level is internal
        d.pop("min_level", None)
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


# =============================================================================
# Process Records
# =============================================================================


@dataclass
class ProcessStartRecord(TraceRecord):
    """Emitted after a process was spawned."""
    record_type: str = field(default="process_start", init=False)

    name: str = ""
    pid: int = 0
    flavor: str = ""  # "process" or "task"
    argv: List[str] = field(default_factory=list)


@dataclass
class ProcessExitRecord(TraceRecord):
    """Emitted when the exit of a process has been observed."""
    record_type: str = field(default="process_exit", init=False)

    name: str = ""
    pid: int = 0
    returncode: int = 0
    state: str = ""  # "exited_clean" or "exited_error"
    duration_ms: float = 0.0
    output_chars: int = 0


# =============================================================================
# Task Records
# =============================================================================


@dataclass
class TaskResultRecord(TraceRecord):
    """Outcome of a task parsed from its worker's output."""
    record_type: str = field(default="task_result", init=False)

    name: str = ""
    pid: int = 0
    ok: bool = True
    category: Optional[str] = None


@dataclass
class MessageRecord(TraceRecord):
    """A value sent by a running task."""
    record_type: str = field(default="message", init=False)
    min_level: TraceLevel = field(default=TraceLevel.VERBOSE, repr=False)

    name: str = ""
    pid: int = 0
    value_repr: str = ""


__all__ = [
    "TraceRecord",
    "ProcessStartRecord",
    "ProcessExitRecord",
    "TaskResultRecord",
    "MessageRecord",
]
