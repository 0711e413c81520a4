"""Core types of procfuture.

- Task, TaskResult: the unit of work and its tagged outcome
- Future: handle resolved when a process exits
- CaptureRegistry: named values tasks may capture
- Errors: the ProcFutureError hierarchy
"""

from procfuture.core.errors import (
    ProcFutureError,
    MarshalError,
    TaskReadError,
    LaunchError,
    ProtocolError,
    FutureConsumedError,
    BufferReleasedError,
    ProcessExitError,
    TaskError,
)
from procfuture.core.capture import (
    CaptureRegistry,
    default_predicate,
    render_binding,
    parse_preamble,
    get_registry,
    register,
    capture,
)
from procfuture.core.task import Task, TaskResult
from procfuture.core.future import (
    UNSET,
    ERROR,
    CallFlavor,
    Future,
    ready,
    wait,
    get,
)

__all__ = [
    # Errors
    "ProcFutureError",
    "MarshalError",
    "TaskReadError",
    "LaunchError",
    "ProtocolError",
    "FutureConsumedError",
    "BufferReleasedError",
    "ProcessExitError",
    "TaskError",
    # Capture
    "CaptureRegistry",
    "default_predicate",
    "render_binding",
    "parse_preamble",
    "get_registry",
    "register",
    "capture",
    # Task
    "Task",
    "TaskResult",
    # Future
    "UNSET",
    "ERROR",
    "CallFlavor",
    "Future",
    "ready",
    "wait",
    "get",
]
