"""procfuture - Run work in separate processes and collect it through futures.

procfuture offloads zero-argument callables to dedicated worker processes,
and launches external programs, without blocking the caller. Results are
delivered to a callback or retrieved later from a future.

Quick Start:
    >>> import procfuture as pf
    >>>
    >>> future = pf.launch_task(lambda: 6 * 7)
    >>> pf.get(future)
    42
    >>>
    >>> handle = pf.launch_process("hello", "echo", ["hello"]).get()
    >>> handle.output
    'hello\\n'

For advanced usage, see:
- procfuture.core: Task, TaskResult, Future, CaptureRegistry, errors
- procfuture.process: launcher, completion handling, wire protocol, worker
- procfuture.config: YAML configuration and the debug flag
- procfuture.observability: lifecycle tracing
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("procfuture")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"

# =============================================================================
# High-level API (recommended)
# =============================================================================
from procfuture.api import (
    Future,
    launch_task,
    launch_process,
    ready,
    wait,
    get,
    capture,
    register,
    get_registry,
    sandbox,
)

# =============================================================================
# Core exports (for advanced use)
# =============================================================================
from procfuture.core import (
    UNSET,
    ERROR,
    CallFlavor,
    Task,
    TaskResult,
    CaptureRegistry,
    ProcFutureError,
    MarshalError,
    LaunchError,
    ProtocolError,
    FutureConsumedError,
    BufferReleasedError,
    ProcessExitError,
    TaskError,
)
from procfuture.process import (
    ProcessHandle,
    ProcessState,
    OutputBuffer,
    retained_buffers,
    clear_retained_buffers,
)
from procfuture.config import set_debug, is_debug, configure

__all__ = [
    "__version__",
    # High-level API
    "Future",
    "launch_task",
    "launch_process",
    "ready",
    "wait",
    "get",
    "capture",
    "register",
    "get_registry",
    "sandbox",
    # Core (advanced)
    "UNSET",
    "ERROR",
    "CallFlavor",
    "Task",
    "TaskResult",
    "CaptureRegistry",
    "ProcessHandle",
    "ProcessState",
    "OutputBuffer",
    "retained_buffers",
    "clear_retained_buffers",
    # Errors
    "ProcFutureError",
    "MarshalError",
    "LaunchError",
    "ProtocolError",
    "FutureConsumedError",
    "BufferReleasedError",
    "ProcessExitError",
    "TaskError",
    # Configuration
    "set_debug",
    "is_debug",
    "configure",
]
