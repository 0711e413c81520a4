"""Process orchestration for futures.

Components:
- Launcher: launch_process / launch_task and the watcher threads
- Handle: ProcessHandle, OutputBuffer, ProcessState
- Completion: CompletionHandler, exit classification and delivery
- Serialization: the line-based wire protocol shared with workers
- Worker: the entry point run inside task workers
  (procfuture.process.worker, not imported here so ``-m`` runs it cleanly)
"""

from procfuture.process.handle import (
    ProcessState,
    OutputBuffer,
    ProcessHandle,
    retained_buffers,
    clear_retained_buffers,
)
from procfuture.process.completion import CompletionHandler
from procfuture.process.launcher import (
    WORKER_MODULE,
    worker_command,
    worker_environment,
    launch_process,
    launch_task,
)
from procfuture.process.serialization import (
    VALUE_MARKER,
    ERROR_MARKER,
    MESSAGE_MARKER,
    EXIT_READ_FAILURE,
)

__all__ = [
    # Handles
    "ProcessState",
    "OutputBuffer",
    "ProcessHandle",
    "retained_buffers",
    "clear_retained_buffers",
    # Completion
    "CompletionHandler",
    # Launcher
    "WORKER_MODULE",
    "worker_command",
    "worker_environment",
    "launch_process",
    "launch_task",
    # Protocol
    "VALUE_MARKER",
    "ERROR_MARKER",
    "MESSAGE_MARKER",
    "EXIT_READ_FAILURE",
]
