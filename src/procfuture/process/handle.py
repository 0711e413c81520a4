"""Process handles and their output buffers.

Every launched process gets exactly one OutputBuffer. The watcher thread
appends the process' merged stdout/stderr to it; the completion handler
snapshots it into ProcessHandle.output at exit and then releases it.

With the debug flag (``retain_buffers``) set, released buffers are kept in a
module-level list for post-mortem inspection:

    >>> from procfuture.config import set_debug
    >>> set_debug(True)
    >>> launch_process("ls", "ls", ["/"]).get()
    >>> retained_buffers()[-1].read()
    'bin\\nboot\\n...'
"""

import subprocess
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from procfuture.core.errors import BufferReleasedError


class ProcessState(Enum):
    """Liveness of a launched process."""
    RUNNING = "running"
    EXITED_CLEAN = "exited_clean"
    EXITED_ERROR = "exited_error"


class OutputBuffer:
    """Append-only text channel owned by one process.

    Thread Safety:
        Appends come from the watcher thread, reads from the completion
        handler or a debugging caller; all access is locked.
    """

    def __init__(self, name: str):
        self.name = name
        self._chunks: List[str] = []
        self._size = 0
        self._released = False
        self._lock = threading.Lock()

    def append(self, text: str) -> None:
        with self._lock:
            if self._released:
                raise BufferReleasedError(f"Output buffer of '{self.name}' was released")
            self._chunks.append(text)
            self._size += len(text)

    def read(self) -> str:
        """Return everything appended so far."""
        with self._lock:
            if self._released:
                raise BufferReleasedError(f"Output buffer of '{self.name}' was released")
            text = "".join(self._chunks)
            self._chunks = [text] if text else []
            return text

    def release(self) -> None:
        """Drop the contents. Further access raises BufferReleasedError."""
        with self._lock:
            self._chunks = []
            self._released = True

    @property
    def released(self) -> bool:
        return self._released

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        state = "released" if self._released else f"{self._size} chars"
        return f"<OutputBuffer {self.name!r} {state}>"


@dataclass
class ProcessHandle:
    """A launched OS process.

    Attributes:
        name: Caller-supplied label.
        args: Full command line.
        popen: The underlying Popen object.
        buffer: The process' output buffer.
        state: Liveness of the process.
        output: Snapshot of the buffer taken when the process exited.
        started_at: time.monotonic() at spawn.
    """
    name: str
    args: List[str]
    popen: subprocess.Popen = field(repr=False)
    buffer: OutputBuffer = field(repr=False)
    state: ProcessState = ProcessState.RUNNING
    output: str = field(default="", repr=False)
    started_at: float = field(default_factory=time.monotonic, repr=False)

    @property
    def pid(self) -> int:
        return self.popen.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.popen.returncode

    @property
    def running(self) -> bool:
        return self.state is ProcessState.RUNNING

    def terminate(self) -> None:
        """Ask the process to stop (SIGTERM). Its future fails with ProcessExitError."""
        if self.running:
            self.popen.terminate()

    def kill(self) -> None:
        """Kill the process (SIGKILL). Its future fails with ProcessExitError."""
        if self.running:
            self.popen.kill()


_retained: List[OutputBuffer] = []
_retained_lock = threading.Lock()


def retain_buffer(buffer: OutputBuffer) -> None:
    with _retained_lock:
        _retained.append(buffer)


def retained_buffers() -> List[OutputBuffer]:
    """Buffers kept because the debug flag was set when they completed."""
    with _retained_lock:
        return list(_retained)


def clear_retained_buffers() -> None:
    with _retained_lock:
        for buffer in _retained:
            buffer.release()
        _retained.clear()


__all__ = [
    "ProcessState",
    "OutputBuffer",
    "ProcessHandle",
    "retain_buffer",
    "retained_buffers",
    "clear_retained_buffers",
]
