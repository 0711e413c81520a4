"""Future handles for processes and tasks.

A Future is returned by launch_process() and launch_task(). It is resolved
exactly once, by the completion handler, when the underlying process exits.

Example:
    >>> future = launch_task(lambda: 6 * 7)
    >>> future.ready()          # never blocks
    False
    >>> future.get()            # waits, then returns the value
    42

Futures are also awaitable from asyncio code:
    >>> value = await launch_task(lambda: 6 * 7)
"""

import asyncio
import concurrent.futures
import threading
from enum import Enum
from typing import Any, Callable, Optional, TYPE_CHECKING

from procfuture.core.errors import FutureConsumedError
from procfuture.core.task import TaskResult

if TYPE_CHECKING:
    from procfuture.process.handle import ProcessHandle


class _Sentinel:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Stored value of a future before completion.
UNSET = _Sentinel("UNSET")
# Stored value of a future whose process exited abnormally.
ERROR = _Sentinel("ERROR")


class CallFlavor(Enum):
    """What a future's process is running.

    PROCESS: An arbitrary program; retrieval yields the ProcessHandle.
    TASK: A worker running a Task; output is parsed as a result unit.
    """
    PROCESS = "process"
    TASK = "task"


ExitCallback = Callable[[Any], Any]
MessageCallback = Callable[[Any], Any]


class Future:
    """Caller-side handle to an in-flight or completed process.

    Args:
        name: Label of the process.
        flavor: Whether the process is a raw program or a task worker.
        on_exit: Optional callback receiving the ProcessHandle (process
            flavor) or the TaskResult (task flavor).
        on_message: Optional callback receiving values sent by the worker
            with procfuture.process.worker.send().

    Thread Safety:
        The future is resolved from the watcher thread of its process.
        ready(), wait() and get() may be called from any thread.
    """

    def __init__(
        self,
        name: str,
        flavor: CallFlavor = CallFlavor.PROCESS,
        on_exit: Optional[ExitCallback] = None,
        on_message: Optional[MessageCallback] = None,
    ):
        self.name = name
        self.flavor = flavor
        self.on_exit = on_exit
        self.on_message = on_message
        self.handle: Optional["ProcessHandle"] = None

        self._signal: concurrent.futures.Future = concurrent.futures.Future()
        self._value: Any = UNSET
        self._consumed = False
        self._message_error: Optional[BaseException] = None
        self._lock = threading.Lock()

    @property
    def pid(self) -> Optional[int]:
        return self.handle.pid if self.handle is not None else None

    @property
    def value(self) -> Any:
        """Stored value: UNSET, the delivered value, or ERROR."""
        return self._value

    @property
    def consumed(self) -> bool:
        return self._consumed

    def ready(self) -> bool:
        """Whether the process has exited and its result was delivered."""
        return self._signal.done()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until ready or until timeout seconds have passed.

        Returns:
            True if the future is ready.
        """
        concurrent.futures.wait([self._signal], timeout=timeout)
        return self._signal.done()

    def get(self, timeout: Optional[float] = None) -> Any:
        """Wait for the future and return its value.

        A future may be retrieved once; later calls raise
        FutureConsumedError.

        Raises:
            TimeoutError: If not ready within timeout (the future stays
                retrievable).
            FutureConsumedError: If get() already returned or raised.
            ProcessExitError: If the process exited abnormally.
            TaskError: If the task raised inside its worker.
        """
        with self._lock:
            if self._consumed:
                raise FutureConsumedError(f"Future '{self.name}' was already retrieved")

        if not self.wait(timeout):
            raise TimeoutError(f"Future '{self.name}' not ready after {timeout}s")

        with self._lock:
            if self._consumed:
                raise FutureConsumedError(f"Future '{self.name}' was already retrieved")
            self._consumed = True

        outcome = self._signal.result()
        if isinstance(outcome, TaskResult):
            return outcome.unwrap()
        return outcome

    def exception(self) -> Optional[BaseException]:
        """Error stored on a ready future, or None. Does not consume it."""
        if not self._signal.done():
            return None
        return self._signal.exception()

    def add_done_callback(self, fn: Callable[["Future"], Any]) -> None:
        """Call fn(self) once the future is ready.

        Runs immediately in the calling thread if already ready, otherwise in
        the watcher thread.
        """
        self._signal.add_done_callback(lambda _: fn(self))

    def __await__(self):
        return self._get_async().__await__()

    async def _get_async(self) -> Any:
        waiter = asyncio.wrap_future(self._signal)
        await asyncio.wait({waiter})
        # get() raises the stored error; mark the mirrored copy as seen.
        waiter.exception()
        return self.get()

    # Completion handler interface

    def _set_result(self, value: Any) -> None:
        self._value = value
        self._signal.set_result(value)

    def _set_failure(self, exc: BaseException) -> None:
        self._value = ERROR
        self._signal.set_exception(exc)

    def __repr__(self) -> str:
        state = "ready" if self.ready() else "pending"
        return f"<Future {self.name!r} {self.flavor.value} pid={self.pid} {state}>"


def ready(future: Future) -> bool:
    """Non-blocking readiness check."""
    return future.ready()


def wait(future: Future, timeout: Optional[float] = None) -> bool:
    """Block until the future is ready. Returns readiness."""
    return future.wait(timeout)


def get(future: Future, timeout: Optional[float] = None) -> Any:
    """Wait for the future and return its value (see Future.get)."""
    return future.get(timeout)


__all__ = [
    "UNSET",
    "ERROR",
    "CallFlavor",
    "Future",
    "ready",
    "wait",
    "get",
]
