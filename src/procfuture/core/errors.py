"""Exception types raised by procfuture.

All errors derive from ProcFutureError so callers can catch everything the
engine raises with a single except clause.
"""

import importlib
from typing import Any, List, Optional


class ProcFutureError(Exception):
    """Base class for procfuture errors."""

    pass


class MarshalError(ProcFutureError):
    """A task or captured value cannot be serialized for the worker."""

    pass


class TaskReadError(ProcFutureError):
    """The worker could not decode the task it was given."""

    pass


class LaunchError(ProcFutureError):
    """A program could not be started."""

    pass


class ProtocolError(ProcFutureError):
    """Worker output did not contain a result unit."""

    pass


class FutureConsumedError(ProcFutureError):
    """get() was called on a future whose value was already retrieved."""

    pass


class BufferReleasedError(ProcFutureError):
    """An output buffer was accessed after it was released."""

    pass


class ProcessExitError(ProcFutureError):
    """A process exited with a non-zero status.

    Attributes:
        name: Label of the process.
        returncode: Exit status (negative when killed by a signal).
        output: Merged stdout/stderr captured before the exit.
    """

    def __init__(self, name: str, returncode: int, output: str = ""):
        self.name = name
        self.returncode = returncode
        self.output = output
        message = f"Process '{name}' exited abnormally with code {returncode}"
        tail = output.strip().splitlines()[-5:]
        if tail:
            message += ":\n" + "\n".join(tail)
        super().__init__(message)


class TaskError(ProcFutureError):
    """An error raised by a task inside its worker process.

    Attributes:
        category: Qualified class name of the original exception,
            e.g. ``builtins.ValueError``.
        payload: The original exception's arguments after a JSON round
            trip: tuples come back as lists and arguments JSON cannot
            encode are replaced by their repr.
    """

    def __init__(self, category: str, payload: Optional[List[Any]] = None):
        self.category = category
        self.payload = list(payload) if payload is not None else []
        super().__init__(f"{category}: {self.payload!r}")

    def to_exception(self) -> BaseException:
        """Rebuild the original exception when its class is importable.

        Falls back to this TaskError when the category does not name an
        exception class or the class rejects the payload.
        """
        module_name, _, qualname = self.category.rpartition(".")
        if not module_name:
            return self
        try:
            obj: Any = importlib.import_module(module_name)
            for part in qualname.split("."):
                obj = getattr(obj, part)
        except (ImportError, AttributeError):
            return self
        if not (isinstance(obj, type) and issubclass(obj, Exception)):
            return self
        try:
            return obj(*self.payload)
        except Exception:
            return self


__all__ = [
    "ProcFutureError",
    "MarshalError",
    "TaskReadError",
    "LaunchError",
    "ProtocolError",
    "FutureConsumedError",
    "BufferReleasedError",
    "ProcessExitError",
    "TaskError",
]
