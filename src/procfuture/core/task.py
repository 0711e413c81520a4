"""Task and TaskResult types.

A Task is the unit of work shipped to a worker process: a zero-argument
callable plus an optional block of captured variables. A TaskResult is the
tagged outcome the worker reports back.
"""

import functools
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from procfuture.core.capture import parse_preamble
from procfuture.core.errors import TaskError


def _globals_of(func: Callable[..., Any]) -> Optional[Dict[str, Any]]:
    """Find the global namespace a callable resolves free names in."""
    while isinstance(func, functools.partial):
        func = func.func
    return getattr(func, "__globals__", None)


@dataclass(frozen=True)
class Task:
    """A deferred computation to run in a worker.

    Attributes:
        func: Zero-argument callable. Serialized with cloudpickle, so lambdas
            and closures are allowed as long as everything they reference
            can be pickled.
        preamble: Reproduction statements produced by capture(), applied to
            the callable's globals before it is called.
    """
    func: Callable[[], Any]
    preamble: str = ""

    def with_preamble(self, text: str) -> "Task":
        """Return a copy with text prepended to the preamble."""
        if not text:
            return self
        combined = f"{text}\n{self.preamble}" if self.preamble else text
        return replace(self, preamble=combined)

    def bindings(self) -> Dict[str, Any]:
        """Captured variables carried by this task."""
        return parse_preamble(self.preamble)

    def __call__(self) -> Any:
        bindings = self.bindings()
        if bindings:
            namespace = _globals_of(self.func)
            if namespace is None:
                raise TypeError(
                    f"Cannot apply captured variables to {self.func!r}: "
                    f"it has no global namespace"
                )
            namespace.update(bindings)
        return self.func()


@dataclass(frozen=True)
class TaskResult:
    """Tagged outcome of a task: success(value) or failure(category, payload).

    Attributes:
        ok: True for a successful task.
        value: Return value of the task (success only).
        category: Qualified exception class name (failure only).
        payload: Exception arguments (failure only).
    """
    ok: bool
    value: Any = None
    category: Optional[str] = None
    payload: List[Any] = field(default_factory=list)

    @classmethod
    def success(cls, value: Any) -> "TaskResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, category: str, payload: Optional[List[Any]] = None) -> "TaskResult":
        return cls(ok=False, category=category, payload=list(payload or []))

    def unwrap(self) -> Any:
        """Return the value, or raise TaskError for a failure."""
        if self.ok:
            return self.value
        raise TaskError(self.category or "unknown", self.payload)


__all__ = ["Task", "TaskResult"]
