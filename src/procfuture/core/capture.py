"""Variable capture for tasks.

Tasks run in a fresh interpreter, so state the caller wants them to see has
to be copied over explicitly. Values are registered by name in a
CaptureRegistry (usually at application startup) and capture() turns the
entries whose names match a pattern into a block of reproduction statements:

    mail_host = 'smtp.example.com'
    mail_port = 587

The block travels with the task and is applied to the task's global
namespace in the worker before the task runs. It is a one-shot snapshot:
changes made by the worker never propagate back.

Example:
    >>> from procfuture import register, capture, launch_task
    >>> register("mail_x", 1)
    >>> register("mail_y", 2)
    >>> future = launch_task(lambda: mail_x + mail_y, capture=capture("^mail_"))
    >>> future.get()
    3
"""

import ast
import keyword
import re
import threading
import types
from typing import Any, Callable, Dict, List, Mapping, Optional

from procfuture.core.errors import MarshalError


Predicate = Callable[[Any], bool]


def default_predicate(value: Any) -> bool:
    """Accept every value except callables and modules."""
    return not callable(value) and not isinstance(value, types.ModuleType)


def render_binding(name: str, value: Any) -> str:
    """Render one reproduction statement ``name = <literal>``.

    Raises:
        MarshalError: If the value does not survive a repr/literal_eval
            round trip.
    """
    text = repr(value)
    try:
        ast.literal_eval(text)
    except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError) as e:
        raise MarshalError(
            f"Captured variable '{name}' has a non-literal value: {text[:80]}"
        ) from e
    return f"{name} = {text}"


def parse_preamble(text: str) -> Dict[str, Any]:
    """Parse a block of reproduction statements back into bindings.

    Only ``name = <literal>`` statements are accepted.

    Raises:
        ValueError: If the block contains anything else.
    """
    if not text or not text.strip():
        return {}

    try:
        tree = ast.parse(text, mode="exec")
    except SyntaxError as e:
        raise ValueError(f"Invalid capture block: {e}") from e

    bindings: Dict[str, Any] = {}
    for stmt in tree.body:
        if (
            not isinstance(stmt, ast.Assign)
            or len(stmt.targets) != 1
            or not isinstance(stmt.targets[0], ast.Name)
        ):
            raise ValueError(
                f"Capture block line {stmt.lineno} is not a 'name = value' statement"
            )
        bindings[stmt.targets[0].id] = ast.literal_eval(stmt.value)
    return bindings


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
        raise ValueError(f"Not a valid variable name: {name!r}")


class CaptureRegistry:
    """Named values that tasks may capture.

    Thread Safety:
        Registration and capture are guarded by a lock; capture works on a
        snapshot of the registry.
    """

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, name: str, value: Any) -> None:
        """Register or replace a value.

        Raises:
            ValueError: If name is not a valid Python identifier.
        """
        _check_name(name)
        with self._lock:
            self._values[name] = value

    def update(self, mapping: Optional[Mapping[str, Any]] = None, **values: Any) -> None:
        """Register several values at once."""
        merged = dict(mapping or {})
        merged.update(values)
        for name in merged:
            _check_name(name)
        with self._lock:
            self._values.update(merged)

    def register_module(self, module: types.ModuleType, include: Optional[str] = None) -> List[str]:
        """Register the public globals of a module.

        Args:
            module: Module whose namespace is scanned.
            include: Optional pattern names must match.

        Returns:
            Names that were registered.
        """
        selected: Dict[str, Any] = {}
        for name, value in vars(module).items():
            if name.startswith("_"):
                continue
            if include is not None and not re.search(include, name):
                continue
            if not default_predicate(value):
                continue
            selected[name] = value
        with self._lock:
            self._values.update(selected)
        return list(selected)

    def unregister(self, name: str) -> None:
        with self._lock:
            self._values.pop(name, None)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._values)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def capture(
        self,
        include: str,
        predicate: Optional[Predicate] = None,
        exclude: Optional[str] = None,
    ) -> str:
        """Build a reproduction block for the matching entries.

        Args:
            include: Pattern a name must match (re.search).
            predicate: Value filter; defaults to default_predicate.
            exclude: Pattern a name must not match. Defaults to the
                configured ``capture.default_exclude`` (``^_``).

        Returns:
            Newline-separated ``name = <literal>`` statements.

        Raises:
            MarshalError: If a selected value is not a printable literal.
        """
        if exclude is None:
            from procfuture.config.runtime import get_config
            exclude = get_config().capture.default_exclude
        predicate = predicate or default_predicate

        include_re = re.compile(include)
        exclude_re = re.compile(exclude) if exclude else None

        statements = []
        for name, value in self.snapshot().items():
            if not include_re.search(name):
                continue
            if exclude_re is not None and exclude_re.search(name):
                continue
            if not predicate(value):
                continue
            statements.append(render_binding(name, value))
        return "\n".join(statements)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values


_registry = CaptureRegistry()


def get_registry() -> CaptureRegistry:
    """Return the process-wide capture registry."""
    return _registry


def register(name: str, value: Any) -> None:
    """Register a value in the process-wide capture registry."""
    _registry.register(name, value)


def capture(
    include: str,
    predicate: Optional[Predicate] = None,
    exclude: Optional[str] = None,
    registry: Optional[CaptureRegistry] = None,
) -> str:
    """Capture matching registry entries as reproduction statements.

    See CaptureRegistry.capture for the filtering rules.
    """
    target = registry if registry is not None else _registry
    return target.capture(include, predicate=predicate, exclude=exclude)


__all__ = [
    "CaptureRegistry",
    "default_predicate",
    "render_binding",
    "parse_preamble",
    "get_registry",
    "register",
    "capture",
]
