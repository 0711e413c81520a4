"""Wire protocol between the caller and worker processes.

Every unit is a single line of text so that it can be written to a pipe and
found again in a stream of unrelated output.

Caller -> worker (stdin), followed by TASK_TERMINATOR and EOF:
    {"preamble": "<capture block>", "func": "<base64 cloudpickle>"}

Worker -> caller (stdout), the last unit printed is the result:
    ["procfuture-value", "<base64 cloudpickle>"]
    ["procfuture-signal", "<category>", [<payload>...]]

Worker -> caller (stdout), any number before the result:
    ["procfuture-message", "<base64 cloudpickle>"]
"""

import base64
import binascii
import json
import pickle
from typing import Any, List, Optional, Tuple

import cloudpickle

from procfuture.core.capture import parse_preamble
from procfuture.core.errors import MarshalError, ProtocolError, TaskReadError
from procfuture.core.task import Task, TaskResult

VALUE_MARKER = "procfuture-value"
ERROR_MARKER = "procfuture-signal"
MESSAGE_MARKER = "procfuture-message"

TASK_TERMINATOR = "\n"

# Exit status of a worker that could not read its task.
EXIT_READ_FAILURE = 2


def _encode(value: Any) -> str:
    return base64.b64encode(cloudpickle.dumps(value)).decode("ascii")


def _decode(text: str) -> Any:
    return cloudpickle.loads(base64.b64decode(text.encode("ascii"), validate=True))


def _printable(value: Any) -> Any:
    """Return value if it is JSON-serializable, else its repr.

    Tuples pass through and decode as lists.
    """
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return repr(value)


def exception_category(exc: BaseException) -> str:
    """Qualified class name used as the category of an error unit."""
    cls = type(exc)
    return f"{cls.__module__}.{cls.__qualname__}"


def marshal_task(task: Task) -> str:
    """Serialize a task to one line of text.

    Raises:
        MarshalError: If the callable cannot be pickled or the preamble is
            not a valid capture block.
    """
    try:
        parse_preamble(task.preamble)
    except ValueError as e:
        raise MarshalError(f"Invalid capture block: {e}") from e

    try:
        func = _encode(task.func)
    except (pickle.PicklingError, TypeError, AttributeError, RecursionError) as e:
        raise MarshalError(f"Cannot serialize task {task.func!r}: {e}") from e

    return json.dumps({"preamble": task.preamble, "func": func})


def unmarshal_task(text: str) -> Task:
    """Rebuild a task from the line written by marshal_task.

    Raises:
        TaskReadError: If the line cannot be decoded.
    """
    if not text or not text.strip():
        raise TaskReadError("No task received")
    try:
        data = json.loads(text)
        preamble = data.get("preamble", "")
        func = _decode(data["func"])
    except (ValueError, KeyError, TypeError, AttributeError, binascii.Error,
            pickle.UnpicklingError, ImportError, EOFError) as e:
        raise TaskReadError(f"Cannot decode task: {e}") from e

    if not callable(func):
        raise TaskReadError(f"Decoded task is not callable: {type(func).__name__}")
    return Task(func=func, preamble=preamble)


def marshal_result(value: Any) -> str:
    """Serialize a task's return value as a value unit."""
    return json.dumps([VALUE_MARKER, _encode(value)])


def marshal_error(exc: BaseException) -> str:
    """Serialize an exception raised by a task as an error unit."""
    payload = [_printable(arg) for arg in exc.args]
    return json.dumps([ERROR_MARKER, exception_category(exc), payload])


def marshal_message(value: Any) -> str:
    """Serialize a value sent by a running task."""
    return json.dumps([MESSAGE_MARKER, _encode(value)])


def parse_unit(line: str) -> Optional[Tuple[Any, ...]]:
    """Parse one line of worker output.

    Returns:
        (VALUE_MARKER, value), (ERROR_MARKER, category, payload),
        (MESSAGE_MARKER, value), or None if the line is not a unit.
    """
    line = line.strip()
    if not line.startswith('["procfuture-'):
        return None
    try:
        data = json.loads(line)
    except ValueError:
        return None
    if not isinstance(data, list) or not data:
        return None

    marker = data[0]
    try:
        if marker in (VALUE_MARKER, MESSAGE_MARKER) and len(data) == 2:
            return (marker, _decode(data[1]))
        if marker == ERROR_MARKER and len(data) == 3:
            payload: List[Any] = data[2] if isinstance(data[2], list) else [data[2]]
            return (marker, str(data[1]), payload)
    except (binascii.Error, pickle.UnpicklingError, ValueError, ImportError,
            AttributeError, EOFError) as e:
        raise ProtocolError(f"Corrupt {marker} unit: {e}") from e
    return None


def find_result_unit(text: str) -> TaskResult:
    """Locate the last value or error unit in worker output.

    Output printed by the task before (or after) the unit is skipped.

    Raises:
        ProtocolError: If no result unit is present.
    """
    for line in reversed(text.splitlines()):
        unit = parse_unit(line)
        if unit is None or unit[0] == MESSAGE_MARKER:
            continue
        if unit[0] == VALUE_MARKER:
            return TaskResult.success(unit[1])
        return TaskResult.failure(unit[1], unit[2])
    raise ProtocolError("Worker output contains no result unit")


__all__ = [
    "VALUE_MARKER",
    "ERROR_MARKER",
    "MESSAGE_MARKER",
    "TASK_TERMINATOR",
    "EXIT_READ_FAILURE",
    "exception_category",
    "marshal_task",
    "unmarshal_task",
    "marshal_result",
    "marshal_error",
    "marshal_message",
    "parse_unit",
    "find_result_unit",
]
