"""Eval command for procfuture CLI."""

import functools
import sys
from typing import Any, Optional

from procfuture.core.errors import ProcessExitError, TaskError
from procfuture.process.launcher import launch_task


def _evaluate(expression: str) -> Any:
    # Runs inside the worker; pickled by reference.
    return eval(expression, {"__builtins__": __builtins__})


def cmd_eval(expression: str, timeout: Optional[float] = None) -> int:
    """Evaluate an expression in a task worker and print its repr.

    Args:
        expression: Python expression.
        timeout: Seconds to wait for the worker.

    Returns:
        Exit code (0 for success, 1 if the expression or worker failed).
    """
    task = functools.partial(_evaluate, expression)
    future = launch_task(task, name=f"eval:{expression[:32]}")

    try:
        value = future.get(timeout)
    except TimeoutError:
        future.handle.kill()
        print(f"Error: evaluation did not finish within {timeout}s", file=sys.stderr)
        return 1
    except TaskError as e:
        print(f"{e.category}: {', '.join(map(str, e.payload))}", file=sys.stderr)
        return 1
    except ProcessExitError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(repr(value))
    return 0
