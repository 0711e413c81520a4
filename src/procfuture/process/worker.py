"""Worker process entry point.

launch_task() starts this module in a fresh interpreter. The worker reads
one task line from stdin, runs the task, prints a result unit to stdout and
exits.

Usage:
    python -u -s -m procfuture.process.worker [--init-module MOD ...] < task

Or via the entry point:
    procfuture-worker [--init-module MOD ...] < task

Exit status is 0 whenever a result unit was printed, including when the task
raised. EXIT_READ_FAILURE means the task could not be read.
"""

import argparse
import importlib
import logging
import sys
from typing import Any, List, Optional, TextIO

from procfuture.core.errors import TaskReadError
from procfuture.process.serialization import (
    EXIT_READ_FAILURE,
    marshal_error,
    marshal_message,
    marshal_result,
    unmarshal_task,
)

logger = logging.getLogger(__name__)

# Output stream of the running worker; None outside a worker.
_channel: Optional[TextIO] = None


def _emit(stream: TextIO, line: str) -> None:
    # Start on a fresh line in case the task printed without a newline.
    stream.write("\n" + line + "\n")
    stream.flush()


def send(value: Any) -> None:
    """Send a value to the caller while the task is still running.

    The caller receives it through the on_message callback of the task's
    future.

    Raises:
        RuntimeError: If called outside a worker process.
    """
    if _channel is None:
        raise RuntimeError("send() can only be called from inside a worker task")
    _emit(_channel, marshal_message(value))


def run_worker(stdin: TextIO, stdout: TextIO) -> int:
    """Read, run and report one task.

    Args:
        stdin: Stream to read the task line from.
        stdout: Stream the result unit is written to.

    Returns:
        Exit code (0 when a result unit was written).
    """
    global _channel

    try:
        task = unmarshal_task(stdin.readline())
    except TaskReadError as e:
        logger.error(f"Failed to read task: {e}")
        return EXIT_READ_FAILURE

    logger.debug(f"Running task {task.func!r}")
    _channel = stdout
    try:
        try:
            unit = marshal_result(task())
        except Exception as e:
            logger.debug(f"Task raised {type(e).__name__}: {e}")
            unit = marshal_error(e)
        _emit(stdout, unit)
    finally:
        _channel = None
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the worker subprocess."""
    parser = argparse.ArgumentParser(
        description="procfuture worker subprocess",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--init-module",
        action="append",
        default=[],
        help="Module to import before reading the task (repeatable)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    for module_name in args.init_module:
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            logger.error(f"Failed to import init module '{module_name}': {e}")
            return EXIT_READ_FAILURE

    return run_worker(sys.stdin, sys.stdout)


if __name__ == "__main__":
    # Run through the importable module so send() called by tasks sees the
    # same _channel as run_worker().
    from procfuture.process import worker as _worker

    sys.exit(_worker.main())
