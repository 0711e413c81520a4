"""Run command for procfuture CLI."""

import os
import sys
from typing import List, Optional

from procfuture.core.errors import LaunchError, ProcessExitError
from procfuture.process.launcher import launch_process


def cmd_run(
    program: str,
    args: Optional[List[str]] = None,
    name: Optional[str] = None,
    timeout: Optional[float] = None,
) -> int:
    """Run a program under a process future and wait for it.

    Args:
        program: Program to run.
        args: Program arguments.
        name: Label for logs and traces (default: program basename).
        timeout: Seconds to wait; the program is killed when exceeded.

    Returns:
        The program's exit code, or 1 if it could not be run to completion.
    """
    args = list(args or [])
    if args and args[0] == "--":
        args = args[1:]
    name = name or os.path.basename(program)

    try:
        future = launch_process(name, program, args)
    except LaunchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        handle = future.get(timeout)
    except TimeoutError:
        future.handle.kill()
        print(f"Error: '{name}' did not finish within {timeout}s", file=sys.stderr)
        return 1
    except ProcessExitError as e:
        if e.output:
            print(e.output, end="")
        print(f"Error: '{name}' exited with code {e.returncode}", file=sys.stderr)
        return e.returncode if e.returncode > 0 else 1

    print(handle.output, end="")
    return handle.returncode
