"""High-level API for procfuture.

Quick Start:
    >>> import procfuture as pf
    >>>
    >>> # Run a callable in a separate process
    >>> future = pf.launch_task(lambda: sum(range(1_000_000)))
    >>> pf.ready(future)
    False
    >>> pf.get(future)
    499999500000
    >>>
    >>> # Or get called back when it finishes (on the watcher thread)
    >>> pf.launch_task(expensive, on_exit=lambda result: print(result.unwrap()))
    >>>
    >>> # Launch an external program
    >>> handle = pf.get(pf.launch_process("echo", "echo", ["hello"]))
    >>> handle.returncode, handle.output
    (0, 'hello\\n')
    >>>
    >>> # Ship caller state to the task
    >>> pf.register("mail_host", "smtp.example.com")
    >>> pf.sandbox(lambda: mail_host.upper(), capture=pf.capture("^mail_"))
    'SMTP.EXAMPLE.COM'
"""

from typing import Any, Callable, Optional

from procfuture.core.capture import capture, get_registry, register
from procfuture.core.future import Future, get, ready, wait
from procfuture.process.launcher import launch_process, launch_task


def sandbox(
    func: Callable[[], Any],
    *,
    capture: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Any:
    """Run func in a fresh worker process and return its value.

    Blocks the calling thread until the worker exits.

    Raises:
        TaskError: If func raised inside the worker.
        ProcessExitError: If the worker exited abnormally.
        TimeoutError: If timeout seconds pass first. The worker keeps running.
    """
    future = launch_task(func, capture=capture)
    return future.get(timeout)


__all__ = [
    "Future",
    "launch_task",
    "launch_process",
    "ready",
    "wait",
    "get",
    "capture",
    "register",
    "get_registry",
    "sandbox",
]
