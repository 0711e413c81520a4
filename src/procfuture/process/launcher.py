"""Process launching for futures.

launch_process() starts an arbitrary program; launch_task() starts a worker
interpreter running procfuture.process.worker and feeds it a task. Both
return immediately with a Future.

Architecture:
    caller ──→ Popen ──→ watcher thread ──→ CompletionHandler ──→ Future
                 │            │
                 │            ├── appends output to OutputBuffer
                 │            └── dispatches worker messages
                 └── feeder thread: task line on stdin (tasks only), then closed

Example:
    >>> from procfuture.process.launcher import launch_process, launch_task
    >>>
    >>> future = launch_process("listing", "ls", ["-l", "/tmp"])
    >>> handle = future.get()
    >>> print(handle.returncode, handle.output)
    >>>
    >>> future = launch_task(lambda: sum(range(10)), on_exit=print)
    TaskResult(ok=True, value=45, category=None, payload=[])
"""

import logging
import os
import subprocess
import sys
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from procfuture.config.runtime import get_config
from procfuture.config.schema import ConfigSchema
from procfuture.core.errors import LaunchError, ProtocolError
from procfuture.core.future import CallFlavor, ExitCallback, Future, MessageCallback
from procfuture.core.task import Task
from procfuture.observability import ObservabilityHub
from procfuture.observability.records import ProcessStartRecord
from procfuture.process.completion import CompletionHandler
from procfuture.process.handle import OutputBuffer, ProcessHandle
from procfuture.process.serialization import (
    MESSAGE_MARKER,
    TASK_TERMINATOR,
    marshal_task,
    parse_unit,
)

logger = logging.getLogger(__name__)

WORKER_MODULE = "procfuture.process.worker"

_MESSAGE_PREFIX = f'["{MESSAGE_MARKER}"'

_default_handler = CompletionHandler()


def worker_command(config: Optional[ConfigSchema] = None) -> List[str]:
    """Command line that starts a task worker.

    Raises:
        LaunchError: If no Python executable can be determined.
    """
    config = config or get_config()
    python = config.worker.python or sys.executable
    if not python:
        raise LaunchError("Cannot determine the Python executable for workers")

    cmd = [python, *config.worker.flags, "-m", WORKER_MODULE]
    for module_name in config.worker.init_modules:
        cmd += ["--init-module", module_name]
    cmd += ["--log-level", config.worker.log_level]
    return cmd


def worker_environment(config: Optional[ConfigSchema] = None) -> Dict[str, str]:
    """Environment for a task worker.

    With ``worker.inherit_sys_path`` the caller's sys.path is passed through
    PYTHONPATH so the worker can import procfuture and the modules tasks
    were defined in.
    """
    config = config or get_config()
    env = dict(os.environ)
    if config.worker.inherit_sys_path:
        # An empty entry stands for the current directory.
        paths = [p or os.getcwd() for p in sys.path]
        env["PYTHONPATH"] = os.pathsep.join(dict.fromkeys(paths))
    env["PYTHONIOENCODING"] = config.encoding
    return env


def _watch(future: Future, handler: CompletionHandler) -> None:
    """Watcher thread body: drain output, reap the process, complete."""
    handle = future.handle
    popen = handle.popen
    track_messages = future.flavor is CallFlavor.TASK

    try:
        for line in popen.stdout:
            handle.buffer.append(line)
            if track_messages and line.lstrip().startswith(_MESSAGE_PREFIX):
                try:
                    unit = parse_unit(line)
                except ProtocolError as e:
                    logger.error(f"Task '{future.name}' sent a corrupt message: {e}")
                    if future._message_error is None:
                        future._message_error = e
                    continue
                if unit is not None:
                    handler.handle_message(future, unit[1])
        popen.stdout.close()
        returncode = popen.wait()
        handler.handle_exit(future, returncode)
    except Exception as e:
        logger.exception(f"Watcher of '{future.name}' failed")
        if not future.ready():
            future._set_failure(e)


def _feed(popen: subprocess.Popen, text: str) -> None:
    """Feeder thread body: write text to the child's stdin and close it."""
    try:
        popen.stdin.write(text)
        popen.stdin.flush()
    except BrokenPipeError:
        # The child exited without reading; its exit status tells why.
        logger.debug(f"pid {popen.pid} closed stdin before reading its input")
    try:
        popen.stdin.close()
    except BrokenPipeError:
        logger.debug(f"pid {popen.pid} closed stdin before it was flushed")


def launch_process(
    name: str,
    program: Union[str, os.PathLike],
    args: Sequence[Any] = (),
    on_exit: Optional[ExitCallback] = None,
    *,
    input_text: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[Union[str, os.PathLike]] = None,
    flavor: CallFlavor = CallFlavor.PROCESS,
    on_message: Optional[MessageCallback] = None,
    handler: Optional[CompletionHandler] = None,
) -> Future:
    """Start a program and return a future for its completion.

    Args:
        name: Label used in logs, errors and traces.
        program: Executable to run.
        args: Arguments; converted with str().
        on_exit: Called from the watcher thread with the ProcessHandle
            (process flavor) or the TaskResult (task flavor) when the
            process exits cleanly.
        input_text: Written to the program's stdin from a feeder thread,
            which then closes it. Without it stdin is /dev/null.
        env: Environment (default: inherited).
        cwd: Working directory (default: inherited).
        flavor: CallFlavor.TASK makes the output parse as a result unit.
        on_message: Called with values sent by a task worker.
        handler: Completion handler (default: module-wide one).

    Returns:
        Future resolved when the program exits. Retrieving a process-flavored
        future yields its ProcessHandle.

    Raises:
        LaunchError: If the program cannot be started.
    """
    config = get_config()
    argv = [os.fspath(program), *(str(a) for a in args)]

    try:
        popen = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            env=env,
            cwd=cwd,
            text=True,
            encoding=config.encoding,
            errors="replace",
            bufsize=1,
        )
    except OSError as e:
        raise LaunchError(f"Failed to start process '{name}': {e}") from e

    future = Future(name, flavor=flavor, on_exit=on_exit, on_message=on_message)
    future.handle = ProcessHandle(
        name=name,
        args=argv,
        popen=popen,
        buffer=OutputBuffer(name),
    )
    logger.info(f"Started {flavor.value} '{name}' (pid {popen.pid}): {' '.join(argv)}")

    hub = ObservabilityHub.get_instance()
    if hub.enabled:
        hub.emit(ProcessStartRecord(
            name=name,
            pid=popen.pid,
            flavor=flavor.value,
            argv=argv,
        ))

    watcher = threading.Thread(
        target=_watch,
        args=(future, handler or _default_handler),
        name=f"procfuture-{name}-{popen.pid}",
        daemon=True,
    )
    watcher.start()

    if input_text is not None:
        # Large payloads fill the pipe until the child reads them.
        feeder = threading.Thread(
            target=_feed,
            args=(popen, input_text),
            name=f"procfuture-{name}-{popen.pid}-stdin",
            daemon=True,
        )
        feeder.start()

    return future


def _task_name(task: Task) -> str:
    func = task.func
    label = getattr(func, "__name__", None) or type(func).__name__
    return f"task:{label}"


def launch_task(
    task: Union[Task, Callable[[], Any]],
    on_exit: Optional[ExitCallback] = None,
    *,
    capture: Optional[str] = None,
    on_message: Optional[MessageCallback] = None,
    name: Optional[str] = None,
) -> Future:
    """Run a zero-argument callable in a new worker process.

    Args:
        task: A Task or a zero-argument callable (lambdas and closures
            are fine; they are serialized with cloudpickle).
        on_exit: Called from the watcher thread with the TaskResult when
            the worker exits cleanly.
        capture: Reproduction block from capture(), prepended to the
            task's own preamble.
        on_message: Called with values the task sends via worker.send().
        name: Label (default: ``task:<callable name>``).

    Returns:
        Task-flavored future; get() returns the task's value or raises
        TaskError.

    Raises:
        MarshalError: If the task cannot be serialized. Nothing is spawned.
        LaunchError: If the worker cannot be started.
    """
    if not isinstance(task, Task):
        if not callable(task):
            raise TypeError(f"launch_task() needs a callable or Task, got {type(task).__name__}")
        task = Task(func=task)
    if capture:
        task = task.with_preamble(capture)

    payload = marshal_task(task)

    config = get_config()
    cmd = worker_command(config)
    return launch_process(
        name or _task_name(task),
        cmd[0],
        cmd[1:],
        on_exit,
        input_text=payload + TASK_TERMINATOR,
        env=worker_environment(config),
        flavor=CallFlavor.TASK,
        on_message=on_message,
    )


__all__ = [
    "WORKER_MODULE",
    "worker_command",
    "worker_environment",
    "launch_process",
    "launch_task",
]
