"""Completion handling for exited processes.

The watcher thread of each process calls CompletionHandler.handle_exit()
once, after the process has exited and its output has been drained. The
handler moves the process out of RUNNING, releases its output buffer and
resolves the future:

    RUNNING ──┬── status != 0 ──────────────→ EXITED_ERROR
              │     future fails with ProcessExitError, value = ERROR,
              │     callback is not called
              │
              └── status == 0 ──────────────→ EXITED_CLEAN
                    process flavor: deliver the ProcessHandle
                    task flavor:    parse the last result unit and
                                    deliver a TaskResult
                                    (no unit: fail with ProtocolError)

Buffer policy: the buffer is snapshotted into ProcessHandle.output and
released as soon as the exit is classified, on every path, unless the
debug flag retains it.
"""

import logging
import time
from typing import Any, Optional

from procfuture.config.runtime import get_config
from procfuture.core.errors import ProcessExitError, ProtocolError
from procfuture.core.future import CallFlavor, Future
from procfuture.observability import ObservabilityHub, TraceLevel
from procfuture.observability.records import (
    MessageRecord,
    ProcessExitRecord,
    TaskResultRecord,
)
from procfuture.process.handle import ProcessHandle, ProcessState, retain_buffer
from procfuture.process.serialization import find_result_unit

logger = logging.getLogger(__name__)


class CompletionHandler:
    """Classifies process exits and delivers results to futures.

    Args:
        observability_hub: Optional custom observability hub (uses global if None).
    """

    def __init__(self, observability_hub: Optional[ObservabilityHub] = None):
        self._hub_override = observability_hub

    @property
    def _hub(self) -> ObservabilityHub:
        return self._hub_override or ObservabilityHub.get_instance()

    def handle_message(self, future: Future, value: Any) -> None:
        """Deliver a value sent by a running task."""
        handle = future.handle
        if self._hub.enabled:
            self._hub.emit(MessageRecord(
                name=future.name,
                pid=handle.pid if handle else 0,
                value_repr=repr(value)[:200],
            ))
        if future.on_message is None:
            logger.debug(f"Dropping message from '{future.name}': no on_message callback")
            return
        if future._message_error is not None:
            return
        try:
            future.on_message(value)
        except Exception as e:
            # Later messages are skipped; the error fails the future at exit.
            logger.exception(f"on_message callback of '{future.name}' failed")
            future._message_error = e

    def handle_exit(self, future: Future, returncode: int) -> None:
        """Classify the exit of future's process and resolve the future."""
        handle = future.handle
        assert handle is not None, "future has no process attached"

        handle.output = handle.buffer.read()
        handle.state = ProcessState.EXITED_CLEAN if returncode == 0 else ProcessState.EXITED_ERROR
        self._release(handle)
        self._emit_exit(handle, returncode)

        if handle.state is ProcessState.EXITED_ERROR:
            error = ProcessExitError(handle.name, returncode, handle.output)
            logger.error(str(error))
            future._set_failure(error)
            return

        if future._message_error is not None:
            future._set_failure(future._message_error)
            return

        if future.flavor is CallFlavor.PROCESS:
            logger.debug(f"Process '{handle.name}' (pid {handle.pid}) finished")
            self._deliver(future, handle)
            return

        try:
            result = find_result_unit(handle.output)
        except ProtocolError as e:
            logger.error(f"Task '{handle.name}' (pid {handle.pid}): {e}")
            future._set_failure(e)
            return

        if self._hub.enabled:
            self._hub.emit(TaskResultRecord(
                name=handle.name,
                pid=handle.pid,
                ok=result.ok,
                category=result.category,
                min_level=TraceLevel.NORMAL if result.ok else TraceLevel.MINIMAL,
            ))
        if not result.ok:
            logger.info(f"Task '{handle.name}' raised {result.category}: {result.payload!r}")
        self._deliver(future, result)

    def _deliver(self, future: Future, value: Any) -> None:
        """Invoke the callback, if any, then resolve the future."""
        if future.on_exit is not None:
            try:
                future.on_exit(value)
            except Exception as e:
                logger.exception(f"on_exit callback of '{future.name}' failed")
                future._set_failure(e)
                return
        future._set_result(value)

    def _release(self, handle: ProcessHandle) -> None:
        if get_config().retain_buffers:
            logger.debug(f"Retaining output buffer of '{handle.name}'")
            retain_buffer(handle.buffer)
        else:
            handle.buffer.release()

    def _emit_exit(self, handle: ProcessHandle, returncode: int) -> None:
        if not self._hub.enabled:
            return
        self._hub.emit(ProcessExitRecord(
            name=handle.name,
            pid=handle.pid,
            returncode=returncode,
            state=handle.state.value,
            duration_ms=(time.monotonic() - handle.started_at) * 1000,
            output_chars=len(handle.output),
            min_level=TraceLevel.NORMAL if returncode == 0 else TraceLevel.MINIMAL,
        ))


__all__ = ["CompletionHandler"]
