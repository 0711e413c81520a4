"""Tests for Future and the ready/wait/get functions."""

import asyncio
import gc
import threading

import pytest

from procfuture.core import (
    ERROR,
    UNSET,
    CallFlavor,
    Future,
    FutureConsumedError,
    ProcessExitError,
    TaskError,
    TaskResult,
    get,
    ready,
    wait,
)


def resolve_later(future: Future, value, delay: float = 0.05) -> threading.Timer:
    timer = threading.Timer(delay, future._set_result, args=(value,))
    timer.start()
    return timer


class TestFutureState:
    """Tests for readiness and stored values."""

    def test_initial_state(self):
        """Test a fresh future."""
        future = Future("job")

        assert not future.ready()
        assert not ready(future)
        assert future.value is UNSET
        assert not future.consumed
        assert future.pid is None
        assert future.flavor is CallFlavor.PROCESS
        assert future.exception() is None

    def test_set_result(self):
        """Test resolving with a value."""
        future = Future("job")
        future._set_result(5)

        assert future.ready()
        assert future.value == 5
        assert future.get() == 5
        assert future.consumed

    def test_set_failure(self):
        """Test that a failure stores the ERROR sentinel."""
        future = Future("job")
        error = ProcessExitError("job", 7, "")
        future._set_failure(error)

        assert future.ready()
        assert future.value is ERROR
        assert future.exception() is error
        with pytest.raises(ProcessExitError) as exc_info:
            future.get()
        assert exc_info.value.returncode == 7

    def test_exception_does_not_consume(self):
        """Test that exception() leaves the future retrievable."""
        future = Future("job")
        future._set_failure(RuntimeError("x"))

        future.exception()

        assert not future.consumed
        with pytest.raises(RuntimeError):
            future.get()

    def test_repr(self):
        """Test the repr shows name and state."""
        future = Future("job", flavor=CallFlavor.TASK)
        assert "pending" in repr(future)
        assert "'job'" in repr(future)
        future._set_result(None)
        assert "ready" in repr(future)


class TestGet:
    """Tests for get()."""

    def test_second_get_raises(self):
        """Test that a future can be retrieved only once."""
        future = Future("job")
        future._set_result("value")

        assert get(future) == "value"
        with pytest.raises(FutureConsumedError):
            get(future)

    def test_second_get_after_error_raises(self):
        """Test that a failed future is also consumed by get()."""
        future = Future("job")
        future._set_failure(ValueError("x"))

        with pytest.raises(ValueError):
            future.get()
        with pytest.raises(FutureConsumedError):
            future.get()

    def test_timeout_keeps_future(self):
        """Test that a timed-out get() leaves the future retrievable."""
        future = Future("job")

        with pytest.raises(TimeoutError):
            future.get(timeout=0.01)
        assert not future.consumed

        future._set_result(1)
        assert future.get() == 1

    def test_blocks_until_resolved(self):
        """Test that get() waits for another thread to resolve."""
        future = Future("job")
        resolve_later(future, "late")

        assert future.get(timeout=5) == "late"

    def test_unwraps_task_result(self):
        """Test that task-flavored values are unwrapped."""
        future = Future("task", flavor=CallFlavor.TASK)
        future._set_result(TaskResult.success([1, 2, 3]))

        assert future.get() == [1, 2, 3]

    def test_failed_task_result_raises(self):
        """Test that a failed TaskResult raises TaskError."""
        future = Future("task", flavor=CallFlavor.TASK)
        result = TaskResult.failure("builtins.ValueError", ["boom", 42])
        future._set_result(result)

        assert future.value is result
        with pytest.raises(TaskError) as exc_info:
            future.get()
        assert exc_info.value.category == "builtins.ValueError"
        assert exc_info.value.payload == ["boom", 42]

    def test_concurrent_get_single_winner(self):
        """Test that only one of several concurrent get() calls succeeds."""
        future = Future("job")
        outcomes = []
        lock = threading.Lock()

        def retrieve():
            try:
                value = future.get(timeout=5)
            except FutureConsumedError:
                value = "consumed"
            with lock:
                outcomes.append(value)

        threads = [threading.Thread(target=retrieve) for _ in range(4)]
        for t in threads:
            t.start()
        future._set_result("once")
        for t in threads:
            t.join(5)

        assert sorted(outcomes) == ["consumed"] * 3 + ["once"]


class TestWait:
    """Tests for wait()."""

    def test_wait_timeout(self):
        """Test that wait() returns False when not ready."""
        assert wait(Future("job"), timeout=0.01) is False

    def test_wait_ready(self):
        """Test that wait() returns True once resolved, without consuming."""
        future = Future("job")
        resolve_later(future, 3)

        assert wait(future, timeout=5) is True
        assert not future.consumed
        assert future.get() == 3


class TestDoneCallbacks:
    """Tests for add_done_callback()."""

    def test_called_on_resolve(self):
        """Test that done callbacks receive the future."""
        future = Future("job")
        seen = []
        future.add_done_callback(seen.append)

        future._set_result(1)

        assert seen == [future]

    def test_called_immediately_when_ready(self):
        """Test that a callback added after completion runs at once."""
        future = Future("job")
        future._set_result(1)
        seen = []

        future.add_done_callback(seen.append)

        assert seen == [future]


class TestAwait:
    """Tests for asyncio integration."""

    def test_await_value(self):
        """Test awaiting a future resolved from another thread."""
        future = Future("job")

        async def consume():
            resolve_later(future, "async value")
            return await future

        assert asyncio.run(consume()) == "async value"
        assert future.consumed

    def test_await_failure(self):
        """Test that awaiting a failed future raises its error."""
        future = Future("task", flavor=CallFlavor.TASK)
        future._set_result(TaskResult.failure("builtins.KeyError", ["k"]))

        async def consume():
            return await future

        with pytest.raises(TaskError):
            asyncio.run(consume())

    def test_await_error_is_retrieved(self):
        """Test that awaiting a failed future leaves no unretrieved asyncio error."""
        future = Future("job")
        future._set_failure(RuntimeError("boom"))
        reported = []

        async def consume():
            loop = asyncio.get_running_loop()
            loop.set_exception_handler(lambda _loop, context: reported.append(context))
            with pytest.raises(RuntimeError, match="boom"):
                await future
            gc.collect()

        asyncio.run(consume())

        assert reported == []
