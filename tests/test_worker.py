"""Tests for the worker entry point, run in-process."""

import io
import threading

import pytest

from procfuture.core import Task, TaskResult
from procfuture.process.serialization import (
    EXIT_READ_FAILURE,
    MESSAGE_MARKER,
    find_result_unit,
    marshal_task,
    parse_unit,
)
from procfuture.process.worker import main, run_worker, send


def run(task: Task):
    """Run a task through run_worker; return (exit code, output)."""
    stdin = io.StringIO(marshal_task(task) + "\n")
    stdout = io.StringIO()
    code = run_worker(stdin, stdout)
    return code, stdout.getvalue()


class TestRunWorker:
    """Tests for run_worker()."""

    def test_success(self):
        """Test that a value unit is written for a returning task."""
        code, output = run(Task(func=lambda: 6 * 7))

        assert code == 0
        assert find_result_unit(output) == TaskResult.success(42)

    def test_task_error(self):
        """Test that an exception becomes an error unit with exit code 0."""
        def fail():
            raise KeyError("missing")

        code, output = run(Task(func=fail))

        assert code == 0
        assert find_result_unit(output) == TaskResult.failure("builtins.KeyError", ["missing"])

    def test_unpicklable_result(self):
        """Test that a result that cannot be pickled is reported as an error."""
        code, output = run(Task(func=lambda: threading.Lock()))

        assert code == 0
        result = find_result_unit(output)
        assert not result.ok
        assert result.category == "builtins.TypeError"

    def test_preamble_applied(self):
        """Test that captured variables are visible to the task."""
        code, output = run(Task(func=lambda: cap_value * 2, preamble="cap_value = 21"))  # noqa: F821

        assert code == 0
        assert find_result_unit(output).value == 42

    def test_read_failure(self):
        """Test that unreadable input exits with EXIT_READ_FAILURE."""
        stdout = io.StringIO()

        assert run_worker(io.StringIO("garbage\n"), stdout) == EXIT_READ_FAILURE
        assert stdout.getvalue() == ""

    def test_empty_input(self):
        """Test that a closed stdin without a task is a read failure."""
        assert run_worker(io.StringIO(""), io.StringIO()) == EXIT_READ_FAILURE

    def test_system_exit_propagates(self):
        """Test that SystemExit is not turned into an error unit."""
        def leave():
            raise SystemExit(5)

        with pytest.raises(SystemExit):
            run(Task(func=leave))

    def test_unit_starts_on_fresh_line(self):
        """Test that the unit is separated from partial task output."""
        stdin = io.StringIO(marshal_task(Task(func=lambda: 1)) + "\n")
        stdout = io.StringIO()
        stdout.write("partial line without newline")

        run_worker(stdin, stdout)

        assert find_result_unit(stdout.getvalue()).value == 1


class TestSend:
    """Tests for send()."""

    def test_messages_precede_result(self):
        """Test that sent values are written as message units in order."""
        def chatty():
            for i in range(3):
                send({"step": i})
            return "done"

        code, output = run(Task(func=chatty))

        units = [parse_unit(line) for line in output.splitlines()]
        messages = [u[1] for u in units if u is not None and u[0] == MESSAGE_MARKER]
        assert code == 0
        assert messages == [{"step": 0}, {"step": 1}, {"step": 2}]
        assert find_result_unit(output).value == "done"

    def test_send_outside_worker(self):
        """Test that send() fails outside a running task."""
        with pytest.raises(RuntimeError, match="inside a worker"):
            send(1)


class TestWorkerMain:
    """Tests for the worker command line."""

    def test_missing_init_module(self):
        """Test that a failing init module exits with EXIT_READ_FAILURE."""
        assert main(["--init-module", "procfuture_no_such_module"]) == EXIT_READ_FAILURE

    def test_invalid_log_level(self):
        """Test that an unknown log level is rejected."""
        with pytest.raises(SystemExit):
            main(["--log-level", "LOUD"])
