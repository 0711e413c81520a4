"""Tests for the observability system."""

import io
import json
import sys

import pytest

from procfuture.config import SinkSchema, reset_config
from procfuture.config.schema import ObservabilitySchema
from procfuture.observability import (
    ConsoleSink,
    FileSink,
    MemorySink,
    MessageRecord,
    NullSink,
    ObservabilityHub,
    ProcessExitRecord,
    ProcessStartRecord,
    Sink,
    TaskResultRecord,
    TraceLevel,
    TraceRecord,
    configure_from_schema,
    create_sink,
)
from procfuture.process import launch_process, launch_task

TIMEOUT = 60


class FailingSink(Sink):
    """Sink whose writes always fail."""

    def write(self, record):
        raise IOError("disk full")


# =============================================================================
# TraceLevel and records
# =============================================================================


class TestTraceLevel:
    """Tests for TraceLevel."""

    def test_ordering(self):
        """Test that levels are ordered."""
        assert TraceLevel.OFF < TraceLevel.MINIMAL < TraceLevel.NORMAL < TraceLevel.VERBOSE

    def test_from_string(self):
        """Test parsing level names."""
        assert TraceLevel.from_string("normal") is TraceLevel.NORMAL
        assert TraceLevel.from_string("VERBOSE") is TraceLevel.VERBOSE
        with pytest.raises(ValueError, match="Unknown trace level"):
            TraceLevel.from_string("chatty")


class TestRecords:
    """Tests for trace record types."""

    def test_record_types(self):
        """Test the record_type of each record."""
        assert ProcessStartRecord().record_type == "process_start"
        assert ProcessExitRecord().record_type == "process_exit"
        assert TaskResultRecord().record_type == "task_result"
        assert MessageRecord().record_type == "message"

    def test_min_levels(self):
        """Test default minimum levels."""
        assert ProcessStartRecord().min_level == TraceLevel.NORMAL
        assert MessageRecord().min_level == TraceLevel.VERBOSE

    def test_to_dict_hides_min_level(self):
        """Test that the internal level is not serialized."""
        d = ProcessExitRecord(name="job", pid=1, returncode=3).to_dict()

        assert d["name"] == "job"
        assert d["returncode"] == 3
        assert "min_level" not in d

    def test_to_json(self):
        """Test JSON serialization."""
        data = json.loads(ProcessStartRecord(name="job", argv=["a", "b"]).to_json())
        assert data["record_type"] == "process_start"
        assert data["argv"] == ["a", "b"]


# =============================================================================
# Hub
# =============================================================================


class TestObservabilityHub:
    """Tests for ObservabilityHub."""

    def setup_method(self):
        """Reset hub before each test."""
        ObservabilityHub.reset_instance()
        reset_config()

    def teardown_method(self):
        """Reset hub after each test."""
        ObservabilityHub.reset_instance()
        reset_config()

    def test_singleton(self):
        """Test that get_instance returns the same hub."""
        assert ObservabilityHub.get_instance() is ObservabilityHub.get_instance()

    def test_disabled_by_default(self):
        """Test that tracing is off by default."""
        hub = ObservabilityHub.get_instance()
        sink = MemorySink()
        hub.add_sink(sink)

        hub.emit(ProcessStartRecord(name="x"))

        assert not hub.enabled
        assert len(sink) == 0

    def test_level_filtering(self):
        """Test that records above the configured level are dropped."""
        hub = ObservabilityHub.get_instance()
        sink = MemorySink()
        hub.configure(level=TraceLevel.NORMAL, sinks=[sink])

        hub.emit(ProcessStartRecord(name="x"))
        hub.emit(MessageRecord(name="x"))

        assert [r.record_type for r in sink.get_records()] == ["process_start"]
        assert hub.is_level_enabled(TraceLevel.MINIMAL)
        assert not hub.is_level_enabled(TraceLevel.VERBOSE)

    def test_failing_sink_is_skipped(self, caplog):
        """Test that a failing sink does not stop other sinks."""
        hub = ObservabilityHub.get_instance()
        sink = MemorySink()
        hub.configure(level=TraceLevel.NORMAL, sinks=[FailingSink(), sink])

        with caplog.at_level("WARNING"):
            hub.emit(ProcessStartRecord(name="x"))

        assert len(sink) == 1
        assert any("FailingSink" in r.message for r in caplog.records)

    def test_remove_sink(self):
        """Test removing a sink."""
        hub = ObservabilityHub.get_instance()
        sink = MemorySink()
        hub.configure(level=TraceLevel.NORMAL, sinks=[sink])

        hub.remove_sink(sink)
        hub.emit(ProcessStartRecord(name="x"))

        assert len(sink) == 0

    def test_shutdown_disables(self):
        """Test that shutdown() disables tracing."""
        hub = ObservabilityHub.get_instance()
        hub.configure(level=TraceLevel.VERBOSE, sinks=[NullSink()])

        hub.shutdown()

        assert not hub.enabled
        assert hub.level == TraceLevel.OFF

    def test_process_lifecycle_records(self):
        """Test records emitted while running a program."""
        hub = ObservabilityHub.get_instance()
        sink = MemorySink()
        hub.configure(level=TraceLevel.NORMAL, sinks=[sink])

        future = launch_process("traced", sys.executable, ["-c", "print('x')"])
        handle = future.get(timeout=TIMEOUT)

        types = [r.record_type for r in sink.get_by_name("traced")]
        assert types == ["process_start", "process_exit"]
        start, end = sink.get_by_name("traced")
        assert start.pid == handle.pid
        assert start.flavor == "process"
        assert end.returncode == 0
        assert end.state == "exited_clean"
        assert end.output_chars == len(handle.output)

    def test_task_records(self):
        """Test records emitted while running a task."""
        hub = ObservabilityHub.get_instance()
        sink = MemorySink()
        hub.configure(level=TraceLevel.VERBOSE, sinks=[sink])

        def chatty():
            from procfuture.process.worker import send
            send("hello")
            return 1

        future = launch_task(chatty, name="chatty")
        assert future.get(timeout=TIMEOUT) == 1

        types = [r.record_type for r in sink.get_by_name("chatty")]
        assert types == ["process_start", "message", "process_exit", "task_result"]
        assert sink.get_records("message")[0].value_repr == "'hello'"

    def test_minimal_level_only_failures(self):
        """Test that the minimal level records abnormal exits only."""
        hub = ObservabilityHub.get_instance()
        sink = MemorySink()
        hub.configure(level=TraceLevel.MINIMAL, sinks=[sink])

        launch_process("ok", sys.executable, ["-c", "pass"]).wait(TIMEOUT)
        launch_process("bad", sys.executable, ["-c", "raise SystemExit(4)"]).wait(TIMEOUT)

        records = sink.get_records()
        assert [(r.record_type, r.name) for r in records] == [("process_exit", "bad")]
        assert records[0].state == "exited_error"


# =============================================================================
# Sinks
# =============================================================================


class TestSinks:
    """Tests for sink implementations."""

    def test_memory_sink_filters(self):
        """Test MemorySink filtering and clearing."""
        sink = MemorySink()
        sink.write(ProcessStartRecord(name="a"))
        sink.write(ProcessExitRecord(name="b"))

        assert len(sink.get_records("process_exit")) == 1
        assert [r.name for r in sink.get_by_name("a")] == ["a"]

        sink.clear()
        assert len(sink) == 0

    def test_memory_sink_bounded(self):
        """Test that MemorySink keeps the newest records."""
        sink = MemorySink(max_records=2)
        for i in range(3):
            sink.write(ProcessStartRecord(pid=i))

        assert [r.pid for r in sink.get_records()] == [1, 2]

    def test_file_sink(self, tmp_path):
        """Test that FileSink writes JSONL."""
        path = tmp_path / "traces" / "out.jsonl"
        sink = FileSink(str(path), buffer_size=1)

        sink.write(ProcessStartRecord(name="a", pid=10))
        sink.write(TaskResultRecord(name="a", ok=False, category="builtins.ValueError"))
        sink.close()

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [line["record_type"] for line in lines] == ["process_start", "task_result"]
        assert lines[1]["category"] == "builtins.ValueError"

    def test_file_sink_buffers_until_flush(self, tmp_path):
        """Test that FileSink buffers records."""
        path = tmp_path / "out.jsonl"
        sink = FileSink(str(path), buffer_size=10)

        sink.write(ProcessStartRecord(name="a"))
        assert path.read_text() == ""

        sink.flush()
        assert len(path.read_text().splitlines()) == 1
        sink.close()

    def test_file_sink_writes_failures_through(self, tmp_path):
        """Test that failure records are not held in the buffer."""
        path = tmp_path / "out.jsonl"
        sink = FileSink(str(path), buffer_size=10)

        sink.write(ProcessStartRecord(name="a"))
        sink.write(ProcessExitRecord(name="a", returncode=1, min_level=TraceLevel.MINIMAL))

        assert len(path.read_text().splitlines()) == 2
        sink.close()

    def test_console_sink_format(self):
        """Test ConsoleSink output lines."""
        stream = io.StringIO()
        sink = ConsoleSink(stream=stream)

        sink.write(ProcessStartRecord(name="job", pid=5, flavor="task", argv=["python", "-m", "w"]))
        sink.write(ProcessExitRecord(name="job", pid=5, returncode=1, duration_ms=12.4))
        sink.write(TaskResultRecord(name="job", ok=False, category="builtins.KeyError"))
        sink.write(MessageRecord(name="job", value_repr="42"))
        sink.write(TraceRecord())

        lines = stream.getvalue().splitlines()
        assert lines == [
            "[START] job pid=5 (task): python -m w",
            "[EXIT] job pid=5 code=1 after 12ms",
            "[TASK] job raised builtins.KeyError",
            "[MSG] job: 42",
        ]

    def test_console_sink_custom_format(self):
        """Test a custom format function."""
        stream = io.StringIO()
        sink = ConsoleSink(stream=stream, format_fn=lambda r: f"<{r.record_type}>")

        sink.write(ProcessStartRecord())

        assert stream.getvalue() == "<process_start>\n"

    def test_create_sink(self, tmp_path):
        """Test building sinks from configuration."""
        assert isinstance(create_sink(SinkSchema(type="memory")), MemorySink)
        assert isinstance(create_sink(SinkSchema(type="console")), ConsoleSink)
        assert isinstance(create_sink(SinkSchema(type="null")), NullSink)

        file_sink = create_sink(SinkSchema(type="file", path=str(tmp_path / "t.jsonl")))
        assert isinstance(file_sink, FileSink)
        file_sink.close()

    def test_configure_from_schema(self):
        """Test configuring a hub from an ObservabilitySchema."""
        hub = ObservabilityHub()
        schema = ObservabilitySchema(level="verbose", sinks=[SinkSchema(type="memory")])

        configure_from_schema(schema, hub=hub)

        assert hub.level == TraceLevel.VERBOSE
        assert hub.enabled
