"""Tests for pipe_sink.sink module."""

import gc
import os

import pytest

from pipe_sink.config import PipeSinkConfig
from pipe_sink.errors import SinkClosedError
from pipe_sink.outcome import ExitedWithCode
from pipe_sink.process_pipe import PipeState
from pipe_sink.sink import PipeSink, RecordSink


@pytest.fixture
def null_sink():
    """A PipeSink whose child discards its input."""
    sink = PipeSink(4, "cat > /dev/null")
    yield sink
    sink.close()


class TestConstruction:
    """Tests for PipeSink construction."""

    def test_is_record_sink(self, null_sink):
        assert isinstance(null_sink, RecordSink)
        assert null_sink.record_size == 4
        assert null_sink.command == "cat > /dev/null"
        assert null_sink.state is PipeState.RUNNING
        assert null_sink.pid > 0

    @pytest.mark.parametrize("record_size", [0, -1, True, 2.5])
    def test_rejects_invalid_record_size(self, record_size):
        with pytest.raises(ValueError):
            PipeSink(record_size, "cat > /dev/null")

    def test_rejects_empty_command(self):
        with pytest.raises(ValueError):
            PipeSink(4, "")

    def test_from_config(self):
        config = PipeSinkConfig(record_size=8, command="cat > /dev/null", unbuffered=True)
        sink = PipeSink.from_config(config)
        try:
            assert sink.record_size == 8
            assert sink.unbuffered is True
        finally:
            sink.close()

    def test_from_env(self):
        os.environ["PIPE_SINK_RECORD_SIZE"] = "2"
        os.environ["PIPE_SINK_COMMAND"] = "cat > /dev/null; exit 4"
        sink = PipeSink.from_config()

        assert sink.record_size == 2
        assert sink.close() == ExitedWithCode(4)


class TestProcess:
    """Tests for PipeSink.process()."""

    def test_accepts_batch(self, null_sink):
        assert null_sink.process(b"aaaabbbbcccc") == 3

    def test_explicit_count(self, null_sink):
        assert null_sink.process(b"aaaabbbbcccc", 2) == 2

    def test_count_larger_than_buffer(self, null_sink):
        with pytest.raises(ValueError):
            null_sink.process(b"aaaa", 2)

    def test_process_records(self, null_sink):
        assert null_sink.process_records([b"aaaa", b"bbbb"]) == 2
        assert null_sink.pending_bytes == 8

    def test_process_records_rejects_wrong_length(self, null_sink):
        with pytest.raises(ValueError, match="record 1"):
            null_sink.process_records([b"aaaa", b"bbb"])

    def test_flush(self, null_sink):
        null_sink.process(b"aaaa")
        null_sink.flush()
        assert null_sink.pending_bytes == 0

    def test_process_after_close(self, null_sink):
        null_sink.close()
        with pytest.raises(SinkClosedError):
            null_sink.process(b"aaaa")
        with pytest.raises(SinkClosedError):
            null_sink.flush()


class TestUnbuffered:
    """Tests for the unbuffered flag."""

    def test_default_is_buffered(self, null_sink):
        assert null_sink.get_unbuffered() is False

    def test_toggle(self, null_sink):
        null_sink.set_unbuffered(True)
        assert null_sink.get_unbuffered() is True
        assert null_sink.unbuffered is True

        null_sink.unbuffered = False
        assert null_sink.get_unbuffered() is False

    def test_unbuffered_process_leaves_nothing_pending(self, null_sink):
        null_sink.set_unbuffered(True)
        null_sink.process(b"aaaa")
        assert null_sink.pending_bytes == 0


class TestTeardown:
    """Tests for PipeSink teardown."""

    def test_close_returns_outcome(self):
        sink = PipeSink(1, "cat > /dev/null; exit 9")

        assert sink.close() == ExitedWithCode(9)
        assert sink.state is PipeState.TERMINATED
        assert sink.outcome == ExitedWithCode(9)

    def test_close_is_idempotent(self):
        sink = PipeSink(1, "cat > /dev/null")
        assert sink.close() == sink.close() == ExitedWithCode(0)

    def test_context_manager(self):
        with PipeSink(1, "cat > /dev/null; exit 2") as sink:
            sink.process(b"x")
        assert sink.outcome == ExitedWithCode(2)

    def test_garbage_collection_reaps_child(self):
        sink = PipeSink(1, "cat > /dev/null")
        pid = sink.pid

        del sink
        gc.collect()

        with pytest.raises(ChildProcessError):
            os.waitpid(pid, os.WNOHANG)

    def test_repr(self, null_sink):
        assert "record_size=4" in repr(null_sink)
