"""
pipe_sink - stream fixed-size binary records into a child process

This package provides:
- PipeSink: a record sink that feeds a ``sh -c`` command's stdin
- Non-blocking, record-aware writes with real backpressure reporting
- Deterministic teardown: drain, close, reap, report the exit status
"""

from pipe_sink.config import PipeSinkConfig, load_config
from pipe_sink.errors import (
    FdConfigError,
    PipeCreateError,
    PipeSinkError,
    PipeWriteError,
    SetupError,
    SinkClosedError,
    SpawnError,
    WriterAttachError,
)
from pipe_sink.feeder import FeedTimeout, feed, iter_chunks
from pipe_sink.outcome import (
    AbnormalTermination,
    ExitedWithCode,
    TerminationOutcome,
    WaitFailed,
    classify_wait_status,
)
from pipe_sink.process_pipe import PipeState, ProcessPipe
from pipe_sink.sink import PipeSink, RecordSink
from pipe_sink.stream_writer import StreamWriter

__version__ = "0.1.0"

__all__ = [
    # Sink
    "RecordSink",
    "PipeSink",
    # Building blocks
    "ProcessPipe",
    "PipeState",
    "StreamWriter",
    # Outcomes
    "TerminationOutcome",
    "ExitedWithCode",
    "AbnormalTermination",
    "WaitFailed",
    "classify_wait_status",
    # Config
    "PipeSinkConfig",
    "load_config",
    # Feeding
    "feed",
    "iter_chunks",
    "FeedTimeout",
    # Errors
    "PipeSinkError",
    "SetupError",
    "PipeCreateError",
    "SpawnError",
    "FdConfigError",
    "WriterAttachError",
    "PipeWriteError",
    "SinkClosedError",
]
