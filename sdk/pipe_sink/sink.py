"""
PipeSink - stream fixed-size records into a child process's stdin.

Architecture:
    framework → process(records) → StreamWriter → pipe → sh -c command

Components:
    RecordSink (ABC): Interface for all record sinks
    PipeSink: One child process per sink, non-blocking writes,
              teardown exactly once (close(), context exit, GC or exit)
"""

import io
import logging
import weakref
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from pipe_sink.config import PipeSinkConfig
from pipe_sink.errors import SinkClosedError
from pipe_sink.outcome import TerminationOutcome
from pipe_sink.process_pipe import DEFAULT_SHELL, PipeState, ProcessPipe

logger = logging.getLogger(__name__)


class RecordSink(ABC):
    """
    Abstract base class for record sinks.

    process() must never block indefinitely in normal operation.
    """

    @abstractmethod
    def process(self, records, count: Optional[int] = None) -> int:
        """
        Offer a batch of records to the sink.

        Args:
            records: Contiguous buffer of fixed-size records
            count: Number of records in the batch

        Returns:
            Number of records consumed (0 <= consumed <= count)
        """
        pass

    @abstractmethod
    def flush(self) -> None:
        """
        Force delivery of all accepted records.

        May block until the consumer takes them.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close the sink and release resources.

        Should deliver remaining records before closing.
        """
        pass

    def __enter__(self) -> "RecordSink":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class PipeSink(RecordSink):
    """
    Record sink backed by a ``sh -c command`` child process.

    The child's stdin receives the bytes of every accepted record, back
    to back, in call order. process() reports how many records were
    really accepted; the rest must be offered again.
    """

    def __init__(
        self,
        record_size: int,
        command: str,
        *,
        unbuffered: bool = False,
        buffer_size: int = io.DEFAULT_BUFFER_SIZE,
        shell: str = DEFAULT_SHELL,
    ):
        """
        Spawn the child process.

        Args:
            record_size: Size in bytes of one record (> 0)
            command: Shell command that consumes the records on stdin
            unbuffered: Flush after every process() call
            buffer_size: Writer buffer size in bytes
            shell: POSIX shell used to run the command

        Raises:
            ValueError: Invalid record size, buffer size or command
            SetupError: The pipe or child process could not be set up
        """
        config = PipeSinkConfig(
            record_size=record_size,
            command=command,
            unbuffered=unbuffered,
            buffer_size=buffer_size,
            shell=shell,
        )
        config.validate()
        self.config = config
        self._record_size = record_size

        self._pipe = ProcessPipe(
            command,
            record_size,
            buffer_size=buffer_size,
            shell=shell,
        )
        self._pipe.writer.unbuffered = unbuffered
        logger.debug(f"PipeSink ready: {record_size}-byte records into pid {self._pipe.pid}")

        # Teardown runs once: close(), garbage collection or interpreter exit
        self._finalizer = weakref.finalize(self, self._pipe.close)

    @classmethod
    def from_config(cls, config: Optional[PipeSinkConfig] = None) -> "PipeSink":
        """
        Create a sink from a config object.

        Args:
            config: Sink configuration. If None, uses defaults from env.
        """
        config = config or PipeSinkConfig.from_env()
        return cls(
            config.record_size,
            config.command,
            unbuffered=config.unbuffered,
            buffer_size=config.buffer_size,
            shell=config.shell,
        )

    # =========================================================================
    # Records
    # =========================================================================

    def process(self, records, count: Optional[int] = None) -> int:
        """
        Write as many records as the pipe takes without blocking.

        Returns:
            Number of whole records accepted

        Raises:
            PipeWriteError: Hard write failure; close the sink
            SinkClosedError: The sink was already torn down
            ValueError: ``count`` does not fit the buffer
        """
        self._check_running()
        return self._pipe.writer.write(records, count)

    def process_records(self, records: Iterable[bytes]) -> int:
        """
        Offer a sequence of individual records.

        Each record must be exactly ``record_size`` bytes long.
        """
        batch = bytearray()
        for index, record in enumerate(records):
            if len(record) != self._record_size:
                raise ValueError(
                    f"record {index} is {len(record)} bytes, expected {self._record_size}"
                )
            batch += record
        return self.process(batch)

    def flush(self) -> None:
        self._check_running()
        self._pipe.writer.flush()

    def close(self) -> Optional[TerminationOutcome]:
        """
        Tear down the sink: drain, close the pipe and wait for the child.

        Blocks until the child exits. Safe to call more than once.

        Returns:
            The child's termination outcome
        """
        self._finalizer()
        return self._pipe.outcome

    def _check_running(self) -> None:
        if self._pipe.state is not PipeState.RUNNING:
            raise SinkClosedError(f"sink for {self._pipe.command!r} is {self._pipe.state.value}")

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_unbuffered(self) -> bool:
        return self._pipe.writer.unbuffered

    def set_unbuffered(self, unbuffered: bool) -> None:
        self._pipe.writer.unbuffered = unbuffered

    unbuffered = property(get_unbuffered, set_unbuffered)

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def record_size(self) -> int:
        return self._record_size

    @property
    def command(self) -> str:
        return self._pipe.command

    @property
    def pid(self) -> Optional[int]:
        return self._pipe.pid

    @property
    def state(self) -> PipeState:
        return self._pipe.state

    @property
    def outcome(self) -> Optional[TerminationOutcome]:
        return self._pipe.outcome

    @property
    def pending_bytes(self) -> int:
        """Bytes accepted but still in the writer's buffer."""
        return self._pipe.writer.pending

    def __repr__(self) -> str:
        return f"PipeSink(record_size={self._record_size}, pipe={self._pipe!r})"
