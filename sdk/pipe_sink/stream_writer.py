"""
StreamWriter - record-aware buffered writes over a non-blocking pipe.

The writer behaves like a stdio stream opened on the pipe's write end:
small batches collect in an internal buffer, large batches go straight
to the descriptor. A full pipe is reported as "fewer records accepted",
never as an error.

Write policy:
    - Only whole records are ever accepted.
    - If the OS takes a byte count that ends inside a record, the rest of
      that record stays in the buffer and goes out before anything else.
      The record counts as accepted, so the byte stream never restarts in
      the middle of a record.
    - Records beyond the accepted count were not taken; the caller offers
      them again later.
"""

import errno
import io
import logging
import os
import select
from typing import Optional

from pipe_sink.errors import PipeWriteError

logger = logging.getLogger(__name__)

_WOULD_BLOCK = (errno.EAGAIN, errno.EWOULDBLOCK)


class StreamWriter:
    """
    Buffered writer over a pipe descriptor.

    Features:
        - Non-blocking write() that returns the number of records accepted
        - Internal buffer of ``buffer_size`` bytes (stdio-like)
        - Optional unbuffered mode that flushes after every write()
        - Blocking flush() that waits for the pipe with poll()
    """

    def __init__(
        self,
        fd: int,
        record_size: int,
        buffer_size: int = io.DEFAULT_BUFFER_SIZE,
        unbuffered: bool = False,
    ):
        """
        Initialize the StreamWriter.

        Args:
            fd: Write end of the pipe (ownership passes to the writer)
            record_size: Size in bytes of one record
            buffer_size: Capacity of the internal buffer in bytes
            unbuffered: Flush after every write() call
        """
        if record_size <= 0:
            raise ValueError(f"record_size must be positive, got {record_size}")
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")

        self._fd = fd
        self.record_size = record_size
        self.buffer_size = buffer_size
        self._unbuffered = unbuffered
        self._buffer = bytearray()
        self._closed = False
        self._bytes_written = 0
        self._records_accepted = 0

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def unbuffered(self) -> bool:
        return self._unbuffered

    @unbuffered.setter
    def unbuffered(self, value: bool) -> None:
        self._unbuffered = bool(value)

    def set_unbuffered(self, value: bool) -> None:
        self.unbuffered = value

    # =========================================================================
    # Writing
    # =========================================================================

    def write(self, records, count: Optional[int] = None) -> int:
        """
        Offer a batch of records to the pipe without blocking.

        Args:
            records: Bytes-like object holding the records back to back
            count: Number of records to write. Defaults to every whole
                record in ``records``.

        Returns:
            Number of records accepted, from 0 up to ``count``

        Raises:
            PipeWriteError: The pipe failed with anything but would-block
            ValueError: ``count`` is negative or larger than the batch
        """
        self._check_open()

        with memoryview(records) as raw:
            view = raw.cast("B") if raw.format != "B" or raw.ndim != 1 else raw
            available = len(view) // self.record_size
            if count is None:
                count = available
            if count < 0:
                raise ValueError(f"count must be non-negative, got {count}")
            if count > available:
                raise ValueError(
                    f"batch holds {available} records of {self.record_size} bytes, "
                    f"{count} requested"
                )

            accepted = self._write_view(view[: count * self.record_size])
            if view is not raw:
                view.release()

        if self._unbuffered:
            self.flush()

        self._records_accepted += accepted
        if accepted < count:
            logger.debug(
                "Pipe backpressure on fd %d: accepted %d of %d records",
                self._fd, accepted, count,
            )
        return accepted

    def _write_view(self, view: memoryview) -> int:
        rs = self.record_size
        accepted = 0

        if self._buffer and len(self._buffer) + len(view) > self.buffer_size:
            self._drain()

        if not self._buffer and len(view) >= self.buffer_size:
            written = self._write_some(view)
            accepted, partial = divmod(written, rs)
            if partial:
                # Keep the tail of the split record so it goes out first
                end = (accepted + 1) * rs
                self._buffer += view[written:end]
                accepted += 1
            view = view[accepted * rs:]

        room = self.buffer_size - len(self._buffer)
        fit = min(len(view) // rs, max(room, 0) // rs)
        if fit:
            self._buffer += view[: fit * rs]
            accepted += fit

        if len(self._buffer) >= self.buffer_size:
            self._drain()

        return accepted

    def flush(self) -> None:
        """
        Push every buffered byte to the OS pipe.

        Blocks (in poll()) while the pipe is full.

        Raises:
            PipeWriteError: The pipe failed, e.g. the child has exited
        """
        if self._closed:
            return

        poller = None
        while not self._drain():
            if poller is None:
                poller = select.poll()
                poller.register(self._fd, select.POLLOUT)
            poller.poll()

    def _drain(self) -> bool:
        """Write buffered bytes until empty or would-block. True if empty."""
        while self._buffer:
            written = self._write_some(self._buffer)
            if written == 0:
                return False
            del self._buffer[:written]
        return True

    def _write_some(self, data) -> int:
        """
        One os.write() call, classified.

        Returns:
            Bytes written; 0 when the pipe would block
        """
        try:
            # EINTR is retried by os.write itself
            written = os.write(self._fd, data)
        except BlockingIOError:
            return 0
        except OSError as e:
            if e.errno in _WOULD_BLOCK:
                return 0
            logger.error(f"write() to fd {self._fd} failed: {e}")
            raise PipeWriteError(e.errno, f"write() to child process failed: {e}") from e
        self._bytes_written += written
        return written

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """
        Flush the buffer and close the descriptor.

        The descriptor is closed even when the final flush fails; the
        flush error is re-raised afterwards.
        """
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            self._buffer.clear()
            os.close(self._fd)

    def fileno(self) -> int:
        return self._fd

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("write to closed StreamWriter")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of bytes waiting in the internal buffer."""
        return len(self._buffer)

    @property
    def bytes_written(self) -> int:
        """Bytes handed to the OS so far."""
        return self._bytes_written

    @property
    def records_accepted(self) -> int:
        """Records accepted across all write() calls."""
        return self._records_accepted
