"""
Drive a sink the way a streaming scheduler would.

feed() keeps offering the unaccepted tail of a buffer until every record
is taken, backing off while the child is not draining its stdin.
"""

import logging
import time
from typing import BinaryIO, Iterator, Optional

from pipe_sink.sink import RecordSink

logger = logging.getLogger(__name__)


class FeedTimeout(TimeoutError):
    """Raised when feed() cannot hand over every record in time."""

    def __init__(self, accepted: int, total: int, timeout: float):
        self.accepted = accepted
        self.total = total
        self.timeout = timeout
        super().__init__(
            f"Only {accepted} of {total} records accepted within {timeout:.2f}s"
        )


def feed(
    sink: RecordSink,
    data,
    record_size: int,
    *,
    poll_interval: float = 0.01,
    timeout: Optional[float] = None,
) -> int:
    """
    Offer ``data`` to ``sink`` until every whole record is accepted.

    Args:
        sink: Sink to feed
        data: Bytes-like object holding records back to back
        record_size: Size in bytes of one record
        poll_interval: Seconds to sleep after a call that accepted nothing
        timeout: Give up after this many seconds (None waits forever)

    Returns:
        Number of records accepted (all of them)

    Raises:
        FeedTimeout: ``timeout`` elapsed first
    """
    view = memoryview(data).cast("B")
    total = len(view) // record_size
    accepted = 0
    deadline = None if timeout is None else time.monotonic() + timeout

    try:
        while accepted < total:
            offset = accepted * record_size
            taken = sink.process(view[offset:], total - accepted)
            accepted += taken
            if taken:
                continue
            if deadline is not None and time.monotonic() >= deadline:
                raise FeedTimeout(accepted, total, timeout)
            time.sleep(poll_interval)
    finally:
        view.release()

    return accepted


def iter_chunks(stream: BinaryIO, record_size: int, chunk_records: int = 1024) -> Iterator[bytes]:
    """
    Read a binary stream in record-aligned chunks.

    A trailing partial record is dropped with a warning.

    Args:
        stream: Binary stream to read
        record_size: Size in bytes of one record
        chunk_records: Records per chunk
    """
    if record_size <= 0:
        raise ValueError(f"record_size must be positive, got {record_size}")
    if chunk_records <= 0:
        raise ValueError(f"chunk_records must be positive, got {chunk_records}")

    chunk_size = record_size * chunk_records
    carry = b""
    while True:
        block = stream.read(chunk_size - len(carry))
        if not block:
            break
        carry += block
        whole = len(carry) - len(carry) % record_size
        if whole:
            yield carry[:whole]
            carry = carry[whole:]

    if carry:
        logger.warning(
            f"Dropping {len(carry)} trailing bytes (not a whole {record_size}-byte record)"
        )
