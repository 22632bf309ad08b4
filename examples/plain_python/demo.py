"""
Plain Python demo streaming records into shell commands.

This example demonstrates:
1. Feeding 8-byte records to ``od`` and letting backpressure pace the producer
2. Toggling unbuffered mode for low-latency delivery
3. Reading the child's exit status at teardown

Run this script to see pipe-sink in action with plain Python.
"""

import logging
import struct
import time

from pipe_sink import PipeSink, feed

logging.basicConfig(level=logging.INFO, format="%(name)s - %(levelname)s - %(message)s")

RECORD = struct.Struct("<If")  # sequence number, reading


# Example 1: Batches paced by the consumer
def stream_readings(count: int = 16) -> None:
    """Send fixed-size readings to a hex dumper."""
    batch = b"".join(RECORD.pack(i, i * 0.5) for i in range(count))

    with PipeSink(RECORD.size, "od -An -tx1 -w8") as sink:
        accepted = feed(sink, batch, RECORD.size)
        print(f"Handed {accepted} records to pid {sink.pid}")

    print(f"Child finished: {sink.outcome.describe()}")


# Example 2: Low latency with unbuffered mode
def stream_live(count: int = 5) -> None:
    """Deliver each reading as soon as it is produced."""
    sink = PipeSink(RECORD.size, "od -An -tx1 -w8", unbuffered=True)
    try:
        for i in range(count):
            sink.process(RECORD.pack(i, time.time() % 1))
            time.sleep(0.1)
    finally:
        outcome = sink.close()
    print(f"Child finished: {outcome.describe()}")


# Example 3: A failing consumer
def failing_consumer() -> None:
    """The exit code of the command is reported, not raised."""
    sink = PipeSink(RECORD.size, "cat > /dev/null; exit 3")
    sink.process(RECORD.pack(0, 0.0))
    print(f"Child finished: {sink.close().describe()}")


if __name__ == "__main__":
    print("=" * 60)
    print("pipe-sink Plain Python Demo")
    print("=" * 60)

    print("\n1. Paced batches")
    stream_readings()

    print("\n2. Unbuffered delivery")
    stream_live()

    print("\n3. Failing consumer")
    failing_consumer()
