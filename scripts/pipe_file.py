#!/usr/bin/env python3
"""
Pipe script - stream a binary file into a shell command as fixed-size records.

Reads the input in record-aligned chunks and feeds them to a PipeSink,
backing off whenever the command stops draining its stdin. Exits with
the command's exit code.

Usage:
    # 4-byte records into hexdump
    python scripts/pipe_file.py --record-size 4 --command 'od -An -tx1' data.bin

    # From stdin, flushing every chunk
    cat data.bin | python scripts/pipe_file.py -r 8 -c 'cat > out.bin' --unbuffered -

    # Settings from a config file
    python scripts/pipe_file.py --config pipe_sink.yaml data.bin
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pipe_sink import PipeSink, PipeSinkError, feed, iter_chunks, load_config
from pipe_sink.outcome import exit_code_for


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Stream fixed-size records from a file into a shell command",
    )
    parser.add_argument("input", help="Input file, or - for stdin")
    parser.add_argument("--config", type=Path, help="Path to pipe_sink.yaml")
    parser.add_argument("-r", "--record-size", type=int, help="Record size in bytes")
    parser.add_argument("-c", "--command", help="Shell command fed with the records")
    parser.add_argument(
        "--unbuffered",
        action="store_true",
        default=None,
        help="Flush to the command after every chunk",
    )
    parser.add_argument("--buffer-size", type=int, help="Writer buffer size in bytes")
    parser.add_argument(
        "--chunk-records",
        type=int,
        default=1024,
        help="Records read and offered per call (default: 1024)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    if args.record_size is not None:
        config.record_size = args.record_size
    if args.command is not None:
        config.command = args.command
    if args.unbuffered is not None:
        config.unbuffered = args.unbuffered
    if args.buffer_size is not None:
        config.buffer_size = args.buffer_size

    try:
        config.validate()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        sink = PipeSink.from_config(config)
    except PipeSinkError as e:
        logger.error(f"Could not start {config.command!r}: {e}")
        return 1

    records = 0
    try:
        stream = sys.stdin.buffer if args.input == "-" else open(args.input, "rb")
        with stream:
            for chunk in iter_chunks(stream, config.record_size, args.chunk_records):
                records += feed(sink, chunk, config.record_size)
    except OSError as e:
        logger.error(f"Cannot read {args.input}: {e}")
    except PipeSinkError as e:
        logger.error(f"Streaming to {config.command!r} failed: {e}")
    finally:
        outcome = sink.close()

    logger.info(f"Streamed {records} records of {config.record_size} bytes")
    return exit_code_for(outcome)


if __name__ == "__main__":
    sys.exit(main())
