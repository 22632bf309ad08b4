"""
ProcessPipe - a child process fed through a pipe on its stdin.

Lifecycle:
    CONSTRUCTING -> RUNNING -> DRAINING -> TERMINATED

    CONSTRUCTING  pipe allocated, child spawned, write end configured
    RUNNING       records flow through ProcessPipe.writer
    DRAINING      write end back to blocking, buffer flushed, fd closed
    TERMINATED    child reaped (or waiting for it failed)

The read end belongs to the child only; the parent closes its copy right
after spawn. The write end is non-blocking and close-on-exec while running.
"""

import io
import logging
import os
import subprocess
from enum import Enum
from typing import Optional

from pipe_sink.errors import (
    FdConfigError,
    PipeCreateError,
    PipeWriteError,
    SpawnError,
    WriterAttachError,
)
from pipe_sink.fdflags import clear_fd_flags, set_cloexec, set_fd_flags
from pipe_sink.outcome import (
    ExitedWithCode,
    TerminationOutcome,
    WaitFailed,
    classify_wait_status,
)
from pipe_sink.stream_writer import StreamWriter

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"


class PipeState(Enum):
    """Lifecycle states of a ProcessPipe."""
    CONSTRUCTING = "constructing"
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


class ProcessPipe:
    """
    Owns one ``sh -c command`` child and the write end of its stdin pipe.

    Construction either fully succeeds (state RUNNING) or raises a
    SetupError with every descriptor closed and any spawned child reaped.
    close() is the single teardown entry point and runs its steps once.
    """

    def __init__(
        self,
        command: str,
        record_size: int,
        buffer_size: int = io.DEFAULT_BUFFER_SIZE,
        shell: str = DEFAULT_SHELL,
    ):
        """
        Spawn the child and wire its stdin to a new pipe.

        Args:
            command: Shell command, passed verbatim to ``sh -c``
            record_size: Size in bytes of one record
            buffer_size: Capacity of the writer's internal buffer
            shell: Path of the POSIX shell used to run ``command``

        Raises:
            PipeCreateError: os.pipe() failed
            SpawnError: The shell could not be started
            FdConfigError: The write end could not be configured
            WriterAttachError: The stream writer could not be attached
        """
        self.command = command
        self._state = PipeState.CONSTRUCTING
        self._outcome: Optional[TerminationOutcome] = None
        self._process: Optional[subprocess.Popen] = None
        self._fd: Optional[int] = None

        try:
            read_fd, write_fd = os.pipe()
        except OSError as e:
            raise PipeCreateError(f"pipe() failed: {e}") from e
        self._fd = write_fd

        try:
            self._process = self._spawn(command, shell, read_fd)
        except BaseException:
            os.close(write_fd)
            self._fd = None
            raise
        finally:
            # Parent never reads from the pipe
            os.close(read_fd)

        try:
            set_fd_flags(write_fd, os.O_NONBLOCK)
            set_cloexec(write_fd)
            self.writer = self._attach_writer(write_fd, record_size, buffer_size)
        except BaseException:
            self._abort()
            raise

        self._state = PipeState.RUNNING
        logger.debug(f"Spawned {command!r} as pid {self.pid}, stdin fd {write_fd}")

    @staticmethod
    def _spawn(command: str, shell: str, read_fd: int) -> subprocess.Popen:
        # Popen dup2()s read_fd onto the child's stdin, closes every other
        # descriptor in the child and reports exec() failure here.
        try:
            return subprocess.Popen(
                ["sh", "-c", command],
                executable=shell,
                stdin=read_fd,
                close_fds=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise SpawnError(command, str(e)) from e

    @staticmethod
    def _attach_writer(fd: int, record_size: int, buffer_size: int) -> StreamWriter:
        try:
            return StreamWriter(fd, record_size, buffer_size)
        except (ValueError, TypeError) as e:
            raise WriterAttachError(f"Cannot attach writer to fd {fd}: {e}") from e

    def _abort(self) -> None:
        """Undo a half-finished construction: close the fd, kill and reap."""
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        if self._process is not None:
            self._process.kill()
            self._process.wait()
        self._state = PipeState.TERMINATED

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def state(self) -> PipeState:
        return self._state

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def outcome(self) -> Optional[TerminationOutcome]:
        """Termination outcome, set once close() has reaped the child."""
        return self._outcome

    @property
    def running(self) -> bool:
        return self._state is PipeState.RUNNING

    def fileno(self) -> int:
        if self._fd is None:
            raise ValueError("ProcessPipe has no open descriptor")
        return self._fd

    # =========================================================================
    # Teardown
    # =========================================================================

    def close(self) -> Optional[TerminationOutcome]:
        """
        Drain the pipe, close it and reap the child.

        Blocks until the child exits. Never raises: failures are logged
        and teardown carries on to the wait. Calling close() again returns
        the outcome of the first call.

        Returns:
            The child's termination outcome
        """
        if self._state is not PipeState.RUNNING:
            return self._outcome

        self._state = PipeState.DRAINING
        self._drain_and_close()
        self._outcome = self._reap()
        self._state = PipeState.TERMINATED
        return self._outcome

    def _drain_and_close(self) -> None:
        fd = self._fd
        self._fd = None

        # Blocking mode so buffered bytes are delivered, not dropped
        try:
            clear_fd_flags(fd, os.O_NONBLOCK)
        except FdConfigError as e:
            logger.warning(f"Could not switch fd {fd} back to blocking mode: {e}")

        pending = self.writer.pending
        try:
            self.writer.close()
        except PipeWriteError as e:
            logger.warning(
                f"Could not deliver {pending} buffered bytes to pid {self.pid}: {e}"
            )
        except OSError as e:
            logger.warning(f"close() of fd {fd} failed: {e}")

    def _reap(self) -> TerminationOutcome:
        try:
            # os.waitpid retries on EINTR by itself
            _, status = os.waitpid(self._process.pid, 0)
        except OSError as e:
            outcome = WaitFailed(e.errno)
            logger.error(outcome.describe())
            return outcome

        outcome = classify_wait_status(status)
        # Keep the Popen handle consistent with the reaped child
        self._process.returncode = os.waitstatus_to_exitcode(status)

        if isinstance(outcome, ExitedWithCode) and outcome.code == 0:
            logger.info(outcome.describe())
        else:
            logger.warning(outcome.describe())
        return outcome

    def __enter__(self) -> "ProcessPipe":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ProcessPipe(command={self.command!r}, pid={self.pid}, state={self._state.value})"
