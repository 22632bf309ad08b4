"""
Exceptions raised by the pipe sink.

Setup failures (pipe, spawn, descriptor flags, writer attachment) abort
construction. Write failures are fatal to the stream. A full pipe is not
an error and never shows up here.
"""

from typing import Optional


class PipeSinkError(Exception):
    """Base class for all pipe sink errors."""


class SetupError(PipeSinkError):
    """Raised when a sink cannot be constructed."""


class PipeCreateError(SetupError):
    """Raised when the OS pipe cannot be allocated."""


class SpawnError(SetupError):
    """Raised when the child process cannot be started."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to spawn command {command!r}: {reason}")


class FdConfigError(SetupError):
    """Raised when fcntl() fails on the pipe's write descriptor.

    Attributes:
        operation: The fcntl operation that failed (e.g. "F_SETFL").
        fd: The descriptor being configured.
        errno: OS error number, if known.
    """

    def __init__(self, operation: str, fd: int, errno: Optional[int] = None):
        self.operation = operation
        self.fd = fd
        self.errno = errno
        super().__init__(f"fcntl({fd}, {operation}) failed (errno={errno})")


class WriterAttachError(SetupError):
    """Raised when the stream writer cannot be attached to the pipe."""


class PipeWriteError(PipeSinkError):
    """Raised on a hard write error (anything but would-block).

    The sink cannot continue after this; the owner is expected to
    close it.
    """

    def __init__(self, errno: Optional[int], message: str = ""):
        self.errno = errno
        super().__init__(message or f"write() to child process failed (errno={errno})")


class SinkClosedError(PipeSinkError):
    """Raised when a sink is used after teardown."""


__all__ = [
    "PipeSinkError",
    "SetupError",
    "PipeCreateError",
    "SpawnError",
    "FdConfigError",
    "WriterAttachError",
    "PipeWriteError",
    "SinkClosedError",
]
