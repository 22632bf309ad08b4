"""
fcntl() helpers for the pipe's write descriptor.
"""

import fcntl
import os

from pipe_sink.errors import FdConfigError


def get_fd_flags(fd: int) -> int:
    """Return the file status flags (F_GETFL) of a descriptor."""
    try:
        return fcntl.fcntl(fd, fcntl.F_GETFL)
    except OSError as e:
        raise FdConfigError("F_GETFL", fd, e.errno) from e


def set_fd_flags(fd: int, flags: int) -> None:
    """OR ``flags`` into the descriptor's status flags."""
    current = get_fd_flags(fd)
    try:
        fcntl.fcntl(fd, fcntl.F_SETFL, current | flags)
    except OSError as e:
        raise FdConfigError("F_SETFL", fd, e.errno) from e


def clear_fd_flags(fd: int, flags: int) -> None:
    """Clear ``flags`` from the descriptor's status flags."""
    current = get_fd_flags(fd)
    try:
        fcntl.fcntl(fd, fcntl.F_SETFL, current & ~flags)
    except OSError as e:
        raise FdConfigError("F_SETFL", fd, e.errno) from e


def set_cloexec(fd: int) -> None:
    """Mark the descriptor close-on-exec."""
    try:
        current = fcntl.fcntl(fd, fcntl.F_GETFD)
        fcntl.fcntl(fd, fcntl.F_SETFD, current | fcntl.FD_CLOEXEC)
    except OSError as e:
        raise FdConfigError("F_SETFD", fd, e.errno) from e


def is_nonblocking(fd: int) -> bool:
    return bool(get_fd_flags(fd) & os.O_NONBLOCK)


def is_cloexec(fd: int) -> bool:
    try:
        return bool(fcntl.fcntl(fd, fcntl.F_GETFD) & fcntl.FD_CLOEXEC)
    except OSError as e:
        raise FdConfigError("F_GETFD", fd, e.errno) from e
