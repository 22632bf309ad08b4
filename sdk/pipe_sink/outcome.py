"""
Termination outcomes reported when a child process is reaped.

Outcomes are observational: they are logged and returned, never acted on.
"""

import os
import signal
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class ExitedWithCode:
    """The child called exit() with ``code``."""
    code: int

    def describe(self) -> str:
        return f"Process exited with code {self.code}"


@dataclass(frozen=True)
class AbnormalTermination:
    """The child did not exit normally (killed by a signal, core dump)."""
    signal: Optional[int] = None
    core_dumped: bool = False

    def describe(self) -> str:
        details = []
        if self.signal is not None:
            try:
                details.append(signal.Signals(self.signal).name)
            except ValueError:
                details.append(f"signal {self.signal}")
        if self.core_dumped:
            details.append("core dumped")
        if not details:
            return "Abnormal process termination"
        return f"Abnormal process termination ({', '.join(details)})"


@dataclass(frozen=True)
class WaitFailed:
    """waitpid() itself failed; the child's fate is unknown."""
    errno: int

    def describe(self) -> str:
        return f"waitpid() failed: [Errno {self.errno}] {os.strerror(self.errno)}"


TerminationOutcome = Union[ExitedWithCode, AbnormalTermination, WaitFailed]


def classify_wait_status(status: int) -> TerminationOutcome:
    """
    Turn a raw waitpid() status into an outcome.

    Args:
        status: Status word returned by os.waitpid()

    Returns:
        ExitedWithCode for a normal exit, AbnormalTermination otherwise
    """
    if os.WIFEXITED(status):
        return ExitedWithCode(os.WEXITSTATUS(status))
    if os.WIFSIGNALED(status):
        return AbnormalTermination(
            signal=os.WTERMSIG(status),
            core_dumped=os.WCOREDUMP(status),
        )
    return AbnormalTermination()


def exit_code_for(outcome: TerminationOutcome) -> int:
    """Map an outcome to a shell-style exit code for command line drivers."""
    if isinstance(outcome, ExitedWithCode):
        return outcome.code
    return 1
