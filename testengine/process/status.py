"""Termination status of a reaped child process.

A process terminates through exactly one of two paths: it exits with a
code, or it is killed by a signal. Status models both and is only built by
translating the raw value returned by the wait family of system calls.
"""

from __future__ import annotations

import os
import signal
from dataclasses import dataclass

EXITED = "exited"
SIGNALED = "signaled"


def _signal_name(signo: int) -> str:
    try:
        return signal.Signals(signo).name
    except ValueError:
        return "unknown"


@dataclass(frozen=True)
class Status:
    """Outcome of a terminated process.

    ``exit_code`` is only set for the ``exited`` kind; ``signal_number``
    and ``dumped_core`` only mean something for the ``signaled`` kind.
    """

    kind: str
    exit_code: int | None = None
    signal_number: int | None = None
    dumped_core: bool = False

    def __post_init__(self) -> None:
        if self.kind == EXITED:
            if self.exit_code is None or self.signal_number is not None:
                raise ValueError("An exited status needs an exit code and no signal")
            if self.dumped_core:
                raise ValueError("An exited status cannot have dumped core")
        elif self.kind == SIGNALED:
            if self.signal_number is None or self.exit_code is not None:
                raise ValueError("A signaled status needs a signal and no exit code")
        else:
            raise ValueError(f"Unknown status kind: {self.kind}")

    @classmethod
    def from_wait_status(cls, raw: int) -> Status:
        """Translate a raw status as returned by os.waitpid.

        Args:
            raw: The encoded wait status.

        Returns:
            The decoded Status.

        Raises:
            ValueError: If the process neither exited nor was signaled
                (e.g. it is only stopped).
        """
        if os.WIFEXITED(raw):
            return cls(kind=EXITED, exit_code=os.WEXITSTATUS(raw))
        if os.WIFSIGNALED(raw):
            return cls(
                kind=SIGNALED,
                signal_number=os.WTERMSIG(raw),
                dumped_core=os.WCOREDUMP(raw),
            )
        raise ValueError(f"Wait status {raw:#x} is not a termination")

    def exited(self) -> bool:
        return self.kind == EXITED

    def signaled(self) -> bool:
        return self.kind == SIGNALED

    @property
    def exitstatus(self) -> int:
        """Exit code of a process that exited."""
        if not self.exited():
            raise ValueError(f"Process did not exit: {self}")
        assert self.exit_code is not None
        return self.exit_code

    @property
    def termsig(self) -> int:
        """Number of the signal that killed the process."""
        if not self.signaled():
            raise ValueError(f"Process was not signaled: {self}")
        assert self.signal_number is not None
        return self.signal_number

    @property
    def coredump(self) -> bool:
        """Whether the killed process left a core dump."""
        if not self.signaled():
            raise ValueError(f"Process was not signaled: {self}")
        return self.dumped_core

    def __str__(self) -> str:
        if self.exited():
            return f"exited with code {self.exit_code}"
        assert self.signal_number is not None
        text = (
            f"received signal {self.signal_number} "
            f"({_signal_name(self.signal_number)})"
        )
        if self.dumped_core:
            text += ", core dumped"
        return text
