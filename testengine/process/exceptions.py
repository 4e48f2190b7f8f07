"""Errors raised to the parent by the process lifecycle engine.

Anything that goes wrong inside a child after it has been launched is never
raised here; it is only observable through the child's Status and its
captured output.
"""

from __future__ import annotations

import os


class ProcessError(Exception):
    """Base class for all process engine errors."""


class SystemCallError(ProcessError):
    """An operating system call failed in the parent process.

    Attributes:
        message: Description of the operation that failed.
        original_errno: The errno reported by the operating system.
    """

    def __init__(self, message: str, original_errno: int) -> None:
        super().__init__(f"{message}: {os.strerror(original_errno)}")
        self.message = message
        self.original_errno = original_errno


class NoChildrenError(SystemCallError):
    """wait_any was called with no tracked children left to wait for."""


class InvalidHandleError(ProcessError):
    """A child handle was used after its status had been retrieved."""
