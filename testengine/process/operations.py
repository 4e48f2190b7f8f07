"""Process-level operations: image replacement and reaping any child."""

from __future__ import annotations

import os
import signal
import sys
from pathlib import Path
from typing import NoReturn, Sequence

from testengine.process.reaper import get_reaper
from testengine.process.status import Status

# Signals the interpreter ignores at startup; an exec'd program expects
# the default disposition.
_RESTORED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGPIPE", "SIGXFSZ") if hasattr(signal, name)
)


def exec_program(program: str | Path, args: Sequence[str]) -> NoReturn:
    """Replace the current process image with ``program``.

    Only ever called inside a spawned child. On success this does not
    return. On failure a diagnostic goes to stderr and the process aborts,
    so a waiting parent sees a SIGABRT termination rather than an exit code
    the program could have produced itself.

    Args:
        program: Path to the binary to execute.
        args: Arguments to the binary, not including argv[0].
    """
    argv = [os.fspath(program), *args]
    sys.stdout.flush()
    sys.stderr.flush()
    for signo in _RESTORED_SIGNALS:
        signal.signal(signo, signal.SIG_DFL)
    try:
        os.execv(argv[0], argv)
    except (OSError, ValueError) as e:
        reason = getattr(e, "strerror", None) or str(e)
        print(f"Failed to execute {argv[0]}: {reason}", file=sys.stderr)
        sys.stderr.flush()
    os.abort()


def wait_any() -> tuple[int, Status]:
    """Wait for any tracked child to terminate.

    Returns:
        The pid of the reaped child and its Status.

    Raises:
        NoChildrenError: If there is nothing to wait for.
        SystemCallError: If waiting failed for another reason.
    """
    return get_reaper().wait_any()
