"""Handles for spawned child processes.

A child is launched by starting a fresh interpreter on the bootstrap
script, which optionally redirects stdout/stderr to files and then runs the
requested body. Nothing of the parent's live state is duplicated, so
spawning is safe from multi-threaded parents.
"""

from __future__ import annotations

import json
import os
import signal
import sys
from pathlib import Path
from typing import Any

from testengine.config import EngineConfig
from testengine.process.body import as_body
from testengine.process.exceptions import InvalidHandleError, SystemCallError
from testengine.process.reaper import Reaper, get_reaper
from testengine.process.status import Status

BOOTSTRAP_PATH = Path(__file__).with_name("bootstrap.py")


class Child:
    """A spawned child process.

    Exactly one wait is valid per child: either ``wait()`` on the handle or
    a ``wait_any()`` that returns its pid, never both.
    """

    def __init__(
        self,
        pid: int,
        reaper: Reaper,
        stdout_path: Path | None = None,
        stderr_path: Path | None = None,
    ) -> None:
        self._pid = pid
        self._reaper = reaper
        self.stdout_path = stdout_path
        self.stderr_path = stderr_path
        self._status: Status | None = None

    @classmethod
    def spawn(cls, body: Any, config: EngineConfig | None = None) -> Child:
        """Start a child whose output goes to the parent's streams.

        Args:
            body: An Exec, an EntryPoint or a module-level callable.
            config: Engine settings; defaults apply when omitted.

        Returns:
            A handle to the running child. Does not block.

        Raises:
            SystemCallError: If the process could not be started.
        """
        return cls._spawn(body, None, None, config)

    @classmethod
    def spawn_files(
        cls,
        body: Any,
        stdout_path: str | Path,
        stderr_path: str | Path,
        config: EngineConfig | None = None,
    ) -> Child:
        """Start a child with stdout and stderr redirected to files.

        Both files are created or truncated by the child before the body
        runs. If either cannot be opened the child aborts without running
        the body.

        Args:
            body: An Exec, an EntryPoint or a module-level callable.
            stdout_path: File that receives the child's stdout.
            stderr_path: File that receives the child's stderr.
            config: Engine settings; defaults apply when omitted.

        Returns:
            A handle to the running child. Does not block.

        Raises:
            SystemCallError: If the process could not be started.
        """
        return cls._spawn(body, Path(stdout_path), Path(stderr_path), config)

    @classmethod
    def _spawn(
        cls,
        body: Any,
        stdout_path: Path | None,
        stderr_path: Path | None,
        config: EngineConfig | None,
    ) -> Child:
        config = config or EngineConfig()
        payload = {
            "body": as_body(body).to_payload(),
            "stdout": os.fspath(stdout_path) if stdout_path is not None else None,
            "stderr": os.fspath(stderr_path) if stderr_path is not None else None,
            "file_mode": config.output_file_mode,
            "sys_path": list(sys.path),
        }
        interpreter = config.interpreter
        argv = [interpreter, os.fspath(BOOTSTRAP_PATH), json.dumps(payload)]
        reaper = get_reaper()

        def launch() -> Child:
            try:
                # Children start with no blocked signals whatever this thread blocks.
                pid = os.posix_spawn(interpreter, argv, os.environ, setsigmask=())
            except OSError as e:
                raise SystemCallError("Failed to spawn child process", e.errno) from e
            return cls(pid, reaper, stdout_path, stderr_path)

        return reaper.track(launch)

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def status(self) -> Status | None:
        """Terminal status, or None while the child has not been reaped."""
        return self._status

    @property
    def reaped(self) -> bool:
        return self._status is not None

    def _set_status(self, status: Status) -> None:
        self._status = status

    def _check_live(self) -> None:
        if self._status is not None:
            raise InvalidHandleError(
                f"Child {self._pid} has already been reaped ({self._status})"
            )

    def wait(self) -> Status:
        """Block until this child terminates.

        Returns:
            The child's Status.

        Raises:
            InvalidHandleError: If the child was already reaped.
            SystemCallError: If waiting failed.
        """
        self._check_live()
        try:
            _, raw = os.waitpid(self._pid, 0)
        except OSError as e:
            raise SystemCallError(f"Failed to wait for PID {self._pid}", e.errno) from e
        status = Status.from_wait_status(raw)
        self._reaper.forget(self._pid)
        self._status = status
        return status

    def kill(self, signo: int = signal.SIGKILL) -> None:
        """Send a signal to the child.

        The child still has to be waited for afterwards.

        Raises:
            InvalidHandleError: If the child was already reaped.
            SystemCallError: If the signal could not be delivered.
        """
        self._check_live()
        try:
            os.kill(self._pid, signo)
        except OSError as e:
            raise SystemCallError(
                f"Failed to send signal {signo} to PID {self._pid}", e.errno
            ) from e

    def __repr__(self) -> str:
        state = str(self._status) if self._status is not None else "running"
        return f"Child(pid={self._pid}, {state})"


def spawn(
    body: Any,
    stdout_path: str | Path | None = None,
    stderr_path: str | Path | None = None,
    config: EngineConfig | None = None,
) -> Child:
    """Spawn a child, capturing its output to files when paths are given.

    Raises:
        ValueError: If only one of the two output paths is given.
        SystemCallError: If the process could not be started.
    """
    if (stdout_path is None) != (stderr_path is None):
        raise ValueError("stdout_path and stderr_path must be given together")
    if stdout_path is None:
        return Child.spawn(body, config)
    assert stderr_path is not None
    return Child.spawn_files(body, stdout_path, stderr_path, config)
