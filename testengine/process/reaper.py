"""Process-wide table of live children and the wait-for-any primitive.

There is exactly one Reaper per process. Every child spawned by the engine
is inserted when it is launched and removed when it is reaped, either
directly through Child.wait or through Reaper.wait_any.

wait_any only ever waits on pids in the table, so children started by
other code in the same process (e.g. through subprocess) keep their exit
status. Each tracked child gets a pidfd that becomes readable when it
terminates; where pidfds are not available the tracked pids are polled.
"""

from __future__ import annotations

import errno
import os
import selectors
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from testengine.process.exceptions import NoChildrenError, SystemCallError
from testengine.process.status import Status

if TYPE_CHECKING:
    from testengine.process.child import Child

# Seconds between polls of children that have no pidfd.
POLL_INTERVAL = 0.05


def _open_pidfd(pid: int) -> int | None:
    if not hasattr(os, "pidfd_open"):
        return None
    try:
        return os.pidfd_open(pid)
    except OSError:
        return None


@dataclass
class _Tracked:
    child: Child
    pidfd: int | None

    def close(self) -> None:
        if self.pidfd is not None:
            os.close(self.pidfd)
            self.pidfd = None


class Reaper:
    """Tracks live children and reaps whichever terminates first."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._children: dict[int, _Tracked] = {}
        # Written to on every new child so a blocked wait_any picks it up.
        self._wake_r, self._wake_w = os.pipe()
        os.set_blocking(self._wake_r, False)
        os.set_blocking(self._wake_w, False)

    def track(self, launch: Callable[[], Child]) -> Child:
        """Launch a child and start tracking it.

        The launch and the insertion run under the table lock, so a
        concurrent wait_any never sees a live child that is not tracked.

        Args:
            launch: Callable that starts the process and returns its handle.

        Returns:
            The handle returned by ``launch``.
        """
        with self._lock:
            child = launch()
            if child.pid in self._children:
                raise RuntimeError(f"PID {child.pid} is already tracked")
            self._children[child.pid] = _Tracked(child, _open_pidfd(child.pid))
        try:
            os.write(self._wake_w, b"\0")
        except BlockingIOError:
            pass
        return child

    def forget(self, pid: int) -> None:
        """Stop tracking a child that was reaped directly."""
        with self._lock:
            tracked = self._children.pop(pid, None)
        if tracked is not None:
            tracked.close()

    def pids(self) -> list[int]:
        with self._lock:
            return sorted(self._children)

    def __contains__(self, pid: object) -> bool:
        with self._lock:
            return pid in self._children

    def __len__(self) -> int:
        with self._lock:
            return len(self._children)

    def _drain_wake(self) -> None:
        try:
            while os.read(self._wake_r, 512):
                pass
        except BlockingIOError:
            pass

    def _reap(self, pid: int, flags: int) -> Status | None:
        """waitpid one tracked pid; None if it is still running or gone."""
        with self._lock:
            tracked = self._children.get(pid)
            if tracked is None:
                # Reaped by a concurrent waiter.
                return None
            try:
                reaped_pid, raw = os.waitpid(pid, flags)
            except ChildProcessError as e:
                del self._children[pid]
                tracked.close()
                raise NoChildrenError(
                    f"Failed to wait for tracked child {pid}", e.errno
                ) from e
            except OSError as e:
                raise SystemCallError(
                    f"Failed to wait for tracked child {pid}", e.errno
                ) from e
            if reaped_pid == 0:
                return None
            del self._children[pid]
        tracked.close()
        status = Status.from_wait_status(raw)
        tracked.child._set_status(status)
        return status

    def wait_any(self) -> tuple[int, Status]:
        """Block until any tracked child terminates and reap it.

        Which child is returned first when several have finished is
        unspecified.

        Returns:
            The pid of the reaped child and its Status.

        Raises:
            NoChildrenError: If no children are tracked.
            SystemCallError: If waiting fails for any other reason.
        """
        while True:
            with self._lock:
                if not self._children:
                    raise NoChildrenError(
                        "Failed to wait for any child process", errno.ECHILD
                    )
                watched = {t.pidfd: pid for pid, t in self._children.items()
                           if t.pidfd is not None}
                polled = [pid for pid, t in self._children.items() if t.pidfd is None]

            ready: list[int] = []
            with selectors.DefaultSelector() as selector:
                selector.register(self._wake_r, selectors.EVENT_READ)
                for fd in watched:
                    selector.register(fd, selectors.EVENT_READ)
                timeout = POLL_INTERVAL if polled else None
                for key, _ in selector.select(timeout):
                    if key.fd == self._wake_r:
                        self._drain_wake()
                    else:
                        ready.append(watched[key.fd])

            for pid in ready:
                status = self._reap(pid, 0)
                if status is not None:
                    return pid, status
            for pid in polled:
                status = self._reap(pid, os.WNOHANG)
                if status is not None:
                    return pid, status

    def wait_all(self) -> list[tuple[int, Status]]:
        """Reap every tracked child.

        Returns:
            (pid, Status) pairs in the order the children were reaped.
        """
        reaped: list[tuple[int, Status]] = []
        while len(self):
            try:
                reaped.append(self.wait_any())
            except NoChildrenError:
                break
        return reaped


_REAPER = Reaper()


def get_reaper() -> Reaper:
    """Return the process-wide Reaper."""
    return _REAPER
