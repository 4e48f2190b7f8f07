"""Unit tests for Status decoding."""

from __future__ import annotations

import signal

import pytest

from testengine.process.status import EXITED, SIGNALED, Status


def _exited_raw(code: int) -> int:
    return code << 8


def _signaled_raw(signo: int, core: bool = False) -> int:
    return signo | (0x80 if core else 0)


class TestFromWaitStatus:
    """Tests for translating raw wait statuses."""

    def test_exit_success(self):
        status = Status.from_wait_status(_exited_raw(0))
        assert status.exited()
        assert not status.signaled()
        assert status.exitstatus == 0

    def test_exit_failure_code(self):
        status = Status.from_wait_status(_exited_raw(15))
        assert status.exited()
        assert status.exitstatus == 15

    def test_signaled_without_core(self):
        status = Status.from_wait_status(_signaled_raw(signal.SIGKILL))
        assert status.signaled()
        assert not status.exited()
        assert status.termsig == signal.SIGKILL
        assert status.coredump is False

    def test_signaled_with_core(self):
        status = Status.from_wait_status(_signaled_raw(signal.SIGABRT, core=True))
        assert status.termsig == signal.SIGABRT
        assert status.coredump is True

    def test_stopped_is_rejected(self):
        stopped = (signal.SIGSTOP << 8) | 0x7F
        with pytest.raises(ValueError, match="not a termination"):
            Status.from_wait_status(stopped)


class TestAccessors:
    """Fields of the wrong kind are programming errors."""

    def test_exitstatus_of_signaled(self):
        status = Status(kind=SIGNALED, signal_number=signal.SIGTERM)
        with pytest.raises(ValueError, match="did not exit"):
            status.exitstatus

    def test_termsig_of_exited(self):
        status = Status(kind=EXITED, exit_code=1)
        with pytest.raises(ValueError, match="not signaled"):
            status.termsig

    def test_coredump_of_exited(self):
        status = Status(kind=EXITED, exit_code=1)
        with pytest.raises(ValueError):
            status.coredump


class TestConstruction:
    """Invariants enforced at construction."""

    def test_exited_requires_code(self):
        with pytest.raises(ValueError):
            Status(kind=EXITED)

    def test_exited_rejects_signal(self):
        with pytest.raises(ValueError):
            Status(kind=EXITED, exit_code=0, signal_number=9)

    def test_exited_rejects_core(self):
        with pytest.raises(ValueError):
            Status(kind=EXITED, exit_code=0, dumped_core=True)

    def test_signaled_requires_signal(self):
        with pytest.raises(ValueError):
            Status(kind=SIGNALED)

    def test_signaled_rejects_code(self):
        with pytest.raises(ValueError):
            Status(kind=SIGNALED, signal_number=9, exit_code=0)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown status kind"):
            Status(kind="stopped")

    def test_immutable(self):
        status = Status(kind=EXITED, exit_code=3)
        with pytest.raises(AttributeError):
            status.exit_code = 4  # type: ignore[misc]

    def test_equality(self):
        assert Status.from_wait_status(_exited_raw(7)) == Status(kind=EXITED, exit_code=7)


class TestStr:
    def test_exited(self):
        assert str(Status(kind=EXITED, exit_code=15)) == "exited with code 15"

    def test_signaled(self):
        status = Status(kind=SIGNALED, signal_number=signal.SIGABRT, dumped_core=True)
        text = str(status)
        assert f"received signal {int(signal.SIGABRT)} (SIGABRT)" in text
        assert text.endswith("core dumped")

    def test_unknown_signal_number(self):
        assert "(unknown)" in str(Status(kind=SIGNALED, signal_number=250))
