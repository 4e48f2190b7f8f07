"""Shared fixtures for the process engine tests."""

from __future__ import annotations

import os
import signal
import stat
import sys
from pathlib import Path

import pytest

from testengine.process.reaper import get_reaper

_HELPERS_SOURCE = '''\
import os
import sys


def main(argv):
    if len(argv) < 2:
        print("Must provide a helper name", file=sys.stderr)
        sys.exit(1)
    name = argv[1]
    if name == "print-args":
        for i, value in enumerate(argv[1:], 1):
            print(f"argv[{i}] = {value}")
        sys.exit(0)
    if name == "exit":
        sys.exit(int(argv[2]))
    if name == "abort":
        os.abort()
    print(f"Unknown helper {name}", file=sys.stderr)
    sys.exit(1)


main(sys.argv)
'''


@pytest.fixture
def helpers_program(tmp_path: Path) -> Path:
    """Executable helper program used as an exec target."""
    path = tmp_path / "helpers"
    path.write_text(f"#!{sys.executable}\n{_HELPERS_SOURCE}")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return path


@pytest.fixture(autouse=True)
def reap_leftover_children():
    """Reap whatever a test left running so no zombie leaks into the next."""
    yield
    reaper = get_reaper()
    for pid in reaper.pids():
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    reaper.wait_all()
