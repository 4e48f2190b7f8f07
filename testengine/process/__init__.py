"""Process lifecycle: spawning children, their status and reaping them."""

from testengine.process.body import EntryPoint, Exec
from testengine.process.child import Child, spawn
from testengine.process.exceptions import (
    InvalidHandleError,
    NoChildrenError,
    ProcessError,
    SystemCallError,
)
from testengine.process.operations import exec_program, wait_any
from testengine.process.reaper import Reaper, get_reaper
from testengine.process.status import Status

__all__ = [
    "Child",
    "EntryPoint",
    "Exec",
    "InvalidHandleError",
    "NoChildrenError",
    "ProcessError",
    "Reaper",
    "Status",
    "SystemCallError",
    "exec_program",
    "get_reaper",
    "spawn",
    "wait_any",
]
