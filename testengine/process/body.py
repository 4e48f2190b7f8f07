"""Bodies that a spawned child can execute.

A child is a freshly started interpreter rather than a copy of the parent,
so its body cannot be an arbitrary closure. Two kinds exist instead:

- ``Exec``: replace the child image with an external program.
- ``EntryPoint``: import a module-level function by name and call it with
  JSON-serializable arguments.

Both serialize to a plain dict that the bootstrap script turns back into a
body inside the child.
"""

from __future__ import annotations

import importlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Union

from testengine.process.operations import exec_program


@dataclass(frozen=True)
class Exec:
    """Run an external program in place of the child.

    ``args`` does not include argv[0]; the program path is passed as
    argv[0] implicitly.
    """

    program: Path
    args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "program", Path(self.program))
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "exec",
            "program": os.fspath(self.program),
            "args": list(self.args),
        }

    def run(self) -> None:
        exec_program(self.program, self.args)


@dataclass(frozen=True)
class EntryPoint:
    """Call ``module:function`` inside the child."""

    target: str
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        module, sep, name = self.target.partition(":")
        if not module or not sep or not name:
            raise ValueError(
                f"Entry point must look like 'module:function', got {self.target!r}"
            )
        object.__setattr__(self, "args", tuple(self.args))
        try:
            json.dumps(list(self.args))
        except TypeError as e:
            raise ValueError(
                f"Arguments for {self.target} are not JSON-serializable: {e}"
            ) from e

    @classmethod
    def from_callable(cls, fn: Callable[..., Any], *args: Any) -> EntryPoint:
        """Build an entry point from a module-level function.

        Args:
            fn: The function to run in the child. A fresh interpreter must
                be able to import it, so it cannot live in ``__main__`` or
                be nested inside another function or class.
            *args: JSON-serializable positional arguments.

        Returns:
            An EntryPoint targeting ``fn``.

        Raises:
            ValueError: If ``fn`` cannot be imported by a child.
        """
        module = getattr(fn, "__module__", None)
        qualname = getattr(fn, "__qualname__", None)
        if not module or module == "__main__" or not qualname:
            raise ValueError(f"{fn!r} is not importable by a child process")
        if "." in qualname or "<" in qualname:
            raise ValueError(
                f"{module}.{qualname} is not a module-level function"
            )
        return cls(target=f"{module}:{qualname}", args=args)

    def resolve(self) -> Callable[..., Any]:
        """Import and return the target function."""
        module_name, _, name = self.target.partition(":")
        module = importlib.import_module(module_name)
        return getattr(module, name)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "entry_point",
            "target": self.target,
            "args": list(self.args),
        }

    def run(self) -> None:
        self.resolve()(*self.args)


Body = Union[Exec, EntryPoint]


def as_body(obj: Any) -> Body:
    """Coerce ``obj`` into a body.

    Raises:
        TypeError: If ``obj`` is neither a body nor a callable.
    """
    if isinstance(obj, (Exec, EntryPoint)):
        return obj
    if callable(obj):
        return EntryPoint.from_callable(obj)
    raise TypeError(f"Cannot run {obj!r} as a child body")


def body_from_payload(payload: dict[str, Any]) -> Body:
    """Rebuild a body serialized with ``to_payload``."""
    kind = payload.get("type")
    if kind == "exec":
        return Exec(program=Path(payload["program"]), args=tuple(payload["args"]))
    if kind == "entry_point":
        return EntryPoint(target=payload["target"], args=tuple(payload["args"]))
    raise ValueError(f"Unknown body type: {kind}")
