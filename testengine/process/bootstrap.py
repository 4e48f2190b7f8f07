"""Entry script for spawned children.

Started as ``<interpreter> bootstrap.py <json payload>`` by Child. It makes
the parent's import path available, redirects the standard streams when
asked to and runs the body. A failure in any of these setup steps aborts
the child, so a waiting parent can tell "could not launch the body" apart
from "the body ran and failed".
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Callable, NoReturn

EXIT_SUCCESS = 0


def _abort(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    sys.stderr.flush()
    os.abort()


def redirect_streams(stdout_path: str, stderr_path: str, mode: int) -> None:
    """Point fds 1 and 2 at freshly truncated files, or abort."""
    fds: dict[str, int] = {}
    for name, path in (("stdout", stdout_path), ("stderr", stderr_path)):
        try:
            fds[name] = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        except OSError as e:
            _abort(f"Failed to redirect {name} to {path}: {e.strerror}")

    sys.stdout.flush()
    sys.stderr.flush()
    for name, target in (("stdout", 1), ("stderr", 2)):
        try:
            os.dup2(fds[name], target)
        except OSError as e:
            _abort(f"Failed to redirect {name}: {e.strerror}")
        os.close(fds[name])


def _describe(body_payload: Any) -> str:
    if isinstance(body_payload, dict):
        return str(body_payload.get("target") or body_payload.get("program") or "child")
    return "child"


def load_body(body_payload: Any) -> Callable[[], None]:
    """Rebuild the body and resolve everything it needs, or abort.

    Only the preparation is guarded; the returned callable runs the body
    itself, whose failures are ordinary exits.
    """
    try:
        from testengine.process.body import EntryPoint, body_from_payload

        body = body_from_payload(body_payload)
        if isinstance(body, EntryPoint):
            fn = body.resolve()
            args = body.args
            return lambda: fn(*args)
    except Exception as e:
        _abort(f"Failed to launch {_describe(body_payload)}: {type(e).__name__}: {e}")
    return body.run


def run_child(payload: dict[str, Any]) -> NoReturn:
    if payload.get("stdout") is not None:
        redirect_streams(payload["stdout"], payload["stderr"], payload["file_mode"])
    run = load_body(payload.get("body"))
    run()
    sys.exit(EXIT_SUCCESS)


def main(argv: list[str]) -> None:
    if len(argv) != 2:
        _abort(f"Failed to launch child: expected one payload argument, got {len(argv) - 1}")
    try:
        payload = json.loads(argv[1])
        sys_path = list(payload["sys_path"])
    except (ValueError, TypeError, KeyError) as e:
        _abort(f"Failed to launch child: invalid payload: {e}")
    # This script's directory must not shadow anything; use the parent's path.
    here = os.path.dirname(os.path.abspath(__file__))
    sys.path[:] = sys_path + [p for p in sys.path if p != here]
    run_child(payload)


if __name__ == "__main__":
    main(sys.argv)
