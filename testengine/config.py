"""Engine configuration file management.

Reads a JSON file holding the settings the process engine uses
when it launches children.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "interpreter": None,
    "output_file_mode": 0o644,
}


class EngineConfig:
    """Manages the engine's JSON configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError) as e:
            print(f"config: ignoring {self.path}: {e}", file=sys.stderr)
            self._data = dict(DEFAULT_CONFIG)

    @property
    def interpreter(self) -> str:
        """Get the Python interpreter that runs the child bootstrap."""
        val = self._data.get("interpreter")
        return str(val) if val else sys.executable

    @property
    def output_file_mode(self) -> int:
        """Get the permission bits for output redirection targets."""
        val = self._data.get("output_file_mode", DEFAULT_CONFIG["output_file_mode"])
        if isinstance(val, str):
            return int(val, 8)
        return int(val)

    def set_config(
        self,
        interpreter: str | None = None,
        output_file_mode: int | None = None,
    ) -> None:
        """Update configuration values."""
        if interpreter is not None:
            self._data["interpreter"] = interpreter
        if output_file_mode is not None:
            self._data["output_file_mode"] = output_file_mode
