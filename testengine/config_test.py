"""Unit tests for the config module."""

from __future__ import annotations

import json
import sys
import tempfile
from pathlib import Path

from testengine.config import DEFAULT_CONFIG, EngineConfig


class TestEngineConfigCreate:
    """Tests for creating EngineConfig instances."""

    def test_no_path_uses_defaults(self):
        """No path gives default config values."""
        cfg = EngineConfig(None)
        assert cfg.interpreter == sys.executable
        assert cfg.output_file_mode == 0o644

    def test_nonexistent_path_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg = EngineConfig(Path(tmpdir) / "missing.json")
            assert cfg.output_file_mode == 0o644

    def test_load_from_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "engine.json"
            path.write_text(json.dumps({
                "interpreter": "/opt/python/bin/python3",
                "output_file_mode": 0o600,
            }))
            cfg = EngineConfig(path)
            assert cfg.interpreter == "/opt/python/bin/python3"
            assert cfg.output_file_mode == 0o600

    def test_octal_string_mode(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "engine.json"
            path.write_text(json.dumps({"output_file_mode": "0640"}))
            assert EngineConfig(path).output_file_mode == 0o640

    def test_corrupted_file_uses_defaults(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "engine.json"
            path.write_text("{ invalid json }")
            cfg = EngineConfig(path)
            assert cfg.output_file_mode == 0o644
            assert "config: ignoring" in capsys.readouterr().err

    def test_non_dict_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "engine.json"
            path.write_text("[1, 2]")
            cfg = EngineConfig(path)
            assert cfg.output_file_mode == DEFAULT_CONFIG["output_file_mode"]
            assert cfg.interpreter == sys.executable

