from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = ROOT / ".test_place" / "global-home"
os.environ.setdefault("MCPSWITCH_HOME", str(SANDBOX_HOME))
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from mcpswitch.settings import RuntimeSettings  # noqa: E402


@pytest.fixture()
def runtime_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeSettings:
    """Isolated settings: live config, backups, presets and logs under tmp_path."""

    home = tmp_path / "home"
    claude_dir = tmp_path / "Claude"
    for directory in (home, claude_dir):
        directory.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("MCPSWITCH_HOME", str(home))
    monkeypatch.setenv("MCPSWITCH_CONFIG", str(claude_dir / "claude_desktop_config.json"))
    monkeypatch.delenv("MCPSWITCH_BACKUP_DIR", raising=False)
    monkeypatch.delenv("MCPSWITCH_PRESET_DIR", raising=False)
    return RuntimeSettings(
        config_path=claude_dir / "claude_desktop_config.json",
        backup_dir=claude_dir / "config-backups",
        preset_dir=claude_dir / "presets",
        log_dir=home / "logs",
        recommended=("filesystem", "mcp-installer"),
    )


@pytest.fixture()
def live_config(runtime_settings: RuntimeSettings):
    """Write a payload to the live config path and return that path."""

    def _write(payload: dict[str, object]) -> Path:
        path = runtime_settings.config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    return _write
