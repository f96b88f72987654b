"""Runtime settings for mcpswitch."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Tuple

import yaml

from mcpswitch import __version__
from mcpswitch.resources import load_defaults

HOME_ENV = "MCPSWITCH_HOME"
CONFIG_ENV = "MCPSWITCH_CONFIG"
BACKUP_DIR_ENV = "MCPSWITCH_BACKUP_DIR"
PRESET_DIR_ENV = "MCPSWITCH_PRESET_DIR"
SETTINGS_FILENAME = "settings.yaml"


@dataclass(frozen=True)
class RuntimeSettings:
    config_path: Path
    backup_dir: Path
    preset_dir: Path
    log_dir: Path
    recommended: Tuple[str, ...] = field(default_factory=tuple)
    cli_version: str = __version__

    def override(
        self,
        *,
        config_path: Path | None = None,
        backup_dir: Path | None = None,
        preset_dir: Path | None = None,
    ) -> "RuntimeSettings":
        """Return a copy with explicit paths applied.

        A new ``config_path`` moves the default backup and preset directories
        along with it unless they are given as well.
        """

        if config_path is None and backup_dir is None and preset_dir is None:
            return self
        defaults = load_defaults()
        new_config = config_path or self.config_path
        new_backup = backup_dir
        new_preset = preset_dir
        if config_path is not None:
            new_backup = new_backup or config_path.parent / str(defaults["backup_dir_name"])
            new_preset = new_preset or config_path.parent / str(defaults["preset_dir_name"])
        return replace(
            self,
            config_path=new_config,
            backup_dir=new_backup or self.backup_dir,
            preset_dir=new_preset or self.preset_dir,
        )


def _default_home_dir(env: Mapping[str, str]) -> Path:
    value = env.get(HOME_ENV)
    if value:
        return Path(value).expanduser()
    return Path.home() / ".mcpswitch"


def default_config_path(env: Mapping[str, str], filename: str) -> Path:
    """Location of the Claude Desktop config on the current platform."""

    if sys.platform.startswith("win"):
        appdata = env.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / "Claude" / filename
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Claude" / filename
    xdg = env.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "Claude" / filename


def _load_user_settings(home: Path) -> dict[str, Any]:
    path = home / SETTINGS_FILENAME
    if not path.exists():
        return {}
    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must contain a mapping")
    return payload


def _path_setting(env: Mapping[str, str], env_key: str, user: Mapping[str, Any], user_key: str) -> Path | None:
    value = env.get(env_key) or user.get(user_key)
    if not value:
        return None
    return Path(str(value)).expanduser()


def load_settings(env: Mapping[str, str] | None = None) -> RuntimeSettings:
    env = os.environ if env is None else env
    defaults = dict(load_defaults())
    home = _default_home_dir(env)
    user = _load_user_settings(home)

    config_path = _path_setting(env, CONFIG_ENV, user, "config_path") or default_config_path(
        env, str(defaults["config_filename"])
    )
    backup_dir = _path_setting(env, BACKUP_DIR_ENV, user, "backup_dir") or (
        config_path.parent / str(defaults["backup_dir_name"])
    )
    preset_dir = _path_setting(env, PRESET_DIR_ENV, user, "preset_dir") or (
        config_path.parent / str(defaults["preset_dir_name"])
    )
    recommended = user.get("recommended", defaults.get("recommended", []))
    return RuntimeSettings(
        config_path=config_path,
        backup_dir=backup_dir,
        preset_dir=preset_dir,
        log_dir=home / "logs",
        recommended=tuple(str(item) for item in recommended or []),
    )


__all__ = ["RuntimeSettings", "default_config_path", "load_settings"]
