"""Filesystem-backed storage for backups and presets."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List

from mcpswitch.domain.config import IoFailure, NotFound
from mcpswitch.ports.snapshot_store import LATEST_ID, PRE_RESTORE_ID, SnapshotStore

BACKUP_PREFIX = "config-backup-"
BACKUP_SUFFIX = ".json"
LATEST_FILENAME = "config-latest-backup.json"
PRE_RESTORE_FILENAME = "pre-restore-backup.json"
PRESET_SUFFIX = ".json"

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_backup_id(moment: datetime) -> str:
    """Render ``moment`` as a filesystem-safe, lexicographically sortable id."""

    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"


class FileSnapshotStore(SnapshotStore):
    """Keep snapshots as plain JSON files in a backup and a preset directory."""

    def __init__(self, backup_dir: Path, preset_dir: Path, *, clock: Clock | None = None) -> None:
        self._backup_dir = backup_dir
        self._preset_dir = preset_dir
        self._clock = clock or _utc_now

    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    @property
    def preset_dir(self) -> Path:
        return self._preset_dir

    def snapshot(self, raw: bytes) -> str:
        base_id = format_backup_id(self._clock())
        backup_id = base_id
        counter = 0
        while self._timestamped_path(backup_id).exists():
            counter += 1
            backup_id = f"{base_id}-{counter:03d}"
        self._write(self._timestamped_path(backup_id), raw)
        return backup_id

    def latest_snapshot(self, raw: bytes) -> None:
        self._write(self._backup_dir / LATEST_FILENAME, raw)

    def pre_restore_snapshot(self, raw: bytes) -> None:
        self._write(self._backup_dir / PRE_RESTORE_FILENAME, raw)

    def list(self) -> List[str]:
        if not self._backup_dir.exists():
            return []
        try:
            names = [
                entry.name
                for entry in self._backup_dir.iterdir()
                if entry.is_file() and entry.name.startswith(BACKUP_PREFIX) and entry.name.endswith(BACKUP_SUFFIX)
            ]
        except OSError as exc:
            raise IoFailure(f"cannot list backups in {self._backup_dir}: {exc}") from exc
        ids = [name[len(BACKUP_PREFIX) : -len(BACKUP_SUFFIX)] for name in names]
        return sorted(ids, reverse=True)

    def restore(self, backup_id: str) -> bytes:
        path = self.path_for(backup_id)
        if not path.is_file():
            raise NotFound("backup", backup_id)
        return self._read(path)

    def delete(self, backup_id: str) -> None:
        if backup_id in (LATEST_ID, PRE_RESTORE_ID):
            raise ValueError(f"backup slot '{backup_id}' cannot be deleted")
        path = self.path_for(backup_id)
        if not path.is_file():
            raise NotFound("backup", backup_id)
        self._unlink(path)

    def delete_all(self) -> int:
        removed = 0
        for backup_id in self.list():
            self._unlink(self._timestamped_path(backup_id))
            removed += 1
        return removed

    def save_preset(self, name: str, raw: bytes) -> None:
        self._write(self._preset_path(name), raw)

    def load_preset(self, name: str) -> bytes:
        path = self._preset_path(name)
        if not path.is_file():
            raise NotFound("preset", name)
        return self._read(path)

    def list_presets(self) -> List[str]:
        if not self._preset_dir.exists():
            return []
        try:
            return sorted(
                entry.name[: -len(PRESET_SUFFIX)]
                for entry in self._preset_dir.iterdir()
                if entry.is_file() and entry.name.endswith(PRESET_SUFFIX)
            )
        except OSError as exc:
            raise IoFailure(f"cannot list presets in {self._preset_dir}: {exc}") from exc

    def delete_preset(self, name: str) -> None:
        path = self._preset_path(name)
        if not path.is_file():
            raise NotFound("preset", name)
        self._unlink(path)

    def path_for(self, backup_id: str) -> Path:
        if backup_id == LATEST_ID:
            return self._backup_dir / LATEST_FILENAME
        if backup_id == PRE_RESTORE_ID:
            return self._backup_dir / PRE_RESTORE_FILENAME
        return self._timestamped_path(backup_id)

    def _timestamped_path(self, backup_id: str) -> Path:
        _reject_separators(backup_id, "backup id")
        if backup_id.startswith(BACKUP_PREFIX) and backup_id.endswith(BACKUP_SUFFIX):
            return self._backup_dir / backup_id
        return self._backup_dir / f"{BACKUP_PREFIX}{backup_id}{BACKUP_SUFFIX}"

    def _preset_path(self, name: str) -> Path:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("preset name cannot be empty")
        _reject_separators(cleaned, "preset name")
        return self._preset_dir / f"{cleaned}{PRESET_SUFFIX}"

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise IoFailure(f"cannot read {path}: {exc}") from exc

    @staticmethod
    def _write(path: Path, raw: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(raw)
        except OSError as exc:
            raise IoFailure(f"cannot write {path}: {exc}") from exc

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink()
        except OSError as exc:
            raise IoFailure(f"cannot delete {path}: {exc}") from exc


def _reject_separators(value: str, label: str) -> None:
    if not value or "/" in value or "\\" in value or value in (".", ".."):
        raise ValueError(f"invalid {label}: {value!r}")


__all__ = ["FileSnapshotStore", "format_backup_id"]
