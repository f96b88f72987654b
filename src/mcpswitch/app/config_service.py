"""Application service tying the live config file to domain operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from mcpswitch.adapters.fs_snapshot_store import FileSnapshotStore
from mcpswitch.domain.config import (
    Configuration,
    IoFailure,
    MalformedStructure,
    MergeResult,
    ParseError,
    Repaired,
    RepairResult,
    SelectionResult,
    ServerState,
    StructureIssue,
    StructureIssueKind,
    enable_all,
    error_window,
    normalize,
    parse,
    repair_json,
    select_exactly,
    smart_merge,
    toggle,
    validate_structure,
)
from mcpswitch.ports.snapshot_store import SnapshotStore
from mcpswitch.settings import RuntimeSettings


@dataclass(frozen=True)
class Diagnostic:
    message: str
    offset: int | None = None
    lineno: int | None = None
    colno: int | None = None
    window: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "message": self.message,
            "offset": self.offset,
            "line": self.lineno,
            "column": self.colno,
            "window": self.window,
        }


@dataclass(frozen=True)
class CheckReport:
    valid_json: bool
    issues: List[StructureIssue] = field(default_factory=list)
    diagnostic: Diagnostic | None = None

    @property
    def ok(self) -> bool:
        return self.valid_json and not self.issues

    def to_dict(self) -> dict[str, object]:
        return {
            "valid_json": self.valid_json,
            "issues": [issue.to_dict() for issue in self.issues],
            "diagnostic": self.diagnostic.to_dict() if self.diagnostic else None,
        }


@dataclass(frozen=True)
class ToggleOutcome:
    config: Configuration
    name: str
    state: ServerState


def diagnose(text: str, error: ParseError) -> Diagnostic:
    window = error_window(text, error.offset) if error.offset is not None else ""
    return Diagnostic(
        message=error.message,
        offset=error.offset,
        lineno=error.lineno,
        colno=error.colno,
        window=window,
    )


class ConfigService:
    """Read, mutate and write back the live configuration file.

    Nothing is cached: each operation re-reads the file. Every write-back
    first refreshes the ``latest`` backup slot and aborts if that fails.
    Bucket mutations refuse to run over a mistyped bucket rather than drop it.
    """

    def __init__(self, config_path: Path, store: SnapshotStore) -> None:
        self._config_path = config_path
        self._store = store

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @classmethod
    def from_settings(cls, settings: RuntimeSettings) -> "ConfigService":
        store = FileSnapshotStore(settings.backup_dir, settings.preset_dir)
        return cls(settings.config_path, store)

    def read_raw(self) -> bytes:
        try:
            return self._config_path.read_bytes()
        except OSError as exc:
            raise IoFailure(f"cannot read {self._config_path}: {exc}") from exc

    def read_text(self) -> str:
        raw = self.read_raw()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"config is not valid UTF-8: {exc.reason}", offset=exc.start) from exc

    def load(self) -> Configuration:
        return parse(self.read_text())

    # -- mutations -------------------------------------------------------

    def toggle(self, name: str) -> ToggleOutcome:
        updated = toggle(self._load_for_update(), name)
        self._commit(updated)
        return ToggleOutcome(config=updated, name=name, state=updated.state_of(name))

    def enable_all(self) -> Configuration:
        updated = enable_all(self._load_for_update())
        self._commit(updated)
        return updated

    def select(self, names: Iterable[str]) -> SelectionResult:
        result = select_exactly(self._load_for_update(), names)
        self._commit(result.config)
        return result

    def fix_structure(self) -> Configuration:
        updated = normalize(self.load())
        self._commit(updated)
        return updated

    def repair(self) -> RepairResult:
        """Repair a malformed live file in place when the heuristics succeed."""

        text = self.read_text()
        try:
            config = parse(text)
        except ParseError:
            pass
        else:
            return Repaired(value=config.to_dict(), text=text)
        result = repair_json(text)
        if isinstance(result, Repaired):
            if not isinstance(result.value, dict):
                raise ParseError(f"top-level JSON value must be an object, got {type(result.value).__name__}")
            self._commit(Configuration.from_dict(result.value))
        return result

    # -- presets ---------------------------------------------------------

    def save_preset(self, name: str) -> Configuration:
        config = self.load()
        self._store.save_preset(name, config.dumps().encode("utf-8"))
        return config

    def load_preset(self, name: str, *, smart: bool = False) -> MergeResult:
        preset = self._parse_bytes(self._store.load_preset(name), f"preset '{name.strip()}'")
        if smart:
            result = smart_merge(self._load_for_update(), preset)
        else:
            result = MergeResult(config=preset)
        self._commit(result.config)
        return result

    def list_presets(self) -> List[str]:
        return self._store.list_presets()

    def delete_preset(self, name: str) -> None:
        self._store.delete_preset(name)

    # -- backups ---------------------------------------------------------

    def create_backup(self) -> str:
        return self._store.snapshot(self.read_raw())

    def list_backups(self) -> List[str]:
        return self._store.list()

    def restore_backup(self, backup_id: str) -> bytes:
        payload = self._store.restore(backup_id)
        if self._config_path.exists():
            self._store.pre_restore_snapshot(self.read_raw())
        self._write(payload)
        return payload

    def delete_backup(self, backup_id: str) -> None:
        self._store.delete(backup_id)

    def purge_backups(self) -> int:
        return self._store.delete_all()

    # -- checks ----------------------------------------------------------

    def check(self) -> CheckReport:
        text = self.read_text()
        try:
            config = parse(text)
        except ParseError as exc:
            return CheckReport(valid_json=False, diagnostic=diagnose(text, exc))
        return CheckReport(valid_json=True, issues=validate_structure(config))

    # -- internals -------------------------------------------------------

    def _load_for_update(self) -> Configuration:
        config = self.load()
        for issue in validate_structure(config):
            if issue.kind is not StructureIssueKind.MISSING_ENABLED_BUCKET:
                raise MalformedStructure(f"{issue.message}; run `mcpswitch check --fix` first")
        return config

    def _commit(self, config: Configuration) -> None:
        self._store.latest_snapshot(self.read_raw())
        self._write(config.dumps().encode("utf-8"))

    def _write(self, payload: bytes) -> None:
        try:
            self._config_path.write_bytes(payload)
        except OSError as exc:
            raise IoFailure(f"cannot write {self._config_path}: {exc}") from exc

    @staticmethod
    def _parse_bytes(raw: bytes, source: str) -> Configuration:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"{source} is not valid UTF-8: {exc.reason}", offset=exc.start, source=source) from exc
        try:
            return parse(text)
        except ParseError as exc:
            exc.source = source
            raise


__all__ = ["CheckReport", "ConfigService", "Diagnostic", "ToggleOutcome", "diagnose"]
