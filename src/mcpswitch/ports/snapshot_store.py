"""Port definition for backup and preset snapshots."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

LATEST_ID = "latest"
PRE_RESTORE_ID = "pre-restore"


class SnapshotStore(ABC):
    """Abstraction over storage for raw configuration snapshots.

    Timestamped backup identifiers sort lexicographically in chronological
    order. The ``latest`` and ``pre-restore`` slots are fixed identities that
    are never listed and never removed by ``delete_all``.
    """

    @abstractmethod
    def snapshot(self, raw: bytes) -> str:
        """Persist an immutable timestamped copy and return its identifier."""

    @abstractmethod
    def latest_snapshot(self, raw: bytes) -> None:
        """Overwrite the ``latest`` slot."""

    @abstractmethod
    def pre_restore_snapshot(self, raw: bytes) -> None:
        """Overwrite the ``pre-restore`` slot."""

    @abstractmethod
    def list(self) -> List[str]:
        """Return timestamped identifiers, newest first."""

    @abstractmethod
    def restore(self, backup_id: str) -> bytes:
        """Return the bytes of a snapshot or raise ``NotFound``."""

    @abstractmethod
    def delete(self, backup_id: str) -> None:
        """Remove one timestamped snapshot or raise ``NotFound``."""

    @abstractmethod
    def delete_all(self) -> int:
        """Remove every timestamped snapshot and return how many were removed."""

    @abstractmethod
    def save_preset(self, name: str, raw: bytes) -> None:
        """Persist a named preset, replacing any preset with the same name."""

    @abstractmethod
    def load_preset(self, name: str) -> bytes:
        """Return the bytes of a preset or raise ``NotFound``."""

    @abstractmethod
    def list_presets(self) -> List[str]:
        """Return preset names in alphabetical order."""

    @abstractmethod
    def delete_preset(self, name: str) -> None:
        """Remove a preset or raise ``NotFound``."""


__all__ = ["LATEST_ID", "PRE_RESTORE_ID", "SnapshotStore"]
