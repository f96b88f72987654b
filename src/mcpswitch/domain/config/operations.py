"""Pure transformations over a ``Configuration``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from .errors import UnknownServerName
from .model import Configuration


@dataclass(frozen=True)
class SelectionResult:
    config: Configuration
    ignored: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MergeResult:
    config: Configuration
    discovered: Tuple[str, ...] = ()


def toggle(config: Configuration, name: str) -> Configuration:
    enabled = config.enabled
    disabled = config.disabled
    if name in disabled:
        enabled.pop(name, None)
        enabled[name] = disabled.pop(name)
    elif name in enabled:
        disabled[name] = enabled.pop(name)
    else:
        raise UnknownServerName(name)
    return config.with_buckets(enabled, disabled)


def enable_all(config: Configuration) -> Configuration:
    enabled = config.enabled
    enabled.update(config.disabled)
    return config.with_buckets(enabled, {})


def select_exactly(config: Configuration, selected: Iterable[str]) -> SelectionResult:
    """Enable exactly the known names in ``selected`` and disable the rest.

    Unknown names are skipped and reported back in ``ignored``.
    """

    remaining = config.union()
    enabled: Dict[str, Any] = {}
    ignored: List[str] = []
    for name in selected:
        if name in enabled:
            continue
        if name in remaining:
            enabled[name] = remaining.pop(name)
        elif name not in ignored:
            ignored.append(name)
    return SelectionResult(config.with_buckets(enabled, remaining), tuple(ignored))


def smart_merge(current: Configuration, preset: Configuration) -> MergeResult:
    """Reposition the entries of ``current`` to match the placement in ``preset``.

    Definitions always come from ``current``. Entries unknown to the preset are
    disabled and listed in ``discovered``; entries only the preset knows are not
    introduced.
    """

    preset_enabled = preset.enabled
    preset_known = preset.union()
    enabled: Dict[str, Any] = {}
    disabled: Dict[str, Any] = {}
    discovered: List[str] = []
    for name, definition in current.union().items():
        if name not in preset_known:
            disabled[name] = definition
            discovered.append(name)
        elif name in preset_enabled:
            enabled[name] = definition
        else:
            disabled[name] = definition
    return MergeResult(current.with_buckets(enabled, disabled), tuple(discovered))


def sorted_names(config: Configuration) -> List[str]:
    return sorted(config.union())


def recommended_names(config: Configuration, candidates: Sequence[str]) -> List[str]:
    known = config.union()
    return [name for name in candidates if name in known]


__all__ = [
    "MergeResult",
    "SelectionResult",
    "enable_all",
    "recommended_names",
    "select_exactly",
    "smart_merge",
    "sorted_names",
    "toggle",
]
