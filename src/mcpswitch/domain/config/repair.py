"""Best-effort repair of near-valid JSON text.

The passes are textual heuristics, not a parser. The bare-key pass can quote a
``word:`` sequence that sits inside a string value right after a comma or brace;
that risk is accepted in exchange for fixing hand-edited files.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Union

DEFAULT_WINDOW_RADIUS = 25

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_MISSING_COMMA = re.compile(r"([\"\d])\s*\n\s*([\"{\[])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)(\s*:)")


@dataclass(frozen=True)
class Repaired:
    value: Any
    text: str


@dataclass(frozen=True)
class Unrepairable:
    error: str
    offset: int | None
    window: str
    lineno: int | None = None
    colno: int | None = None


RepairResult = Union[Repaired, Unrepairable]


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def insert_missing_commas(text: str) -> str:
    return _MISSING_COMMA.sub(r"\1,\n\2", text)


def quote_bare_keys(text: str) -> str:
    while True:
        text, count = _BARE_KEY.subn(r'\1"\2"\3', text)
        if not count:
            return text


def convert_single_quotes(text: str) -> str:
    # Only when the file uses single quotes exclusively.
    if "'" in text and '"' not in text:
        return text.replace("'", '"')
    return text


REPAIR_PASSES: List[Callable[[str], str]] = [
    remove_trailing_commas,
    insert_missing_commas,
    quote_bare_keys,
    convert_single_quotes,
]


def apply_repair_passes(text: str) -> str:
    for repair_pass in REPAIR_PASSES:
        text = repair_pass(text)
    return text


def error_window(text: str, offset: int, radius: int = DEFAULT_WINDOW_RADIUS) -> str:
    """Return the slice of ``text`` within ``radius`` characters of ``offset``."""

    if radius < 0:
        raise ValueError("radius must be non-negative")
    offset = max(0, min(offset, len(text)))
    start = max(0, offset - radius)
    return text[start : offset + radius]


def repair_json(text: str, *, radius: int = DEFAULT_WINDOW_RADIUS) -> RepairResult:
    """Run every repair pass and make a single parse attempt; never raises."""

    candidate = apply_repair_passes(text)
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return Unrepairable(
            error=str(exc),
            offset=exc.pos,
            window=error_window(candidate, exc.pos, radius),
            lineno=exc.lineno,
            colno=exc.colno,
        )
    except RecursionError:
        return Unrepairable(
            error="JSON nesting is too deep",
            offset=None,
            window=error_window(candidate, 0, radius),
        )
    return Repaired(value=value, text=candidate)


__all__ = [
    "DEFAULT_WINDOW_RADIUS",
    "REPAIR_PASSES",
    "RepairResult",
    "Repaired",
    "Unrepairable",
    "apply_repair_passes",
    "convert_single_quotes",
    "error_window",
    "insert_missing_commas",
    "quote_bare_keys",
    "remove_trailing_commas",
    "repair_json",
]
