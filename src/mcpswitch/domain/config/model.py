"""Two-bucket model of an MCP server configuration document."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping

from .errors import ParseError

ENABLED_KEY = "mcpServers"
DISABLED_KEY = "disabledMcpServers"


class ServerState(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    UNKNOWN = "unknown"


class StructureIssueKind(str, Enum):
    MISSING_ENABLED_BUCKET = "missing-enabled-bucket"
    ENABLED_BUCKET_WRONG_TYPE = "enabled-bucket-wrong-type"
    DISABLED_BUCKET_WRONG_TYPE = "disabled-bucket-wrong-type"


@dataclass(frozen=True)
class StructureIssue:
    kind: StructureIssueKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class Configuration:
    """Immutable view over the top-level JSON object of a config file.

    Server definitions are opaque: they are moved between buckets but never
    inspected or rewritten. Top-level keys other than the two buckets are
    carried through untouched, in their existing order. A name listed in both
    buckets counts as disabled and its disabled definition wins.
    """

    document: Mapping[str, Any] = field(default_factory=dict)

    @property
    def enabled(self) -> Dict[str, Any]:
        return _bucket(self.document, ENABLED_KEY)

    @property
    def disabled(self) -> Dict[str, Any]:
        return _bucket(self.document, DISABLED_KEY)

    def union(self) -> Dict[str, Any]:
        """Return every known entry; a disabled definition shadows an enabled one."""

        merged = dict(self.enabled)
        merged.update(self.disabled)
        return merged

    def names(self) -> List[str]:
        return list(self.union())

    def state_of(self, name: str) -> ServerState:
        if name in self.disabled:
            return ServerState.DISABLED
        if name in self.enabled:
            return ServerState.ENABLED
        return ServerState.UNKNOWN

    def with_buckets(self, enabled: Mapping[str, Any], disabled: Mapping[str, Any]) -> "Configuration":
        document = dict(self.document)
        document[ENABLED_KEY] = dict(enabled)
        document[DISABLED_KEY] = dict(disabled)
        return Configuration(document)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.document)

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2) + "\n"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Configuration":
        return cls(dict(data))


def _bucket(document: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = document.get(key)
    if isinstance(value, dict):
        return dict(value)
    return {}


def parse(text: str) -> Configuration:
    """Parse strict JSON text into a configuration.

    Raises ``ParseError`` carrying the decoder offset when the text is not JSON
    or when the top-level value is not an object.
    """

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(exc.msg, offset=exc.pos, lineno=exc.lineno, colno=exc.colno, text=text) from exc
    except RecursionError as exc:
        raise ParseError("JSON nesting is too deep", text=text) from exc
    if not isinstance(data, dict):
        raise ParseError(f"top-level JSON value must be an object, got {type(data).__name__}", text=text)
    return Configuration(data)


def validate_structure(config: Configuration) -> List[StructureIssue]:
    issues: List[StructureIssue] = []
    document = config.document
    enabled = document.get(ENABLED_KEY)
    if enabled is None:
        issues.append(
            StructureIssue(StructureIssueKind.MISSING_ENABLED_BUCKET, f"Missing {ENABLED_KEY}"),
        )
    elif not isinstance(enabled, dict):
        issues.append(
            StructureIssue(
                StructureIssueKind.ENABLED_BUCKET_WRONG_TYPE,
                f"Invalid {ENABLED_KEY}: expected object, got {type(enabled).__name__}",
            ),
        )
    if DISABLED_KEY in document and not isinstance(document[DISABLED_KEY], dict):
        issues.append(
            StructureIssue(
                StructureIssueKind.DISABLED_BUCKET_WRONG_TYPE,
                f"Invalid {DISABLED_KEY}: expected object, got {type(document[DISABLED_KEY]).__name__}",
            ),
        )
    return issues


def normalize(config: Configuration) -> Configuration:
    """Ensure both buckets exist as objects; other keys are left alone."""

    document = dict(config.document)
    for key in (ENABLED_KEY, DISABLED_KEY):
        if not isinstance(document.get(key), dict):
            document[key] = {}
    return Configuration(document)


__all__ = [
    "DISABLED_KEY",
    "ENABLED_KEY",
    "Configuration",
    "ServerState",
    "StructureIssue",
    "StructureIssueKind",
    "normalize",
    "parse",
    "validate_structure",
]
