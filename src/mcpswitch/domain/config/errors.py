"""Error taxonomy for configuration handling."""

from __future__ import annotations


class ConfigError(RuntimeError):
    """Base class for every failure surfaced by mcpswitch."""


class ParseError(ConfigError):
    """Raised when raw text is not a valid JSON configuration document.

    ``source`` names where the text came from (``None`` means the live config)
    and ``text`` holds the text the offset points into, when it is known.
    """

    def __init__(
        self,
        message: str,
        *,
        offset: int | None = None,
        lineno: int | None = None,
        colno: int | None = None,
        source: str | None = None,
        text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.lineno = lineno
        self.colno = colno
        self.source = source
        self.text = text


class MalformedStructure(ConfigError):
    """Raised when a bucket has the wrong type and a mutation would discard it."""


class UnknownServerName(ConfigError):
    """Raised when an operation references a name present in neither bucket."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown MCP server '{name}'")
        self.name = name


class NotFound(ConfigError):
    """Raised when a backup or preset identifier does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' not found")
        self.kind = kind
        self.identifier = identifier


class IoFailure(ConfigError):
    """Raised when reading, writing or deleting at the storage boundary fails."""


__all__ = ["ConfigError", "ParseError", "MalformedStructure", "UnknownServerName", "NotFound", "IoFailure"]
