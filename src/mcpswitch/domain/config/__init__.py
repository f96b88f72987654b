"""Domain primitives for the enabled/disabled MCP server configuration."""

from .errors import ConfigError, IoFailure, MalformedStructure, NotFound, ParseError, UnknownServerName
from .model import (
    DISABLED_KEY,
    ENABLED_KEY,
    Configuration,
    ServerState,
    StructureIssue,
    StructureIssueKind,
    normalize,
    parse,
    validate_structure,
)
from .operations import (
    MergeResult,
    SelectionResult,
    enable_all,
    recommended_names,
    select_exactly,
    smart_merge,
    sorted_names,
    toggle,
)
from .repair import Repaired, RepairResult, Unrepairable, error_window, repair_json

__all__ = [
    "ConfigError",
    "Configuration",
    "DISABLED_KEY",
    "ENABLED_KEY",
    "IoFailure",
    "MalformedStructure",
    "MergeResult",
    "NotFound",
    "ParseError",
    "RepairResult",
    "Repaired",
    "SelectionResult",
    "ServerState",
    "StructureIssue",
    "StructureIssueKind",
    "UnknownServerName",
    "Unrepairable",
    "enable_all",
    "error_window",
    "normalize",
    "parse",
    "recommended_names",
    "repair_json",
    "select_exactly",
    "smart_merge",
    "sorted_names",
    "toggle",
    "validate_structure",
]
