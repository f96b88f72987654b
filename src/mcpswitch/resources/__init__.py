"""Packaged resources for mcpswitch."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict

import yaml

__all__ = ["load_defaults", "load_telemetry_schema"]


@lru_cache(maxsize=1)
def load_defaults() -> Dict[str, Any]:
    """Return the default settings payload shipped with the package."""

    raw = (resources.files(__name__) / "defaults.yaml").read_text("utf-8")
    payload = yaml.safe_load(raw) or {}
    if not isinstance(payload, dict):
        raise ValueError("defaults.yaml must contain a mapping")
    return payload


@lru_cache(maxsize=1)
def load_telemetry_schema() -> Dict[str, Any]:
    raw = (resources.files(__name__) / "telemetry.schema.json").read_text("utf-8")
    return json.loads(raw)
