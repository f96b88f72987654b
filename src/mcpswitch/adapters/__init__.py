"""Concrete adapters for mcpswitch ports."""
