"""Ports (abstract boundaries) for mcpswitch."""
