"""Command-line interface for mcpswitch."""
