"""Application services for mcpswitch."""
