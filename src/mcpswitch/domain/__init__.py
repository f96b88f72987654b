"""Pure domain logic for mcpswitch."""
