"""mcpswitch: enable, disable and snapshot MCP server entries in a desktop config."""

__version__ = "0.3.0"

__all__ = ["__version__"]
