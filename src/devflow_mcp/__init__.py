"""Developer-workflow MCP server: capability registry, dispatcher and CLI."""

__version__ = "0.1.0"
