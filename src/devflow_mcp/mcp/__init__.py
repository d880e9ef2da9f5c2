"""
MCP (Model Context Protocol) server implementation for devflow.

Exposes developer-workflow tools, resources and prompts to MCP clients
through one capability registry and one dispatcher.

Architecture:
- core/: registry, dispatcher, result envelope, errors and validation
- capabilities/: built-in capability sets (system, project, quality, review)
- transport.py: FastMCP components that delegate to the dispatcher
- server.py: composition root and server lifecycle
- config.py: Configuration and PID file management
"""

__all__ = ["MCPServer", "MCPConfig", "PIDFileManager"]

from .config import MCPConfig, PIDFileManager
from .server import MCPServer
