"""
System capability set.

Provides health check and server information tools for MCP clients.
"""

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Mapping

from devflow_mcp.mcp.core import CapabilityRegistry, Tool, ToolResult

if TYPE_CHECKING:
    from devflow_mcp.mcp.server import MCPServer


# JSON Schema shared by both system tools (no arguments)
EMPTY_SCHEMA: Dict[str, Any] = {"type": "object", "properties": {}}


class SystemCapabilities:
    """Health and configuration introspection for a running server."""

    name = "system"

    def __init__(self, server: "MCPServer"):
        self.server = server

    def register_all(self, registry: CapabilityRegistry) -> None:
        registry.register(Tool(
            name="health_check",
            description="Report server health, uptime and registered capability counts",
            input_schema=EMPTY_SCHEMA,
            handler=self.health_check,
        ))
        registry.register(Tool(
            name="server_info",
            description="Return server name, version and transport configuration",
            input_schema=EMPTY_SCHEMA,
            handler=self.server_info,
        ))

    async def health_check(self, args: Mapping[str, Any]) -> ToolResult:
        """
        Return server health status and runtime metrics.

        Returns:
            ToolResult with a JSON text block: healthy flag, uptime, counts
        """
        status = self.server.health_check()
        status["timestamp"] = datetime.now(timezone.utc).isoformat()
        return ToolResult.text(json.dumps(status, indent=2))

    async def server_info(self, args: Mapping[str, Any]) -> ToolResult:
        """Return server information and transport configuration."""
        info: Dict[str, Any] = dict(self.server.get_info())
        info.update({
            "transport": self.server.transport,
            "host": self.server.host,
            "port": self.server.port,
            "capability_sets": [cs.name for cs in self.server.capability_sets],
            "tools": len(self.server.registry.list_tools()),
            "resources": len(self.server.registry.list_resources()),
            "prompts": len(self.server.registry.list_prompts()),
        })
        return ToolResult.text(json.dumps(info, indent=2))
