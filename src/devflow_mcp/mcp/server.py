"""
MCP server composition root.

Composes one CapabilityRegistry, one Dispatcher and the FastMCP transport
application. Capability sets register their tools, resources and prompts
during construction; the registry is frozen before the transport starts
accepting requests.
"""

import logging
import os
import socket
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

from fastmcp import FastMCP

from devflow_mcp import __version__
from devflow_mcp.mcp.capabilities import BUILTIN_CAPABILITY_SETS, CapabilitySet
from devflow_mcp.mcp.core import (
    CapabilityRegistry,
    Dispatcher,
    ErrorLogger,
    RenderedPrompt,
    ResourceContents,
    ToolResult,
    log_error,
)
from devflow_mcp.mcp.transport import build_app

logger = logging.getLogger(__name__)

TRANSPORTS = ("stdio", "sse", "http")


@dataclass
class MCPServer:
    """
    Developer-workflow MCP server.

    Attributes:
        name: Server name announced to clients
        version: Server version
        description: Optional description (sent to clients as instructions)
        host: Server bind address (default: "127.0.0.1", network transports only)
        port: Server port (default: 8000, network transports only)
        transport: Transport mode ("stdio", "sse" or "http")
        capabilities: Names of built-in capability sets to load (None = all)
        capability_sets: Additional capability set instances to load
        project_root: Directory the project capability set inspects
        strict_registration: Fail on duplicate registrations instead of warning
        error_logger: Callable receiving (error, context) for every failure
    """

    name: str = "devflow-mcp"
    version: str = __version__
    description: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 8000
    transport: Literal["stdio", "sse", "http"] = "stdio"
    capabilities: Optional[List[str]] = None
    capability_sets: List[CapabilitySet] = field(default_factory=list)
    project_root: Path = field(default_factory=Path.cwd)
    strict_registration: bool = False
    error_logger: ErrorLogger = field(default=log_error, repr=False)
    registry: CapabilityRegistry = field(init=False, repr=False)
    dispatcher: Dispatcher = field(init=False, repr=False)
    _app: Optional[FastMCP] = field(default=None, init=False, repr=False)
    _started_at: float = field(default_factory=time.time, init=False, repr=False)
    _shut_down: bool = field(default=False, init=False, repr=False)

    def __post_init__(self):
        """Validate configuration, run the registration phase, bind FastMCP."""
        if self.transport not in TRANSPORTS:
            raise ValueError(
                f"Invalid transport '{self.transport}'. "
                f"Must be one of: {', '.join(TRANSPORTS)}."
            )

        # Load host/port from environment if not explicitly set
        if self.host == "127.0.0.1" and "MCP_SERVER_HOST" in os.environ:
            self.host = os.environ["MCP_SERVER_HOST"]

        if self.port == 8000 and "MCP_SERVER_PORT" in os.environ:
            try:
                self.port = int(os.environ["MCP_SERVER_PORT"])
            except ValueError:
                raise ValueError(
                    f"Invalid MCP_SERVER_PORT: {os.environ['MCP_SERVER_PORT']}. "
                    "Must be an integer."
                )

        self.registry = CapabilityRegistry(strict=self.strict_registration)
        self.dispatcher = Dispatcher(self.registry, error_logger=self.error_logger, context=self.name)

        self.capability_sets = self._load_capability_sets() + list(self.capability_sets)
        self._register_capabilities()

        self._app = build_app(self.name, self.registry, self.dispatcher, instructions=self.description)

    def _load_capability_sets(self) -> List[CapabilitySet]:
        names = self.capabilities if self.capabilities is not None else list(BUILTIN_CAPABILITY_SETS)
        loaded = []

        for set_name in names:
            factory = BUILTIN_CAPABILITY_SETS.get(set_name)
            if factory is None:
                raise ValueError(
                    f"Unknown capability set '{set_name}'. "
                    f"Available: {', '.join(BUILTIN_CAPABILITY_SETS)}"
                )
            loaded.append(factory(self))

        return loaded

    def _register_capabilities(self):
        """Registration phase: every capability set registers its records once."""
        for capability_set in self.capability_sets:
            capability_set.register_all(self.registry)
            logger.debug("Registered capability set: %s", capability_set.name)

        self.registry.freeze()
        logger.info(
            "%s ready with %d tools, %d resources, %d prompts",
            self.name,
            len(self.registry.list_tools()),
            len(self.registry.list_resources()),
            len(self.registry.list_prompts()),
        )

    # ========================================================================
    # Transport-facing operations
    # ========================================================================

    def list_tools(self) -> List[Dict[str, Any]]:
        """Tool descriptors ({name, description, inputSchema}) in registration order."""
        return [tool.to_descriptor() for tool in self.registry.list_tools()]

    async def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResult:
        """Invoke a tool. Never raises; failures come back with is_error=True."""
        return await self.dispatcher.invoke(name, arguments)

    def list_resources(self) -> List[Dict[str, Any]]:
        return [resource.to_descriptor() for resource in self.registry.list_resources()]

    async def read_resource(self, uri: str) -> ResourceContents:
        return await self.dispatcher.read_resource(uri)

    def list_prompts(self) -> List[Dict[str, Any]]:
        return [prompt.to_descriptor() for prompt in self.registry.list_prompts()]

    async def get_prompt(self, name: str, arguments: Optional[Mapping[str, str]] = None) -> RenderedPrompt:
        return await self.dispatcher.get_prompt(name, arguments)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def get_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
        }

    def health_check(self) -> Dict[str, Any]:
        """
        Basic health status.

        Returns:
            Dictionary with keys: healthy, message, uptime_seconds, tools,
            resources, prompts
        """
        return {
            "healthy": not self._shut_down,
            "message": (
                f"{self.name} v{self.version} is running"
                if not self._shut_down
                else f"{self.name} v{self.version} is shut down"
            ),
            "uptime_seconds": int(time.time() - self._started_at),
            "tools": len(self.registry.list_tools()),
            "resources": len(self.registry.list_resources()),
            "prompts": len(self.registry.list_prompts()),
        }

    async def shutdown(self) -> None:
        """Shutdown hook. Safe to call more than once."""
        if self._shut_down:
            return
        logger.info("Shutting down %s...", self.name)
        self._shut_down = True

    def _check_port_available(self, host: str, port: int) -> bool:
        """
        Check if port is available for binding.

        Args:
            host: Host address to check
            port: Port number to check

        Returns:
            True if port is available, False otherwise
        """
        if port <= 0:
            return False
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind((host, port))
                return True
        except OSError:
            return False

    def start(self):
        """
        Start the MCP server with the configured transport.

        Raises:
            RuntimeError: If the port is unavailable (SSE/HTTP) or FastMCP fails to start
        """
        if not self._app:
            raise RuntimeError("FastMCP app not initialized. This should not happen.")

        if self.transport == "stdio":
            # stdout carries protocol messages; host/port are ignored
            try:
                self._app.run()
            except Exception as e:
                raise RuntimeError(f"Failed to start MCP server with stdio transport: {e}") from e
            return

        if not self._check_port_available(self.host, self.port):
            raise RuntimeError(
                f"Port {self.port} already in use. "
                f"Choose a different port or stop the conflicting service."
            )

        try:
            self._app.run(transport=self.transport, host=self.host, port=self.port)
        except Exception as e:
            raise RuntimeError(
                f"Failed to start MCP server on {self.host}:{self.port}: {e}"
            ) from e
