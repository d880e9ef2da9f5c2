"""Tests for MCPServer composition and lifecycle."""

from unittest.mock import patch

import pytest

from devflow_mcp.mcp.core import CapabilityRegistry, Err, Tool, ToolResult, ValidationError
from devflow_mcp.mcp.server import MCPServer


class EchoCapabilities:
    """Minimal capability set used to exercise the composition root."""

    name = "echo"

    def register_all(self, registry: CapabilityRegistry) -> None:
        registry.register(Tool(
            name="echo",
            description="Echo the message back",
            input_schema={
                "type": "object",
                "properties": {"message": {"type": "string"}},
                "required": ["message"],
            },
            handler=lambda args: ToolResult.text(args["message"]),
        ))
        registry.register(Tool(
            name="reject",
            description="Always fails with a validation error",
            handler=lambda args: Err(ValidationError("rejected")),
        ))


def test_server_initialization_default():
    """MCPServer loads every built-in capability set by default."""
    server = MCPServer()
    assert server.host == "127.0.0.1"
    assert server.port == 8000
    assert server.transport == "stdio"
    assert server._app is not None
    assert [cs.name for cs in server.capability_sets] == ["system", "project", "quality", "review"]
    assert server.registry.frozen


def test_server_initialization_custom(tmp_path):
    """MCPServer accepts custom network settings and a project root."""
    server = MCPServer(
        host="0.0.0.0",
        port=9000,
        transport="http",
        project_root=tmp_path,
        capabilities=["system"],
    )
    assert server.host == "0.0.0.0"
    assert server.port == 9000
    assert server.transport == "http"
    assert server.project_root == tmp_path
    assert [tool["name"] for tool in server.list_tools()] == ["health_check", "server_info"]
    assert server.list_resources() == []
    assert server.list_prompts() == []


def test_server_invalid_transport():
    """Test that invalid transport raises ValueError."""
    with pytest.raises(ValueError, match="Invalid transport"):
        MCPServer(transport="invalid")


def test_server_unknown_capability_set():
    """Unknown capability set names are rejected at construction."""
    with pytest.raises(ValueError, match="Unknown capability set 'billing'"):
        MCPServer(capabilities=["billing"])


def test_server_port_check():
    """Test port availability check."""
    server = MCPServer(capabilities=[])
    assert server._check_port_available("127.0.0.1", 8000) in (True, False)
    # Port 0 is always invalid
    assert not server._check_port_available("127.0.0.1", 0)


def test_server_environment_variables(monkeypatch):
    """Test that server respects environment variables."""
    monkeypatch.setenv("MCP_SERVER_HOST", "192.168.1.1")
    monkeypatch.setenv("MCP_SERVER_PORT", "9999")

    server = MCPServer(capabilities=[])
    assert server.host == "192.168.1.1"
    assert server.port == 9999


def test_server_explicit_values_win_over_environment(monkeypatch):
    """Explicit host/port are not replaced by environment variables."""
    monkeypatch.setenv("MCP_SERVER_HOST", "192.168.1.1")
    monkeypatch.setenv("MCP_SERVER_PORT", "9999")

    server = MCPServer(host="10.0.0.1", port=7000, capabilities=[])
    assert server.host == "10.0.0.1"
    assert server.port == 7000


def test_server_invalid_port_env(monkeypatch):
    """Test that invalid MCP_SERVER_PORT raises ValueError."""
    monkeypatch.setenv("MCP_SERVER_PORT", "not-a-number")

    with pytest.raises(ValueError, match="Invalid MCP_SERVER_PORT"):
        MCPServer()


def test_extra_capability_sets_register_after_builtins():
    """Extra capability set instances are appended to the built-in ones."""
    server = MCPServer(capabilities=["system"], capability_sets=[EchoCapabilities()])

    assert [cs.name for cs in server.capability_sets] == ["system", "echo"]
    assert [tool["name"] for tool in server.list_tools()] == [
        "health_check", "server_info", "echo", "reject",
    ]


def test_registry_closed_after_construction():
    """No registration is possible once the server is built."""
    server = MCPServer(capabilities=[], capability_sets=[EchoCapabilities()])

    with pytest.raises(RuntimeError, match="registration phase is closed"):
        EchoCapabilities().register_all(server.registry)


def test_strict_registration_rejects_duplicates():
    """strict_registration turns a duplicate tool name into an error."""
    with pytest.raises(ValueError, match="already registered"):
        MCPServer(
            capabilities=[],
            capability_sets=[EchoCapabilities(), EchoCapabilities()],
            strict_registration=True,
        )


@pytest.mark.asyncio
async def test_invoke_routes_through_dispatcher():
    """invoke returns the handler's envelope on success."""
    server = MCPServer(capabilities=[], capability_sets=[EchoCapabilities()])

    result = await server.invoke("echo", {"message": "hi"})

    assert result.is_error is False
    assert result.content[0].text == "hi"


@pytest.mark.asyncio
async def test_invoke_uses_injected_error_logger():
    """The server passes its error logger to the dispatcher."""
    reported = []
    server = MCPServer(
        name="test-server",
        capabilities=[],
        capability_sets=[EchoCapabilities()],
        error_logger=lambda error, context: reported.append((error, context)),
    )

    result = await server.invoke("reject", {})

    assert result.is_error is True
    assert len(reported) == 1
    assert isinstance(reported[0][0], ValidationError)
    assert reported[0][1] == "test-server"


def test_get_info():
    server = MCPServer(name="devflow", version="1.2.3", description="Workflow tools", capabilities=[])

    assert server.get_info() == {
        "name": "devflow",
        "version": "1.2.3",
        "description": "Workflow tools",
    }


def test_health_check_reports_counts():
    """health_check reports registry sizes and uptime."""
    server = MCPServer()

    status = server.health_check()

    assert status["healthy"] is True
    assert "is running" in status["message"]
    assert status["uptime_seconds"] >= 0
    assert status["tools"] == 4
    assert status["resources"] == 1
    assert status["prompts"] == 1


@pytest.mark.asyncio
async def test_shutdown_is_idempotent():
    server = MCPServer(capabilities=[])

    await server.shutdown()
    await server.shutdown()

    assert server.health_check()["healthy"] is False


def test_start_stdio_runs_app():
    """stdio transport runs FastMCP without a port check."""
    server = MCPServer(capabilities=[])

    with patch.object(server._app, "run") as mock_run, \
            patch.object(server, "_check_port_available") as mock_check:
        server.start()

    mock_run.assert_called_once_with()
    mock_check.assert_not_called()


def test_start_network_transport_port_in_use():
    """Network transports fail fast when the port is taken."""
    server = MCPServer(transport="sse", port=8123, capabilities=[])

    with patch.object(server, "_check_port_available", return_value=False):
        with pytest.raises(RuntimeError, match="Port 8123 already in use"):
            server.start()


def test_start_http_passes_host_and_port():
    server = MCPServer(transport="http", host="127.0.0.1", port=8124, capabilities=[])

    with patch.object(server._app, "run") as mock_run, \
            patch.object(server, "_check_port_available", return_value=True):
        server.start()

    mock_run.assert_called_once_with(transport="http", host="127.0.0.1", port=8124)


def test_start_wraps_failures():
    """FastMCP failures surface as RuntimeError."""
    server = MCPServer(capabilities=[])

    with patch.object(server._app, "run", side_effect=OSError("boom")):
        with pytest.raises(RuntimeError, match="Failed to start MCP server with stdio transport: boom"):
            server.start()
