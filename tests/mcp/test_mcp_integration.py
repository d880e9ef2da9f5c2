"""
Integration tests for the MCP server through the FastMCP in-memory client.

Exercises the complete path: MCP client -> FastMCP components -> Dispatcher
-> capability handlers, for tools, resources and prompts.
"""

import json

import pytest
from fastmcp.client import Client

from devflow_mcp.mcp.capabilities import PR_REVIEW_PROMPT, PROJECT_INFO_URI
from devflow_mcp.mcp.core import CapabilityRegistry, Err, ExecutionError, Tool, ToolResult
from devflow_mcp.mcp.server import MCPServer


class CalculatorCapabilities:
    name = "calculator"

    def register_all(self, registry: CapabilityRegistry) -> None:
        registry.register(Tool(
            name="divide",
            description="Divide a by b",
            input_schema={
                "type": "object",
                "properties": {
                    "a": {"type": "number"},
                    "b": {"type": "number"},
                },
                "required": ["a", "b"],
            },
            handler=self.divide,
        ))

    async def divide(self, args):
        if args["b"] == 0:
            return Err(ExecutionError("Division by zero", details={"a": args["a"]}))
        return ToolResult.text(str(args["a"] / args["b"]))


@pytest.fixture
def temp_project(tmp_path):
    """Create a temporary project directory."""
    project_root = tmp_path / "test-project"
    (project_root / "src").mkdir(parents=True)
    (project_root / "src" / "app.py").write_text("print('hi')\n")
    (project_root / "package.json").write_text(json.dumps({"name": "test-project", "version": "0.3.0"}))
    return project_root


@pytest.fixture
def mcp_server(temp_project):
    """Create an MCP server instance for testing."""
    return MCPServer(
        transport="stdio",
        project_root=temp_project,
        capability_sets=[CalculatorCapabilities()],
        error_logger=lambda error, context: None,
    )


def _payload(result) -> dict:
    return json.loads(result.content[0].text)


class TestMCPServerIntegration:
    """Integration tests for the complete MCP server."""

    @pytest.mark.asyncio
    async def test_list_tools(self, mcp_server):
        async with Client(mcp_server._app) as client:
            tools = await client.list_tools()

        names = [tool.name for tool in tools]
        assert names == ["health_check", "server_info", "project_structure", "analyze_complexity", "divide"]

        divide = next(tool for tool in tools if tool.name == "divide")
        assert divide.inputSchema["required"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_call_tool_success(self, mcp_server):
        async with Client(mcp_server._app) as client:
            result = await client.call_tool_mcp("divide", {"a": 9, "b": 3})

        assert result.isError is False
        assert result.content[0].text == "3.0"

    @pytest.mark.asyncio
    async def test_call_tool_structured_failure(self, mcp_server):
        """Err outcomes reach the client as isError results carrying the error JSON."""
        async with Client(mcp_server._app) as client:
            result = await client.call_tool_mcp("divide", {"a": 1, "b": 0})

        assert result.isError is True
        assert "EXECUTION_ERROR" in result.content[0].text
        assert "Division by zero" in result.content[0].text

    @pytest.mark.asyncio
    async def test_call_tool_validation_failure(self, mcp_server):
        async with Client(mcp_server._app) as client:
            result = await client.call_tool_mcp("divide", {"a": 1})

        assert result.isError is True
        assert "VALIDATION_ERROR" in result.content[0].text
        assert "Missing required parameters: b" in result.content[0].text

    @pytest.mark.asyncio
    async def test_health_check_tool(self, mcp_server):
        async with Client(mcp_server._app) as client:
            result = await client.call_tool_mcp("health_check", {})

        assert result.isError is False
        data = _payload(result)
        assert data["healthy"] is True
        assert data["tools"] == 4

    @pytest.mark.asyncio
    async def test_project_structure_tool(self, mcp_server):
        async with Client(mcp_server._app) as client:
            result = await client.call_tool_mcp("project_structure", {"path": "src"})

        data = _payload(result)
        assert data["path"] == "src"
        assert data["source_files"] == 1

    @pytest.mark.asyncio
    async def test_list_and_read_resource(self, mcp_server):
        async with Client(mcp_server._app) as client:
            resources = await client.list_resources()
            contents = await client.read_resource(PROJECT_INFO_URI)

        assert [str(resource.uri) for resource in resources] == [PROJECT_INFO_URI]
        data = json.loads(contents[0].text)
        assert data["name"] == "test-project"
        assert data["version"] == "0.3.0"
        assert data["source"] == "package.json"

    @pytest.mark.asyncio
    async def test_list_and_get_prompt(self, mcp_server):
        async with Client(mcp_server._app) as client:
            prompts = await client.list_prompts()
            result = await client.get_prompt(PR_REVIEW_PROMPT, {"prNumber": "12", "focus": "performance"})

        assert [prompt.name for prompt in prompts] == [PR_REVIEW_PROMPT]
        text = result.messages[0].content.text
        assert "Pull Request #12" in text
        assert "performance-related concerns" in text
