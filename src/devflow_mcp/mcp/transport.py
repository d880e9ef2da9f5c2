"""
FastMCP transport adapter.

Exposes the records of a frozen CapabilityRegistry as FastMCP components.
Each component forwards to the Dispatcher, so FastMCP only handles the wire
protocol (stdio, SSE or streamable HTTP) while the dispatcher keeps
ownership of validation and error normalization.
"""

import logging
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import PromptError, ResourceError, ToolError
from fastmcp.prompts import Prompt as FastMCPPrompt
from fastmcp.prompts.prompt import PromptArgument as FastMCPPromptArgument
from fastmcp.resources import Resource as FastMCPResource
from fastmcp.tools import Tool as FastMCPTool
from fastmcp.tools.tool import ToolResult as FastMCPToolResult
from mcp.types import (
    BlobResourceContents,
    EmbeddedResource,
    ImageContent,
    PromptMessage,
    TextContent,
    TextResourceContents,
)
from pydantic import Field

from .core import CapabilityRegistry, ContentBlock, Dispatcher, MCPError, Prompt, Resource, Tool

logger = logging.getLogger(__name__)


def to_mcp_content(block: ContentBlock):
    """Convert an envelope content block to the MCP SDK content type."""
    if block.type == "image":
        return ImageContent(type="image", data=block.data or "", mimeType=block.mime_type or "image/png")

    if block.type == "resource":
        resource = block.resource or {}
        if "blob" in resource:
            contents = BlobResourceContents(
                uri=resource["uri"],
                blob=resource["blob"],
                mimeType=resource.get("mimeType"),
            )
        else:
            contents = TextResourceContents(
                uri=resource["uri"],
                text=resource.get("text", ""),
                mimeType=resource.get("mimeType"),
            )
        return EmbeddedResource(type="resource", resource=contents)

    return TextContent(type="text", text=block.text or "")


class DispatchedTool(FastMCPTool):
    """FastMCP tool whose execution is delegated to the Dispatcher."""

    dispatcher: Any = Field(exclude=True, repr=False)

    @classmethod
    def from_record(cls, tool: Tool, dispatcher: Dispatcher) -> "DispatchedTool":
        return cls(
            name=tool.name,
            description=tool.description,
            parameters=tool.input_schema,
            dispatcher=dispatcher,
        )

    async def run(self, arguments: Dict[str, Any]) -> FastMCPToolResult:
        result = await self.dispatcher.invoke(self.name, arguments)

        if result.is_error:
            # FastMCP turns ToolError into a CallToolResult with isError=true
            raise ToolError("\n".join(block.text or "" for block in result.content))

        return FastMCPToolResult(content=[to_mcp_content(block) for block in result.content])


class DispatchedResource(FastMCPResource):
    """FastMCP resource whose content is produced by the owning reader."""

    dispatcher: Any = Field(exclude=True, repr=False)
    record_uri: str = Field(exclude=True)

    @classmethod
    def from_record(cls, resource: Resource, dispatcher: Dispatcher) -> "DispatchedResource":
        kwargs: Dict[str, Any] = {
            "uri": resource.uri,
            "name": resource.name,
            "description": resource.description,
            "dispatcher": dispatcher,
            "record_uri": resource.uri,
        }
        if resource.mime_type:
            kwargs["mime_type"] = resource.mime_type
        return cls(**kwargs)

    async def read(self) -> str | bytes:
        try:
            contents = await self.dispatcher.read_resource(self.record_uri)
        except MCPError as e:
            raise ResourceError(e.message) from e

        if contents.blob is not None:
            return contents.blob
        return contents.text or ""


class DispatchedPrompt(FastMCPPrompt):
    """FastMCP prompt rendered by the owning renderer."""

    dispatcher: Any = Field(exclude=True, repr=False)

    @classmethod
    def from_record(cls, prompt: Prompt, dispatcher: Dispatcher) -> "DispatchedPrompt":
        return cls(
            name=prompt.name,
            description=prompt.description,
            arguments=[
                FastMCPPromptArgument(
                    name=argument.name,
                    description=argument.description,
                    required=argument.required,
                )
                for argument in prompt.arguments
            ],
            dispatcher=dispatcher,
        )

    async def render(self, arguments: Optional[Dict[str, Any]] = None) -> List[PromptMessage]:
        try:
            rendered = await self.dispatcher.get_prompt(
                self.name,
                {key: str(value) for key, value in (arguments or {}).items()},
            )
        except MCPError as e:
            raise PromptError(e.message) from e

        return [
            PromptMessage(role=message.role, content=TextContent(type="text", text=message.content))
            for message in rendered.messages
        ]


def build_app(
    name: str,
    registry: CapabilityRegistry,
    dispatcher: Dispatcher,
    instructions: Optional[str] = None,
) -> FastMCP:
    """
    Create a FastMCP application serving every record in the registry.

    Args:
        name: Server name announced to clients
        registry: Registry whose records are exposed
        dispatcher: Dispatcher that executes them
        instructions: Optional server instructions for clients

    Returns:
        Configured FastMCP application
    """
    app = FastMCP(name, instructions=instructions)

    for tool in registry.list_tools():
        app.add_tool(DispatchedTool.from_record(tool, dispatcher))

    for resource in registry.list_resources():
        app.add_resource(DispatchedResource.from_record(resource, dispatcher))

    for prompt in registry.list_prompts():
        app.add_prompt(DispatchedPrompt.from_record(prompt, dispatcher))

    logger.debug(
        "Bound %d tools, %d resources, %d prompts to FastMCP app %s",
        len(registry.list_tools()),
        len(registry.list_resources()),
        len(registry.list_prompts()),
        name,
    )
    return app
