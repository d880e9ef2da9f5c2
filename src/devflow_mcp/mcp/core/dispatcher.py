"""
Dispatcher: the single entry point for tool invocation.

Looks up a tool in the registry, validates the caller's arguments against
the tool's input schema, awaits the handler and funnels every outcome
(success, structured failure, crash) into one ToolResult envelope.
Failures are reported to an injected error logger and never raised across
the dispatch boundary.
"""

import inspect
from dataclasses import replace
import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import (
    ExecutionError,
    MCPError,
    ResourceNotFoundError,
    ValidationError,
    log_error,
    safe_execute,
)
from .registry import CapabilityRegistry
from .types import (
    Err,
    Ok,
    PromptMessage,
    RenderedPrompt,
    Resource,
    ResourceContents,
    ToolResult,
)
from .validation import schema_required, schema_types, validate_required, validate_types

logger = logging.getLogger(__name__)

ErrorLogger = Callable[[Exception, Optional[str]], None]


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async callable and await the result if needed."""
    outcome = fn(*args)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome


def _coerce_arguments(arguments: Any) -> Dict[str, Any]:
    """Copy a caller's argument bag into a plain dict."""
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise ValidationError(
            "Invalid arguments: arguments must be an object",
            details={"received": type(arguments).__name__},
        )
    return dict(arguments)


class Dispatcher:
    """
    Invokes registered capabilities and normalizes their outcomes.

    Args:
        registry: Registry to resolve tools, resources and prompts from
        error_logger: Callable receiving (error, context) once per failure
        context: Label passed to the error logger (usually the server name)
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        error_logger: ErrorLogger = log_error,
        context: Optional[str] = None,
    ):
        self.registry = registry
        self.context = context
        self._error_logger = error_logger

    def _report(self, error: Exception) -> None:
        try:
            self._error_logger(error, self.context)
        except Exception:
            logger.exception("Error logger failed while reporting %r", error)

    # ========================================================================
    # Tools
    # ========================================================================

    async def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResult:
        """
        Invoke a tool by name. Never raises.

        Args:
            name: Registered tool name
            arguments: Argument mapping passed to the handler

        Returns:
            The handler's ToolResult, or an error envelope (is_error=True)
        """
        try:
            args = _coerce_arguments(arguments)
            tool = self.registry.get_tool(name)
            if tool is None:
                raise ResourceNotFoundError(f"Unknown tool: {name}", details={"tool": name})

            validate_required(args, schema_required(tool.input_schema))
            validate_types(args, schema_types(tool.input_schema))

            outcome = await safe_execute(
                lambda: _call(tool.handler, args),
                f"Tool execution: {name}",
            )
            return self._normalize(name, outcome)
        except MCPError as e:
            self._report(e)
            return e.to_result()
        except Exception as e:
            # Failures outside the handler itself (e.g. an unserializable result)
            error = ExecutionError(f"Tool execution: {name}: {e}", details={"errorType": type(e).__name__})
            self._report(error)
            return error.to_result()

    def _normalize(self, name: str, outcome: Any) -> ToolResult:
        if isinstance(outcome, ToolResult):
            return outcome
        if isinstance(outcome, Ok):
            return self._normalize(name, outcome.result)
        if isinstance(outcome, Err):
            raise outcome.error
        if isinstance(outcome, str):
            return ToolResult.text(outcome)
        if isinstance(outcome, (dict, list)):
            return ToolResult.text(json.dumps(outcome, indent=2, default=str))

        raise ExecutionError(
            f"Tool execution: {name}: handler returned unsupported type {type(outcome).__name__}",
            details={"returnType": type(outcome).__name__},
        )

    # ========================================================================
    # Resources
    # ========================================================================

    async def read_resource(self, uri: str) -> ResourceContents:
        """
        Read a registered resource through its owning reader.

        Raises:
            ResourceNotFoundError: If the URI is unknown or has no reader
            ExecutionError: If the reader fails
        """
        try:
            resource = self.registry.get_resource(uri)
            if resource is None:
                raise ResourceNotFoundError(f"Resource not found: {uri}", details={"uri": uri})
            if resource.reader is None:
                raise ResourceNotFoundError(
                    f"Resource has no content provider: {uri}", details={"uri": uri}
                )

            reader = resource.reader
            value = await safe_execute(lambda: _call(reader), f"Resource read: {uri}")
            return self._to_contents(resource, value)
        except MCPError as e:
            self._report(e)
            raise

    @staticmethod
    def _to_contents(resource: Resource, value: Any) -> ResourceContents:
        if isinstance(value, ResourceContents):
            return value
        if isinstance(value, bytes):
            return ResourceContents(uri=resource.uri, blob=value, mime_type=resource.mime_type)
        if isinstance(value, str):
            return ResourceContents(uri=resource.uri, text=value, mime_type=resource.mime_type)
        if isinstance(value, (dict, list)):
            return ResourceContents(
                uri=resource.uri,
                text=json.dumps(value, indent=2, default=str),
                mime_type=resource.mime_type or "application/json",
            )

        raise ExecutionError(
            f"Resource read: {resource.uri}: reader returned unsupported type {type(value).__name__}",
            details={"returnType": type(value).__name__},
        )

    # ========================================================================
    # Prompts
    # ========================================================================

    async def get_prompt(
        self,
        name: str,
        arguments: Optional[Mapping[str, str]] = None,
    ) -> RenderedPrompt:
        """
        Render a registered prompt.

        Raises:
            ResourceNotFoundError: If the prompt is unknown
            ValidationError: If required prompt arguments are missing
            ExecutionError: If the renderer fails
        """
        try:
            args = _coerce_arguments(arguments)
            prompt = self.registry.get_prompt(name)
            if prompt is None:
                raise ResourceNotFoundError(f"Prompt not found: {name}", details={"prompt": name})

            validate_required(args, prompt.required_arguments)

            if prompt.renderer is None:
                return RenderedPrompt(
                    messages=[PromptMessage(role="user", content=f"Prompt: {name}")],
                    description=prompt.description,
                )

            renderer = prompt.renderer
            value = await safe_execute(lambda: _call(renderer, args), f"Prompt render: {name}")
            return self._to_prompt(name, prompt.description, value)
        except MCPError as e:
            self._report(e)
            raise

    @staticmethod
    def _to_prompt(name: str, description: Optional[str], value: Any) -> RenderedPrompt:
        if isinstance(value, RenderedPrompt):
            if value.description is None:
                return replace(value, description=description)
            return value
        if isinstance(value, str):
            return RenderedPrompt(
                messages=[PromptMessage(role="user", content=value)],
                description=description,
            )
        if isinstance(value, list):
            messages: List[PromptMessage] = [
                item if isinstance(item, PromptMessage) else PromptMessage(role="user", content=str(item))
                for item in value
            ]
            return RenderedPrompt(messages=messages, description=description)

        raise ExecutionError(
            f"Prompt render: {name}: renderer returned unsupported type {type(value).__name__}",
            details={"returnType": type(value).__name__},
        )
