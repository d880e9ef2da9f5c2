"""
Capability registry and dispatcher core.

- types.py: tools, resources, prompts and the result envelope
- errors.py: structured error taxonomy and envelope conversion
- validation.py: required/type argument checks
- registry.py: registration store
- dispatcher.py: invocation funnel
"""

from .dispatcher import Dispatcher, ErrorLogger
from .errors import (
    ErrorCode,
    ExecutionError,
    MCPError,
    ResourceNotFoundError,
    ValidationError,
    error_result,
    log_error,
    safe_execute,
    sanitize_path,
    success_result,
)
from .registry import CapabilityRegistry
from .types import (
    ContentBlock,
    Err,
    Ok,
    Prompt,
    PromptArgument,
    PromptMessage,
    RenderedPrompt,
    Resource,
    ResourceContents,
    Tool,
    ToolResult,
)
from .validation import validate_required, validate_types

__all__ = [
    "CapabilityRegistry",
    "ContentBlock",
    "Dispatcher",
    "Err",
    "ErrorCode",
    "ErrorLogger",
    "ExecutionError",
    "MCPError",
    "Ok",
    "Prompt",
    "PromptArgument",
    "PromptMessage",
    "RenderedPrompt",
    "Resource",
    "ResourceContents",
    "ResourceNotFoundError",
    "Tool",
    "ToolResult",
    "ValidationError",
    "error_result",
    "log_error",
    "safe_execute",
    "sanitize_path",
    "success_result",
    "validate_required",
    "validate_types",
]
