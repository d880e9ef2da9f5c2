"""
Error model shared by the registry, dispatcher and capability sets.

Every error raised by a capability is either a structured MCPError (with a
machine-readable code) or an arbitrary exception that safe_execute wraps as
an ExecutionError. Both convert to an error result envelope.
"""

import json
import logging
import traceback
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from .types import ContentBlock, ToolResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Error codes recognized by the dispatcher."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"


class MCPError(Exception):
    """
    Structured domain error.

    Attributes:
        message: Human-readable message
        code: Machine-readable error code (ErrorCode value or custom string)
        details: Optional structured diagnostic data
    """

    def __init__(
        self,
        message: str,
        code: Union[ErrorCode, str],
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to {error, code, message, details}."""
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_result(self) -> ToolResult:
        """Convert to an error envelope with a single JSON text block."""
        return ToolResult(
            content=[ContentBlock.text_block(json.dumps(self.to_dict(), indent=2, default=str))],
            is_error=True,
        )


class ValidationError(MCPError):
    """Caller-supplied arguments are missing or mistyped."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class ExecutionError(MCPError):
    """A handler failed while doing its work."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.EXECUTION_ERROR, details)


class ResourceNotFoundError(MCPError):
    """A tool name, resource URI or prompt name has no registered record."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details)


async def safe_execute(fn: Callable[[], Awaitable[T]], context: Optional[str] = None) -> T:
    """
    Await fn() and normalize any failure to an MCPError.

    MCPError instances propagate unchanged. Any other exception is wrapped
    in an ExecutionError whose message is "<context>: <original message>"
    and whose details carry the formatted traceback.

    Args:
        fn: Zero-argument coroutine function to run
        context: Prefix for the wrapped error message

    Returns:
        Whatever fn() returns

    Raises:
        MCPError: On any failure
    """
    try:
        return await fn()
    except MCPError:
        raise
    except Exception as e:
        message = str(e) or type(e).__name__
        raise ExecutionError(
            f"{context}: {message}" if context else message,
            details={
                "errorType": type(e).__name__,
                "originalError": "".join(
                    traceback.format_exception(type(e), e, e.__traceback__)
                ),
            },
        ) from e


def success_result(text: str) -> ToolResult:
    """Create a successful envelope with one text block."""
    return ToolResult.text(text)


def error_result(error: Exception) -> ToolResult:
    """Create an error envelope from any exception."""
    if isinstance(error, MCPError):
        return error.to_result()

    payload = {"error": type(error).__name__, "message": str(error)}
    return ToolResult(
        content=[ContentBlock.text_block(json.dumps(payload, indent=2))],
        is_error=True,
    )


def log_error(error: Exception, context: Optional[str] = None) -> None:
    """
    Default error logger used by the dispatcher.

    Emits one ERROR line per failure. Tracebacks captured by safe_execute
    are only written at DEBUG level.
    """
    prefix = f"[{context}] " if context else ""
    if isinstance(error, MCPError):
        details = {k: v for k, v in (error.details or {}).items() if k != "originalError"}
        logger.error(
            "%sError (%s): %s%s",
            prefix,
            error.code,
            error.message,
            f" | details={details}" if details else "",
        )
        if error.details and "originalError" in error.details:
            logger.debug("%sOriginal error:\n%s", prefix, error.details["originalError"])
    else:
        logger.error("%sError: %s", prefix, error, exc_info=logger.isEnabledFor(logging.DEBUG))


def sanitize_path(path: str, allowed_dir: Path) -> Path:
    """
    Resolve a caller-supplied path inside allowed_dir.

    Args:
        path: Relative (or absolute) path provided by a caller
        allowed_dir: Directory the resolved path must stay within

    Returns:
        Absolute resolved path

    Raises:
        ValidationError: If the path escapes allowed_dir
    """
    root = allowed_dir.resolve()
    candidate = Path(path)
    resolved = (candidate if candidate.is_absolute() else root / candidate).resolve()

    if resolved != root and root not in resolved.parents:
        raise ValidationError(
            f"Path must be within {root}",
            details={"provided": path, "allowed": str(root)},
        )
    return resolved
