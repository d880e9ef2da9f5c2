"""
Data model for the capability registry and dispatcher.

Records held by the registry (tools, resources, prompts) are frozen
dataclasses created once during the registration phase. Result envelopes
and rendered prompts are created per request and discarded afterwards.
"""

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Literal,
    Mapping,
    Optional,
    Tuple,
    Union,
)

if TYPE_CHECKING:
    from .errors import MCPError


ContentType = Literal["text", "image", "resource"]


@dataclass(frozen=True)
class ContentBlock:
    """
    One block of a result envelope.

    Attributes:
        type: Block kind ("text", "image" or "resource")
        text: Payload for text blocks
        data: Base64 payload for image blocks
        mime_type: MIME type for image and resource blocks
        resource: Embedded resource reference ({uri, text|blob, mimeType})
    """

    type: ContentType
    text: Optional[str] = None
    data: Optional[str] = None
    mime_type: Optional[str] = None
    resource: Optional[Dict[str, Any]] = None

    @classmethod
    def text_block(cls, text: str) -> "ContentBlock":
        return cls(type="text", text=text)

    @classmethod
    def image_block(cls, data: str, mime_type: str) -> "ContentBlock":
        return cls(type="image", data=data, mime_type=mime_type)

    @classmethod
    def resource_block(
        cls,
        uri: str,
        text: Optional[str] = None,
        blob: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> "ContentBlock":
        resource: Dict[str, Any] = {"uri": uri}
        if text is not None:
            resource["text"] = text
        if blob is not None:
            resource["blob"] = blob
        if mime_type is not None:
            resource["mimeType"] = mime_type
        return cls(type="resource", resource=resource, mime_type=mime_type)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the MCP content block shape (camelCase keys)."""
        if self.type == "text":
            return {"type": "text", "text": self.text or ""}
        if self.type == "image":
            return {"type": "image", "data": self.data or "", "mimeType": self.mime_type}
        return {"type": "resource", "resource": dict(self.resource or {})}


@dataclass
class ToolResult:
    """
    Uniform result envelope returned by every tool invocation.

    Attributes:
        content: Ordered content blocks
        is_error: Whether the invocation failed (default: False)
    """

    content: List[ContentBlock] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        """Create a successful result with a single text block."""
        return cls(content=[ContentBlock.text_block(text)])

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape {"content": [...], "isError": bool}."""
        return {
            "content": [block.to_dict() for block in self.content],
            "isError": self.is_error,
        }


@dataclass(frozen=True)
class Ok:
    """Explicit success outcome of a handler."""

    result: ToolResult


@dataclass(frozen=True)
class Err:
    """Explicit failure outcome of a handler."""

    error: "MCPError"


HandlerOutcome = Union[ToolResult, Ok, Err, str, Dict[str, Any], List[Any]]
ToolHandler = Callable[[Mapping[str, Any]], Union[Awaitable[HandlerOutcome], HandlerOutcome]]


@dataclass(frozen=True)
class Tool:
    """
    A named capability invocable with a mapping of arguments.

    Attributes:
        name: Unique tool name (registry key)
        description: Human-readable description
        input_schema: JSON-Schema style object describing the arguments
        handler: Callable receiving the argument mapping
    """

    name: str
    description: str
    handler: ToolHandler = field(repr=False, compare=False)
    input_schema: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_descriptor(self) -> Dict[str, Any]:
        """Descriptor exposed to clients (the handler is never included)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ResourceContents:
    """Content produced when a resource is read."""

    uri: str
    text: Optional[str] = None
    blob: Optional[bytes] = None
    mime_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"uri": self.uri, "mimeType": self.mime_type}
        if self.blob is not None:
            data["blob"] = self.blob
        else:
            data["text"] = self.text or ""
        return data


ResourceReader = Callable[[], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class Resource:
    """
    Read-only named data source.

    The reader belongs to the capability set that registered the resource;
    the registry only keeps a reference to it.
    """

    uri: str
    name: str
    description: Optional[str] = None
    mime_type: Optional[str] = None
    reader: Optional[ResourceReader] = field(default=None, repr=False, compare=False)

    def to_descriptor(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "name": self.name,
            "description": self.description,
            "mimeType": self.mime_type,
        }


@dataclass(frozen=True)
class PromptArgument:
    name: str
    description: Optional[str] = None
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }


@dataclass(frozen=True)
class PromptMessage:
    role: Literal["user", "assistant"]
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": {"type": "text", "text": self.content}}


@dataclass
class RenderedPrompt:
    """Prompt produced by a renderer for a given set of arguments."""

    messages: List[PromptMessage]
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "messages": [message.to_dict() for message in self.messages],
        }


PromptRenderer = Callable[[Dict[str, str]], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class Prompt:
    """
    Parameterized prompt template descriptor.

    Attributes:
        name: Unique prompt name (registry key)
        description: Optional description
        arguments: Ordered argument declarations
        renderer: Callable producing the prompt text from string arguments
    """

    name: str
    description: Optional[str] = None
    arguments: Tuple[PromptArgument, ...] = ()
    renderer: Optional[PromptRenderer] = field(default=None, repr=False, compare=False)

    def to_descriptor(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [argument.to_dict() for argument in self.arguments],
        }

    @property
    def required_arguments(self) -> List[str]:
        return [argument.name for argument in self.arguments if argument.required]
