"""Contract implemented by every capability set."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from devflow_mcp.mcp.core import CapabilityRegistry

if TYPE_CHECKING:
    from devflow_mcp.mcp.server import MCPServer


@runtime_checkable
class CapabilitySet(Protocol):
    """
    A group of tools, resources and prompts owned by one workflow domain.

    Capability sets register their records once, during server startup.
    Handlers, readers and renderers stay with the set; the registry only
    stores references to them.
    """

    name: str

    def register_all(self, registry: CapabilityRegistry) -> None:
        ...


class CapabilitySetFactory(Protocol):
    def __call__(self, server: "MCPServer") -> CapabilitySet:
        ...
