"""
Capability registry.

Holds the tools, resources and prompts registered by capability sets during
server startup. After freeze() the registry is read-only and may be shared
by concurrent invocations without locking.
"""

import logging
from typing import Dict, List, Optional, TypeVar

from .types import Prompt, Resource, Tool

logger = logging.getLogger(__name__)

R = TypeVar("R")


class CapabilityRegistry:
    """
    Three independent insertion-ordered stores keyed by tool name,
    resource URI and prompt name.

    Registering an existing key overwrites the earlier record and logs a
    warning. With strict=True a duplicate raises ValueError instead.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._tools: Dict[str, Tool] = {}
        self._resources: Dict[str, Resource] = {}
        self._prompts: Dict[str, Prompt] = {}
        self._frozen = False

    def _insert(self, store: Dict[str, R], key: str, record: R, kind: str) -> None:
        if self._frozen:
            raise RuntimeError(
                f"Cannot register {kind} {key}: registration phase is closed"
            )

        if key in store:
            if self.strict:
                raise ValueError(f"{kind} {key} is already registered")
            logger.warning("%s %s is already registered. Overwriting.", kind, key)

        store[key] = record

    def register(self, tool: Tool) -> None:
        """Register a tool, overwriting any tool with the same name."""
        self._insert(self._tools, tool.name, tool, "Tool")

    def register_resource(self, resource: Resource) -> None:
        """Register a resource, overwriting any resource with the same URI."""
        self._insert(self._resources, resource.uri, resource, "Resource")

    def register_prompt(self, prompt: Prompt) -> None:
        """Register a prompt, overwriting any prompt with the same name."""
        self._insert(self._prompts, prompt.name, prompt, "Prompt")

    def list_tools(self) -> List[Tool]:
        return list(self._tools.values())

    def list_resources(self) -> List[Resource]:
        return list(self._resources.values())

    def list_prompts(self) -> List[Prompt]:
        return list(self._prompts.values())

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_resource(self, uri: str) -> Optional[Resource]:
        return self._resources.get(uri)

    def get_prompt(self, name: str) -> Optional[Prompt]:
        return self._prompts.get(name)

    def freeze(self) -> None:
        """Close the registration phase."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
