"""
Built-in capability sets.

Each set groups the tools, resources and prompts of one workflow domain
and registers them into the server's registry at startup.
"""

from typing import Dict

from .base import CapabilitySet, CapabilitySetFactory
from .project_tools import PROJECT_INFO_URI, ProjectCapabilities
from .quality_tools import QualityCapabilities
from .review_prompts import PR_REVIEW_PROMPT, ReviewPrompts
from .system_tools import SystemCapabilities

BUILTIN_CAPABILITY_SETS: Dict[str, CapabilitySetFactory] = {
    "system": lambda server: SystemCapabilities(server),
    "project": lambda server: ProjectCapabilities(server.project_root),
    "quality": lambda server: QualityCapabilities(server.project_root),
    "review": lambda server: ReviewPrompts(),
}

__all__ = [
    "BUILTIN_CAPABILITY_SETS",
    "CapabilitySet",
    "CapabilitySetFactory",
    "PROJECT_INFO_URI",
    "PR_REVIEW_PROMPT",
    "ProjectCapabilities",
    "QualityCapabilities",
    "ReviewPrompts",
    "SystemCapabilities",
]
