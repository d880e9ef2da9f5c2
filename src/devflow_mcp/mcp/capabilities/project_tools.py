"""
Project capability set.

Provides the project://info resource (package metadata, structure
statistics and git summary) and the project_structure tool.
"""

import asyncio
import json
import logging
import os
import re
import tomllib
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from devflow_mcp.mcp.core import (
    CapabilityRegistry,
    Resource,
    Tool,
    ToolResult,
    ValidationError,
    sanitize_path,
)

logger = logging.getLogger(__name__)

PROJECT_INFO_URI = "project://info"

# Directories never counted in structure statistics
SKIPPED_DIRECTORIES = frozenset({
    ".git", "node_modules", "dist", "build", ".next", ".venv", "venv",
    "__pycache__", ".mypy_cache", ".pytest_cache", ".tox",
})

SOURCE_FILE_PATTERN = re.compile(r"\.(py|ts|tsx|js|jsx|go|rs)$")
DOC_FILE_PATTERN = re.compile(r"\.(md|rst|txt)$", re.IGNORECASE)

# Deadline for each git subprocess
GIT_TIMEOUT_SECONDS = 5.0

PROJECT_STRUCTURE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "path": {
            "type": "string",
            "description": "Directory to analyze, relative to the project root (default: '.')",
        },
    },
}


@dataclass
class StructureStats:
    """File and directory counts for a project tree."""
    directories: int = 0
    files: int = 0
    source_files: int = 0
    test_files: int = 0
    doc_files: int = 0


def analyze_structure(root: Path) -> StructureStats:
    """
    Walk a directory tree and count files by category.

    Test files are source files whose name contains "test" or "spec".
    Unreadable directories are skipped.
    """
    stats = StructureStats()

    def _on_error(error: OSError) -> None:
        logger.debug("Skipping unreadable path: %s", error)

    for _, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = [d for d in dirnames if d not in SKIPPED_DIRECTORIES]
        stats.directories += len(dirnames)

        for filename in filenames:
            stats.files += 1
            if SOURCE_FILE_PATTERN.search(filename):
                if "test" in filename or "spec" in filename:
                    stats.test_files += 1
                else:
                    stats.source_files += 1
            elif DOC_FILE_PATTERN.search(filename):
                stats.doc_files += 1

    return stats


def read_package_metadata(root: Path) -> Dict[str, Any]:
    """
    Read name, version and description from pyproject.toml or package.json.

    Returns defaults when neither file exists or cannot be parsed.
    """
    metadata: Dict[str, Any] = {
        "name": root.name or "Unknown",
        "version": "0.0.0",
        "description": "",
        "license": None,
        "dependencies": 0,
        "source": None,
    }

    pyproject = root / "pyproject.toml"
    package_json = root / "package.json"

    if pyproject.exists():
        try:
            with open(pyproject, "rb") as f:
                project = tomllib.load(f).get("project", {})
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning("Could not parse %s: %s", pyproject, e)
        else:
            license_field = project.get("license")
            metadata.update({
                "name": project.get("name", metadata["name"]),
                "version": project.get("version", metadata["version"]),
                "description": project.get("description", ""),
                "license": license_field.get("text") if isinstance(license_field, dict) else license_field,
                "dependencies": len(project.get("dependencies", [])),
                "source": "pyproject.toml",
            })
            return metadata

    if package_json.exists():
        try:
            pkg = json.loads(package_json.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not parse %s: %s", package_json, e)
        else:
            metadata.update({
                "name": pkg.get("name", metadata["name"]),
                "version": pkg.get("version", metadata["version"]),
                "description": pkg.get("description", ""),
                "license": pkg.get("license"),
                "dependencies": len(pkg.get("dependencies", {})),
                "source": "package.json",
            })

    return metadata


async def _git(root: Path, *args: str) -> str:
    """Run a git command with a deadline and return its stripped stdout."""
    process = await asyncio.create_subprocess_exec(
        "git", *args,
        cwd=root,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), GIT_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    if process.returncode != 0:
        raise RuntimeError(stderr.decode(errors="replace").strip() or f"git {args[0]} failed")
    return stdout.decode(errors="replace").strip()


async def get_git_info(root: Path) -> Optional[Dict[str, Any]]:
    """
    Collect branch, commit count and last commit summary.

    Returns:
        Git summary dict, or None when root is not a git repository,
        git is unavailable, or a command times out
    """
    try:
        branch = await _git(root, "rev-parse", "--abbrev-ref", "HEAD")
        commits = await _git(root, "rev-list", "--count", "HEAD")
        last_commit = await _git(root, "log", "-1", "--format=%h - %s (%ar)")
    except (OSError, RuntimeError, asyncio.TimeoutError) as e:
        logger.debug("Git information unavailable for %s: %s", root, e)
        return None

    return {
        "branch": branch,
        "commits": int(commits) if commits.isdigit() else 0,
        "last_commit": last_commit,
    }


class ProjectCapabilities:
    """Read-only project introspection rooted at one directory."""

    name = "project"

    def __init__(self, project_root: Path):
        self.project_root = project_root.resolve()

    def register_all(self, registry: CapabilityRegistry) -> None:
        registry.register_resource(Resource(
            uri=PROJECT_INFO_URI,
            name="Project Info",
            description="Project metadata, structure statistics and git summary",
            mime_type="application/json",
            reader=self.project_info,
        ))
        registry.register(Tool(
            name="project_structure",
            description="Count directories, source, test and documentation files under a project path",
            input_schema=PROJECT_STRUCTURE_SCHEMA,
            handler=self.project_structure,
        ))

    async def project_info(self) -> Dict[str, Any]:
        """Build the project://info document."""
        structure = await asyncio.to_thread(analyze_structure, self.project_root)
        info = read_package_metadata(self.project_root)
        info.update({
            "root": str(self.project_root),
            "structure": asdict(structure),
            "git": await get_git_info(self.project_root),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        })
        return info

    async def project_structure(self, args: Mapping[str, Any]) -> ToolResult:
        """Return structure statistics for a directory inside the project."""
        target = sanitize_path(args.get("path") or ".", self.project_root)

        if not target.is_dir():
            raise ValidationError(
                f"Not a directory: {args.get('path')}",
                details={"path": str(target)},
            )

        stats = await asyncio.to_thread(analyze_structure, target)
        data: Dict[str, Any] = {"path": str(target.relative_to(self.project_root))}
        data.update(asdict(stats))
        return ToolResult.text(json.dumps(data, indent=2))
