"""
Quality capability set.

Provides the analyze_complexity tool: a pattern-based estimate of
cyclomatic complexity, lines of code and function count for one file.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Pattern, Tuple

from devflow_mcp.mcp.core import (
    CapabilityRegistry,
    ExecutionError,
    Tool,
    ToolResult,
    ValidationError,
    sanitize_path,
)

logger = logging.getLogger(__name__)

# Decision points counted for brace-style languages (JS/TS, Go, Rust, ...)
C_STYLE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\bif\s*\("),
    re.compile(r"\belse\s+if\s*\("),
    re.compile(r"\belse\s*{"),
    re.compile(r"\bwhile\s*\("),
    re.compile(r"\bfor\s*\("),
    re.compile(r"\bcase\s+"),
    re.compile(r"\bcatch\s*\("),
    re.compile(r"&&"),
    re.compile(r"\|\|"),
    re.compile(r"\?"),
)
C_STYLE_FUNCTIONS = re.compile(r"function\s+\w+|=>\s*{|class\s+\w+")

PYTHON_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\bif\b"),
    re.compile(r"\belif\b"),
    re.compile(r"\belse\s*:"),
    re.compile(r"\bwhile\b"),
    re.compile(r"\bfor\b"),
    re.compile(r"\bcase\b"),
    re.compile(r"\bexcept\b"),
    re.compile(r"\band\b"),
    re.compile(r"\bor\b"),
)
PYTHON_FUNCTIONS = re.compile(r"\bdef\s+\w+|\bclass\s+\w+|\blambda\b")

# Upper bound (inclusive) of each rating, checked in order
RATINGS: Tuple[Tuple[float, str, str], ...] = (
    (10, "Low", "Code is simple and easy to maintain"),
    (20, "Moderate", "Consider refactoring if code becomes more complex"),
    (50, "High", "Consider breaking down into smaller functions"),
    (float("inf"), "Very High", "Strongly recommend refactoring to reduce complexity"),
)

ANALYZE_COMPLEXITY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "path": {
            "type": "string",
            "description": "File to analyze, relative to the project root",
        },
    },
    "required": ["path"],
}


@dataclass
class ComplexityReport:
    """Metrics for one source file."""
    complexity: int = 1
    lines_of_code: int = 0
    functions: int = 0
    breakdown: List[str] = field(default_factory=list)

    @property
    def rating(self) -> Tuple[str, str]:
        for limit, rating, recommendation in RATINGS:
            if self.complexity <= limit:
                return rating, recommendation
        return RATINGS[-1][1], RATINGS[-1][2]


def analyze_complexity(code: str, python: bool = False) -> ComplexityReport:
    """
    Count decision points, non-comment lines and function definitions.

    Complexity starts at 1 and grows by one per matched decision point.
    String contents are not excluded, so the result is an estimate.
    """
    comment = "#" if python else "//"
    patterns = PYTHON_PATTERNS if python else C_STYLE_PATTERNS
    functions = PYTHON_FUNCTIONS if python else C_STYLE_FUNCTIONS

    report = ComplexityReport()
    report.lines_of_code = sum(
        1 for line in code.splitlines()
        if line.strip() and not line.strip().startswith(comment)
    )
    report.functions = len(functions.findall(code))

    for pattern in patterns:
        count = len(pattern.findall(code))
        if count:
            report.complexity += count
            report.breakdown.append(f"{pattern.pattern}: {count}")

    return report


class QualityCapabilities:
    """Code quality metrics for files inside one project root."""

    name = "quality"

    def __init__(self, project_root: Path):
        self.project_root = project_root.resolve()

    def register_all(self, registry: CapabilityRegistry) -> None:
        registry.register(Tool(
            name="analyze_complexity",
            description=(
                "Analyze code complexity metrics including cyclomatic complexity, "
                "lines of code, and function count."
            ),
            input_schema=ANALYZE_COMPLEXITY_SCHEMA,
            handler=self.analyze_complexity,
        ))

    async def analyze_complexity(self, args: Mapping[str, Any]) -> ToolResult:
        """Analyze one file and return its metrics as JSON."""
        path = args["path"]
        target = sanitize_path(path, self.project_root)

        if not target.exists():
            raise ValidationError(f"Cannot access file: {path}", details={"path": str(target)})
        if not target.is_file():
            raise ValidationError(
                f"Path must be a file, not a directory: {path}",
                details={"path": str(target)},
            )

        try:
            code = await asyncio.to_thread(target.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ExecutionError(
                f"Cannot read file: {path}: {e}",
                details={"path": str(target), "errorType": type(e).__name__},
            ) from e

        report = analyze_complexity(code, python=target.suffix == ".py")
        rating, recommendation = report.rating
        logger.debug("Complexity of %s: %d (%s)", target, report.complexity, rating)

        result = {
            "file": str(target.relative_to(self.project_root)),
            "metrics": {
                "cyclomaticComplexity": report.complexity,
                "linesOfCode": report.lines_of_code,
                "functionCount": report.functions,
            },
            "rating": rating,
            "recommendation": recommendation,
            "complexityBreakdown": report.breakdown,
            "analyzedAt": datetime.now(timezone.utc).isoformat(),
        }
        return ToolResult.text(json.dumps(result, indent=2))
