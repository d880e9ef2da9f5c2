"""Tests for the quality capability set."""

import json

import pytest

from devflow_mcp.mcp.capabilities import QualityCapabilities
from devflow_mcp.mcp.capabilities.quality_tools import analyze_complexity
from devflow_mcp.mcp.core import CapabilityRegistry, Dispatcher

JS_SOURCE = """\
function add(a, b) {
  // sum positives
  if (a > 0 && b > 0) {
    return a + b;
  }
  return a > b ? a : b;
}
"""

PY_SOURCE = """\
def grade(score):
    # classify
    if score > 90 and score <= 100:
        return "A"
    elif score > 80:
        return "B"
    else:
        return "C"
"""


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "add.js").write_text(JS_SOURCE)
    (tmp_path / "src" / "grade.py").write_text(PY_SOURCE)
    return tmp_path


@pytest.fixture
def dispatcher(project):
    registry = CapabilityRegistry()
    QualityCapabilities(project).register_all(registry)
    return Dispatcher(registry, error_logger=lambda error, context: None)


class TestAnalyzeComplexity:
    def test_c_style_decision_points(self):
        report = analyze_complexity(JS_SOURCE)

        # base 1 + if + && + ?
        assert report.complexity == 4
        assert report.lines_of_code == 6
        assert report.functions == 1
        assert report.breakdown == [r"\bif\s*\(: 1", "&&: 1", r"\?: 1"]

    def test_python_decision_points(self):
        report = analyze_complexity(PY_SOURCE, python=True)

        # base 1 + if + elif + else + and
        assert report.complexity == 5
        assert report.lines_of_code == 7
        assert report.functions == 1

    def test_empty_file(self):
        report = analyze_complexity("")

        assert report.complexity == 1
        assert report.lines_of_code == 0
        assert report.breakdown == []
        assert report.rating[0] == "Low"

    def test_rating_thresholds(self):
        assert analyze_complexity("if (x) {}\n" * 9).rating[0] == "Low"
        assert analyze_complexity("if (x) {}\n" * 10).rating[0] == "Moderate"
        assert analyze_complexity("if (x) {}\n" * 49).rating[0] == "High"
        assert analyze_complexity("if (x) {}\n" * 60).rating[0] == "Very High"


class TestAnalyzeComplexityTool:
    def test_registration(self, project):
        registry = CapabilityRegistry()
        QualityCapabilities(project).register_all(registry)

        tool = registry.get_tool("analyze_complexity")
        assert tool.input_schema["required"] == ["path"]

    @pytest.mark.asyncio
    async def test_analyze_file(self, dispatcher):
        result = await dispatcher.invoke("analyze_complexity", {"path": "src/add.js"})

        assert result.is_error is False
        data = json.loads(result.content[0].text)
        assert data["file"] == "src/add.js"
        assert data["metrics"] == {
            "cyclomaticComplexity": 4,
            "linesOfCode": 6,
            "functionCount": 1,
        }
        assert data["rating"] == "Low"
        assert data["recommendation"] == "Code is simple and easy to maintain"
        assert "analyzedAt" in data

    @pytest.mark.asyncio
    async def test_python_file_uses_python_keywords(self, dispatcher):
        result = await dispatcher.invoke("analyze_complexity", {"path": "src/grade.py"})

        data = json.loads(result.content[0].text)
        assert data["metrics"]["cyclomaticComplexity"] == 5

    @pytest.mark.asyncio
    async def test_path_is_required(self, dispatcher):
        result = await dispatcher.invoke("analyze_complexity", {})

        payload = json.loads(result.content[0].text)
        assert result.is_error is True
        assert payload["code"] == "VALIDATION_ERROR"
        assert payload["message"] == "Missing required parameters: path"

    @pytest.mark.asyncio
    async def test_missing_file(self, dispatcher):
        result = await dispatcher.invoke("analyze_complexity", {"path": "src/nope.py"})

        payload = json.loads(result.content[0].text)
        assert payload["code"] == "VALIDATION_ERROR"
        assert payload["message"] == "Cannot access file: src/nope.py"

    @pytest.mark.asyncio
    async def test_directory_is_rejected(self, dispatcher):
        result = await dispatcher.invoke("analyze_complexity", {"path": "src"})

        payload = json.loads(result.content[0].text)
        assert payload["code"] == "VALIDATION_ERROR"
        assert payload["message"] == "Path must be a file, not a directory: src"

    @pytest.mark.asyncio
    async def test_path_outside_project(self, dispatcher):
        result = await dispatcher.invoke("analyze_complexity", {"path": "../outside.py"})

        payload = json.loads(result.content[0].text)
        assert payload["code"] == "VALIDATION_ERROR"
        assert payload["message"].startswith("Path must be within")
