"""Tests for argument validation helpers."""

import pytest

from devflow_mcp.mcp.core import ErrorCode, ValidationError, validate_required, validate_types
from devflow_mcp.mcp.core.validation import schema_required, schema_types


class TestValidateRequired:
    """Tests for validate_required."""

    def test_all_present(self):
        validate_required({"a": 1, "b": "x"}, ["a", "b"])

    def test_lists_every_missing_name(self):
        """Missing and None-valued names are both reported, in declared order."""
        with pytest.raises(ValidationError) as exc_info:
            validate_required({"a": 1, "c": None}, ["a", "b", "c"])

        error = exc_info.value
        assert error.code == ErrorCode.VALIDATION_ERROR.value
        assert error.message == "Missing required parameters: b, c"
        assert error.details == {"missing": ["b", "c"], "provided": ["a", "c"]}

    def test_falsy_values_count_as_present(self):
        """Only None is treated as missing."""
        validate_required({"a": 0, "b": "", "c": False, "d": []}, ["a", "b", "c", "d"])

    def test_empty_required_list(self):
        validate_required({}, [])


class TestValidateTypes:
    """Tests for validate_types."""

    def test_matching_types(self):
        validate_types(
            {"s": "x", "n": 1.5, "i": 3, "b": True, "o": {}, "a": [1], "z": None},
            {
                "s": "string",
                "n": "number",
                "i": "integer",
                "b": "boolean",
                "o": "object",
                "a": "array",
                "z": "null",
            },
        )

    def test_integer_is_a_number(self):
        validate_types({"n": 3}, {"n": "number"})

    def test_boolean_is_not_a_number(self):
        with pytest.raises(ValidationError, match="flag: expected number, got boolean"):
            validate_types({"flag": True}, {"flag": "number"})

    def test_mismatch_message(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_types({"x": "5"}, {"x": "number"})

        assert exc_info.value.message == "Type validation failed: x: expected number, got string"
        assert exc_info.value.details == {"errors": ["x: expected number, got string"]}

    def test_collects_all_mismatches(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_types({"x": "5", "y": 2}, {"x": "number", "y": "string"})

        assert exc_info.value.details["errors"] == [
            "x: expected number, got string",
            "y: expected string, got integer",
        ]

    def test_absent_keys_are_skipped(self):
        validate_types({}, {"x": "number"})

    def test_undeclared_keys_are_ignored(self):
        validate_types({"extra": object()}, {"x": "number"})

    def test_python_type_aliases(self):
        validate_types({"s": "x", "i": 1, "d": {}}, {"s": "str", "i": "int", "d": "dict"})

    def test_unknown_declared_type_is_reported(self):
        with pytest.raises(ValidationError, match="unknown declared type 'uuid'"):
            validate_types({"id": "abc"}, {"id": "uuid"})


class TestSchemaHelpers:
    """Helpers that read a JSON-Schema style input schema."""

    def test_schema_required(self):
        assert schema_required({"type": "object", "required": ["a"]}) == ["a"]
        assert schema_required({"type": "object"}) == []

    def test_schema_types_skips_untyped_properties(self):
        schema = {
            "type": "object",
            "properties": {
                "a": {"type": "string"},
                "b": {"description": "no type"},
                "c": {"type": ["string", "null"]},
            },
        }

        assert schema_types(schema) == {"a": "string"}


def test_only_mismatched_keys_are_reported():
    """A matching key is never reported alongside a mismatched one."""
    with pytest.raises(ValidationError) as exc_info:
        validate_types({"x": "1", "y": 2}, {"x": "number", "y": "number"})

    assert exc_info.value.details == {"errors": ["x: expected number, got string"]}
