"""Argument validation helpers for tool handlers and the dispatcher."""

from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .errors import ValidationError

# Declared type name -> accepted Python types
_TYPE_MAP: Dict[str, Tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list, tuple),
    "null": (type(None),),
}

_ALIASES = {
    "str": "string",
    "int": "integer",
    "float": "number",
    "bool": "boolean",
    "dict": "object",
    "list": "array",
    "none": "null",
}


def _type_name(value: Any) -> str:
    """Name of a value's runtime type in the declared-type vocabulary."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _matches(value: Any, declared: str) -> bool:
    accepted = _TYPE_MAP[declared]
    # bool is an int subclass but never a number
    if isinstance(value, bool) and declared in ("number", "integer"):
        return False
    if declared == "object":
        return isinstance(value, Mapping)
    return isinstance(value, accepted)


def validate_required(args: Mapping[str, Any], required: Iterable[str]) -> None:
    """
    Check that every required argument is present and not None.

    Args:
        args: Caller-supplied arguments
        required: Names of required arguments

    Raises:
        ValidationError: Listing every missing name
    """
    missing = [name for name in required if args.get(name) is None]

    if missing:
        raise ValidationError(
            f"Missing required parameters: {', '.join(missing)}",
            details={"missing": missing, "provided": list(args.keys())},
        )


def validate_types(args: Mapping[str, Any], schema: Mapping[str, str]) -> None:
    """
    Compare runtime argument types to declared primitive type names.

    Only keys present in both args and schema are checked. All mismatches
    are collected into a single ValidationError.

    Args:
        args: Caller-supplied arguments
        schema: Map of argument name -> declared type ("string", "number", ...)

    Raises:
        ValidationError: If one or more arguments have the wrong type
    """
    errors: List[str] = []

    for key, expected in schema.items():
        if key not in args:
            continue

        declared = _ALIASES.get(str(expected).lower(), str(expected).lower())
        value = args[key]

        if declared not in _TYPE_MAP:
            errors.append(f"{key}: unknown declared type {expected!r}")
        elif not _matches(value, declared):
            errors.append(f"{key}: expected {expected}, got {_type_name(value)}")

    if errors:
        raise ValidationError(
            f"Type validation failed: {'; '.join(errors)}",
            details={"errors": errors},
        )


def schema_required(input_schema: Mapping[str, Any]) -> List[str]:
    """Required argument names declared by a JSON-Schema style input schema."""
    return list(input_schema.get("required") or [])


def schema_types(input_schema: Mapping[str, Any]) -> Dict[str, str]:
    """Declared primitive types of a JSON-Schema style input schema."""
    properties = input_schema.get("properties") or {}
    return {
        name: prop["type"]
        for name, prop in properties.items()
        if isinstance(prop, Mapping) and isinstance(prop.get("type"), str)
    }
