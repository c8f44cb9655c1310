"""
Argument validation against a tool's JSON-Schema-like `inputSchema`.

Supported keywords: type, enum, minimum, maximum, items, properties,
required, default and oneOf. Unknown properties are kept as-is. The
returned dict is a copy with declared defaults filled in.
"""

from __future__ import annotations

import copy
import math
from typing import Any, Dict, List, Optional, Union

from .errors import InvalidArguments


class _Violation(Exception):
    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a JSON number
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    # integers beyond float range cannot flow into float arithmetic
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: _is_number(v) and _is_finite(v),
    "integer": lambda v: _is_number(v) and _is_finite(v) and (isinstance(v, int) or v.is_integer()),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
    "null": lambda v: v is None,
}


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number" if _is_finite(value) else "non-finite number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches_type(value: Any, declared: Union[str, List[str]]) -> bool:
    names = declared if isinstance(declared, list) else [declared]
    for name in names:
        check = _TYPE_CHECKS.get(name)
        # Unknown type names are descriptive only
        if check is None or check(value):
            return True
    return False


def _check(value: Any, schema: Dict[str, Any], path: str) -> Any:
    """Validate `value` against `schema`, returning it with nested defaults applied."""
    if not isinstance(schema, dict):
        return value

    if "oneOf" in schema:
        for branch in schema["oneOf"]:
            try:
                return _check(value, branch, path)
            except _Violation:
                continue
        raise _Violation(path, "does not match any allowed form")

    declared = schema.get("type")
    if declared is not None and not _matches_type(value, declared):
        expected = " or ".join(declared) if isinstance(declared, list) else declared
        raise _Violation(path, f"must be of type {expected}, got {_describe(value)}")

    if "enum" in schema and value not in schema["enum"]:
        allowed = ", ".join(repr(v) for v in schema["enum"])
        raise _Violation(path, f"must be one of {allowed}")

    if _is_number(value):
        minimum = schema.get("minimum")
        maximum = schema.get("maximum")
        if minimum is not None and value < minimum:
            raise _Violation(path, f"must be >= {minimum}")
        if maximum is not None and value > maximum:
            raise _Violation(path, f"must be <= {maximum}")

    if isinstance(value, list) and isinstance(schema.get("items"), dict):
        return [_check(item, schema["items"], f"{path}[{i}]") for i, item in enumerate(value)]

    if isinstance(value, dict) and ("properties" in schema or "required" in schema):
        return _check_object(value, schema, prefix=f"{path}.")

    return value


def _check_object(value: Dict[str, Any], schema: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    properties: Dict[str, Any] = schema.get("properties") or {}

    for name in schema.get("required") or []:
        if value.get(name) is None:
            raise _Violation(f"{prefix}{name}", "is required")

    result = dict(value)
    for name, prop_schema in properties.items():
        if result.get(name) is None:
            # Optional and absent (or explicit null): nothing to check
            if isinstance(prop_schema, dict) and "default" in prop_schema:
                result[name] = copy.deepcopy(prop_schema["default"])
            continue
        result[name] = _check(result[name], prop_schema, f"{prefix}{name}")
    return result


def validate_arguments(
    tool_name: Optional[str],
    schema: Dict[str, Any],
    arguments: Any,
) -> Dict[str, Any]:
    """
    Validate `arguments` against `schema` and return a default-filled copy.

    Raises InvalidArguments naming the first offending field.
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise InvalidArguments(tool_name, "arguments", f"must be an object, got {_describe(arguments)}")

    try:
        return _check_object(arguments, schema or {})
    except _Violation as e:
        raise InvalidArguments(tool_name, e.field, e.reason) from None
