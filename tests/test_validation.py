"""Argument validation against tool input schemas."""

import pytest

from stock_valuation_mcp.errors import InvalidArguments
from stock_valuation_mcp.validation import validate_arguments

SCHEMA = {
    "type": "object",
    "properties": {
        "symbol": {"type": "string"},
        "price": {"type": "number", "minimum": 0},
        "years": {"type": "integer", "default": 5},
        "period": {"type": "string", "enum": ["TTM", "Quarterly"], "default": "TTM"},
        "flags": {"type": "array", "items": {"type": "boolean"}},
        "positions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"symbol": {"type": "string"}, "shares": {"type": "number"}},
                "required": ["symbol", "shares"],
            },
        },
    },
    "required": ["symbol", "price"],
}


def _reject(arguments):
    with pytest.raises(InvalidArguments) as excinfo:
        validate_arguments("demo", SCHEMA, arguments)
    return excinfo.value


def test_defaults_are_filled_into_a_copy():
    arguments = {"symbol": "PTT", "price": 10}
    validated = validate_arguments("demo", SCHEMA, arguments)

    assert validated == {"symbol": "PTT", "price": 10, "years": 5, "period": "TTM"}
    assert arguments == {"symbol": "PTT", "price": 10}


def test_unknown_properties_are_kept():
    validated = validate_arguments("demo", SCHEMA, {"symbol": "PTT", "price": 1, "extra": [1, 2]})
    assert validated["extra"] == [1, 2]


def test_missing_required_field():
    error = _reject({"symbol": "PTT"})
    assert error.field == "price"
    assert error.code == -32602
    assert error.message == "Invalid arguments for tool 'demo': 'price' is required"


def test_null_counts_as_missing():
    assert _reject({"symbol": None, "price": 1}).field == "symbol"


def test_booleans_are_not_numbers():
    error = _reject({"symbol": "PTT", "price": True})
    assert error.field == "price"
    assert "must be of type number, got boolean" in error.reason


def test_integer_accepts_integral_floats_only():
    assert validate_arguments("demo", SCHEMA, {"symbol": "A", "price": 1, "years": 3.0})["years"] == 3.0
    assert _reject({"symbol": "A", "price": 1, "years": 2.5}).field == "years"


def test_non_finite_numbers_are_rejected():
    assert _reject({"symbol": "A", "price": float("nan")}).field == "price"


def test_integers_beyond_float_range_are_rejected():
    error = _reject({"symbol": "A", "price": 10**400})
    assert error.field == "price"
    assert "got non-finite number" in error.reason

    years = _reject({"symbol": "A", "price": 1, "years": 10**400})
    assert years.field == "years"

    assert validate_arguments("demo", SCHEMA, {"symbol": "A", "price": 10**300})["price"] == 10**300


def test_enum_and_minimum():
    assert "must be one of" in _reject({"symbol": "A", "price": 1, "period": "Annual"}).reason
    assert _reject({"symbol": "A", "price": -1}).reason == "must be >= 0"


def test_nested_fields_are_named_by_path():
    error = _reject({"symbol": "A", "price": 1, "positions": [{"symbol": "X", "shares": 1}, {"symbol": "Y"}]})
    assert error.field == "positions[1].shares"

    error = _reject({"symbol": "A", "price": 1, "flags": [True, "no"]})
    assert error.field == "flags[1]"


def test_arguments_must_be_an_object():
    assert validate_arguments("demo", {"type": "object", "properties": {}}, None) == {}
    with pytest.raises(InvalidArguments) as excinfo:
        validate_arguments("demo", SCHEMA, ["PTT"])
    assert excinfo.value.field == "arguments"


def test_one_of_accepts_any_branch():
    schema = {
        "type": "object",
        "properties": {"value": {"oneOf": [{"type": "string"}, {"type": "number"}]}},
    }
    assert validate_arguments("demo", schema, {"value": "x"})["value"] == "x"
    assert validate_arguments("demo", schema, {"value": 2})["value"] == 2
    with pytest.raises(InvalidArguments):
        validate_arguments("demo", schema, {"value": [1]})
