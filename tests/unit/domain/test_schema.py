"""
Tests for the response schema interpreter and registry.

These tests demonstrate:
- Testing conforming and non-conforming values against composed schemas
- Testing deterministic violation order (declared fields, then extras)
- Testing registry immutability (register returns a new registry)
"""

import pytest

from hermes.domain.domain_type import ViolationRule
from hermes.domain.schema import (
    AnySchema,
    ArraySchema,
    BooleanSchema,
    EnumSchema,
    Invalid,
    LiteralSchema,
    NumberSchema,
    ObjectSchema,
    RecordSchema,
    SchemaRegistry,
    StringSchema,
    UnionSchema,
    Valid,
    optional,
    required,
    to_json_schema,
    validate,
)
from hermes.domain.search_schema import (
    AGENTIC_SEARCH_SCHEMA,
    AI_SEARCH_RESPONSE_SCHEMA,
    LEGACY_EMPTY_RESPONSE,
    LEGACY_SEARCH_SCHEMA,
    default_registry,
)

POINT = ObjectSchema(
    name="point",
    fields=(
        required("x", NumberSchema()),
        required("y", NumberSchema()),
        optional("label", StringSchema()),
    ),
)


def agentic_answer(**overrides):
    answer = {"object": "ai_search", "query": "coffee", "message": "Try Blue Bottle."}
    answer.update(overrides)
    return answer


def test_conforming_object_is_valid_and_value_is_unchanged():
    """
    Demonstrates: Testing the success path returns the input value itself.
    """
    value = {"x": 1, "y": 2.5, "label": "home"}

    result = validate(value, POINT)

    assert isinstance(result, Valid)
    assert result.value == value


def test_optional_field_may_be_absent_but_not_null():
    """
    Demonstrates: Testing optionality semantics (absent ≠ null).
    """
    assert validate({"x": 1, "y": 2}, POINT).ok
    result = validate({"x": 1, "y": 2, "label": None}, POINT)

    assert isinstance(result, Invalid)
    assert result.violation.path == "$.label"
    assert result.violation.rule == ViolationRule.TYPE


def test_missing_required_field_is_reported_with_path():
    result = validate({"x": 1}, POINT)

    assert isinstance(result, Invalid)
    assert result.violation.path == "$.y"
    assert result.violation.rule == ViolationRule.MISSING_FIELD


def test_unlisted_field_rejected_unless_allow_extra():
    """
    Demonstrates: Testing closed-by-default objects and the explicit opt-in.
    """
    value = {"x": 1, "y": 2, "z": 3}
    open_point = POINT.model_copy(update={"allow_extra": True})

    closed = validate(value, POINT)

    assert isinstance(closed, Invalid)
    assert closed.violation.rule == ViolationRule.UNEXPECTED_FIELD
    assert closed.violation.path == "$.z"
    assert validate(value, open_point).ok


def test_declared_fields_are_checked_before_unexpected_fields():
    """
    Demonstrates: Testing deterministic violation order.

    Both a bad declared field and an extra key are present; the declared
    field wins because declared fields are visited first.
    """
    result = validate({"extra": True, "x": "one", "y": 2}, POINT)

    assert isinstance(result, Invalid)
    assert result.violation.path == "$.x"


@pytest.mark.parametrize("value", [True, False])
def test_boolean_is_never_a_number(value):
    result = validate(value, NumberSchema())

    assert isinstance(result, Invalid)
    assert result.violation.message == "expected number, got boolean"


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_numbers_are_rejected(value):
    assert not validate(value, NumberSchema()).ok


def test_number_range_and_integer_flag():
    latitude = NumberSchema(minimum=-90, maximum=90)
    count = NumberSchema(integer=True, minimum=0)

    assert validate(-90, latitude).ok
    assert validate(90.0, latitude).ok
    assert validate(90.5, latitude).violation.rule == ViolationRule.RANGE
    assert validate(3, count).ok
    assert validate(3.0, count).ok
    assert validate(3.5, count).violation.rule == ViolationRule.TYPE


def test_integers_beyond_float_range_are_checked_exactly():
    huge = 10**400

    assert validate(huge, NumberSchema()).ok
    assert validate(huge, NumberSchema(integer=True)).ok
    assert validate(huge, NumberSchema(maximum=90)).violation.rule == ViolationRule.RANGE
    assert validate(-huge, NumberSchema(minimum=-90)).violation.rule == ViolationRule.RANGE


def test_literal_keeps_json_types_apart():
    """
    Demonstrates: Testing an edge case Python equality gets wrong (True == 1).
    """
    assert validate(True, LiteralSchema(value=True)).ok
    assert not validate(1, LiteralSchema(value=True)).ok
    assert not validate(True, LiteralSchema(value=1)).ok
    assert validate("ai_search", LiteralSchema(value="ai_search")).ok


def test_enum_array_record_and_any():
    colors = EnumSchema(values=("red", "green"))
    tags = ArraySchema(items=StringSchema())
    scores = RecordSchema(values=NumberSchema())

    assert validate("red", colors).ok
    assert validate("blue", colors).violation.rule == ViolationRule.ENUM
    assert validate(["a", "b"], tags).ok
    assert validate(["a", 2], tags).violation.path == "$[1]"
    assert validate({"alice": 1, "bob": 2.5}, scores).ok
    assert validate({"alice": "high"}, scores).violation.path == "$.alice"
    assert validate({"anything": [None, 1]}, AnySchema()).ok


def test_union_first_match_wins_and_failure_names_the_union():
    """
    Demonstrates: Testing ordered alternatives.
    """
    union = UnionSchema(name="id", variants=(StringSchema(), NumberSchema(integer=True)))

    assert validate("abc", union).ok
    assert validate(7, union).ok
    failure = validate(7.5, union)

    assert isinstance(failure, Invalid)
    assert failure.violation.rule == ViolationRule.UNION
    assert failure.violation.message == "value matches none of the 2 variants of id"


def test_nested_violation_path_points_into_arrays():
    legacy = dict(LEGACY_EMPTY_RESPONSE)
    legacy["brands"] = [{"key": "acme", "name": "Acme", "object": "area"}]

    result = validate(legacy, LEGACY_SEARCH_SCHEMA)

    assert isinstance(result, Invalid)
    assert result.violation.path == "$.brands[0].object"
    assert result.violation.rule == ViolationRule.LITERAL


def test_agentic_schema_accepts_location_and_rejects_out_of_range():
    assert validate(agentic_answer(latitude=40.7, longitude=-74.0, error=False), AGENTIC_SEARCH_SCHEMA).ok
    result = validate(agentic_answer(latitude=91), AGENTIC_SEARCH_SCHEMA)

    assert isinstance(result, Invalid)
    assert result.violation.path == "$.latitude"


def test_legacy_empty_response_conforms_to_legacy_and_response_union():
    assert validate(LEGACY_EMPTY_RESPONSE, LEGACY_SEARCH_SCHEMA).ok
    assert validate(LEGACY_EMPTY_RESPONSE, AI_SEARCH_RESPONSE_SCHEMA).ok
    assert validate({"error": {"code": "internal_error", "message": "boom"}}, AI_SEARCH_RESPONSE_SCHEMA).ok


def test_registry_register_returns_new_registry():
    """
    Demonstrates: Testing immutability pattern (register never mutates).
    """
    empty = SchemaRegistry()

    registry = empty.register(POINT)

    assert "point" in registry
    assert "point" not in empty
    assert registry.get("point") == POINT


def test_registry_rejects_unnamed_and_duplicate_schemas():
    registry = SchemaRegistry().register(POINT)

    with pytest.raises(ValueError, match="named"):
        registry.register(StringSchema())
    with pytest.raises(ValueError, match="already registered"):
        registry.register(POINT)
    with pytest.raises(KeyError):
        registry.get("missing")


def test_registry_validates_by_name():
    registry = default_registry()

    assert {"agentic_search", "legacy_search", "ai_search_response"} <= set(registry.names())
    assert registry.validate(agentic_answer(), "agentic_search").ok
    assert not registry.validate({"object": "ai_search"}, "agentic_search").ok


def test_to_json_schema_renders_object_contract():
    rendered = to_json_schema(
        ObjectSchema(
            fields=(
                required("query", StringSchema(), "The search query"),
                optional("limit", NumberSchema(integer=True, minimum=1)),
                optional("open_now", BooleanSchema()),
            )
        )
    )

    assert rendered == {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The search query"},
            "limit": {"type": "integer", "minimum": 1},
            "open_now": {"type": "boolean"},
        },
        "required": ["query"],
        "additionalProperties": False,
    }
