"""Response Schemas - Data-Only Shape Descriptors and Their Interpreter.

Response shapes are described as plain, frozen data: a tree of schema nodes
discriminated on ``kind``. Nothing here reflects over Python classes; a schema
can be built, composed, compared and serialized like any other value, and the
``check`` interpreter walks it against a parsed JSON value.

Architecture:
    SchemaNode: Discriminated union of node models (string, number, object, ...)
    ├─ FieldSpec: One named object member with optionality
    ├─ check(): Interpreter returning the first Violation (or None)
    ├─ to_json_schema(): Rendering for prompts and tool parameter hints
    └─ SchemaRegistry: Named, immutable collection of schemas

Validation Rules:
    - Missing required fields are rejected
    - Unlisted fields are rejected unless the object sets allow_extra=True
    - Unions try variants in declared order; the first match wins
    - Booleans are never numbers, and numbers must be finite

Determinism:
    Validation reports exactly one violation: declared fields are visited in
    declaration order, then unexpected fields in input order. The same value
    and schema always produce the same message.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from .domain_type import SchemaKind, ViolationRule

JsonScalar = str | int | float | bool


class _SchemaBase(BaseModel):
    """Attributes shared by every schema node."""

    name: str | None = None
    description: str | None = None

    model_config = ConfigDict(frozen=True)


class StringSchema(_SchemaBase):
    kind: Literal[SchemaKind.STRING] = SchemaKind.STRING
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)


class NumberSchema(_SchemaBase):
    """JSON number, optionally integral and bounded (inclusive)."""

    kind: Literal[SchemaKind.NUMBER] = SchemaKind.NUMBER
    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False


class BooleanSchema(_SchemaBase):
    kind: Literal[SchemaKind.BOOLEAN] = SchemaKind.BOOLEAN


class LiteralSchema(_SchemaBase):
    """Exact tag value, e.g. ``object: "ai_search"``."""

    kind: Literal[SchemaKind.LITERAL] = SchemaKind.LITERAL
    value: JsonScalar


class EnumSchema(_SchemaBase):
    kind: Literal[SchemaKind.ENUM] = SchemaKind.ENUM
    values: tuple[str, ...]

    @field_validator("values")
    @classmethod
    def require_values(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("Enum schema requires at least one value")
        return v


class ArraySchema(_SchemaBase):
    kind: Literal[SchemaKind.ARRAY] = SchemaKind.ARRAY
    items: SchemaNode


class FieldSpec(BaseModel):
    """Named member of an object schema.

    Attributes:
        name: JSON key
        shape: Schema the member's value must satisfy
        optional: Whether the key may be absent (``null`` is still rejected)
    """

    name: str = Field(min_length=1)
    shape: SchemaNode
    optional: bool = False
    description: str | None = None

    model_config = ConfigDict(frozen=True)


class ObjectSchema(_SchemaBase):
    """JSON object with a closed (default) or open set of members.

    ``allow_extra`` must be set explicitly to accept unlisted keys; the closed
    default keeps validation predictable.
    """

    kind: Literal[SchemaKind.OBJECT] = SchemaKind.OBJECT
    fields: tuple[FieldSpec, ...] = ()
    allow_extra: bool = False

    @field_validator("fields")
    @classmethod
    def reject_duplicate_fields(cls, v: tuple[FieldSpec, ...]) -> tuple[FieldSpec, ...]:
        names = [f.name for f in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate object fields: {duplicates}")
        return v

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"Field '{name}' not declared on schema '{self.name}'")


class UnionSchema(_SchemaBase):
    """Ordered alternatives; the first variant that accepts the value wins."""

    kind: Literal[SchemaKind.UNION] = SchemaKind.UNION
    variants: tuple[SchemaNode, ...]

    @field_validator("variants")
    @classmethod
    def require_variants(cls, v: tuple[SchemaNode, ...]) -> tuple[SchemaNode, ...]:
        if not v:
            raise ValueError("Union schema requires at least one variant")
        return v


class RecordSchema(_SchemaBase):
    """String-keyed map whose values all share one schema."""

    kind: Literal[SchemaKind.RECORD] = SchemaKind.RECORD
    values: SchemaNode


class AnySchema(_SchemaBase):
    kind: Literal[SchemaKind.ANY] = SchemaKind.ANY


SchemaNode = Annotated[
    StringSchema
    | NumberSchema
    | BooleanSchema
    | LiteralSchema
    | EnumSchema
    | ArraySchema
    | ObjectSchema
    | UnionSchema
    | RecordSchema
    | AnySchema,
    Field(discriminator="kind"),
]

for _model in (ArraySchema, FieldSpec, ObjectSchema, UnionSchema, RecordSchema):
    _model.model_rebuild()


def required(name: str, shape: SchemaNode, description: str | None = None) -> FieldSpec:
    return FieldSpec(name=name, shape=shape, description=description)


def optional(name: str, shape: SchemaNode, description: str | None = None) -> FieldSpec:
    return FieldSpec(name=name, shape=shape, optional=True, description=description)


# ---------------------------------------------------------------------------
# Validation results
# ---------------------------------------------------------------------------


class Violation(BaseModel):
    """First rule a value broke, located by a JSONPath-like ``path``."""

    path: str
    rule: ViolationRule
    message: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class Valid(BaseModel):
    ok: Literal[True] = True
    value: Any

    model_config = ConfigDict(frozen=True)


class Invalid(BaseModel):
    ok: Literal[False] = False
    violation: Violation

    model_config = ConfigDict(frozen=True)


ValidationResult = Valid | Invalid


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _json_equal(value: Any, expected: JsonScalar) -> bool:
    """Equality that keeps JSON types apart (``True`` is not ``1``)."""
    if isinstance(expected, bool) or isinstance(value, bool):
        return isinstance(value, bool) and isinstance(expected, bool) and value is expected
    if isinstance(expected, str) or isinstance(value, str):
        return isinstance(value, str) and isinstance(expected, str) and value == expected
    return _is_number(value) and value == expected


def _type_violation(path: str, expected: str, value: Any) -> Violation:
    return Violation(
        path=path,
        rule=ViolationRule.TYPE,
        message=f"expected {expected}, got {_type_name(value)}",
    )


def check(value: Any, node: SchemaNode, path: str = "$") -> Violation | None:
    """Walk ``value`` against ``node`` and return the first violation.

    Args:
        value: Parsed JSON value (dict, list, str, int, float, bool or None)
        node: Schema to enforce
        path: Location prefix used in violation messages

    Returns:
        None when the value conforms, otherwise the first Violation found
    """
    if isinstance(node, AnySchema):
        return None

    elif isinstance(node, StringSchema):
        if not isinstance(value, str):
            return _type_violation(path, "string", value)
        if node.min_length is not None and len(value) < node.min_length:
            return Violation(
                path=path,
                rule=ViolationRule.LENGTH,
                message=f"string shorter than {node.min_length} characters",
            )
        if node.max_length is not None and len(value) > node.max_length:
            return Violation(
                path=path,
                rule=ViolationRule.LENGTH,
                message=f"string longer than {node.max_length} characters",
            )
        return None

    elif isinstance(node, NumberSchema):
        expected = "integer" if node.integer else "number"
        # ints compare exactly; float() overflows past 1e308
        if not _is_number(value) or (isinstance(value, float) and not math.isfinite(value)):
            return _type_violation(path, expected, value)
        if node.integer and isinstance(value, float) and not value.is_integer():
            return _type_violation(path, expected, value)
        if node.minimum is not None and value < node.minimum:
            return Violation(path=path, rule=ViolationRule.RANGE, message=f"{value} is below minimum {node.minimum}")
        if node.maximum is not None and value > node.maximum:
            return Violation(path=path, rule=ViolationRule.RANGE, message=f"{value} is above maximum {node.maximum}")
        return None

    elif isinstance(node, BooleanSchema):
        if not isinstance(value, bool):
            return _type_violation(path, "boolean", value)
        return None

    elif isinstance(node, LiteralSchema):
        if not _json_equal(value, node.value):
            return Violation(path=path, rule=ViolationRule.LITERAL, message=f"expected literal {node.value!r}")
        return None

    elif isinstance(node, EnumSchema):
        if not isinstance(value, str) or value not in node.values:
            allowed = ", ".join(repr(v) for v in node.values)
            return Violation(path=path, rule=ViolationRule.ENUM, message=f"expected one of {allowed}")
        return None

    elif isinstance(node, ArraySchema):
        if not isinstance(value, list | tuple):
            return _type_violation(path, "array", value)
        for index, item in enumerate(value):
            violation = check(item, node.items, f"{path}[{index}]")
            if violation is not None:
                return violation
        return None

    elif isinstance(node, ObjectSchema):
        if not isinstance(value, dict):
            return _type_violation(path, "object", value)
        for spec in node.fields:
            if spec.name not in value:
                if spec.optional:
                    continue
                return Violation(
                    path=f"{path}.{spec.name}",
                    rule=ViolationRule.MISSING_FIELD,
                    message="required field is missing",
                )
            violation = check(value[spec.name], spec.shape, f"{path}.{spec.name}")
            if violation is not None:
                return violation
        if not node.allow_extra:
            declared = {spec.name for spec in node.fields}
            for key in value:
                if key not in declared:
                    return Violation(
                        path=f"{path}.{key}",
                        rule=ViolationRule.UNEXPECTED_FIELD,
                        message="field is not declared by the schema",
                    )
        return None

    elif isinstance(node, RecordSchema):
        if not isinstance(value, dict):
            return _type_violation(path, "object", value)
        for key, item in value.items():
            if not isinstance(key, str):
                return _type_violation(path, "string keys", key)
            violation = check(item, node.values, f"{path}.{key}")
            if violation is not None:
                return violation
        return None

    elif isinstance(node, UnionSchema):
        for variant in node.variants:
            if check(value, variant, path) is None:
                return None
        label = node.name or "union"
        return Violation(
            path=path,
            rule=ViolationRule.UNION,
            message=f"value matches none of the {len(node.variants)} variants of {label}",
        )

    raise TypeError(f"Unsupported schema node: {type(node).__name__}")


def validate(value: Any, schema: SchemaNode) -> ValidationResult:
    """All-or-nothing validation of ``value`` against ``schema``."""
    violation = check(value, schema)
    if violation is None:
        return Valid(value=value)
    return Invalid(violation=violation)


# ---------------------------------------------------------------------------
# JSON Schema rendering
# ---------------------------------------------------------------------------


def to_json_schema(node: SchemaNode) -> dict[str, Any]:
    """Render a schema node as JSON Schema.

    Used to show the model the target shape in its system prompt and to
    advertise typed tool parameters. The rendering is informational; the
    interpreter above remains the only authority on validity.
    """
    rendered: dict[str, Any]

    if isinstance(node, AnySchema):
        rendered = {}
    elif isinstance(node, StringSchema):
        rendered = {"type": "string"}
        if node.min_length is not None:
            rendered["minLength"] = node.min_length
        if node.max_length is not None:
            rendered["maxLength"] = node.max_length
    elif isinstance(node, NumberSchema):
        rendered = {"type": "integer" if node.integer else "number"}
        if node.minimum is not None:
            rendered["minimum"] = node.minimum
        if node.maximum is not None:
            rendered["maximum"] = node.maximum
    elif isinstance(node, BooleanSchema):
        rendered = {"type": "boolean"}
    elif isinstance(node, LiteralSchema):
        rendered = {"const": node.value}
    elif isinstance(node, EnumSchema):
        rendered = {"type": "string", "enum": list(node.values)}
    elif isinstance(node, ArraySchema):
        rendered = {"type": "array", "items": to_json_schema(node.items)}
    elif isinstance(node, ObjectSchema):
        properties: dict[str, Any] = {}
        for spec in node.fields:
            prop = to_json_schema(spec.shape)
            if spec.description:
                prop = {**prop, "description": spec.description}
            properties[spec.name] = prop
        rendered = {
            "type": "object",
            "properties": properties,
            "required": [spec.name for spec in node.fields if not spec.optional],
            "additionalProperties": node.allow_extra,
        }
    elif isinstance(node, RecordSchema):
        rendered = {"type": "object", "additionalProperties": to_json_schema(node.values)}
    elif isinstance(node, UnionSchema):
        rendered = {"anyOf": [to_json_schema(variant) for variant in node.variants]}
    else:
        raise TypeError(f"Unsupported schema node: {type(node).__name__}")

    if node.description:
        rendered["description"] = node.description
    return rendered


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class SchemaRegistry(RootModel[dict[str, SchemaNode]]):
    """Named response schemas - wraps dict for lookup by name.

    Immutable: ``register`` returns a new registry, so a registry built at
    import time can be shared by every concurrent run without locking.

    Example:
        >>> registry = SchemaRegistry().register(AGENTIC_SEARCH_SCHEMA)
        >>> registry.validate({"object": "ai_search", ...}, "agentic_search").ok
        True
    """

    root: dict[str, SchemaNode] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def register(self, schema: SchemaNode) -> SchemaRegistry:
        if not schema.name:
            raise ValueError("Only named schemas can be registered")
        if schema.name in self.root:
            raise ValueError(f"Schema '{schema.name}' already registered")
        return SchemaRegistry({**self.root, schema.name: schema})

    def get(self, name: str) -> SchemaNode:
        if name not in self.root:
            raise KeyError(f"Schema '{name}' not registered")
        return self.root[name]

    def names(self) -> tuple[str, ...]:
        return tuple(self.root)

    def __contains__(self, name: object) -> bool:
        return name in self.root

    def resolve(self, schema: SchemaNode | str) -> SchemaNode:
        return self.get(schema) if isinstance(schema, str) else schema

    def validate(self, value: Any, schema: SchemaNode | str) -> ValidationResult:
        return validate(value, self.resolve(schema))


__all__ = [
    "AnySchema",
    "ArraySchema",
    "BooleanSchema",
    "EnumSchema",
    "FieldSpec",
    "Invalid",
    "LiteralSchema",
    "NumberSchema",
    "ObjectSchema",
    "RecordSchema",
    "SchemaNode",
    "SchemaRegistry",
    "StringSchema",
    "UnionSchema",
    "Valid",
    "ValidationResult",
    "Violation",
    "check",
    "optional",
    "required",
    "to_json_schema",
    "validate",
]
