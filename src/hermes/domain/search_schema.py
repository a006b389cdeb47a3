"""Hermes Search Response Schemas.

The concrete response shapes the search endpoint can return, expressed in the
schema language of ``hermes.domain.schema``.

Shapes:
    AGENTIC_SEARCH_SCHEMA: Free-text answer with the echoed query
    LEGACY_SEARCH_SCHEMA: Structured areas, geographies, brands, categories
    ERROR_RESPONSE_SCHEMA: ``{error: {code, message}}``
    AI_SEARCH_RESPONSE_SCHEMA: Union of the three, tried in that order

LEGACY_EMPTY_RESPONSE is the fixed, schema-valid payload served when a legacy
search fails and the caller chooses to mask the failure.
"""

from __future__ import annotations

from typing import Any

from .schema import (
    ArraySchema,
    BooleanSchema,
    LiteralSchema,
    NumberSchema,
    ObjectSchema,
    SchemaRegistry,
    StringSchema,
    UnionSchema,
    optional,
    required,
)

AGENTIC_SEARCH_SCHEMA = ObjectSchema(
    name="agentic_search",
    description="Conversational search answer",
    fields=(
        required("object", LiteralSchema(value="ai_search")),
        required("query", StringSchema(), "The user's query, echoed verbatim"),
        optional("latitude", NumberSchema(minimum=-90, maximum=90)),
        optional("longitude", NumberSchema(minimum=-180, maximum=180)),
        required("message", StringSchema(), "Answer for the user"),
        optional("error", BooleanSchema(), "True when the answer reports a failure"),
    ),
)

AREA_SCHEMA = ObjectSchema(
    name="area",
    fields=(
        required("uuid", StringSchema()),
        required("object", LiteralSchema(value="area")),
        required("primary_name", StringSchema()),
        required("region", StringSchema()),
        required("bbox_xmin", NumberSchema()),
        required("bbox_xmax", NumberSchema()),
        required("bbox_ymin", NumberSchema()),
        required("bbox_ymax", NumberSchema()),
        optional("zip_code", StringSchema()),
    ),
)

BRAND_SCHEMA = ObjectSchema(
    name="brand",
    fields=(
        required("key", StringSchema()),
        required("name", StringSchema()),
        optional("business_category_ids", ArraySchema(items=StringSchema())),
        required("object", LiteralSchema(value="brand")),
    ),
)

BUSINESS_CATEGORY_SCHEMA = ObjectSchema(
    name="business_category",
    fields=(
        required("key", StringSchema()),
        required("en", StringSchema(), "English display name"),
        required("path", StringSchema()),
        required("object", LiteralSchema(value="business_category")),
    ),
)

LEGACY_SEARCH_SCHEMA = ObjectSchema(
    name="legacy_search",
    description="Structured search result",
    fields=(
        required("object", LiteralSchema(value="ai_search")),
        required("areas", ArraySchema(items=AREA_SCHEMA)),
        required("geographies", ArraySchema(items=AREA_SCHEMA)),
        required("brands", ArraySchema(items=BRAND_SCHEMA)),
        required("business_categories", ArraySchema(items=BUSINESS_CATEGORY_SCHEMA)),
    ),
)

ERROR_RESPONSE_SCHEMA = ObjectSchema(
    name="error_response",
    fields=(
        required(
            "error",
            ObjectSchema(
                fields=(
                    required("code", StringSchema()),
                    required("message", StringSchema()),
                ),
            ),
        ),
    ),
)

AI_SEARCH_RESPONSE_SCHEMA = UnionSchema(
    name="ai_search_response",
    variants=(AGENTIC_SEARCH_SCHEMA, LEGACY_SEARCH_SCHEMA, ERROR_RESPONSE_SCHEMA),
)

LEGACY_EMPTY_RESPONSE: dict[str, Any] = {
    "object": "ai_search",
    "areas": [],
    "geographies": [],
    "brands": [],
    "business_categories": [],
}


def legacy_empty_response() -> dict[str, Any]:
    """Fresh copy of the empty legacy payload (callers may mutate it)."""
    return {key: list(value) if isinstance(value, list) else value for key, value in LEGACY_EMPTY_RESPONSE.items()}


def default_registry() -> SchemaRegistry:
    """Registry holding every Hermes response schema."""
    registry = SchemaRegistry()
    for schema in (
        AGENTIC_SEARCH_SCHEMA,
        AREA_SCHEMA,
        BRAND_SCHEMA,
        BUSINESS_CATEGORY_SCHEMA,
        LEGACY_SEARCH_SCHEMA,
        ERROR_RESPONSE_SCHEMA,
        AI_SEARCH_RESPONSE_SCHEMA,
    ):
        registry = registry.register(schema)
    return registry


__all__ = [
    "AGENTIC_SEARCH_SCHEMA",
    "AI_SEARCH_RESPONSE_SCHEMA",
    "AREA_SCHEMA",
    "BRAND_SCHEMA",
    "BUSINESS_CATEGORY_SCHEMA",
    "ERROR_RESPONSE_SCHEMA",
    "LEGACY_EMPTY_RESPONSE",
    "LEGACY_SEARCH_SCHEMA",
    "default_registry",
    "legacy_empty_response",
]
