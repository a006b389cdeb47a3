"""Output Extractor - Free-Form Model Text to Schema-Valid Data.

Pipeline, each step a potential failure point:
    1. Strip: trim, then remove a Markdown code fence if one wraps the text
    2. Parse: JSON decode (failure → MALFORMED_OUTPUT, raw text attached)
    3. Validate: schema interpreter (failure → SCHEMA_MISMATCH, first violation)
    4. Success: ExtractionSuccess holding the validated value

The extractor never retries. Re-prompting the model is a caller decision.
"""

from __future__ import annotations

import json
from functools import lru_cache

import structlog

from .domain_type import ErrorKind
from .errors import ExtractionFailure, ExtractionResult, ExtractionSuccess, describe
from .schema import Invalid, SchemaNode, SchemaRegistry
from .search_schema import default_registry

logger = structlog.get_logger(__name__)

FENCE = "```"


def strip_fences(text: str) -> str:
    """Trim ``text`` and unwrap a fenced code block if one encloses it.

    Only the first and last marker lines are removed; the interior is kept
    verbatim. The opening marker may carry a language tag (```json).
    Unfenced text is returned trimmed and otherwise unchanged.

    Example:
        >>> strip_fences('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    stripped = text.strip()
    lines = stripped.splitlines()
    if len(lines) >= 2 and lines[0].startswith(FENCE) and lines[-1].strip() == FENCE:
        return "\n".join(lines[1:-1])
    return stripped


class OutputExtractor:
    """Turns model text into an ExtractionResult for a target schema."""

    def __init__(self, registry: SchemaRegistry | None = None):
        self.registry = registry or default_registry()

    def extract(self, text: str, schema: SchemaNode | str) -> ExtractionResult:
        """Strip, parse and validate ``text`` against ``schema``.

        Args:
            text: Raw model output
            schema: Schema node, or the name of a registered schema

        Returns:
            ExtractionSuccess with the validated value, or ExtractionFailure
            classified as MALFORMED_OUTPUT or SCHEMA_MISMATCH
        """
        target = self.registry.resolve(schema)
        body = strip_fences(text)

        try:
            parsed = json.loads(body)
        except json.JSONDecodeError as exc:
            return _malformed(text, f"{exc.msg} (line {exc.lineno}, column {exc.colno})")
        except (ValueError, RecursionError) as exc:
            # integer literals past the int digit limit, nesting past the recursion limit
            return _malformed(text, describe(exc))

        result = self.registry.validate(parsed, target)
        if isinstance(result, Invalid):
            failure = ExtractionFailure(
                kind=ErrorKind.SCHEMA_MISMATCH,
                message=f"Response does not match schema '{target.name or target.kind}': {result.violation}",
                raw=text,
                violation=result.violation,
            )
            logger.warning("extraction_failed", kind=failure.kind, reason=failure.message)
            return failure

        return ExtractionSuccess(value=result.value, schema_name=target.name)


def _malformed(text: str, reason: str) -> ExtractionFailure:
    failure = ExtractionFailure(kind=ErrorKind.MALFORMED_OUTPUT, message=f"Invalid JSON response: {reason}", raw=text)
    logger.warning("extraction_failed", kind=failure.kind, reason=failure.message)
    return failure


@lru_cache(maxsize=1)
def default_extractor() -> OutputExtractor:
    """Extractor bound to the default Hermes registry (cached singleton)."""
    return OutputExtractor()


def extract(text: str, schema: SchemaNode | str) -> ExtractionResult:
    """Module-level convenience using the default Hermes registry."""
    return default_extractor().extract(text, schema)


__all__ = ["FENCE", "OutputExtractor", "default_extractor", "extract", "strip_fences"]
