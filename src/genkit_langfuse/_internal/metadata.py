"""Structured metadata extraction from Genkit OpenTelemetry spans.

Genkit records everything it knows about an action as ``genkit:*`` span
attributes. This module reads those attributes once, at the boundary, into
an ``ExtractedMetadata`` record so nothing deeper in the pipeline touches
the raw attribute mapping.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from opentelemetry.trace import INVALID_SPAN_ID, format_span_id

from genkit_langfuse.config import TokenUsage

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan


NAME_ATTR = "genkit:name"
PATH_ATTR = "genkit:path"
TYPE_ATTR = "genkit:type"
INPUT_ATTR = "genkit:input"
OUTPUT_ATTR = "genkit:output"
STATE_ATTR = "genkit:state"
IS_ROOT_ATTR = "genkit:isRoot"
SESSION_ID_ATTR = "genkit:sessionId"
THREAD_NAME_ATTR = "genkit:threadName"
USER_ID_ATTR = "genkit:userId"
CUSTOM_METADATA_PREFIX = "genkit:metadata:"


@dataclass(frozen=True)
class ExtractedMetadata:
    """Normalized view of the Genkit attributes on one span."""

    name: str | None = None
    path: str | None = None
    span_type: str | None = None
    input: str | None = None
    output: str | None = None
    state: str | None = None
    is_root: bool = False
    session_id: str | None = None
    thread_name: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _attributes(span: "ReadableSpan") -> Mapping[str, Any]:
    return span.attributes or {}


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _as_root_flag(value: Any) -> bool:
    return value is True or value == "true"


def extract_custom_metadata(attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Collect ``genkit:metadata:<key>`` attributes keyed by ``<key>``."""
    return {
        key[len(CUSTOM_METADATA_PREFIX):]: value
        for key, value in attributes.items()
        if key.startswith(CUSTOM_METADATA_PREFIX)
    }


def extract_metadata(span: "ReadableSpan") -> ExtractedMetadata:
    """Extract all relevant metadata from a span.

    Missing attributes produce ``None`` fields; this never raises for a
    span with a mapping of attributes.
    """
    attributes = _attributes(span)
    return ExtractedMetadata(
        name=_as_str(attributes.get(NAME_ATTR)),
        path=_as_str(attributes.get(PATH_ATTR)),
        span_type=_as_str(attributes.get(TYPE_ATTR)),
        input=_as_str(attributes.get(INPUT_ATTR)),
        output=_as_str(attributes.get(OUTPUT_ATTR)),
        state=_as_str(attributes.get(STATE_ATTR)),
        is_root=_as_root_flag(attributes.get(IS_ROOT_ATTR)),
        session_id=_as_str(attributes.get(SESSION_ID_ATTR)),
        thread_name=_as_str(attributes.get(THREAD_NAME_ATTR)),
        user_id=_as_str(attributes.get(USER_ID_ATTR)),
        metadata=extract_custom_metadata(attributes),
    )


def is_model_span(span: "ReadableSpan") -> bool:
    """Check if a span represents an LLM/model call."""
    attributes = _attributes(span)
    path = attributes.get(PATH_ATTR)
    return attributes.get(TYPE_ATTR) == "model" or (
        isinstance(path, str) and "/model/" in path
    )


def is_root_span(span: "ReadableSpan") -> bool:
    """Check if a span is a root trace span.

    Accepts the string ``"true"`` and the boolean ``True``, the same
    normalization ``extract_metadata`` applies to ``is_root``.
    """
    return _as_root_flag(_attributes(span).get(IS_ROOT_ATTR))


def parse_json(value: Any) -> Any:
    """Decode a JSON string, returning the value unchanged if it is not one."""
    if not value or not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def _load_object(value: Any) -> dict[str, Any] | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _token_count(value: Any) -> int | float | None:
    # bool is an int subclass but never a token count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def usage_from_output(output: Any) -> TokenUsage | None:
    """Build ``TokenUsage`` from a decoded output's ``usage`` object.

    Non-numeric counts are treated as missing. ``total_tokens`` falls back
    to input + output when it is missing.
    """
    if not isinstance(output, dict):
        return None
    usage = output.get("usage")
    if not isinstance(usage, dict):
        return None

    input_tokens = _token_count(usage.get("inputTokens")) or 0
    output_tokens = _token_count(usage.get("outputTokens")) or 0
    total_tokens = _token_count(usage.get("totalTokens"))
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens or input_tokens + output_tokens,
    )


def extract_usage(span: "ReadableSpan") -> TokenUsage | None:
    """Extract token usage from the span output, if it reports any."""
    return usage_from_output(_load_object(_attributes(span).get(OUTPUT_ATTR)))


def model_config_from_input(decoded: Any) -> dict[str, Any] | None:
    """Return the ``config`` object of a decoded model input."""
    if not isinstance(decoded, dict):
        return None
    return decoded.get("config")


def extract_model_config(span: "ReadableSpan") -> dict[str, Any] | None:
    """Extract the model ``config`` object from the span input."""
    return model_config_from_input(_load_object(_attributes(span).get(INPUT_ATTR)))


def parent_span_id(span: "ReadableSpan") -> str | None:
    """Return the hex parent span id, or None for parentless spans.

    An all-zero parent id is treated the same as a missing parent.
    """
    parent = span.parent
    if parent is None or parent.span_id == INVALID_SPAN_ID:
        return None
    return format_span_id(parent.span_id)
