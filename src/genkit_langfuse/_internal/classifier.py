"""Classification of Genkit spans into Langfuse observation kinds."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from genkit_langfuse._internal.metadata import parent_span_id

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan

    from genkit_langfuse._internal.metadata import ExtractedMetadata


class ObservationKind(enum.Enum):
    """Langfuse record type a span is exported as."""

    GENERATION = "generation"
    TRACE = "trace"
    SPAN = "span"


Predicate = Callable[["ReadableSpan", "ExtractedMetadata"], bool]


@dataclass(frozen=True)
class ClassificationRule:
    """A named predicate and the kind it selects when it matches."""

    name: str
    predicate: Predicate
    kind: ObservationKind

    def matches(self, span: "ReadableSpan", metadata: "ExtractedMetadata") -> bool:
        return self.predicate(span, metadata)


def _path_contains(metadata: "ExtractedMetadata", segment: str) -> bool:
    return segment in (metadata.path or "")


def is_model_call(span: "ReadableSpan", metadata: "ExtractedMetadata") -> bool:
    return (
        metadata.span_type == "model"
        or _path_contains(metadata, "/model/")
        or "generate" in span.name
        or "model" in span.name
    )


def is_trace_root(span: "ReadableSpan", metadata: "ExtractedMetadata") -> bool:
    return (
        metadata.is_root
        or metadata.span_type == "flow"
        or _path_contains(metadata, "/flow/")
        or parent_span_id(span) is None
    )


def is_tool_call(span: "ReadableSpan", metadata: "ExtractedMetadata") -> bool:
    return (
        metadata.span_type == "tool"
        or _path_contains(metadata, "/tool/")
        or "tool" in span.name
        or "Tool" in span.name
    )


def _always(span: "ReadableSpan", metadata: "ExtractedMetadata") -> bool:
    return True


# Evaluated top-down, first match wins. Order is significant: a root flow
# span that is also a model call is a generation.
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("model", is_model_call, ObservationKind.GENERATION),
    ClassificationRule("trace", is_trace_root, ObservationKind.TRACE),
    ClassificationRule("tool", is_tool_call, ObservationKind.SPAN),
    ClassificationRule("default", _always, ObservationKind.SPAN),
)


def matching_rule(
    span: "ReadableSpan",
    metadata: "ExtractedMetadata",
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> ClassificationRule:
    """Return the first rule that matches the span."""
    for rule in rules:
        if rule.matches(span, metadata):
            return rule
    raise LookupError(f"No classification rule matched span '{span.name}'")


def classify(
    span: "ReadableSpan",
    metadata: "ExtractedMetadata",
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> ObservationKind:
    """Determine the Langfuse observation kind for a span."""
    return matching_rule(span, metadata, rules).kind
