"""Langfuse payload construction for classified spans."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar

from opentelemetry.trace import format_span_id, format_trace_id

from genkit_langfuse._internal.classifier import ObservationKind
from genkit_langfuse._internal.metadata import (
    model_config_from_input,
    parent_span_id,
    parse_json,
    usage_from_output,
)

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan

    from genkit_langfuse._internal.metadata import ExtractedMetadata
    from genkit_langfuse.config import CostFunction, TokenUsage

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

MODEL_PATH_PATTERN = re.compile(r"/model/([^/]+)/([^/]+)")
PROVIDER_PATH_PATTERN = re.compile(r"/model/([^/]+)/")


def ns_to_datetime(timestamp_ns: int | None) -> datetime | None:
    """Convert an OpenTelemetry nanosecond timestamp to an aware datetime."""
    if timestamp_ns is None:
        return None
    return datetime.fromtimestamp(timestamp_ns / 1e9, tz=timezone.utc)


def model_from_path(path: str | None) -> str:
    """Extract the model name from a ``/model/<provider>/<model>`` path."""
    match = MODEL_PATH_PATTERN.search(path or "")
    return match.group(2) if match else UNKNOWN


def provider_from_path(path: str | None) -> str:
    """Extract the provider name from a ``/model/<provider>/`` path."""
    match = PROVIDER_PATH_PATTERN.search(path or "")
    return match.group(1) if match else UNKNOWN


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


@dataclass(frozen=True)
class UsageRecord:
    """Token counts in the shape Langfuse expects."""

    input: int
    output: int
    total: int

    @classmethod
    def from_token_usage(cls, usage: "TokenUsage") -> "UsageRecord":
        return cls(
            input=usage.input_tokens,
            output=usage.output_tokens,
            total=usage.total_tokens,
        )


@dataclass(frozen=True)
class CostResult:
    """Outcome of a cost function call: a value or the error it raised."""

    value: float | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None


def compute_cost(
    calculate_cost: "CostFunction | None", model: str, usage: "TokenUsage"
) -> CostResult:
    """Run a user cost function, capturing failures instead of raising."""
    if calculate_cost is None:
        return CostResult()
    try:
        return CostResult(value=float(calculate_cost(model, usage)))
    except Exception as exc:
        logger.warning("Cost calculation failed for model '%s': %s", model, exc)
        return CostResult(error=exc)


@dataclass
class ObservationPayload:
    """Fields shared by every Langfuse record."""

    kind: ClassVar[ObservationKind]

    id: str
    trace_id: str
    name: str
    input: Any = None
    output: Any = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    parent_observation_id: str | None = None
    session_id: str | None = None
    user_id: str | None = None

    def _context_metadata(self) -> dict[str, Any]:
        # Observations carry session and user context in their metadata;
        # only traces have first-class fields for them.
        return _compact(
            {**self.metadata, "sessionId": self.session_id, "userId": self.user_id}
        )

    def to_client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for the matching Langfuse client call."""
        return _compact(
            {
                "id": self.id,
                "trace_id": self.trace_id,
                "parent_observation_id": self.parent_observation_id,
                "name": self.name,
                "input": self.input,
                "output": self.output,
                "start_time": self.start_time,
                "end_time": self.end_time,
                "metadata": self._context_metadata(),
            }
        )


@dataclass
class TracePayload(ObservationPayload):
    kind: ClassVar[ObservationKind] = ObservationKind.TRACE

    def to_client_kwargs(self) -> dict[str, Any]:
        metadata = dict(self.metadata)
        if self.parent_observation_id:
            metadata["parentObservationId"] = self.parent_observation_id
        return _compact(
            {
                "id": self.id,
                "name": self.name,
                "input": self.input,
                "output": self.output,
                "timestamp": self.start_time,
                "metadata": metadata,
                "session_id": self.session_id,
                "user_id": self.user_id,
            }
        )


@dataclass
class SpanPayload(ObservationPayload):
    kind: ClassVar[ObservationKind] = ObservationKind.SPAN


@dataclass
class GenerationPayload(ObservationPayload):
    kind: ClassVar[ObservationKind] = ObservationKind.GENERATION

    model: str = UNKNOWN
    provider: str = UNKNOWN
    model_parameters: dict[str, Any] | None = None
    usage: UsageRecord | None = None
    cost: float | None = None

    def to_client_kwargs(self) -> dict[str, Any]:
        kwargs = super().to_client_kwargs()
        kwargs["model"] = self.model
        if self.model_parameters:
            kwargs["model_parameters"] = self.model_parameters
        if self.usage is not None:
            usage: dict[str, Any] = {
                "input": self.usage.input,
                "output": self.usage.output,
                "total": self.usage.total,
                "unit": "TOKENS",
            }
            if self.cost is not None:
                usage["total_cost"] = self.cost
            kwargs["usage"] = usage
        return kwargs


class PayloadBuilder:
    """Build Langfuse payloads from spans and their extracted metadata.

    Args:
        calculate_cost: Optional ``(model_name, TokenUsage) -> float``
            function. Its failures are logged and leave ``cost`` unset.
    """

    def __init__(self, calculate_cost: "CostFunction | None" = None) -> None:
        self._calculate_cost = calculate_cost

    def build(
        self,
        kind: ObservationKind,
        span: "ReadableSpan",
        metadata: "ExtractedMetadata",
    ) -> ObservationPayload:
        if kind is ObservationKind.GENERATION:
            return self.build_generation(span, metadata)
        if kind is ObservationKind.TRACE:
            return self.build_trace(span, metadata)
        return self.build_span(span, metadata)

    def _common(
        self, span: "ReadableSpan", metadata: "ExtractedMetadata"
    ) -> dict[str, Any]:
        context = span.context
        return {
            "id": format_span_id(context.span_id),
            "trace_id": format_trace_id(context.trace_id),
            "name": span.name,
            "input": parse_json(metadata.input),
            "output": parse_json(metadata.output),
            "start_time": ns_to_datetime(span.start_time),
            "end_time": ns_to_datetime(span.end_time),
            "parent_observation_id": parent_span_id(span),
            "session_id": metadata.session_id or None,
            "user_id": metadata.user_id or None,
        }

    @staticmethod
    def _base_metadata(metadata: "ExtractedMetadata") -> dict[str, Any]:
        return _compact(
            {
                **metadata.metadata,
                "spanType": metadata.span_type,
                "path": metadata.path,
                "state": metadata.state,
                "threadName": metadata.thread_name,
            }
        )

    def build_trace(
        self, span: "ReadableSpan", metadata: "ExtractedMetadata"
    ) -> TracePayload:
        fields = self._common(span, metadata)
        fields["id"] = fields["trace_id"]
        observation_metadata = self._base_metadata(metadata)
        if span.start_time is not None and span.end_time is not None:
            observation_metadata["duration"] = (span.end_time - span.start_time) / 1e6
        return TracePayload(metadata=observation_metadata, **fields)

    def build_span(
        self, span: "ReadableSpan", metadata: "ExtractedMetadata"
    ) -> SpanPayload:
        return SpanPayload(
            metadata=self._base_metadata(metadata), **self._common(span, metadata)
        )

    def build_generation(
        self, span: "ReadableSpan", metadata: "ExtractedMetadata"
    ) -> GenerationPayload:
        fields = self._common(span, metadata)
        model = metadata.name or model_from_path(metadata.path)
        provider = provider_from_path(metadata.path)

        observation_metadata = self._base_metadata(metadata)
        observation_metadata["provider"] = provider

        payload = GenerationPayload(
            metadata=observation_metadata,
            model=model,
            provider=provider,
            model_parameters=model_config_from_input(fields["input"]),
            **fields,
        )

        token_usage = usage_from_output(payload.output)
        if token_usage is not None:
            payload.usage = UsageRecord.from_token_usage(token_usage)
            cost = compute_cost(self._calculate_cost, model, token_usage)
            if cost.ok:
                payload.cost = cost.value

        return payload
