"""Unit tests for Langfuse payload construction."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from genkit_langfuse._internal.classifier import ObservationKind
from genkit_langfuse._internal.metadata import extract_metadata
from genkit_langfuse._internal.payloads import (
    GenerationPayload,
    PayloadBuilder,
    SpanPayload,
    TracePayload,
    UsageRecord,
    compute_cost,
    model_from_path,
    provider_from_path,
)
from genkit_langfuse.config import TokenUsage
from tests.fakes import (
    DEFAULT_PARENT_ID,
    DEFAULT_SPAN_ID,
    DEFAULT_TRACE_ID,
    make_span,
)

SPAN_ID = format(DEFAULT_SPAN_ID, "016x")
TRACE_ID = format(DEFAULT_TRACE_ID, "032x")
PARENT_ID = format(DEFAULT_PARENT_ID, "016x")


def _build(kind: ObservationKind, builder: PayloadBuilder | None = None, **kwargs):
    span = make_span(**kwargs)
    return (builder or PayloadBuilder()).build(kind, span, extract_metadata(span))


@pytest.mark.unit
class TestPathParsing:
    """Tests for model/provider extraction from Genkit paths."""

    def test_model_and_provider_from_path(self) -> None:
        path = "/model/openai/gpt-4-turbo"

        assert model_from_path(path) == "gpt-4-turbo"
        assert provider_from_path(path) == "openai"

    def test_nested_path(self) -> None:
        path = "/{jokeFlow,t:flow}/model/googleai/gemini-1.5-flash"

        assert model_from_path(path) == "gemini-1.5-flash"
        assert provider_from_path(path) == "googleai"

    @pytest.mark.parametrize("path", [None, "", "/flow/jokeFlow", "/model/openai"])
    def test_unmatched_path_is_unknown(self, path: str | None) -> None:
        assert model_from_path(path) == "unknown"
        assert provider_from_path(path) == "unknown"


@pytest.mark.unit
class TestCommonFields:
    """Fields shared by all payload kinds."""

    def test_identifiers_and_timestamps(self) -> None:
        payload = _build(
            ObservationKind.SPAN,
            name="lookup",
            start_time=1_700_000_000_000_000_000,
            end_time=1_700_000_001_000_000_000,
        )

        assert isinstance(payload, SpanPayload)
        assert payload.id == SPAN_ID
        assert payload.trace_id == TRACE_ID
        assert payload.name == "lookup"
        assert payload.parent_observation_id == PARENT_ID
        assert payload.start_time == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert payload.end_time == datetime(2023, 11, 14, 22, 13, 21, tzinfo=timezone.utc)

    @pytest.mark.parametrize("parent_id", [None, 0])
    def test_parent_omitted_when_absent_or_zero(self, parent_id: int | None) -> None:
        payload = _build(ObservationKind.SPAN, parent_id=parent_id)

        assert payload.parent_observation_id is None
        assert "parent_observation_id" not in payload.to_client_kwargs()

    def test_input_output_decoded_as_json(self) -> None:
        payload = _build(
            ObservationKind.SPAN,
            attributes={"genkit:input": '{"q":"hi"}', "genkit:output": "[1,2]"},
        )

        assert payload.input == {"q": "hi"}
        assert payload.output == [1, 2]

    def test_invalid_json_kept_as_raw_string(self) -> None:
        payload = _build(
            ObservationKind.SPAN,
            attributes={"genkit:input": "hello", "genkit:output": "{oops"},
        )

        assert payload.input == "hello"
        assert payload.output == "{oops"

    def test_session_and_user_only_when_present(self) -> None:
        without = _build(ObservationKind.SPAN)
        with_context = _build(
            ObservationKind.SPAN,
            attributes={"genkit:sessionId": "s-1", "genkit:userId": "u-1"},
        )

        assert without.session_id is None and without.user_id is None
        assert "sessionId" not in without.to_client_kwargs()["metadata"]
        assert with_context.session_id == "s-1"
        assert with_context.user_id == "u-1"
        assert with_context.to_client_kwargs()["metadata"]["sessionId"] == "s-1"

    def test_metadata_bag_merges_custom_metadata(self) -> None:
        payload = _build(
            ObservationKind.SPAN,
            attributes={
                "genkit:type": "action",
                "genkit:path": "/{f}/action",
                "genkit:state": "success",
                "genkit:metadata:tenant": "acme",
            },
        )

        assert payload.metadata == {
            "tenant": "acme",
            "spanType": "action",
            "path": "/{f}/action",
            "state": "success",
        }


@pytest.mark.unit
class TestTracePayload:
    """Tests for trace payloads."""

    def test_trace_uses_trace_id_and_duration(self) -> None:
        payload = _build(
            ObservationKind.TRACE,
            name="jokeFlow",
            parent_id=None,
            start_time=1_000_000_000,
            end_time=1_250_000_000,
            attributes={"genkit:type": "flow", "genkit:userId": "u-1"},
        )

        assert isinstance(payload, TracePayload)
        assert payload.id == TRACE_ID
        assert payload.metadata["duration"] == 250.0

        kwargs = payload.to_client_kwargs()
        assert kwargs["id"] == TRACE_ID
        assert kwargs["user_id"] == "u-1"
        assert kwargs["timestamp"] == payload.start_time
        assert "trace_id" not in kwargs
        assert "end_time" not in kwargs

    def test_nested_trace_records_parent_in_metadata(self) -> None:
        payload = _build(ObservationKind.TRACE, attributes={"genkit:type": "flow"})

        assert payload.to_client_kwargs()["metadata"]["parentObservationId"] == PARENT_ID


@pytest.mark.unit
class TestGenerationPayload:
    """Tests for generation payloads."""

    def test_model_from_name_and_provider_from_path(self) -> None:
        payload = _build(
            ObservationKind.GENERATION,
            attributes={
                "genkit:name": "gpt-4",
                "genkit:path": "/model/openai/gpt-4-turbo",
            },
        )

        assert isinstance(payload, GenerationPayload)
        assert payload.model == "gpt-4"
        assert payload.provider == "openai"
        assert payload.metadata["provider"] == "openai"

    def test_model_falls_back_to_path(self) -> None:
        payload = _build(
            ObservationKind.GENERATION,
            attributes={"genkit:path": "/model/openai/gpt-4-turbo"},
        )

        assert payload.model == "gpt-4-turbo"
        assert payload.provider == "openai"

    def test_unknown_model_and_provider(self) -> None:
        payload = _build(ObservationKind.GENERATION, attributes={"genkit:type": "model"})

        assert payload.model == "unknown"
        assert payload.provider == "unknown"

    def test_usage_mapped_from_output(self) -> None:
        payload = _build(
            ObservationKind.GENERATION,
            attributes={
                "genkit:type": "model",
                "genkit:output": '{"usage":{"inputTokens":10,"outputTokens":5}}',
            },
        )

        assert payload.usage == UsageRecord(input=10, output=5, total=15)
        assert payload.to_client_kwargs()["usage"] == {
            "input": 10,
            "output": 5,
            "total": 15,
            "unit": "TOKENS",
        }

    def test_no_usage_without_usage_object(self) -> None:
        payload = _build(
            ObservationKind.GENERATION,
            attributes={"genkit:type": "model", "genkit:output": '{"message":{}}'},
        )

        assert payload.usage is None
        assert "usage" not in payload.to_client_kwargs()

    def test_usage_values_round_trip(self) -> None:
        """
        GIVEN a model output with large token counts
        WHEN the payload is built and its output re-serialized and parsed
        THEN the usage values are reproduced exactly
        """
        usage = {"inputTokens": 2**53 - 1, "outputTokens": 123456789, "totalTokens": 2**53 + 123456788}
        payload = _build(
            ObservationKind.GENERATION,
            attributes={
                "genkit:type": "model",
                "genkit:output": json.dumps({"text": "hi", "usage": usage}),
            },
        )

        assert json.loads(json.dumps(payload.output))["usage"] == usage
        assert payload.usage == UsageRecord(
            input=usage["inputTokens"],
            output=usage["outputTokens"],
            total=usage["totalTokens"],
        )

    def test_model_parameters_from_input_config(self) -> None:
        payload = _build(
            ObservationKind.GENERATION,
            attributes={
                "genkit:type": "model",
                "genkit:input": '{"messages":[],"config":{"temperature":2}}',
            },
        )

        assert payload.model_parameters == {"temperature": 2}
        assert payload.to_client_kwargs()["model_parameters"] == {"temperature": 2}


@pytest.mark.unit
class TestCost:
    """Tests for cost enrichment."""

    OUTPUT = '{"usage":{"inputTokens":1000,"outputTokens":500}}'

    def test_cost_attached_from_cost_function(self) -> None:
        calls: list[tuple[str, TokenUsage]] = []

        def calculate_cost(model: str, usage: TokenUsage) -> float:
            calls.append((model, usage))
            return usage.input_tokens * 0.001 + usage.output_tokens * 0.002

        payload = _build(
            ObservationKind.GENERATION,
            PayloadBuilder(calculate_cost),
            attributes={"genkit:name": "gpt-4", "genkit:output": self.OUTPUT},
        )

        assert calls == [("gpt-4", TokenUsage(1000, 500, 1500))]
        assert payload.cost == pytest.approx(2.0)
        assert payload.to_client_kwargs()["usage"]["total_cost"] == pytest.approx(2.0)

    def test_failing_cost_function_leaves_cost_unset(self) -> None:
        """
        GIVEN a cost function that raises
        WHEN a generation payload is built
        THEN the payload is built with usage and without cost
        """

        def calculate_cost(model: str, usage: TokenUsage) -> float:
            raise ValueError("no price for model")

        payload = _build(
            ObservationKind.GENERATION,
            PayloadBuilder(calculate_cost),
            attributes={"genkit:type": "model", "genkit:output": self.OUTPUT},
        )

        assert payload.usage is not None
        assert payload.cost is None
        assert "total_cost" not in payload.to_client_kwargs()["usage"]

    def test_compute_cost_reports_error(self) -> None:
        error = RuntimeError("boom")

        def calculate_cost(model: str, usage: TokenUsage) -> float:
            raise error

        result = compute_cost(calculate_cost, "gpt-4", TokenUsage(1, 1, 2))

        assert not result.ok
        assert result.value is None
        assert result.error is error

    def test_compute_cost_without_function(self) -> None:
        result = compute_cost(None, "gpt-4", TokenUsage(1, 1, 2))

        assert not result.ok
        assert result.error is None
