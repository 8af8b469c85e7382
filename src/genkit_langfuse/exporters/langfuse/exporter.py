"""Langfuse span exporter implementation.

``LangfuseSpanExporter`` turns finished Genkit spans into Langfuse traces,
generations and spans. It is driven by an OpenTelemetry
``BatchSpanProcessor`` which decides when batches are exported.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol, Sequence

from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from genkit_langfuse._internal.classifier import ObservationKind, classify
from genkit_langfuse._internal.metadata import extract_metadata
from genkit_langfuse._internal.observer import (
    LoggingExportObserver,
    NoOpExportObserver,
)
from genkit_langfuse._internal.payloads import PayloadBuilder
from genkit_langfuse.exceptions import ConfigurationError
from genkit_langfuse.sdk.config.load import validate_credentials

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan

    from genkit_langfuse._internal.observer import ExportObserver
    from genkit_langfuse._internal.payloads import ObservationPayload
    from genkit_langfuse.config import LangfuseConfig

logger = logging.getLogger(__name__)


class LangfuseClient(Protocol):
    """The subset of the Langfuse client used by the exporter."""

    def trace(self, **kwargs: Any) -> Any: ...

    def generation(self, **kwargs: Any) -> Any: ...

    def span(self, **kwargs: Any) -> Any: ...

    def flush(self) -> None: ...

    def shutdown(self) -> None: ...


@dataclass(frozen=True)
class BatchResult:
    """Outcome of exporting one batch of spans.

    ``code`` is ``FAILURE`` only when an error escaped per-span isolation;
    spans dropped because of their own errors are counted in ``dropped``.
    """

    code: SpanExportResult
    error: Exception | None = None
    submitted: int = 0
    dropped: int = 0


def check_dependencies() -> None:
    """Verify Langfuse dependencies are installed.

    Raises:
        ImportError: If the langfuse package is not installed.
    """
    try:
        __import__("langfuse")
    except ImportError:
        raise ImportError(
            "Langfuse exporter requires the 'langfuse' package.\n"
            "Install with: pip install 'langfuse>=2,<3'"
        ) from None


def create_langfuse_client(config: "LangfuseConfig") -> LangfuseClient:
    """Create a Langfuse client from the SDK configuration.

    Raises:
        ConfigurationError: If the langfuse package is not installed.
    """
    try:
        check_dependencies()
    except ImportError as exc:
        raise ConfigurationError(str(exc)) from exc

    from langfuse import Langfuse

    kwargs: dict[str, Any] = {
        "secret_key": config.secret_key,
        "public_key": config.public_key,
    }
    if config.base_url:
        kwargs["host"] = config.base_url
    if config.flush_at:
        kwargs["flush_at"] = config.flush_at
    if config.flush_interval:
        # Langfuse takes seconds, the SDK config uses milliseconds
        kwargs["flush_interval"] = config.flush_interval / 1000

    logger.debug("Creating Langfuse client for host: %s", config.base_url)
    return Langfuse(**kwargs)


class LangfuseSpanExporter(SpanExporter):
    """OpenTelemetry span exporter that sends Genkit spans to Langfuse.

    Each span is exported independently: a span that fails extraction,
    payload building or submission is logged and skipped, and the batch is
    still reported as successful. Only an error raised outside that
    per-span isolation fails the batch.

    Args:
        config: Langfuse configuration. Credentials are required unless a
            client is supplied.
        client: Langfuse client to submit records to. Created from
            ``config`` when omitted.
        observer: Receives submission and flush events. Defaults to a
            logging observer when ``config.debug`` is set.
        builder: Payload builder. Defaults to one using
            ``config.calculate_cost``.

    Raises:
        ConfigurationError: If credentials are missing and no client was
            supplied.
    """

    def __init__(
        self,
        config: "LangfuseConfig",
        client: LangfuseClient | None = None,
        observer: "ExportObserver | None" = None,
        builder: PayloadBuilder | None = None,
    ) -> None:
        self._config = config
        if client is None:
            errors = validate_credentials(config)
            if errors:
                raise ConfigurationError("; ".join(errors))
            client = create_langfuse_client(config)
        self._client = client

        if observer is None:
            observer = LoggingExportObserver() if config.debug else NoOpExportObserver()
        self._observer = observer
        self._builder = builder or PayloadBuilder(config.calculate_cost)

        self._submitters: dict[ObservationKind, Callable[..., Any]] = {
            ObservationKind.GENERATION: client.generation,
            ObservationKind.TRACE: client.trace,
            ObservationKind.SPAN: client.span,
        }
        self._lock = threading.Lock()
        self._shutdown = False

    def export(self, spans: Sequence["ReadableSpan"]) -> SpanExportResult:
        """Export spans to Langfuse."""
        return self.export_batch(spans).code

    def export_batch(
        self,
        spans: Sequence["ReadableSpan"],
        result_callback: Callable[[BatchResult], None] | None = None,
    ) -> BatchResult:
        """Export a batch and return its detailed result.

        Args:
            spans: Finished spans, processed in the given order.
            result_callback: Optional callable receiving the result.
        """
        result = self._export_locked(spans)
        if result_callback is not None:
            result_callback(result)
        return result

    def _export_locked(self, spans: Sequence["ReadableSpan"]) -> BatchResult:
        submitted = 0
        dropped = 0
        try:
            with self._lock:
                # Checked under the lock so a batch waiting on shutdown()
                # never reaches a closed client
                if self._shutdown:
                    logger.warning("Exporter already shutdown, ignoring batch")
                    return BatchResult(code=SpanExportResult.FAILURE)

                for span in spans:
                    try:
                        kind, payload = self._submit_span(span)
                    except Exception as exc:
                        dropped += 1
                        logger.exception(
                            "Failed to export span '%s' to Langfuse",
                            getattr(span, "name", "<unknown>"),
                        )
                        self._observer.on_submit_failure(span, exc)
                        continue
                    submitted += 1
                    self._notify_submitted(kind, payload)
        except Exception as exc:
            logger.error("Langfuse export error: %s", exc, exc_info=True)
            return BatchResult(
                code=SpanExportResult.FAILURE,
                error=exc,
                submitted=submitted,
                dropped=dropped,
            )

        if dropped:
            logger.warning(
                "Exported batch to Langfuse with %d of %d spans dropped",
                dropped,
                submitted + dropped,
            )
        return BatchResult(
            code=SpanExportResult.SUCCESS, submitted=submitted, dropped=dropped
        )

    def _submit_span(
        self, span: "ReadableSpan"
    ) -> tuple[ObservationKind, "ObservationPayload"]:
        metadata = extract_metadata(span)
        kind = classify(span, metadata)
        payload = self._builder.build(kind, span, metadata)
        self._submitters[kind](**payload.to_client_kwargs())
        return kind, payload

    def _notify_submitted(
        self, kind: ObservationKind, payload: "ObservationPayload"
    ) -> None:
        # The record is already with the client; an observer error must
        # not turn it into a dropped span
        try:
            self._observer.on_submit_success(kind, payload)
        except Exception:
            logger.exception(
                "Export observer failed after submitting %s '%s'",
                kind.value,
                payload.name,
            )

    def shutdown(self) -> None:
        """Shutdown the Langfuse client.

        Errors raised by the client propagate to the caller.
        """
        with self._lock:
            if self._shutdown:
                logger.debug("Exporter already shutdown")
                return
            self._client.shutdown()
            self._shutdown = True
        logger.debug("Langfuse client shutdown complete")

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Force the Langfuse client to send buffered records.

        Errors raised by the client propagate to the caller.
        """
        with self._lock:
            self._client.flush()
        self._observer.on_flush()
        return True
