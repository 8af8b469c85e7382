"""Export lifecycle observers.

The exporter reports each submission and flush to an ``ExportObserver``
supplied at construction instead of patching the Langfuse client.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan

    from genkit_langfuse._internal.classifier import ObservationKind
    from genkit_langfuse._internal.payloads import ObservationPayload

logger = logging.getLogger(__name__)


class ExportObserver(Protocol):
    """Callbacks invoked by ``LangfuseSpanExporter``."""

    def on_submit_success(
        self, kind: "ObservationKind", payload: "ObservationPayload"
    ) -> None:
        """Called after a record was handed to the Langfuse client."""
        ...

    def on_submit_failure(self, span: "ReadableSpan", error: Exception) -> None:
        """Called when a span was dropped because processing it failed."""
        ...

    def on_flush(self) -> None:
        """Called after the Langfuse client flushed its buffer."""
        ...


class NoOpExportObserver:
    """Observer that ignores every event."""

    def on_submit_success(
        self, kind: "ObservationKind", payload: "ObservationPayload"
    ) -> None:
        pass

    def on_submit_failure(self, span: "ReadableSpan", error: Exception) -> None:
        pass

    def on_flush(self) -> None:
        pass


class LoggingExportObserver:
    """Observer that logs every event at DEBUG level.

    Installed by the exporter when ``LangfuseConfig.debug`` is set.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def on_submit_success(
        self, kind: "ObservationKind", payload: "ObservationPayload"
    ) -> None:
        self._log.debug(
            "Submitted Langfuse %s '%s' (id=%s, trace=%s)",
            kind.value,
            payload.name,
            payload.id,
            payload.trace_id,
        )

    def on_submit_failure(self, span: "ReadableSpan", error: Exception) -> None:
        self._log.debug("Dropped span '%s': %s", span.name, error)

    def on_flush(self) -> None:
        self._log.debug("Langfuse client flushed")
