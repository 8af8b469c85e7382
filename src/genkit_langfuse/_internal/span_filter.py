"""Span filtering for selective Langfuse export.

This module provides a SpanProcessor that applies a user-supplied
``SpanData -> bool`` predicate before forwarding finished spans to the
delegate processor that feeds the Langfuse exporter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from opentelemetry.sdk.trace import SpanProcessor

from genkit_langfuse._internal.metadata import extract_metadata
from genkit_langfuse.config import SpanData

if TYPE_CHECKING:
    from opentelemetry.context import Context
    from opentelemetry.sdk.trace import ReadableSpan, Span

    from genkit_langfuse.config import SpanFilter

logger = logging.getLogger(__name__)


def span_data_from_span(span: "ReadableSpan") -> SpanData:
    """Summarize a span for a span filter."""
    metadata = extract_metadata(span)
    return SpanData(
        name=span.name,
        span_type=metadata.span_type,
        path=metadata.path,
        is_root=metadata.is_root,
    )


class SpanFilterProcessor(SpanProcessor):
    """SpanProcessor that forwards only spans accepted by a span filter.

    Args:
        delegate: The SpanProcessor to forward accepted spans to.
        span_filter: Predicate called with a ``SpanData`` summary of each
            finished span. A filter that raises drops the span.

    Example:
        >>> from opentelemetry.sdk.trace.export import BatchSpanProcessor
        >>> batch_processor = BatchSpanProcessor(langfuse_exporter)
        >>> only_models = SpanFilterProcessor(
        ...     batch_processor, lambda span: span.span_type == "model"
        ... )
        >>> provider.add_span_processor(only_models)
    """

    def __init__(self, delegate: SpanProcessor, span_filter: "SpanFilter") -> None:
        self._delegate = delegate
        self._span_filter = span_filter

    def on_start(
        self,
        span: "Span",
        parent_context: Optional["Context"] = None,
    ) -> None:
        # Attributes aren't final until the span ends, so filter on end
        self._delegate.on_start(span, parent_context)

    def on_end(self, span: "ReadableSpan") -> None:
        """Forward the span if the filter accepts it."""
        try:
            accepted = bool(self._span_filter(span_data_from_span(span)))
        except Exception as exc:
            logger.warning("Span filter failed for span '%s': %s", span.name, exc)
            return

        if accepted:
            self._delegate.on_end(span)
        else:
            logger.debug("Span filtered out: %s", span.name)

    def shutdown(self) -> None:
        """Shutdown the delegate processor."""
        self._delegate.shutdown()

    def force_flush(self, timeout_millis: Optional[int] = None) -> bool:
        """Force flush the delegate processor.

        Args:
            timeout_millis: Maximum time to wait for flush in milliseconds.

        Returns:
            True if flush completed successfully, False otherwise.
        """
        if timeout_millis is None:
            return self._delegate.force_flush()
        return self._delegate.force_flush(timeout_millis)
