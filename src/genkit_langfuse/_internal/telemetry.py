"""Telemetry setup: Resource, span processor and TracerProvider creation."""

from __future__ import annotations

import logging
from dataclasses import replace
from importlib import metadata as importlib_metadata
from typing import TYPE_CHECKING

from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from genkit_langfuse._internal.logging import enable_debug_logging
from genkit_langfuse._internal.span_filter import SpanFilterProcessor
from genkit_langfuse.exceptions import ConfigurationError
from genkit_langfuse.exporters.langfuse.exporter import LangfuseSpanExporter
from genkit_langfuse.sdk.config.load import validate_credentials

if TYPE_CHECKING:
    from genkit_langfuse.config import LangfuseConfig, ServiceConfig
    from genkit_langfuse.exporters.langfuse.exporter import LangfuseClient

logger = logging.getLogger(__name__)

PLUGIN_NAME = "genkit-langfuse"


def _package_version(distribution: str) -> str:
    try:
        return importlib_metadata.version(distribution)
    except importlib_metadata.PackageNotFoundError:
        return "unknown"


class LangfuseTelemetryProvider:
    """Wires a ``LangfuseSpanExporter`` into OpenTelemetry.

    Credentials are validated on construction. Unset optional values are
    filled with their defaults on a copy of ``config``.

    Args:
        config: Langfuse configuration.
        service: Optional service identification for the Resource.
        client: Optional Langfuse client handed to the exporter.

    Raises:
        ConfigurationError: If the secret or public key is missing.
    """

    def __init__(
        self,
        config: "LangfuseConfig",
        service: "ServiceConfig | None" = None,
        client: "LangfuseClient | None" = None,
    ) -> None:
        errors = validate_credentials(config)
        if errors:
            raise ConfigurationError(errors[0])
        self.config = replace(config).with_defaults()
        if self.config.debug:
            enable_debug_logging()
        self._service = service
        self._client = client
        self.exporter: LangfuseSpanExporter | None = None

    def create_resource(self) -> Resource:
        """Create the Resource describing this plugin."""
        from genkit_langfuse import __version__

        service_name = PLUGIN_NAME
        service_version = __version__
        if self._service is not None:
            service_name = self._service.name or service_name
            service_version = self._service.version or service_version

        return Resource.create(
            {
                SERVICE_NAME: service_name,
                SERVICE_VERSION: service_version,
                "genkit.plugin": PLUGIN_NAME,
                "langfuse.version": _package_version("langfuse"),
            }
        )

    def create_span_processor(self) -> SpanProcessor:
        """Create the batching span processor feeding the Langfuse exporter."""
        self.exporter = LangfuseSpanExporter(self.config, client=self._client)

        processor: SpanProcessor = BatchSpanProcessor(
            self.exporter,
            max_queue_size=self.config.max_queue_size,
            schedule_delay_millis=self.config.flush_interval,
            max_export_batch_size=self.config.flush_at,
            export_timeout_millis=self.config.export_timeout_millis,
        )
        if self.config.span_filter is not None:
            processor = SpanFilterProcessor(processor, self.config.span_filter)
        return processor

    def create_tracer_provider(self) -> TracerProvider:
        """Create a TracerProvider exporting to Langfuse.

        The provider is not set as the global tracer provider.
        """
        provider = TracerProvider(resource=self.create_resource())
        provider.add_span_processor(self.create_span_processor())

        logger.debug(
            "TracerProvider configured for Langfuse at %s "
            "(flush_at=%s, flush_interval=%sms)",
            self.config.base_url,
            self.config.flush_at,
            self.config.flush_interval,
        )
        return provider

    def shutdown(self) -> None:
        """Shutdown the exporter. Errors propagate to the caller."""
        if self.exporter is not None:
            self.exporter.shutdown()

    def flush(self) -> None:
        """Flush pending telemetry. Errors propagate to the caller."""
        if self.exporter is not None:
            self.exporter.force_flush()
