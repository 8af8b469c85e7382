"""Configuration and callback types for the genkit-langfuse SDK.

These types are part of the stable public API and follow semver guarantees.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

DEFAULT_BASE_URL = "https://cloud.langfuse.com"
DEFAULT_FLUSH_AT = 20
DEFAULT_FLUSH_INTERVAL_MS = 10000
DEFAULT_EXPORT_TIMEOUT_MS = 30000
DEFAULT_MAX_QUEUE_SIZE = 1000


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported by a model call."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class SpanData:
    """Summary of a span handed to a user-supplied span filter."""

    name: str
    span_type: str | None = None
    path: str | None = None
    is_root: bool = False


CostFunction = Callable[[str, TokenUsage], float]
SpanFilter = Callable[[SpanData], bool]


@dataclass
class ServiceConfig:
    """Service identification configuration."""

    name: str = "genkit-langfuse"
    version: str | None = None


@dataclass
class LangfuseConfig:
    """Langfuse export configuration.

    ``secret_key`` and ``public_key`` are required. Batching values map to
    the OpenTelemetry ``BatchSpanProcessor`` that drives the exporter, and
    ``flush_at``/``flush_interval`` are also passed to the Langfuse client.
    """

    secret_key: str = ""
    public_key: str = ""
    base_url: str | None = None
    # Emit per-record debug logs through LoggingExportObserver
    debug: bool = False
    # Number of spans per export batch
    flush_at: int | None = None
    # Milliseconds between scheduled flushes
    flush_interval: int | None = None
    export_timeout_millis: int | None = None
    max_queue_size: int | None = None
    calculate_cost: Optional[CostFunction] = None
    span_filter: Optional[SpanFilter] = None

    def with_defaults(self) -> "LangfuseConfig":
        """Fill unset optional values with their defaults in place."""
        self.base_url = self.base_url or DEFAULT_BASE_URL
        self.debug = bool(self.debug)
        self.flush_at = self.flush_at or DEFAULT_FLUSH_AT
        self.flush_interval = self.flush_interval or DEFAULT_FLUSH_INTERVAL_MS
        self.export_timeout_millis = (
            self.export_timeout_millis or DEFAULT_EXPORT_TIMEOUT_MS
        )
        self.max_queue_size = self.max_queue_size or DEFAULT_MAX_QUEUE_SIZE
        return self


@dataclass
class ValidationConfig:
    """Validation mode configuration."""

    mode: str = "permissive"  # "strict" | "permissive"


@dataclass
class Config:
    """Complete SDK configuration."""

    langfuse: LangfuseConfig
    service: ServiceConfig = field(default_factory=ServiceConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    @property
    def is_strict(self) -> bool:
        """Return True if validation mode is strict."""
        return self.validation.mode == "strict"
