"""Public API for the genkit-langfuse SDK.

This module re-exports the stable public interface:
- enable_langfuse_telemetry() - Export Genkit traces to Langfuse
- create_langfuse_telemetry_provider() - Build without enabling globally
- flush() / shutdown() - Lifecycle control
- is_configured() - Check if telemetry has been enabled
- Config and related types - Programmatic configuration
"""

from __future__ import annotations

from genkit_langfuse.api._init import (
    create_langfuse_telemetry_provider,
    enable_langfuse_telemetry,
    flush,
    is_configured,
    shutdown,
)
from genkit_langfuse.config import (
    Config,
    LangfuseConfig,
    ServiceConfig,
    SpanData,
    TokenUsage,
    ValidationConfig,
)

__all__ = [
    "enable_langfuse_telemetry",
    "create_langfuse_telemetry_provider",
    "flush",
    "shutdown",
    "is_configured",
    "Config",
    "LangfuseConfig",
    "ServiceConfig",
    "SpanData",
    "TokenUsage",
    "ValidationConfig",
]
