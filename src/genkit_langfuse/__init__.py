"""Langfuse telemetry export for Genkit.

Exports Genkit OpenTelemetry spans to Langfuse as traces, generations
and spans:

    import genkit_langfuse
    genkit_langfuse.enable_langfuse_telemetry(
        genkit_langfuse.LangfuseConfig(secret_key="sk-...", public_key="pk-...")
    )
"""

from __future__ import annotations

from genkit_langfuse.exceptions import ConfigurationError

__version__ = "0.1.0"

# Public name -> defining module, imported on first access
_LAZY_ATTRIBUTES: dict[str, str] = {
    "enable_langfuse_telemetry": "genkit_langfuse.api",
    "create_langfuse_telemetry_provider": "genkit_langfuse.api",
    "flush": "genkit_langfuse.api",
    "shutdown": "genkit_langfuse.api",
    "is_configured": "genkit_langfuse.api",
    "Config": "genkit_langfuse.api",
    "LangfuseConfig": "genkit_langfuse.api",
    "ServiceConfig": "genkit_langfuse.api",
    "SpanData": "genkit_langfuse.api",
    "TokenUsage": "genkit_langfuse.api",
    "ValidationConfig": "genkit_langfuse.api",
    "LangfuseSpanExporter": "genkit_langfuse.exporters.langfuse",
    "LangfuseTelemetryProvider": "genkit_langfuse._internal.telemetry",
}

__all__ = [
    "ConfigurationError",
    "__version__",
    *_LAZY_ATTRIBUTES,
]


def __getattr__(name: str):
    if name in _LAZY_ATTRIBUTES:
        import importlib

        return getattr(importlib.import_module(_LAZY_ATTRIBUTES[name]), name)
    raise AttributeError(f"module 'genkit_langfuse' has no attribute '{name}'")


def __dir__() -> list[str]:
    return sorted(__all__)
