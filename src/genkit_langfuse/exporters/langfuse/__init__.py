"""Langfuse exporter for genkit-langfuse."""

from genkit_langfuse.exporters.langfuse.exporter import (
    BatchResult,
    LangfuseClient,
    LangfuseSpanExporter,
    check_dependencies,
    create_langfuse_client,
)

__all__ = [
    "BatchResult",
    "LangfuseClient",
    "LangfuseSpanExporter",
    "check_dependencies",
    "create_langfuse_client",
]
