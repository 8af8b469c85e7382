"""Global SDK state management.

This module manages the singleton state of the SDK, including:
- Whether Langfuse telemetry has been enabled
- The active TracerProvider and telemetry provider
- Shutdown coordination
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider

    from genkit_langfuse._internal.telemetry import LangfuseTelemetryProvider

logger = logging.getLogger(__name__)

_configured: bool = False
_provider: TracerProvider | None = None
_telemetry: LangfuseTelemetryProvider | None = None


def set_configured(
    provider: TracerProvider, telemetry: LangfuseTelemetryProvider | None = None
) -> None:
    """Mark the SDK as configured with the given providers."""
    global _configured, _provider, _telemetry
    if _configured:
        logger.warning(
            "SDK already configured. Call shutdown() before re-enabling telemetry."
        )
    _configured = True
    _provider = provider
    _telemetry = telemetry


def is_configured() -> bool:
    """Check if Langfuse telemetry has been enabled."""
    return _configured


def get_provider() -> TracerProvider | None:
    """Get the active TracerProvider, or None if not configured."""
    return _provider


def get_telemetry_provider() -> LangfuseTelemetryProvider | None:
    """Get the active LangfuseTelemetryProvider, or None if not configured."""
    return _telemetry


def shutdown() -> None:
    """Shutdown the SDK and flush pending telemetry.

    This function is idempotent and safe to call multiple times.
    After shutdown, is_configured() returns False.
    """
    global _configured, _provider, _telemetry
    if _provider is not None:
        try:
            _provider.shutdown()
            logger.debug("TracerProvider shutdown complete")
        except Exception as e:
            logger.warning("Error during TracerProvider shutdown: %s", e)
    _configured = False
    _provider = None
    _telemetry = None
