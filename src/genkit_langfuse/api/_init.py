"""Main SDK entry points: enable_langfuse_telemetry(), shutdown(), flush().

This module provides the primary public interface for the SDK.
"""

from __future__ import annotations

import atexit
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Union

from opentelemetry import trace

from genkit_langfuse._internal.telemetry import LangfuseTelemetryProvider
from genkit_langfuse.config import Config, LangfuseConfig
from genkit_langfuse.exceptions import ConfigurationError
from genkit_langfuse.sdk.config.load import load_config
from genkit_langfuse.sdk.lifecycle import (
    get_provider,
    get_telemetry_provider,
    is_configured as _is_configured,
    set_configured,
    shutdown as _shutdown,
)

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider

    from genkit_langfuse.exporters.langfuse.exporter import LangfuseClient

logger = logging.getLogger(__name__)

# Environment variable for config path fallback
CONFIG_PATH_ENV = "GENKIT_LANGFUSE_CONFIG_PATH"

ConfigSource = Union[LangfuseConfig, Config, str, Path, None]


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """Resolve configuration file path from argument or environment.

    Raises:
        ConfigurationError: If no config path is provided and
                           GENKIT_LANGFUSE_CONFIG_PATH is not set.
    """
    if config_path is not None:
        return Path(config_path)

    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)

    raise ConfigurationError(
        "No configuration provided. Pass a LangfuseConfig or a config path "
        f"to enable_langfuse_telemetry() or set the {CONFIG_PATH_ENV} "
        "environment variable."
    )


def _resolve_config(config: ConfigSource) -> Config:
    if isinstance(config, Config):
        return config
    if isinstance(config, LangfuseConfig):
        return Config(langfuse=config)
    return load_config(_resolve_config_path(config))


def create_langfuse_telemetry_provider(
    config: ConfigSource = None,
    client: "LangfuseClient | None" = None,
) -> LangfuseTelemetryProvider:
    """Create a Langfuse telemetry provider without enabling it globally.

    Useful for custom telemetry setups that attach the span processor to
    their own TracerProvider.

    Args:
        config: A LangfuseConfig, a full Config, a path to a YAML config
            file, or None to use the GENKIT_LANGFUSE_CONFIG_PATH variable.
        client: Optional Langfuse client, mainly for tests.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    resolved = _resolve_config(config)
    return LangfuseTelemetryProvider(
        resolved.langfuse, service=resolved.service, client=client
    )


def enable_langfuse_telemetry(
    config: ConfigSource = None,
    client: "LangfuseClient | None" = None,
) -> "TracerProvider":
    """Enable Langfuse telemetry export for Genkit traces.

    Creates a TracerProvider exporting to Langfuse, sets it as the global
    tracer provider and registers an atexit handler that shuts it down.

    Args:
        config: A LangfuseConfig, a full Config, a path to a YAML config
            file, or None to use the GENKIT_LANGFUSE_CONFIG_PATH variable.
        client: Optional Langfuse client, mainly for tests.

    Returns:
        The configured TracerProvider.

    Raises:
        ConfigurationError: If credentials are missing or configuration
            is invalid.

    Example:
        >>> import os
        >>> from genkit_langfuse import LangfuseConfig, enable_langfuse_telemetry
        >>> enable_langfuse_telemetry(
        ...     LangfuseConfig(
        ...         secret_key=os.environ["LANGFUSE_SECRET_KEY"],
        ...         public_key=os.environ["LANGFUSE_PUBLIC_KEY"],
        ...     )
        ... )
    """
    telemetry = create_langfuse_telemetry_provider(config, client=client)
    provider = telemetry.create_tracer_provider()

    trace.set_tracer_provider(provider)
    set_configured(provider, telemetry)
    atexit.register(_shutdown)

    logger.debug("Langfuse telemetry enabled for %s", telemetry.config.base_url)
    return provider


def flush() -> None:
    """Push buffered Langfuse records immediately.

    Errors raised by the Langfuse client propagate to the caller.
    """
    telemetry = get_telemetry_provider()
    if telemetry is None:
        logger.debug("flush() called before telemetry was enabled")
        return
    provider = get_provider()
    if provider is not None:
        provider.force_flush()
    telemetry.flush()


def shutdown() -> None:
    """Shutdown the SDK and flush pending telemetry.

    It is idempotent and safe to call multiple times.
    """
    _shutdown()


def is_configured() -> bool:
    """Check if Langfuse telemetry has been enabled."""
    return _is_configured()
