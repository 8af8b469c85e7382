"""Configuration loading, parsing, and validation for the genkit-langfuse SDK."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from genkit_langfuse.config import (
    Config,
    LangfuseConfig,
    ServiceConfig,
    ValidationConfig,
)
from genkit_langfuse.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Pattern for environment variable substitution: ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

# Integer options of the langfuse section
_LANGFUSE_INT_KEYS = (
    "flush_at",
    "flush_interval",
    "export_timeout_millis",
    "max_queue_size",
)


def _substitute_env_vars(value: str, strict: bool) -> str:
    """Substitute ${VAR_NAME} patterns with environment variable values.

    Args:
        value: String potentially containing ${VAR_NAME} patterns.
        strict: If True, raise ConfigurationError for missing env vars.

    Returns:
        String with environment variables substituted.

    Raises:
        ConfigurationError: If strict=True and an env var is not set.
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            if strict:
                raise ConfigurationError(
                    f"Environment variable '{var_name}' is not set"
                )
            logger.warning(
                "Environment variable '%s' not set, using empty string", var_name
            )
            return ""
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _substitute_env_vars_recursive(data: Any, strict: bool) -> Any:
    """Recursively substitute environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars_recursive(v, strict) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars_recursive(item, strict) for item in data]
    elif isinstance(data, str):
        return _substitute_env_vars(data, strict)
    else:
        return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a top-level config section, treating an empty one as {}."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"Configuration section '{name}' must be a mapping, "
            f"got {type(section).__name__}"
        )
    return section


def _parse_service_config(data: dict[str, Any]) -> ServiceConfig:
    """Parse service configuration section."""
    return ServiceConfig(
        name=data.get("name", "genkit-langfuse"),
        version=data.get("version"),
    )


def _parse_int(key: str, value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"langfuse.{key} must be an integer, got {value!r}"
        ) from None


def _parse_langfuse_config(data: dict[str, Any]) -> LangfuseConfig:
    """Parse Langfuse configuration section.

    Credentials fall back to the LANGFUSE_SECRET_KEY, LANGFUSE_PUBLIC_KEY
    and LANGFUSE_HOST environment variables used by the Langfuse SDK.
    """
    ints = {key: _parse_int(key, data.get(key)) for key in _LANGFUSE_INT_KEYS}

    debug = data.get("debug", False)
    if isinstance(debug, str):
        debug = debug.strip().lower() in ("1", "true", "yes", "on")

    return LangfuseConfig(
        secret_key=data.get("secret_key") or os.environ.get("LANGFUSE_SECRET_KEY", ""),
        public_key=data.get("public_key") or os.environ.get("LANGFUSE_PUBLIC_KEY", ""),
        base_url=data.get("base_url") or os.environ.get("LANGFUSE_HOST"),
        debug=bool(debug),
        **ints,
    )


def _parse_validation_config(data: dict[str, Any]) -> ValidationConfig:
    """Parse validation configuration section."""
    mode = data.get("mode", "permissive")
    if mode not in ("strict", "permissive"):
        logger.warning("Unknown validation mode '%s', defaulting to permissive", mode)
        mode = "permissive"
    return ValidationConfig(mode=mode)


def validate_credentials(config: LangfuseConfig) -> list[str]:
    """Return error messages for missing Langfuse credentials."""
    errors: list[str] = []
    if not config.secret_key:
        errors.append("Langfuse secret key is required")
    if not config.public_key:
        errors.append("Langfuse public key is required")
    return errors


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []

    if not config.service.name:
        errors.append("service.name is required")

    errors.extend(validate_credentials(config.langfuse))

    for key in _LANGFUSE_INT_KEYS:
        value = getattr(config.langfuse, key)
        if value is not None and value <= 0:
            errors.append(f"langfuse.{key} must be positive")

    return errors


def load_config(path: str | Path, strict: bool | None = None) -> Config:
    """Load and parse configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
        strict: Override validation mode. If None, use mode from config file.

    Returns:
        Parsed and validated Config.

    Raises:
        ConfigurationError: If file doesn't exist, YAML is invalid,
                           or validation fails in strict mode.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            raw_data = yaml.safe_load(f)
            if raw_data is None:
                raw_data = {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping, got {type(raw_data).__name__}"
        )

    # Determine validation mode early (needed for env var substitution)
    validation_data = _section(raw_data, "validation")
    validation_mode = validation_data.get("mode", "permissive")
    is_strict = strict if strict is not None else (validation_mode == "strict")

    data = _substitute_env_vars_recursive(raw_data, strict=is_strict)

    config = Config(
        langfuse=_parse_langfuse_config(_section(data, "langfuse")),
        service=_parse_service_config(_section(data, "service")),
        validation=_parse_validation_config(_section(data, "validation")),
    )

    # Override validation mode if specified
    if strict is not None:
        config.validation.mode = "strict" if strict else "permissive"

    errors = _validate_config(config)
    if errors:
        if config.is_strict:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}"
            )
        logger.warning("Configuration validation issues: %s", "; ".join(errors))

    return config
