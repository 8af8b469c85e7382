"""Exception classes for the genkit-langfuse SDK."""


class ConfigurationError(Exception):
    """Raised when SDK configuration is invalid.

    Missing Langfuse credentials always raise this error when the exporter
    or telemetry provider is constructed. Other configuration problems
    only raise in strict validation mode.
    """
