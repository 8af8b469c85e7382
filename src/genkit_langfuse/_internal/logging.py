"""Internal logging utilities."""

import logging

# Create SDK logger
logger = logging.getLogger("genkit_langfuse")

# Default to WARNING to avoid noise
logger.setLevel(logging.WARNING)


def enable_debug_logging() -> None:
    """Send SDK debug records to stderr.

    Called when ``LangfuseConfig.debug`` is set. Safe to call repeatedly.
    """
    logger.setLevel(logging.DEBUG)
    if not any(getattr(h, "_genkit_langfuse", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        handler._genkit_langfuse = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
