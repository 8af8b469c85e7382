"""Integration test fixtures for genkit-langfuse.

These fixtures run real OpenTelemetry TracerProviders against a
FakeLangfuseClient so spans can be traced end to end without a Langfuse
server.
"""

from __future__ import annotations

import logging
from typing import Generator

import pytest
from opentelemetry.sdk.trace import TracerProvider

from genkit_langfuse._internal.telemetry import LangfuseTelemetryProvider
from genkit_langfuse.config import LangfuseConfig
from tests.fakes import FakeLangfuseClient


@pytest.fixture(autouse=True)
def no_atexit(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep enable_langfuse_telemetry() from registering atexit hooks."""
    monkeypatch.setattr("genkit_langfuse.api._init.atexit.register", lambda fn: fn)


@pytest.fixture(autouse=True)
def restore_sdk_logger() -> Generator[None, None, None]:
    """Undo enable_debug_logging() after each test."""
    sdk_logger = logging.getLogger("genkit_langfuse")
    level = sdk_logger.level
    handlers = list(sdk_logger.handlers)
    yield
    sdk_logger.setLevel(level)
    sdk_logger.handlers[:] = handlers


@pytest.fixture
def tracer_provider(
    langfuse_config: LangfuseConfig,
    fake_client: FakeLangfuseClient,
) -> Generator[TracerProvider, None, None]:
    """A TracerProvider exporting to the fake Langfuse client."""
    telemetry = LangfuseTelemetryProvider(langfuse_config, client=fake_client)
    provider = telemetry.create_tracer_provider()
    yield provider
    provider.shutdown()
