"""Shared pytest configuration and fixtures.

This module provides test fixtures that:
1. Reset OpenTelemetry global state between tests for isolation
2. Reset the SDK's global lifecycle state
3. Provide a typed FakeLangfuseClient instead of MagicMock

Following OpenTelemetry Python SDK testing patterns.
"""

from __future__ import annotations

from typing import Generator

import pytest
from opentelemetry import trace as trace_api

from genkit_langfuse.config import LangfuseConfig
from tests.fakes import FakeLangfuseClient


def _reset_trace_globals() -> None:
    """Reset OpenTelemetry trace globals for test isolation.

    WARNING: Only use this in tests. This accesses internal OTel APIs.
    """
    from opentelemetry.util._once import Once

    trace_api._TRACER_PROVIDER_SET_ONCE = Once()
    trace_api._TRACER_PROVIDER = None
    trace_api._PROXY_TRACER_PROVIDER = trace_api.ProxyTracerProvider()


def _reset_sdk_state() -> None:
    """Reset the SDK lifecycle state for test isolation."""
    from genkit_langfuse.sdk import lifecycle

    lifecycle._configured = False
    lifecycle._provider = None
    lifecycle._telemetry = None


@pytest.fixture(autouse=True)
def reset_otel_state() -> Generator[None, None, None]:
    """Reset OpenTelemetry and SDK global state before and after each test."""
    _reset_trace_globals()
    _reset_sdk_state()
    yield
    _reset_trace_globals()
    _reset_sdk_state()


@pytest.fixture
def fake_client() -> FakeLangfuseClient:
    """Provide a FakeLangfuseClient recording submissions."""
    return FakeLangfuseClient()


@pytest.fixture
def langfuse_config() -> LangfuseConfig:
    """Return a minimal valid Langfuse configuration."""
    return LangfuseConfig(secret_key="sk-lf-test", public_key="pk-lf-test")


@pytest.fixture
def valid_config_content() -> str:
    """Return valid YAML config content for tests."""
    return """service:
  name: test-service
  version: "1.0.0"

langfuse:
  secret_key: sk-lf-test
  public_key: pk-lf-test
  base_url: https://langfuse.example.com
  flush_at: 50
  flush_interval: 15000

validation:
  mode: strict
"""
