"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to testing before any settings are imported and provides
a controllable clock plus an app wired with zero store latency.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Callable, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import AppSettings, CacheSettings, LogSettings, Settings, StoreSettings


class FakeClock:
    """Deterministic monotonic clock; call it to read, advance() to move."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def build_test_settings(**app_overrides) -> Settings:
    app_values = {
        "rate_limit_requests": 100,
        "rate_limit_burst_capacity": 100,
        "trust_proxy": True,
    }
    app_values.update(app_overrides)
    return Settings(
        app=AppSettings(**app_values),
        cache=CacheSettings(ttl_seconds=60, max_entries=100),
        store=StoreSettings(
            fetch_latency_seconds=0,
            create_latency_seconds=0,
            queue_tick_seconds=0,
        ),
        log=LogSettings(level="WARNING"),
    )


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Build test settings with AppSettings overrides."""
    return build_test_settings


@pytest.fixture
def test_settings() -> Settings:
    return build_test_settings()


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with the lifespan running (worker and sweeps started)."""
    with TestClient(app) as test_client:
        yield test_client
