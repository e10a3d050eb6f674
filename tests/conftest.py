"""
Pytest configuration and fixtures for testing.

Provides settings fixtures and fake driver clients so the factories can be
exercised without a running MongoDB.
"""

import asyncio
import os
import time
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from trade_demo_backend.config.settings import MongoSettings, get_settings
from trade_demo_backend.db.memory import InMemoryClientFactory
from trade_demo_backend.models.base import TimestampedModel

ENV_PREFIXES = ("MONGO_", "APP_", "TRUSTSTORE_")


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Strip settings variables and run each test away from any .env file."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIXES) or name == "ENVIRONMENT":
            monkeypatch.delenv(name, raising=False)

    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mongo_settings() -> MongoSettings:
    """Settings pointing at an address nothing listens on."""
    return MongoSettings(uri="mongodb://mongo.internal:27017", database="trade_demo")


# =============================================================================
# Fake Drivers
# =============================================================================


class FakeMotorClientClass:
    """
    Stands in for AsyncIOMotorClient.

    Every construction is recorded; the admin ping sleeps for `ping_delay`
    and raises `error` when one is set.
    """

    def __init__(self, ping_delay: float = 0.0, error: Exception | None = None) -> None:
        self.ping_delay = ping_delay
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.created: list[MagicMock] = []

    def __call__(self, uri: str, **options: Any) -> MagicMock:
        self.calls.append((uri, options))
        client = MagicMock(name=f"AsyncIOMotorClient#{len(self.created)}")
        client.admin.command = AsyncMock(side_effect=self._ping)
        client.server_info = AsyncMock(return_value={"version": "7.0.5"})
        self.created.append(client)
        return client

    async def _ping(self, command: str, *args: Any, **kwargs: Any) -> dict:
        if self.ping_delay:
            await asyncio.sleep(self.ping_delay)
        if self.error is not None:
            raise self.error
        return {"ok": 1.0}


class FakeMongoClientClass(FakeMotorClientClass):
    """Stands in for pymongo.MongoClient with a blocking ping."""

    def __call__(self, uri: str, **options: Any) -> MagicMock:
        self.calls.append((uri, options))
        client = MagicMock(name=f"MongoClient#{len(self.created)}")
        client.admin.command = MagicMock(side_effect=self._blocking_ping)
        self.created.append(client)
        return client

    def _blocking_ping(self, command: str, *args: Any, **kwargs: Any) -> dict:
        if self.ping_delay:
            time.sleep(self.ping_delay)
        if self.error is not None:
            raise self.error
        return {"ok": 1.0}


@pytest.fixture
def fake_motor() -> FakeMotorClientClass:
    return FakeMotorClientClass()


@pytest.fixture
def fake_pymongo() -> FakeMongoClientClass:
    return FakeMongoClientClass()


# =============================================================================
# In-memory Store
# =============================================================================


class Notification(TimestampedModel):
    """Sample document type used by collection tests."""

    reference: str
    status: str = "DRAFT"
    commodity_count: int = 0


@pytest_asyncio.fixture
async def memory_factory() -> AsyncGenerator[InMemoryClientFactory, None]:
    """In-memory factory, closed after the test."""
    factory = InMemoryClientFactory(database="trade_demo_test")
    yield factory
    await factory.close()
