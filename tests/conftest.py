from __future__ import annotations

import os

import pytest
from httpx import AsyncClient, ASGITransport

# Override settings before importing app
os.environ["SUPABASE_URL"] = "http://test-supabase"
os.environ["SUPABASE_ANON_KEY"] = "test-key"
os.environ["WEBHOOK_URL"] = ""
os.environ["SLACK_WEBHOOK_URL"] = ""
os.environ["DISCORD_WEBHOOK_URL"] = ""
os.environ["PING_RETRIES"] = "1"
os.environ["PING_RETRY_DELAY_MS"] = "0"
os.environ["CONFIRM_TOKEN_SECRET"] = "test-secret"

from heartbeat.main import app
from heartbeat.api.deps import get_app_settings, get_notifier, get_store
from heartbeat.config import Settings
from heartbeat.models.domain import Target
from heartbeat.monitor.notifier import Notifier
from heartbeat.storage.store import Store


class FakeClock:
    """Millisecond clock the tests can move by hand."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        overrides.setdefault("ping_retries", 1)
        overrides.setdefault("ping_retry_delay_ms", 0)
        return Settings(**overrides)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock) -> Store:
    return Store(str(tmp_path / "confirmed.json"), clock=clock)


@pytest.fixture
def notifier(settings) -> Notifier:
    return Notifier(settings)


@pytest.fixture
def target() -> Target:
    return Target(id="p1", name="API", url="https://api.example.com/health")


@pytest.fixture
async def client(settings, store, notifier):
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
