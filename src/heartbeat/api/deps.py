from __future__ import annotations

from fastapi import Request

from heartbeat.config import Settings, get_settings
from heartbeat.monitor.notifier import Notifier
from heartbeat.storage.store import Store


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if isinstance(settings, Settings) else get_settings()


def get_store(request: Request) -> Store:
    store = getattr(request.app.state, "store", None)
    if not isinstance(store, Store):
        raise RuntimeError("Store not initialised")
    return store


def get_notifier(request: Request) -> Notifier:
    notifier = getattr(request.app.state, "notifier", None)
    if not isinstance(notifier, Notifier):
        raise RuntimeError("Notifier not initialised")
    return notifier


def parse_limit(raw: str | None, default: int, maximum: int) -> int:
    """Lenient `limit` query parsing: anything unusable falls back to the default."""
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    if value <= 0 or value > maximum:
        return default
    return value
