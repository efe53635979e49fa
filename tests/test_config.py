from __future__ import annotations

import pytest
from pydantic import ValidationError

from heartbeat.config import Settings


def test_defaults(monkeypatch):
    for name in ("PING_RETRIES", "PING_RETRY_DELAY_MS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()

    assert settings.port == 8080
    assert settings.cors_origin == "*"
    assert settings.ping_timeout_ms == 5000
    assert settings.ping_timeout == 5.0
    assert settings.ping_retries == 1
    assert settings.ping_retry_delay_ms == 200
    assert settings.degraded_latency_ms == 1200
    assert settings.confirm_token_ttl_minutes == 30


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("PING_TIMEOUT_MS", "2500")
    monkeypatch.setenv("PING_RETRIES", "3")
    monkeypatch.setenv("DEGRADED_LATENCY_MS", "800")
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "  https://hooks.slack.com/x  ")
    monkeypatch.setenv("CONFIRM_BASE_URL", "https://status.example.com/")

    settings = Settings()

    assert settings.ping_timeout == 2.5
    assert settings.ping_retries == 3
    assert settings.degraded_latency_ms == 800
    assert settings.slack_webhook_url == "https://hooks.slack.com/x"
    assert settings.confirm_base_url == "https://status.example.com"


def test_blank_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("PING_RETRIES", "")
    monkeypatch.setenv("CORS_ORIGIN", "")
    settings = Settings()
    assert settings.ping_retries == 1
    assert settings.cors_origin == "*"


def test_whitespace_only_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("CONFIRM_TOKEN_SECRET", "   ")
    monkeypatch.setenv("CONFIRM_STORE_PATH", " \t ")
    monkeypatch.setenv("CONFIRM_BASE_URL", "  ")
    monkeypatch.setenv("CORS_ORIGIN", " ")
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "   ")

    settings = Settings()

    assert settings.confirm_token_secret == "dev-only-change-me"
    assert settings.confirm_store_path == ".confirm_store.json"
    assert settings.confirm_base_url == "http://localhost:5173"
    assert settings.cors_origin == "*"
    assert settings.slack_webhook_url == ""


@pytest.mark.parametrize(
    "name,value",
    [
        ("PING_TIMEOUT_MS", "0"),
        ("PING_TIMEOUT_MS", "fast"),
        ("PING_RETRIES", "0"),
        ("PING_RETRIES", "6"),
        ("PING_RETRY_DELAY_MS", "-1"),
        ("PING_RETRY_DELAY_MS", "10001"),
        ("DEGRADED_LATENCY_MS", "0"),
        ("CONFIRM_TOKEN_TTL_MINUTES", "4"),
        ("CONFIRM_TOKEN_TTL_MINUTES", "1441"),
    ],
)
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()


def test_datastore_credentials_are_required(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL")
    with pytest.raises(ValidationError):
        Settings()

    monkeypatch.setenv("SUPABASE_URL", "http://test-supabase")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "   ")
    with pytest.raises(ValidationError):
        Settings()
