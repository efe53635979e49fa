from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from heartbeat.tokens import issue_token


def _token_from_link(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


@pytest.mark.asyncio
async def test_send_confirmation_returns_link(client, settings):
    resp = await client.post(
        "/api/v1/auth/send-confirmation",
        json={"email": "Alice@Example.com", "username": "alice"},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["expiresAt"] > 0

    link = urlparse(data["confirmLink"])
    assert f"{link.scheme}://{link.netloc}" == settings.confirm_base_url
    assert link.path == "/confirm"
    query = parse_qs(link.query)
    assert query["email"] == ["Alice@Example.com"]
    assert query["username"] == ["alice"]


@pytest.mark.asyncio
async def test_confirm_flow(client, store):
    resp = await client.post("/api/v1/auth/send-confirmation", json={"email": "alice@example.com"})
    token = _token_from_link(resp.json()["confirmLink"])

    resp = await client.get("/api/v1/auth/is-confirmed", params={"email": "alice@example.com"})
    assert resp.json() == {"ok": True, "confirmed": False}

    resp = await client.get("/api/v1/auth/confirm", params={"token": token})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "email": "alice@example.com", "username": ""}

    resp = await client.get("/api/v1/auth/is-confirmed", params={"email": "ALICE@example.com"})
    assert resp.json() == {"ok": True, "confirmed": True}
    assert store.is_confirmed("alice@example.com")

    resp = await client.post("/api/v1/auth/send-confirmation", json={"email": "alice@example.com"})
    assert resp.json() == {"ok": True, "alreadyConfirmed": True}


@pytest.mark.asyncio
async def test_send_confirmation_validation(client):
    resp = await client.post(
        "/api/v1/auth/send-confirmation",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid json"}

    resp = await client.post("/api/v1/auth/send-confirmation", json={"email": "not-an-email"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "email is required"}


@pytest.mark.asyncio
async def test_send_confirmation_is_rate_limited_per_email(client):
    for _ in range(5):
        resp = await client.post("/api/v1/auth/send-confirmation", json={"email": "bob@example.com"})
        assert resp.status_code == 200

    resp = await client.post("/api/v1/auth/send-confirmation", json={"email": "BOB@example.com"})
    assert resp.status_code == 429
    assert resp.json() == {"ok": False, "error": "too many requests"}


@pytest.mark.asyncio
async def test_send_confirmation_is_rate_limited_per_ip(client):
    for n in range(10):
        resp = await client.post("/api/v1/auth/send-confirmation", json={"email": f"user{n}@example.com"})
        assert resp.status_code == 200

    resp = await client.post("/api/v1/auth/send-confirmation", json={"email": "another@example.com"})
    assert resp.status_code == 429


@pytest.mark.asyncio
async def test_confirm_rejects_bad_tokens(client, settings):
    resp = await client.get("/api/v1/auth/confirm")
    assert resp.status_code == 400
    assert resp.json() == {"error": "token is required"}

    resp = await client.get("/api/v1/auth/confirm", params={"token": "garbage"})
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "invalid or expired token"}

    forged, _ = issue_token("some-other-secret", "eve@example.com", "", ttl_minutes=30)
    resp = await client.get("/api/v1/auth/confirm", params={"token": forged})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_is_confirmed_requires_email(client):
    resp = await client.get("/api/v1/auth/is-confirmed")
    assert resp.status_code == 400
    assert resp.json() == {"error": "email is required"}
