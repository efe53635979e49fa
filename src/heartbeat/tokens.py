"""Signed, time-limited email confirmation tokens.

A token is `<payload>.<signature>` where payload is the base64url-encoded JSON
`{"email", "username", "exp", "nonce"}` and signature is HMAC-SHA256 of the
encoded payload under the server secret. Both parts are unpadded base64url.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time

from pydantic import BaseModel, ValidationError


class ConfirmTokenPayload(BaseModel):
    email: str
    username: str = ""
    exp: int
    nonce: str = ""


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _sign(secret: str, message: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message.encode("ascii"), hashlib.sha256).digest()


def random_nonce() -> str:
    return _b64encode(secrets.token_bytes(12))


def issue_token(secret: str, email: str, username: str, ttl_minutes: int, now: float | None = None) -> tuple[str, int]:
    """Return (token, expires_at) where expires_at is unix seconds."""
    now = time.time() if now is None else now
    payload = ConfirmTokenPayload(
        email=email,
        username=username,
        exp=int(now) + ttl_minutes * 60,
        nonce=random_nonce(),
    )
    return sign_token(secret, payload), payload.exp


def sign_token(secret: str, payload: ConfirmTokenPayload) -> str:
    message = _b64encode(payload.model_dump_json().encode("utf-8"))
    return f"{message}.{_b64encode(_sign(secret, message))}"


def verify_token(secret: str, token: str, now: float | None = None) -> ConfirmTokenPayload | None:
    """Return the payload of a valid token, or None if it is malformed, tampered with, or expired."""
    parts = (token or "").strip().split(".")
    if len(parts) != 2:
        return None
    message, signature = parts

    try:
        want = _b64encode(_sign(secret, message)).encode("ascii")
    except UnicodeEncodeError:
        return None
    # Compare canonical encodings: the decoder would ignore stray characters and padding
    if not hmac.compare_digest(want, signature.encode("utf-8")):
        return None

    try:
        payload = ConfirmTokenPayload.model_validate_json(_b64decode(message))
    except (ValueError, ValidationError):
        return None

    now = time.time() if now is None else now
    if payload.exp <= 0 or now > payload.exp:
        return None
    if not payload.email.strip():
        return None
    return payload
