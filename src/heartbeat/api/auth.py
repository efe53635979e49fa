from __future__ import annotations

from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from pydantic import ValidationError

from heartbeat.api.deps import get_app_settings, get_store
from heartbeat.config import Settings
from heartbeat.models.schemas import ConfirmationRequest
from heartbeat.storage.store import Store
from heartbeat.tokens import issue_token, verify_token

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth")

# (window_ms, max requests)
IP_LIMIT = (60 * 1000, 10)
EMAIL_LIMIT = (10 * 60 * 1000, 5)


def _too_many_requests() -> JSONResponse:
    return JSONResponse(status_code=429, content={"ok": False, "error": "too many requests"})


@router.post("/send-confirmation")
async def send_confirmation(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
):
    try:
        body = ConfirmationRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        raise HTTPException(status_code=400, detail="invalid json")

    email = body.email.strip()
    username = body.username.strip()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="email is required")

    if store.is_confirmed(email):
        return {"ok": True, "alreadyConfirmed": True}

    ip = request.client.host if request.client else "unknown"
    if not store.allow(f"confirm:ip:{ip}", *IP_LIMIT):
        logger.warning("confirm_rate_limited", scope="ip", ip=ip)
        return _too_many_requests()
    if not store.allow(f"confirm:email:{email.lower()}", *EMAIL_LIMIT):
        logger.warning("confirm_rate_limited", scope="email")
        return _too_many_requests()

    token, expires_at = issue_token(
        settings.confirm_token_secret,
        email=email,
        username=username,
        ttl_minutes=settings.confirm_token_ttl_minutes,
    )
    query = {"token": token, "email": email}
    if username:
        query["username"] = username
    confirm_link = f"{settings.confirm_base_url}/confirm?{urlencode(query)}"

    logger.info("confirmation_issued", expires_at=expires_at)
    # The browser delivers the email itself; we only hand back the link.
    return {"ok": True, "expiresAt": expires_at, "confirmLink": confirm_link}


@router.get("/confirm")
async def confirm(
    token: str | None = Query(None),
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
):
    token = (token or "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="token is required")

    payload = verify_token(settings.confirm_token_secret, token)
    if payload is None:
        return JSONResponse(status_code=400, content={"ok": False, "error": "invalid or expired token"})

    await run_in_threadpool(store.mark_confirmed, payload.email)
    logger.info("email_confirmed")
    return {"ok": True, "email": payload.email, "username": payload.username}


@router.get("/is-confirmed")
async def is_confirmed(
    email: str | None = Query(None),
    store: Store = Depends(get_store),
):
    email = (email or "").strip()
    if not email:
        raise HTTPException(status_code=400, detail="email is required")
    return {"ok": True, "confirmed": store.is_confirmed(email)}
