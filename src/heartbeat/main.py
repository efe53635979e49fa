from __future__ import annotations

import sys
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from heartbeat.config import get_settings
from heartbeat.monitor.notifier import Notifier
from heartbeat.storage.store import Store
from heartbeat.utils.logging import setup_logging
from heartbeat.api.health import router as health_router
from heartbeat.api.status import router as status_router
from heartbeat.api.auth import router as auth_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)

    status_messages = (settings.load_yaml_config().get("notifications") or {}).get("status_messages")
    app.state.settings = settings
    app.state.store = Store(settings.confirm_store_path, status_messages=status_messages)
    app.state.notifier = Notifier(settings)
    logger.info(
        "startup",
        retries=settings.ping_retries,
        timeout_ms=settings.ping_timeout_ms,
        degraded_ms=settings.degraded_latency_ms,
    )
    yield
    await app.state.notifier.drain()


app = FastAPI(title="Heartbeat", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def cors(request: Request, call_next):
    if request.method == "OPTIONS":
        response = Response(status_code=204)
    else:
        response = await call_next(request)
    settings = getattr(request.app.state, "settings", None) or get_settings()
    response.headers["Access-Control-Allow-Origin"] = settings.cors_origin
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, apikey, Authorization"
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


app.include_router(health_router)
app.include_router(status_router)
app.include_router(auth_router)


def run() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"invalid configuration:\n{e}", file=sys.stderr)
        raise SystemExit(1)
    uvicorn.run("heartbeat.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
