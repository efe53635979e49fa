from __future__ import annotations

from fastapi import APIRouter

from heartbeat.models.schemas import HealthResponse, IndexResponse

ROUTES = ["/api/v1/health", "/api/v1/status", "/api/v1/incidents", "/api/v1/history"]

router = APIRouter()


@router.get("/", response_model=IndexResponse)
async def index():
    return IndexResponse(routes=ROUTES)


@router.get("/api/v1/health", response_model=HealthResponse)
async def health():
    return HealthResponse()
