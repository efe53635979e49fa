from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from heartbeat.api.deps import get_app_settings, get_notifier, get_store, parse_limit
from heartbeat.config import Settings
from heartbeat.errors import DatastoreError
from heartbeat.models.schemas import HistoryResponse, IncidentsResponse, TargetStatus
from heartbeat.monitor.dispatcher import check_all
from heartbeat.monitor.notifier import Notifier
from heartbeat.monitor.targets import fetch_targets
from heartbeat.storage.store import Store

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1")

HISTORY_DEFAULT_LIMIT = 48
HISTORY_MAX_LIMIT = 500
INCIDENTS_DEFAULT_LIMIT = 50
INCIDENTS_MAX_LIMIT = 200


@router.get("/status", response_model=list[TargetStatus])
async def status(
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        targets = await fetch_targets(settings)
    except DatastoreError as e:
        logger.error("status_datastore_unavailable", error=str(e), upstream_status=e.status_code)
        raise HTTPException(status_code=502, detail="datastore unavailable")

    return await check_all(targets, settings, store, notifier)


@router.get("/history", response_model=HistoryResponse, response_model_exclude_none=True)
async def history(
    project_id: str | None = Query(None),
    limit: str | None = Query(None),
    store: Store = Depends(get_store),
):
    project_id = (project_id or "").strip()
    if not project_id:
        raise HTTPException(status_code=400, detail="project_id is required")

    n = parse_limit(limit, HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT)
    return HistoryResponse(project_id=project_id, items=store.get_history(project_id, n))


@router.get("/incidents", response_model=IncidentsResponse)
async def incidents(
    limit: str | None = Query(None),
    store: Store = Depends(get_store),
):
    n = parse_limit(limit, INCIDENTS_DEFAULT_LIMIT, INCIDENTS_MAX_LIMIT)
    return IncidentsResponse(items=store.get_incidents(n))
