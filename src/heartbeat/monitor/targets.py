from __future__ import annotations

import structlog
import httpx
from pydantic import TypeAdapter, ValidationError

from heartbeat.config import Settings
from heartbeat.errors import DatastoreError
from heartbeat.models.domain import Target

logger = structlog.get_logger()

DATASTORE_TIMEOUT = 10.0

_targets_adapter = TypeAdapter(list[Target])


async def fetch_targets(settings: Settings, client: httpx.AsyncClient | None = None) -> list[Target]:
    """Load the current project list from the Supabase REST endpoint.

    Raises DatastoreError on transport failure, a non-2xx status, or a malformed body.
    """
    url = f"{settings.supabase_url}/rest/v1/projects"
    headers = {
        "apikey": settings.supabase_anon_key,
        "Authorization": f"Bearer {settings.supabase_anon_key}",
    }

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=DATASTORE_TIMEOUT)

    try:
        resp = await client.get(url, params={"select": "*"}, headers=headers)
    except httpx.HTTPError as e:
        logger.error("datastore_fetch_failed", url=url, error=str(e)[:200])
        raise DatastoreError("datastore connection error") from e
    finally:
        if owns_client:
            await client.aclose()

    if resp.status_code >= 400:
        logger.error("datastore_fetch_failed", url=url, status=resp.status_code, body=resp.text[:200])
        raise DatastoreError("datastore returned non-OK", status_code=resp.status_code)

    try:
        targets = _targets_adapter.validate_json(resp.content)
    except ValidationError as e:
        logger.error("datastore_bad_payload", url=url, error=str(e)[:200])
        raise DatastoreError("datastore returned malformed project list") from e

    logger.info("datastore_fetched", count=len(targets))
    return targets
