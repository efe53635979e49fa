from __future__ import annotations

import asyncio
from time import perf_counter

import structlog
import httpx

from heartbeat.config import Settings
from heartbeat.models.domain import ProbeOutcome, Status, Target

logger = structlog.get_logger()

USER_AGENT = "Heartbeat/0.1 (Uptime Monitor)"


def new_probe_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.ping_timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def classify(http_status_code: int | None, latency_ms: int, error_text: str | None, degraded_ms: int) -> ProbeOutcome:
    """Turn the last attempt of a probe into a status."""
    if error_text is not None or http_status_code is None or http_status_code >= 400:
        if error_text is None:
            error_text = f"HTTP {http_status_code}" if http_status_code is not None else "no response"
        return ProbeOutcome(
            status=Status.DOWN,
            latency_ms=0,
            http_status_code=http_status_code,
            error_text=error_text,
        )

    status = Status.DEGRADED if latency_ms >= degraded_ms else Status.HEALTHY
    return ProbeOutcome(status=status, latency_ms=latency_ms, http_status_code=http_status_code)


async def probe(target: Target, settings: Settings, client: httpx.AsyncClient | None = None) -> ProbeOutcome:
    """GET the target up to `ping_retries` times and classify the last attempt.

    Stops at the first response below 400. Between failed attempts waits
    `ping_retry_delay_ms`. Each attempt is capped at `ping_timeout_ms`.
    """
    owns_client = client is None
    if owns_client:
        client = new_probe_client(settings)

    code: int | None = None
    error: str | None = None
    latency_ms = 0

    try:
        for attempt in range(1, settings.ping_retries + 1):
            code, error = None, None
            start = perf_counter()
            try:
                resp = await asyncio.wait_for(client.get(target.url), timeout=settings.ping_timeout)
                code = resp.status_code
            except TimeoutError:
                error = f"timeout after {settings.ping_timeout_ms}ms"
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                error = str(e) or type(e).__name__
            latency_ms = int((perf_counter() - start) * 1000)

            if error is None and code < 400:
                break

            logger.debug(
                "probe_attempt_failed",
                target_id=target.id,
                attempt=attempt,
                code=code,
                error=(error or "")[:200],
            )
            if attempt < settings.ping_retries and settings.ping_retry_delay_ms > 0:
                await asyncio.sleep(settings.ping_retry_delay)
    finally:
        if owns_client:
            await client.aclose()

    outcome = classify(code, latency_ms, error, settings.degraded_latency_ms)
    logger.debug(
        "probe_complete",
        target_id=target.id,
        status=outcome.status.value,
        latency_ms=outcome.latency_ms,
        code=outcome.http_status_code,
    )
    return outcome
