from __future__ import annotations

import asyncio

import structlog
import httpx

from heartbeat.config import Settings
from heartbeat.models.domain import CheckRecord, ProbeOutcome, Status, Target
from heartbeat.models.schemas import TargetStatus
from heartbeat.monitor.notifier import Notifier
from heartbeat.monitor.prober import new_probe_client, probe
from heartbeat.storage.store import Store
from heartbeat.utils.clock import now_ms

logger = structlog.get_logger()

# Batches outlive a cancelled request; keep them referenced until done
_inflight: set[asyncio.Future] = set()


async def check_target(
    target: Target,
    settings: Settings,
    store: Store,
    notifier: Notifier,
    client: httpx.AsyncClient,
) -> TargetStatus:
    """Probe one target, record the result, and hand any incident to the notifier."""
    try:
        outcome = await probe(target, settings, client)
    except Exception as e:
        logger.exception("probe_error", target_id=target.id, url=target.url)
        outcome = ProbeOutcome(status=Status.DOWN, latency_ms=0, error_text=str(e)[:500] or type(e).__name__)

    record = CheckRecord.from_outcome(outcome, timestamp_ms=now_ms())
    incident = store.record_check(target, record)
    if incident is not None:
        notifier.dispatch(incident)

    return TargetStatus(
        id=target.id,
        name=target.name,
        url=target.url,
        status=outcome.status,
        latency=outcome.latency_ms,
    )


async def _run_batch(targets: list[Target], settings: Settings, store: Store, notifier: Notifier) -> list[TargetStatus]:
    async with new_probe_client(settings) as client:
        tasks = [
            asyncio.create_task(check_target(t, settings, store, notifier, client))
            for t in targets
        ]
        return list(await asyncio.gather(*tasks))


async def check_all(
    targets: list[Target],
    settings: Settings,
    store: Store,
    notifier: Notifier,
) -> list[TargetStatus]:
    """Check every target concurrently and wait for all of them.

    The batch is shielded: if the caller goes away, probes still finish and are recorded.
    """
    if not targets:
        return []

    batch = asyncio.ensure_future(_run_batch(targets, settings, store, notifier))
    _inflight.add(batch)
    batch.add_done_callback(_inflight.discard)
    results = await asyncio.shield(batch)

    counts = {s.value: 0 for s in Status}
    for r in results:
        counts[r.status.value] += 1
    logger.info("check_complete", targets=len(results), **{k.lower(): v for k, v in counts.items()})
    return results
