from __future__ import annotations

import asyncio

import structlog
import httpx

from heartbeat.config import Settings
from heartbeat.models.domain import Incident

logger = structlog.get_logger()

NOTIFY_TIMEOUT = 5.0


def build_payloads(incident: Incident, settings: Settings, title: str = "Heartbeat") -> list[tuple[str, str, dict]]:
    """Return (sink, url, body) for every configured sink."""
    payloads: list[tuple[str, str, dict]] = []

    if settings.webhook_url:
        payloads.append(("webhook", settings.webhook_url, incident.to_payload()))

    summary = f"{incident.target_name} — {incident.message}"
    if settings.slack_webhook_url:
        payloads.append(("slack", settings.slack_webhook_url, {"text": f"*{title}* {summary}"}))
    if settings.discord_webhook_url:
        payloads.append(("discord", settings.discord_webhook_url, {"content": f"**{title}** {summary}"}))

    return payloads


class Notifier:
    """Best-effort incident delivery to the configured webhooks.

    `dispatch` schedules delivery on the running loop and returns immediately;
    nothing is retried and no error escapes.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.title = (settings.load_yaml_config().get("notifications") or {}).get("title", "Heartbeat")
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, incident: Incident) -> asyncio.Task | None:
        if not build_payloads(incident, self.settings, self.title):
            logger.debug("notify_skipped_no_sinks", incident_id=incident.id)
            return None
        task = asyncio.create_task(self.notify(incident))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def notify(self, incident: Incident) -> None:
        payloads = build_payloads(incident, self.settings, self.title)
        if not payloads:
            return
        async with httpx.AsyncClient(timeout=NOTIFY_TIMEOUT) as client:
            await asyncio.gather(
                *(self._post(client, sink, url, body, incident) for sink, url, body in payloads)
            )

    async def _post(self, client: httpx.AsyncClient, sink: str, url: str, body: dict, incident: Incident) -> None:
        try:
            resp = await asyncio.wait_for(client.post(url, json=body), timeout=NOTIFY_TIMEOUT)
        except TimeoutError:
            logger.warning("notify_failed", sink=sink, incident_id=incident.id, error=f"timeout after {NOTIFY_TIMEOUT}s")
            return
        except Exception as e:
            logger.warning("notify_failed", sink=sink, incident_id=incident.id, error=str(e)[:200])
            return
        if resp.status_code >= 400:
            logger.warning("notify_failed", sink=sink, incident_id=incident.id, status=resp.status_code)
        else:
            logger.info("notify_sent", sink=sink, incident_id=incident.id, status=resp.status_code)

    async def drain(self) -> None:
        """Wait for in-flight deliveries to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
