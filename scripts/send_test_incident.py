#!/usr/bin/env python3
"""Push a fake incident through the notifier to every configured sink."""

import argparse
import asyncio

from heartbeat.config import get_settings
from heartbeat.models.domain import Incident, Status
from heartbeat.monitor.notifier import Notifier, build_payloads
from heartbeat.utils.clock import now_ms
from heartbeat.utils.logging import setup_logging


async def main(name: str, status: str):
    setup_logging()
    settings = get_settings()
    notifier = Notifier(settings)

    ts = now_ms()
    new_status = Status(status)
    incident = Incident(
        id=f"{ts}_test_{new_status.value}",
        timestamp_ms=ts,
        target_id="test",
        target_name=name,
        new_status=new_status,
        message=f"Test incident ({new_status.value})",
    )

    sinks = [sink for sink, _, _ in build_payloads(incident, settings, notifier.title)]
    if not sinks:
        print("No sinks configured (set WEBHOOK_URL, SLACK_WEBHOOK_URL or DISCORD_WEBHOOK_URL)")
        return

    print(f"Sending to: {', '.join(sinks)}")
    await notifier.notify(incident)
    print("Done")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send a test incident notification")
    parser.add_argument("--name", default="Example Service")
    parser.add_argument("--status", choices=[s.value for s in Status], default="DOWN")
    args = parser.parse_args()
    asyncio.run(main(args.name, args.status))
