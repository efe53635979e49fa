from __future__ import annotations

import json
import os
from pathlib import Path

import structlog

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def load_confirmed(path: str | Path | None) -> dict[str, int]:
    """Read the confirmed-email snapshot. Missing or unreadable files yield an empty table."""
    if not path:
        return {}
    path = Path(path)
    if not path.exists():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("confirm_store_load_failed", path=str(path), error=str(e)[:200])
        return {}

    if not isinstance(raw, dict):
        logger.warning("confirm_store_load_failed", path=str(path), error="not a JSON object")
        return {}

    confirmed: dict[str, int] = {}
    for email, ts in raw.items():
        key = normalize_email(email) if isinstance(email, str) else ""
        if not key:
            continue
        try:
            confirmed[key] = int(ts)
        except (TypeError, ValueError):
            continue
    return confirmed


def save_confirmed(path: str | Path | None, confirmed: dict[str, int]) -> bool:
    """Write the snapshot to a sibling temp file and rename it into place.

    Returns False (after logging) on failure; callers treat persistence as best-effort.
    """
    if not path:
        return False
    path = Path(path)
    tmp = path.with_name(f"{path.name}.tmp")
    try:
        tmp.write_text(json.dumps(confirmed, indent=2, sort_keys=True), encoding="utf-8")
        os.chmod(tmp, 0o600)
        tmp.replace(path)
    except OSError as e:
        logger.warning("confirm_store_save_failed", path=str(path), error=str(e)[:200])
        return False
    return True
