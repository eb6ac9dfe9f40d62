from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

RUN_COMPLETE_MESSAGE = "Test run complete"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_body(message: str, **extra: Any) -> dict:
    return {"error": message, **extra}


def run_complete_body(report_url: str) -> dict:
    return {"message": RUN_COMPLETE_MESSAGE, "reportUrl": report_url}


def resource_listing(items: list[tuple[str, str | None]]) -> list[dict]:
    return [{"name": name, "uid": uid} for name, uid in items]
