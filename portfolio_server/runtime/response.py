"""Response shaping helpers for the HTTP surface."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_response(message: str, issues: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "success": False,
        "error": message,
        "timestamp": utc_timestamp(),
    }
    if issues:
        payload["issues"] = issues
    return payload
