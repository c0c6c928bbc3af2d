"""Small helpers shared by the harvest components."""

from __future__ import annotations

import re
from datetime import datetime, timezone

ISO_DURATION_RE = re.compile(r"P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def iso8601_to_seconds(duration: str | None) -> int:
    """Convert ISO8601 durations (P1DT2H3M4S, PT45S) into seconds."""
    if not duration:
        return 0
    match = ISO_DURATION_RE.fullmatch(duration)
    if not match:
        return 0
    days, hours, minutes, seconds = match.groups()
    return (
        int(days or 0) * 86400
        + int(hours or 0) * 3600
        + int(minutes or 0) * 60
        + int(seconds or 0)
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_z(moment: datetime) -> str:
    """Render an aware datetime the way the platform does (trailing Z)."""
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
