"""
Helpers shared by the smart-alert rule modules.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

from ltc888.config import settings

ALERT_SOURCE_LABEL = "御管轉診平台 - 智慧提醒與警示"


def suggestion_uuid(prefix: str, now: datetime) -> str:
    """`<prefix>-<epoch ms>`; unique enough per invocation, stable within it."""
    return f"{prefix}-{int(now.timestamp() * 1000)}"


# FHIR date / dateTime: YYYY, YYYY-MM, YYYY-MM-DD or a full timestamp
_FHIR_DATETIME = re.compile(
    r"^(?P<year>\d{4})"
    r"(?:-(?P<month>\d{2})"
    r"(?:-(?P<day>\d{2})"
    r"(?:T(?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})?)?)?)?$"
)


def parse_fhir_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a FHIR date/dateTime into an aware datetime.

    Partial dates resolve to their first instant ("2024-06" is June 1st,
    00:00 UTC). Values without an offset are taken as UTC. Fractional
    seconds of any precision are accepted, truncated to microseconds.
    Returns None for anything unparseable.
    """
    if not value or not isinstance(value, str):
        return None
    match = _FHIR_DATETIME.match(value.strip())
    if match is None:
        return None

    parts = match.groupdict()
    tz = parts["tz"]
    try:
        if tz is None or tz == "Z":
            tzinfo = timezone.utc
        else:
            sign = -1 if tz[0] == "-" else 1
            tzinfo = timezone(sign * timedelta(hours=int(tz[1:3]), minutes=int(tz[4:6])))
        return datetime(
            int(parts["year"]),
            int(parts["month"] or 1),
            int(parts["day"] or 1),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
            int((parts["fraction"] or "0")[:6].ljust(6, "0")),
            tzinfo=tzinfo,
        )
    except ValueError:
        return None


def local_time(value: datetime) -> datetime:
    """Convert to the configured display timezone for card copy."""
    return value.astimezone(ZoneInfo(settings.timezone))


def format_value(value: Any) -> str:
    """Render a measurement the way it was entered (150, not 150.0)."""
    if value is None:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def exceeds(value: Any, threshold: float) -> bool:
    """`value > threshold`; missing or non-numeric values never exceed."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > threshold


def to_fhir_instant(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a trailing Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
