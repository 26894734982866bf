"""Shared utility helpers for dopamine-economy."""

from __future__ import annotations

from datetime import date, datetime, timezone


def now_local() -> datetime:
    """Return current local datetime (timezone-aware)."""
    return datetime.now().astimezone()


def to_local(dt: datetime) -> datetime:
    """Convert to the local time zone. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone()


def format_timestamp(dt: datetime) -> str:
    """Render a journal timestamp: UTC ISO-8601 with millisecond precision and ``Z``."""
    utc = to_local(dt).astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(ts: str | None) -> datetime | None:
    """Parse an ISO-8601 journal timestamp to a timezone-aware datetime, or None."""
    if not ts or not isinstance(ts, str):
        return None
    try:
        # fromisoformat() only learned the ``Z`` suffix in 3.11
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def day_label(dt: datetime | None = None) -> str:
    """Return the local calendar day as ``'Wed Jan 01 2025'``."""
    if dt is None:
        dt = now_local()
    return to_local(dt).strftime("%a %b %d %Y")


def month_key(dt: datetime) -> str:
    """Return the local calendar month as ``'2025-01'``."""
    return to_local(dt).strftime("%Y-%m")


def local_date(dt: datetime) -> date:
    return to_local(dt).date()
