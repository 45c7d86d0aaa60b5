"""Time utilities shared across sdrscan components."""

from __future__ import annotations

from datetime import datetime, timezone

LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S%z"


def utc_now_str() -> str:
    """Return the current UTC timestamp as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def local_now() -> datetime:
    """Return an aware datetime in the local timezone."""
    return datetime.now().astimezone()


def format_log_timestamp(ts: datetime) -> str:
    return ts.strftime(LOG_TIMESTAMP_FORMAT)


def parse_log_timestamp(text: str) -> datetime:
    return datetime.strptime(text, LOG_TIMESTAMP_FORMAT)
