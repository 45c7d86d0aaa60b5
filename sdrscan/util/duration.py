"""Duration formatting helpers."""

from __future__ import annotations


def format_hms(seconds: float) -> str:
    """Format elapsed seconds as HH:MM:SS (hours are not wrapped at 24)."""

    total = max(0, int(seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
