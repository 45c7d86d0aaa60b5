"""Frequency display helpers.

Frequencies travel through the code as plain integers. The grouped form
(``2.450.000.000``) exists only for humans: log lines, default file names and
CLI input.
"""

from __future__ import annotations

from typing import Union


def hz_to_display(hz: Union[int, str]) -> str:
    """Render ``960000000`` as ``960.000.000``.

    Leading zeros are dropped, so ``002450000000`` becomes ``2.450.000.000``.
    """

    digits = str(int(hz))
    negative = digits.startswith("-")
    if negative:
        digits = digits[1:]
    groups = []
    while digits:
        groups.append(digits[-3:])
        digits = digits[:-3]
    text = ".".join(reversed(groups)) or "0"
    return f"-{text}" if negative else text


def display_to_hz(value: Union[int, float, str]) -> int:
    """Parse raw or grouped frequencies (``100.001.000``, ``100001000``, ``88e6``)."""

    if isinstance(value, bool):
        raise ValueError(f"Invalid frequency: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))
    text = str(value).strip().replace("_", "")
    if not text:
        raise ValueError("Empty frequency")
    if text.count(".") > 1 or (text.count(".") == 1 and len(text.split(".")[1]) == 3 and "e" not in text.lower()):
        grouped = text.replace(".", "")
        if not grouped.isdigit():
            raise ValueError(f"Invalid frequency: {value!r}")
        return int(grouped)
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(round(float(text)))
    except ValueError as exc:
        raise ValueError(f"Invalid frequency: {value!r}") from exc
