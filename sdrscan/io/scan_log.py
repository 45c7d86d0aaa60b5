"""Signal log that is rewritten in full after every detection.

The file on disk is always a complete JSON document: it is written to a
temporary file beside the target and moved into place, so a scan that dies
mid-write leaves the previous version intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from sdrscan.detection.types import DetectedSignal
from sdrscan.errors import InvalidConfiguration
from sdrscan.util.duration import format_hms
from sdrscan.util.time import format_log_timestamp, local_now, parse_log_timestamp

PathLike = Union[str, Path]


@dataclass
class ScanLog:
    timestamp_start: str
    signals: List[DetectedSignal] = field(default_factory=list)
    timestamp_end: Optional[str] = None
    duration: str = "00:00:00"

    @classmethod
    def begin(cls, now: Optional[datetime] = None) -> "ScanLog":
        stamp = format_log_timestamp(now or local_now())
        return cls(timestamp_start=stamp, timestamp_end=stamp)

    @property
    def total(self) -> int:
        return len(self.signals)

    def touch(self, now: Optional[datetime] = None) -> None:
        """Recompute timestamp_end and duration as of ``now``."""

        now = now or local_now()
        self.timestamp_end = format_log_timestamp(now)
        elapsed = (now - parse_log_timestamp(self.timestamp_start)).total_seconds()
        self.duration = format_hms(elapsed)

    def to_dict(self) -> Dict[str, Any]:
        ordered = sorted(self.signals, key=lambda s: s.freq_hz)
        return {
            "signals": [s.to_dict() for s in ordered],
            "total": len(ordered),
            "timestamp_start": self.timestamp_start,
            "timestamp_end": self.timestamp_end,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanLog":
        signals = [DetectedSignal.from_dict(item) for item in data.get("signals") or []]
        signals.sort(key=lambda s: s.freq_hz)
        return cls(
            timestamp_start=str(data["timestamp_start"]),
            signals=signals,
            timestamp_end=data.get("timestamp_end"),
            duration=str(data.get("duration") or "00:00:00"),
        )


def record_signal(log: ScanLog, signal: DetectedSignal, now: Optional[datetime] = None) -> ScanLog:
    """Append a confirmed signal, keep the list sorted and refresh the end stamp."""

    log.signals.append(signal)
    log.signals.sort(key=lambda s: s.freq_hz)
    log.touch(now)
    return log


def flush(log: ScanLog, path: PathLike) -> Path:
    """Atomically replace ``path`` with the current log."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(log.to_dict(), fh, indent=2)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return target


def load_scan_log(path: PathLike) -> ScanLog:
    target = Path(path)
    if not target.is_file():
        raise InvalidConfiguration(f"Scan log not found: {target}")
    try:
        with target.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise InvalidConfiguration(f"Scan log {target} is not valid JSON: {exc}") from None
    if not isinstance(data, dict) or "timestamp_start" not in data:
        raise InvalidConfiguration(f"Scan log {target} is missing timestamp_start")
    return ScanLog.from_dict(data)
