"""JSONL event trail written alongside a scan."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Optional

from sdrscan.util.time import utc_now_str


class ScanEventLog:
    """Append one JSON object per scan event (candidate, peak pass, lock, ...).

    Write failures are reported through ``logger`` and never interrupt the scan.
    """

    def __init__(self, log_path: Path, logger: Optional[logging.Logger] = None):
        self.log_path = Path(log_path).expanduser()
        self.logger = logger
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._warn("Cannot create directory for %s: %s", self.log_path, exc)
        self.run_id = f"run-{int(time.time() * 1000)}-pid{os.getpid()}"
        self.events_written = 0

    def _warn(self, msg: str, *args: Any) -> None:
        if self.logger:
            self.logger.warning(msg, *args)

    def log(self, event: str, **fields: Any) -> None:
        record = {"ts": utc_now_str(), "run_id": self.run_id, "event": event, **fields}
        try:
            with self.log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=str) + "\n")
        except OSError as exc:
            self._warn("Failed to write scan event to %s: %s", self.log_path, exc)
            return
        self.events_written += 1
