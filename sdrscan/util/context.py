"""Explicit run context handed to every scan, tune and replay operation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from sdrscan.util.config import DEFAULT_LOCATION
from sdrscan.util.logging import get_logger
from sdrscan.util.scan_logger import ScanEventLog

if TYPE_CHECKING:  # pragma: no cover - type hint only
    from sdrscan.analysis.introspection import AnalysisClient


@dataclass
class ScanContext:
    """Logger, cancellation signal and collaborators for one session.

    The cancel event is checked at the top of every scan step and every
    peak-locator pass; setting it from another thread (or a signal handler)
    ends the run through the normal cleanup path.
    """

    logger: logging.Logger = field(default_factory=lambda: get_logger("scan"))
    cancel_event: threading.Event = field(default_factory=threading.Event)
    events: Optional[ScanEventLog] = None
    analysis: Optional["AnalysisClient"] = None
    location: str = DEFAULT_LOCATION

    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def event(self, name: str, **fields: Any) -> None:
        if self.events is not None:
            self.events.log(name, **fields)

    def child_logger(self, suffix: str) -> logging.Logger:
        return self.logger.getChild(suffix)
