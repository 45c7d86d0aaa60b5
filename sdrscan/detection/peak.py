"""Adaptive peak locator.

A single pass over a narrowband signal rarely lands on its true peak because
every strength reading is noisy. The locator sweeps the candidate window back
and forth, averages every reading taken at the same frequency, trims the weak
ends of the window after each pass and stops once the best averaged sample
stops moving. It is a bounded hill-climb, not an exact maximum finder.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Callable, List, Optional

import numpy as np

from sdrscan.detection.types import PeakSample
from sdrscan.util.hz import hz_to_display
from sdrscan.util.logging import get_logger
from sdrscan.util.scan_logger import ScanEventLog

MAX_PASSES = 100

Probe = Callable[[int], float]


class PeakLocator:
    def __init__(
        self,
        probe: Probe,
        step_hz: int,
        *,
        max_passes: int = MAX_PASSES,
        cancel_event: Optional[threading.Event] = None,
        logger: Optional[logging.Logger] = None,
        events: Optional[ScanEventLog] = None,
    ):
        if step_hz < 1:
            raise ValueError("step_hz must be >= 1")
        self.probe = probe
        self.step_hz = int(step_hz)
        self.max_passes = int(max_passes)
        self.cancel_event = cancel_event or threading.Event()
        self.logger = logger or get_logger("detection.peak")
        self.events = events
        self.passes = 0
        self.converged = False
        self.safeguard_triggered = False

    def _sweep(self, beg_hz: int, end_hz: int, forward: bool, hz_log: List[int], db_log: List[float]) -> None:
        if forward:
            points = range(beg_hz, end_hz + 1, self.step_hz)
        else:
            points = range(end_hz, beg_hz - 1, -self.step_hz)
        for hz in points:
            hz_log.append(hz)
            db_log.append(float(self.probe(hz)))

    def locate(self, beg_hz: int, top_hz: int) -> Optional[PeakSample]:
        """Converge on the strongest frequency in [beg_hz, top_hz + step_hz].

        Returns None only when cancelled before the first pass completed.
        """

        beg_hz = int(beg_hz)
        end_hz = int(top_hz) + self.step_hz
        if end_hz < beg_hz:
            beg_hz, end_hz = end_hz, beg_hz

        hz_log: List[int] = []
        db_log: List[float] = []
        best: Optional[PeakSample] = None
        prev_best: Optional[PeakSample] = None
        stable = 0
        self.passes = 0
        self.converged = False
        self.safeguard_triggered = False

        while True:
            if self.passes >= self.max_passes:
                self.safeguard_triggered = True
                self.logger.warning("Infinite loop safeguard triggered after %d passes", self.passes)
                break
            if self.cancel_event.is_set():
                break
            self.passes += 1
            forward = self.passes % 2 == 1
            self._sweep(beg_hz, end_hz, forward, hz_log, db_log)

            raw_hz = np.asarray(hz_log, dtype=np.int64)
            raw_db = np.asarray(db_log, dtype=np.float64)
            uniq_hz, inverse = np.unique(raw_hz, return_inverse=True)
            averaged = np.round(np.bincount(inverse, weights=raw_db) / np.bincount(inverse), 1)

            max_db = float(np.max(averaged))
            trim_db = math.floor(float(np.mean(np.abs(raw_db - max_db))) * 10) / 10.0
            floor_db = max_db - trim_db
            lo, hi = 0, averaged.size - 1
            while lo <= hi and averaged[lo] < floor_db:
                lo += 1
            while hi >= lo and averaged[hi] < floor_db:
                hi -= 1
            kept_hz = uniq_hz[lo:hi + 1]
            kept_db = averaged[lo:hi + 1]
            beg_hz, end_hz = int(kept_hz[0]), int(kept_hz[-1])

            idx = int(np.argmax(kept_db))
            best = PeakSample(int(kept_hz[idx]), float(kept_db[idx]))
            stable = stable + 1 if best == prev_best else 0
            prev_best = best

            self.logger.debug(
                "Pass %d (%s): trim %.1f dB, window %s-%s, best %s => %.1f dBFS, stable %d",
                self.passes,
                ">" if forward else "<",
                trim_db,
                hz_to_display(beg_hz),
                hz_to_display(end_hz),
                hz_to_display(best.hz),
                best.strength_dbfs,
                stable,
                extra={"pass_no": self.passes, "freq_hz": best.hz},
            )
            if self.events is not None:
                self.events.log(
                    "peak_pass",
                    pass_no=self.passes,
                    trim_db=trim_db,
                    window_hz=[beg_hz, end_hz],
                    best_hz=best.hz,
                    best_dbfs=best.strength_dbfs,
                    stable=stable,
                )

            if stable > 0 or kept_hz.size == 1:
                self.converged = True
                break

        return best


def find_peak(
    probe: Probe,
    beg_hz: int,
    top_hz: int,
    step_hz: int,
    *,
    max_passes: int = MAX_PASSES,
    cancel_event: Optional[threading.Event] = None,
    logger: Optional[logging.Logger] = None,
    events: Optional[ScanEventLog] = None,
) -> Optional[PeakSample]:
    locator = PeakLocator(
        probe,
        step_hz,
        max_passes=max_passes,
        cancel_event=cancel_event,
        logger=logger,
        events=events,
    )
    return locator.locate(beg_hz, top_hz)
