"""Rising-edge candidate detection over successive strength samples."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Tuple

import numpy as np

from sdrscan.detection.types import CandidateWindow, PeakSample

TRAILING_HISTORY_SIZE = 5


@dataclass(frozen=True)
class CandidateRun:
    """Edges of a finished run, ready for the peak locator."""

    beg_hz: int
    top_hz: int
    end_hz: int
    samples: Tuple[PeakSample, ...]
    trailing_avg_dbfs: Optional[float]

    @property
    def strongest(self) -> PeakSample:
        return max(self.samples, key=lambda s: s.strength_dbfs)


def overlaps_previous(beg_hz: int, prev_locked_hz: Optional[int], bandwidth_hz: int) -> bool:
    """True when a run starts inside half a passband of the last lock."""

    if prev_locked_hz is None:
        return False
    return abs(int(beg_hz) - int(prev_locked_hz)) < bandwidth_hz / 2


class CandidateTracker:
    """Accumulate samples that are at/above the lock level and strictly rising.

    Any sample that is below the lock level or not above the previous sample
    ends the run. A single downward blip mid-peak therefore splits a signal
    into two runs; overlap protection usually absorbs the second one.
    """

    def __init__(self, strength_lock_dbfs: float, step_hz: int, history_size: int = TRAILING_HISTORY_SIZE):
        self.strength_lock_dbfs = float(strength_lock_dbfs)
        self.step_hz = int(step_hz)
        self.history: Deque[float] = deque(maxlen=max(1, int(history_size)))
        self.window = CandidateWindow()
        self.prev_strength: Optional[float] = None

    def trailing_average(self) -> Optional[float]:
        if not self.history:
            return None
        return round(float(np.mean(np.fromiter(self.history, dtype=np.float64))), 1)

    def observe(self, hz: int, strength_dbfs: float) -> Optional[CandidateRun]:
        """Feed one sample; return the finished run if this sample ended one."""

        strength_dbfs = float(strength_dbfs)
        rising = self.prev_strength is not None and strength_dbfs > self.prev_strength
        self.prev_strength = strength_dbfs
        self.history.append(strength_dbfs)
        if strength_dbfs >= self.strength_lock_dbfs and rising:
            self.window.add(hz, strength_dbfs)
            return None
        if self.window:
            return self._close()
        return None

    def finish(self) -> Optional[CandidateRun]:
        """Close a run still open when the range is exhausted."""
        return self._close() if self.window else None

    def _close(self) -> CandidateRun:
        beg_hz = self.window.beg_hz
        top_hz = self.window.max_hz - self.step_hz
        return CandidateRun(
            beg_hz=beg_hz,
            top_hz=top_hz,
            end_hz=top_hz + self.step_hz,
            samples=tuple(self.window.samples),
            trailing_avg_dbfs=self.trailing_average(),
        )

    def reset(self) -> None:
        """Clear the run accumulator and trailing history after a run is handled."""
        self.window.clear()
        self.history.clear()
