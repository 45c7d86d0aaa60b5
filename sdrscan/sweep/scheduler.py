"""Step scheduling helpers for range scans."""

from __future__ import annotations

from typing import Iterator, List


def step_hz_for_precision(precision: int) -> int:
    """Scan granularity for a precision level: 1 -> 1 Hz, 4 -> 1 kHz, 7 -> 1 MHz."""

    precision = int(precision)
    if not 1 <= precision <= 12:
        raise ValueError(f"precision must be between 1 and 12, got {precision}")
    return 10 ** (precision - 1)


class StepScheduler:
    """Generate the ordered tuning steps from start to target (inclusive)."""

    def __init__(self, start_hz: int, target_hz: int, step_hz: int) -> None:
        if step_hz < 1:
            raise ValueError("step_hz must be >= 1")
        if start_hz < 0 or target_hz < 0:
            raise ValueError("frequencies must be non-negative")
        self._start_hz = int(start_hz)
        self._target_hz = int(target_hz)
        self._step_hz = int(step_hz)

    @property
    def direction(self) -> int:
        if self._target_hz == self._start_hz:
            return 0
        return 1 if self._target_hz > self._start_hz else -1

    def __iter__(self) -> Iterator[int]:
        delta = self._step_hz * (self.direction or 1)
        for idx in range(self.count):
            yield self._start_hz + idx * delta

    def __len__(self) -> int:
        return self.count

    def steps(self) -> List[int]:
        """Eagerly materialize the scheduled steps."""

        return list(iter(self))

    @property
    def count(self) -> int:
        """Return the number of steps implied by the schedule."""

        span = abs(self._target_hz - self._start_hz)
        return span // self._step_hz + 1
