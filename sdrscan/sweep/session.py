"""Typed configuration for one range scan."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Optional

from sdrscan.detection.types import DemodulatorMode, Gains
from sdrscan.errors import InvalidConfiguration
from sdrscan.io.profiles import ScanProfile
from sdrscan.sweep.scheduler import StepScheduler, step_hz_for_precision
from sdrscan.util.config import DEFAULT_LOCATION, DEFAULT_RECORD_DIR
from sdrscan.util.hz import display_to_hz, hz_to_display

DEFAULT_STRENGTH_LOCK_DBFS = -70.0
SQUELCH_BELOW_LOCK_DB = 3.0


def default_log_path(start_hz: int, target_hz: int, day: Optional[date] = None, directory: str = "/tmp") -> str:
    day = day or date.today()
    name = f"sdrscan_{hz_to_display(start_hz)}-{hz_to_display(target_hz)}_{day.isoformat()}.json"
    return os.path.join(directory, name)


@dataclass
class ScanSession:
    """Everything a range scan needs besides the connection.

    ``squelch_dbfs`` defaults to three dB below the lock level and
    ``log_path`` to a dated file under /tmp named after the range.
    """

    start_hz: int
    target_hz: int
    demodulator_mode: DemodulatorMode = DemodulatorMode.WFM
    bandwidth_hz: int = 200_000
    precision: int = 1
    strength_lock_dbfs: float = DEFAULT_STRENGTH_LOCK_DBFS
    squelch_dbfs: Optional[float] = None
    audio_gain_db: float = 6.0
    rf_gain: float = 0.0
    if_gain: float = 32.0
    bb_gain: float = 10.0
    overlap_protection: bool = True
    lock_settle_s: float = 0.0
    location: str = DEFAULT_LOCATION
    rds: bool = False
    decoder: Optional[str] = None
    decoder_dwell_s: float = 10.0
    record_dir: str = DEFAULT_RECORD_DIR
    keep_recording: bool = False
    log_path: Optional[str] = None
    profile: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        try:
            self.start_hz = display_to_hz(self.start_hz)
            self.target_hz = display_to_hz(self.target_hz)
        except ValueError as exc:
            raise InvalidConfiguration(str(exc)) from None
        if self.start_hz < 0 or self.target_hz < 0:
            raise InvalidConfiguration("start_hz and target_hz must be non-negative")
        self.demodulator_mode = DemodulatorMode.parse(self.demodulator_mode)
        try:
            self.bandwidth_hz = display_to_hz(self.bandwidth_hz)
        except ValueError as exc:
            raise InvalidConfiguration(str(exc)) from None
        if self.bandwidth_hz <= 0:
            raise InvalidConfiguration(f"bandwidth must be positive, got {self.bandwidth_hz}")
        try:
            step_hz_for_precision(self.precision)
        except ValueError as exc:
            raise InvalidConfiguration(str(exc)) from None
        self.precision = int(self.precision)
        self.strength_lock_dbfs = float(self.strength_lock_dbfs)
        if self.squelch_dbfs is None:
            self.squelch_dbfs = self.strength_lock_dbfs - SQUELCH_BELOW_LOCK_DB
        if self.lock_settle_s < 0:
            raise InvalidConfiguration("lock_settle_s must be >= 0")
        if self.decoder_dwell_s < 0:
            raise InvalidConfiguration("decoder_dwell_s must be >= 0")
        if not self.log_path:
            self.log_path = default_log_path(self.start_hz, self.target_hz)

    @property
    def step_hz(self) -> int:
        return step_hz_for_precision(self.precision)

    @property
    def direction(self) -> int:
        return self.scheduler().direction

    @property
    def gains(self) -> Gains:
        return Gains(
            audio_gain_db=self.audio_gain_db,
            rf_gain=self.rf_gain,
            if_gain=self.if_gain,
            bb_gain=self.bb_gain,
        )

    def scheduler(self) -> StepScheduler:
        return StepScheduler(self.start_hz, self.target_hz, self.step_hz)

    @classmethod
    def from_profile(cls, profile: ScanProfile, **overrides: Any) -> "ScanSession":
        """Session preset from a profile; explicit overrides win, None values are ignored."""

        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown session fields: {', '.join(sorted(unknown))}")
        values = {
            "start_hz": profile.f_low_hz,
            "target_hz": profile.f_high_hz,
            "demodulator_mode": profile.demodulator_mode,
            "bandwidth_hz": profile.bandwidth_hz,
            "precision": profile.precision,
            "profile": profile.name,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
