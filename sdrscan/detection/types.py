"""Dataclasses shared across the controller, detection, sweep and log layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sdrscan.errors import InvalidConfiguration


class DemodulatorMode(str, Enum):
    AM = "AM"
    AM_SYNC = "AM_SYNC"
    CW = "CW"
    CWL = "CWL"
    CWU = "CWU"
    FM = "FM"
    OFF = "OFF"
    LSB = "LSB"
    RAW = "RAW"
    USB = "USB"
    WFM = "WFM"
    WFM_ST = "WFM_ST"
    WFM_ST_OIRT = "WFM_ST_OIRT"

    @classmethod
    def parse(cls, value: Any) -> "DemodulatorMode":
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper().lstrip(":")
        try:
            return cls(text)
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise InvalidConfiguration(f"Invalid demodulator_mode '{value}'. Valid modes: {valid}") from None


def round_dbfs(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(float(value), 1)


@dataclass(frozen=True)
class Gains:
    """Audio gain plus the three backend gain stages (None when unsupported)."""

    audio_gain_db: Optional[float] = None
    rf_gain: Optional[float] = None
    if_gain: Optional[float] = None
    bb_gain: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Gains":
        data = data or {}

        def _opt(key: str) -> Optional[float]:
            val = data.get(key)
            return None if val is None else float(val)

        return cls(
            audio_gain_db=_opt("audio_gain_db"),
            rf_gain=_opt("rf_gain"),
            if_gain=_opt("if_gain"),
            bb_gain=_opt("bb_gain"),
        )


@dataclass
class FrequencyState:
    """Receiver state observed after tuning."""

    frequency_hz: int
    demodulator_mode: DemodulatorMode
    bandwidth_hz: int
    squelch_dbfs: Optional[float] = None
    audio_gain_db: Optional[float] = None
    rf_gain: Optional[float] = None
    if_gain: Optional[float] = None
    bb_gain: Optional[float] = None
    strength_dbfs: Optional[float] = None
    rds: Optional[Dict[str, str]] = None
    record_path: Optional[str] = None
    decoder: Optional[str] = None
    decoder_info: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.frequency_hz = int(self.frequency_hz)
        if self.frequency_hz < 0:
            raise ValueError(f"frequency_hz must be non-negative, got {self.frequency_hz}")
        self.bandwidth_hz = int(self.bandwidth_hz)
        if self.bandwidth_hz <= 0:
            raise ValueError(f"bandwidth_hz must be positive, got {self.bandwidth_hz}")
        self.demodulator_mode = DemodulatorMode.parse(self.demodulator_mode)
        self.strength_dbfs = round_dbfs(self.strength_dbfs)

    @property
    def gains(self) -> Gains:
        return Gains(
            audio_gain_db=self.audio_gain_db,
            rf_gain=self.rf_gain,
            if_gain=self.if_gain,
            bb_gain=self.bb_gain,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["demodulator_mode"] = self.demodulator_mode.value
        return data


@dataclass(frozen=True)
class PeakSample:
    hz: int
    strength_dbfs: float


@dataclass
class CandidateWindow:
    """Samples of the current rising run; cleared whenever the run ends."""

    samples: List[PeakSample] = field(default_factory=list)

    def add(self, hz: int, strength_dbfs: float) -> None:
        self.samples.append(PeakSample(int(hz), float(strength_dbfs)))

    def clear(self) -> None:
        self.samples.clear()

    def __len__(self) -> int:
        return len(self.samples)

    def __bool__(self) -> bool:
        return bool(self.samples)

    @property
    def beg_hz(self) -> int:
        return min(s.hz for s in self.samples)

    @property
    def max_hz(self) -> int:
        return max(s.hz for s in self.samples)


@dataclass(frozen=True)
class DetectedSignal:
    """One confirmed peak. Never mutated once appended to a scan log."""

    freq_hz: int
    demodulator_mode: DemodulatorMode
    bandwidth_hz: int
    strength_dbfs: float
    gains: Gains = field(default_factory=Gains)
    squelch_dbfs: Optional[float] = None
    strength_lock_dbfs: Optional[float] = None
    bands: Tuple[str, ...] = ()
    rds: Optional[Dict[str, str]] = None
    ai_analysis: Optional[str] = None
    decoder_info: Optional[Dict[str, Any]] = None

    @classmethod
    def from_state(
        cls,
        state: FrequencyState,
        *,
        strength_dbfs: float,
        strength_lock_dbfs: Optional[float] = None,
        bands: Tuple[str, ...] = (),
    ) -> "DetectedSignal":
        return cls(
            freq_hz=state.frequency_hz,
            demodulator_mode=state.demodulator_mode,
            bandwidth_hz=state.bandwidth_hz,
            strength_dbfs=round(float(strength_dbfs), 1),
            gains=state.gains,
            squelch_dbfs=state.squelch_dbfs,
            strength_lock_dbfs=strength_lock_dbfs,
            bands=tuple(bands),
            rds=state.rds,
            decoder_info=state.decoder_info,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "freq_hz": self.freq_hz,
            "demodulator_mode": self.demodulator_mode.value,
            "bandwidth_hz": self.bandwidth_hz,
            "strength_dbfs": self.strength_dbfs,
            "strength_lock_dbfs": self.strength_lock_dbfs,
            "squelch_dbfs": self.squelch_dbfs,
            "gains": self.gains.to_dict(),
            "bands": list(self.bands),
            "rds": self.rds,
            "ai_analysis": self.ai_analysis,
            "decoder_info": self.decoder_info,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DetectedSignal":
        return cls(
            freq_hz=int(data["freq_hz"]),
            demodulator_mode=DemodulatorMode.parse(data.get("demodulator_mode", "WFM")),
            bandwidth_hz=int(data["bandwidth_hz"]),
            strength_dbfs=float(data["strength_dbfs"]),
            gains=Gains.from_dict(data.get("gains")),
            squelch_dbfs=data.get("squelch_dbfs"),
            strength_lock_dbfs=data.get("strength_lock_dbfs"),
            bands=tuple(data.get("bands") or ()),
            rds=data.get("rds"),
            ai_analysis=data.get("ai_analysis"),
            decoder_info=data.get("decoder_info"),
        )
