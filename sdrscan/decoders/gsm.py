"""GSM normal-burst detector running over the receiver recording.

This is a coarse decoder: it finds bursts by power, demodulates GMSK by the
sign of the differential phase, synchronises on training sequence 0 and reads
the leading data bits as a packed identity. There is no deinterleaving,
convolutional decoding or layer-3 parsing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from sdrscan.decoders.base import RecordingDecoder

POWER_THRESHOLD = 0.1
BURST_DURATION_S = 0.000577

# TSC 0: 00100101110000101010011011
TSC_0 = np.array(
    [0, 0, 1, 0, 0, 1, 0, 1, 1, 1, 0, 0, 0, 0, 1, 0, 1, 0, 1, 0, 0, 1, 1, 0, 1, 1],
    dtype=np.uint8,
)
TSC_MIN_MATCHES = 21
TSC_OFFSET_IN_BURST = 58
BURST_BITS = 148
DATA_BLOCK_BITS = 57


def burst_power(iq: np.ndarray, window: int) -> float:
    """Largest mean power over any ``window`` consecutive samples."""

    if window <= 0 or iq.size < window:
        return 0.0
    power = np.abs(iq) ** 2
    kernel = np.ones(window, dtype=np.float64) / window
    return float(np.max(np.convolve(power, kernel, mode="valid")))


def demod_gmsk(iq: np.ndarray) -> np.ndarray:
    if iq.size < 2:
        return np.zeros(0, dtype=np.uint8)
    prod = iq[1:] * np.conj(iq[:-1])
    return (prod.imag < 0).astype(np.uint8)


def find_tsc_offset(bits: np.ndarray, tsc: np.ndarray = TSC_0, min_matches: int = TSC_MIN_MATCHES) -> int:
    """Offset of the best training-sequence match, or -1 below ``min_matches``."""

    if bits.size < tsc.size:
        return -1
    windows = np.lib.stride_tricks.sliding_window_view(bits, tsc.size)
    corr = np.count_nonzero(windows == tsc, axis=1)
    best = int(np.argmax(corr))
    return best if int(corr[best]) >= min_matches else -1


def extract_data_bits(bits: np.ndarray, burst_start: int) -> np.ndarray:
    """Both 57-bit data blocks of a normal burst (tails and guard dropped)."""

    first = bits[burst_start + 2: burst_start + 2 + DATA_BLOCK_BITS]
    second = bits[burst_start + 88: burst_start + 88 + DATA_BLOCK_BITS]
    return np.concatenate([first, second])


def decode_identity(data_bits: np.ndarray) -> Optional[str]:
    """Read the first 60 bits as 15 packed digits (MCC + MNC + MSIN)."""

    if data_bits.size < 60:
        return None
    nibbles = data_bits[:60].reshape(15, 4)
    weights = np.array([8, 4, 2, 1], dtype=np.int64)
    digits = (nibbles.astype(np.int64) @ weights) % 10
    return "".join(str(int(d)) for d in digits)


class GsmDecoder(RecordingDecoder):
    name = "gsm"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.bursts = 0
        self.identities: List[str] = []

    def process_chunk(self, iq: np.ndarray) -> None:
        window = min(int(round(self.state.bandwidth_hz * BURST_DURATION_S)), int(iq.size))
        if window <= 0:
            return
        max_power = burst_power(iq, window)
        if max_power <= POWER_THRESHOLD:
            return

        bits = demod_gmsk(iq)
        sync_offset = find_tsc_offset(bits)
        if sync_offset < 0:
            return
        burst_start = sync_offset - TSC_OFFSET_IN_BURST
        if burst_start < 0 or burst_start + BURST_BITS > bits.size:
            return

        self.bursts += 1
        self.logger.debug(
            "Burst synchronized at offset %d (power %.4f)",
            sync_offset,
            max_power,
            extra={"decoder": self.name, "freq_hz": self.state.frequency_hz},
        )
        identity = decode_identity(extract_data_bits(bits, burst_start))
        if identity and identity not in self.identities:
            self.identities.append(identity)
            self.logger.info(
                "Decoded identity %s at %s Hz",
                identity,
                self.state.frequency_hz,
                extra={"decoder": self.name, "freq_hz": self.state.frequency_hz},
            )

    def summary(self) -> Dict[str, Any]:
        info = super().summary()
        info["bursts"] = self.bursts
        info["identities"] = list(self.identities)
        return info
