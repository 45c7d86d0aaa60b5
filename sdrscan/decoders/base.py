"""Concurrent decoders fed from the receiver's recording file.

A decoder owns the recording output while the control connection keeps being
driven by the caller. ``stop()`` joins the worker thread before returning, so
callers can rely on the decoder being finished before they switch the
recorder off.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional

import numpy as np

from sdrscan.detection.types import FrequencyState
from sdrscan.util.logging import get_logger

WAV_HEADER_SIZE = 44
IQ_PAIR_BYTES = 8  # float32 I + float32 Q


def locate_recording(record_dir: str, freq_hz: int, since: float) -> Optional[Path]:
    """Newest ``gqrx_*_<freq_hz>.wav`` in record_dir modified at or after ``since``.

    gqrx stamps the file name itself, so the exact second can differ from ours.
    """

    matches = []
    for path in Path(record_dir).glob(f"gqrx_*_{int(freq_hz)}.wav"):
        try:
            mtime = path.stat().st_mtime
        except OSError:
            continue
        if mtime >= since - 1.0:
            matches.append((mtime, path))
    if not matches:
        return None
    return max(matches)[1]


def iq_from_bytes(data: bytes) -> np.ndarray:
    """Interleaved little-endian float32 I/Q to complex64."""
    samples = np.frombuffer(data, dtype="<f4")
    if samples.size % 2:
        samples = samples[:-1]
    return (samples[0::2] + 1j * samples[1::2]).astype(np.complex64)


class RecordingDecoder:
    """Tail a growing recording in a worker thread and feed whole I/Q pairs to process_chunk."""

    name = "recording"
    poll_interval_s = 0.1
    appear_timeout_s = 5.0
    join_timeout_s = 5.0

    def __init__(
        self,
        state: FrequencyState,
        record_dir: str,
        *,
        logger: Optional[logging.Logger] = None,
        keep_recording: bool = False,
    ):
        self.state = state
        self.record_dir = record_dir
        self.logger = logger or get_logger(f"decoders.{self.name}")
        self.keep_recording = keep_recording
        self.record_path: Optional[Path] = None
        self.bytes_read = 0
        self.chunks = 0
        self.error: Optional[str] = None
        self._started_at = time.time()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "RecordingDecoder":
        self._started_at = time.time()
        self._thread = threading.Thread(
            target=self._run,
            name=f"decoder-{self.name}-{self.state.frequency_hz}",
            daemon=True,
        )
        self._thread.start()
        self.logger.info(
            "%s decoder started for %s Hz, bandwidth %s Hz",
            self.name.upper(),
            self.state.frequency_hz,
            self.state.bandwidth_hz,
            extra={"decoder": self.name, "freq_hz": self.state.frequency_hz},
        )
        return self

    def _wait_for_recording(self) -> Optional[Path]:
        deadline = time.monotonic() + self.appear_timeout_s
        while not self._stop.is_set() and time.monotonic() < deadline:
            path = locate_recording(self.record_dir, self.state.frequency_hz, self._started_at)
            if path is not None and path.stat().st_size >= WAV_HEADER_SIZE:
                return path
            self._stop.wait(self.poll_interval_s)
        return None

    def _run(self) -> None:
        try:
            path = self._wait_for_recording()
            if path is None:
                if not self._stop.is_set():
                    self.error = f"no recording appeared in {self.record_dir}"
                    self.logger.warning("%s decoder: %s", self.name, self.error, extra={"decoder": self.name})
                return
            self.record_path = path
            with path.open("rb") as fh:
                header = fh.read(WAV_HEADER_SIZE)
                if not (header.startswith(b"RIFF") and b"WAVE" in header):
                    raise ValueError(f"Invalid WAV header in {path}")
                self.bytes_read = WAV_HEADER_SIZE
                while True:
                    self._drain(fh)
                    if self._stop.wait(self.poll_interval_s):
                        self._drain(fh)
                        break
        except Exception as exc:  # worker boundary: reported through summary()
            self.error = f"{type(exc).__name__}: {exc}"
            self.logger.error("%s decoder failed: %s", self.name, exc, extra={"decoder": self.name})

    def _drain(self, fh: BinaryIO) -> None:
        available = os.fstat(fh.fileno()).st_size - self.bytes_read
        available -= available % IQ_PAIR_BYTES
        if available <= 0:
            return
        fh.seek(self.bytes_read)
        data = fh.read(available)
        self.bytes_read += len(data)
        self.chunks += 1
        self.process_chunk(iq_from_bytes(data))

    def process_chunk(self, iq: np.ndarray) -> None:
        """Handle one block of complex samples. Subclasses override."""

    def summary(self) -> Dict[str, Any]:
        return {
            "decoder": self.name,
            "record_path": str(self.record_path) if self.record_path else None,
            "bytes_read": self.bytes_read,
            "chunks": self.chunks,
            "error": self.error,
        }

    def _cleanup(self) -> None:
        if self.keep_recording or self.record_path is None:
            return
        try:
            self.record_path.unlink()
            self.logger.info("Cleaned up recording: %s", self.record_path, extra={"decoder": self.name})
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.warning("Could not remove recording %s: %s", self.record_path, exc)

    def stop(self) -> Dict[str, Any]:
        """Signal the worker, wait for it to finish and return its summary."""

        self._stop.set()
        if self._thread is not None:
            self._thread.join(self.join_timeout_s)
            if self._thread.is_alive():
                self.logger.warning(
                    "%s decoder did not finish within %.1fs",
                    self.name,
                    self.join_timeout_s,
                    extra={"decoder": self.name},
                )
        self._cleanup()
        return self.summary()
