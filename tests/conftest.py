"""Synthetic gqrx backend served over a socketpair."""

from __future__ import annotations

import socket
import struct
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np
import pytest

from sdrscan.drivers.gqrx import GqrxClient, ProtocolTimeouts

FAST_TIMEOUTS = ProtocolTimeouts(initial_s=1.0, drain_s=0.002, strength_drain_s=0.002, connect_s=1.0)

MODES = {"AM", "AM_SYNC", "CW", "CWL", "CWU", "FM", "OFF", "LSB", "RAW", "USB", "WFM", "WFM_ST", "WFM_ST_OIRT"}


def wav_bytes(iq: np.ndarray) -> bytes:
    payload = np.empty(iq.size * 2, dtype="<f4")
    payload[0::2] = iq.real
    payload[1::2] = iq.imag
    data = payload.tobytes()
    header = b"RIFF" + struct.pack("<I", 36 + len(data)) + b"WAVE"
    header = header.ljust(44, b"\x00")
    return header + data


def bell(center_hz: int, peak_dbfs: float = -50.0, floor_dbfs: float = -90.0, half_width_hz: int = 1_000) -> Callable[[int], float]:
    """Triangular bump that reaches the floor half_width_hz away from center."""

    slope = (peak_dbfs - floor_dbfs) / half_width_hz

    def _strength(hz: int) -> float:
        return max(floor_dbfs, peak_dbfs - slope * abs(hz - center_hz))

    return _strength


class FakeGqrx:
    def __init__(
        self,
        strength: Optional[Callable[[int], float]] = None,
        unsupported: Iterable[str] = (),
        record_dir: Optional[Path] = None,
        recording_iq: Optional[np.ndarray] = None,
    ):
        self.strength = strength or (lambda hz: -90.0)
        self.unsupported = set(unsupported)
        self.record_dir = record_dir
        self.recording_iq = recording_iq
        self.freq = 0
        self.mode = "WFM"
        self.passband = 200_000
        self.levels: Dict[str, float] = {"SQL": -150.0, "AF": 0.0, "RF_GAIN": 0.0, "IF_GAIN": 0.0, "BB_GAIN": 0.0}
        self.recording = False
        self.rds_enabled = False
        self.rds_values = {"RDS_PI": "0000", "RDS_PS_NAME": "", "RDS_RADIOTEXT": ""}
        self.commands: List[str] = []
        self.decoder_alive_at_record_off: Optional[bool] = None
        self.stuck_frequency: Optional[int] = None
        self.reject_tune_from: Optional[int] = None
        self.client_sock, self.server_sock = socket.socketpair()
        self._thread = threading.Thread(target=self._serve, name="fake-gqrx", daemon=True)
        self._thread.start()

    def client(self) -> GqrxClient:
        return GqrxClient(self.client_sock, timeouts=FAST_TIMEOUTS, peer="fake-gqrx")

    def count(self, prefix: str) -> int:
        return sum(1 for cmd in self.commands if cmd.startswith(prefix))

    def _start_recording(self) -> None:
        self.recording = True
        if self.record_dir is None:
            return
        iq = self.recording_iq if self.recording_iq is not None else np.ones(1024, dtype=np.complex64)
        name = f"gqrx_{time.strftime('%Y%m%d_%H%M%S')}_{self.freq}.wav"
        (self.record_dir / name).write_bytes(wav_bytes(iq))

    def _stop_recording(self) -> None:
        self.decoder_alive_at_record_off = any(
            t.name.startswith("decoder-") and t.is_alive() for t in threading.enumerate()
        )
        self.recording = False

    def respond(self, line: str) -> List[str]:
        parts = line.split()
        if not parts:
            return ["RPRT 1"]
        cmd, args = parts[0], parts[1:]
        if cmd == "F":
            if self.reject_tune_from is not None and int(args[0]) >= self.reject_tune_from:
                return ["RPRT 1"]
            self.freq = int(args[0])
            return ["RPRT 0"]
        if cmd == "f":
            return [str(self.freq if self.stuck_frequency is None else self.stuck_frequency)]
        if cmd == "M":
            if args[0] not in MODES:
                return ["RPRT 1"]
            self.mode = args[0]
            if len(args) > 1:
                self.passband = int(args[1])
            return ["RPRT 0"]
        if cmd == "m":
            return [self.mode, str(self.passband)]
        if cmd in ("l", "L") and args:
            name = args[0]
            if name in self.unsupported:
                return ["RPRT 1"]
            if cmd == "L":
                self.levels[name] = float(args[1])
                return ["RPRT 0"]
            if name == "STRENGTH":
                return [f"{self.strength(self.freq):.1f}"]
            if name in self.levels:
                return [f"{self.levels[name]:.1f}"]
            return ["RPRT 1"]
        if cmd == "U" and len(args) == 2:
            on = args[1] == "1"
            if args[0] == "RECORD":
                if on:
                    self._start_recording()
                else:
                    self._stop_recording()
            elif args[0] == "RDS":
                self.rds_enabled = on
            return ["RPRT 0"]
        if cmd == "u" and args == ["RECORD"]:
            return ["1" if self.recording else "0"]
        if cmd == "p" and args and args[0] in self.rds_values:
            return [self.rds_values[args[0]]]
        return ["RPRT 1"]

    def _serve(self) -> None:
        buf = b""
        while True:
            try:
                chunk = self.server_sock.recv(4096)
            except OSError:
                return
            if not chunk:
                return
            buf += chunk
            while b"\n" in buf:
                raw, buf = buf.split(b"\n", 1)
                line = raw.decode("ascii").strip()
                self.commands.append(line)
                reply = "\n".join(self.respond(line)) + "\n"
                try:
                    self.server_sock.sendall(reply.encode("ascii"))
                except OSError:
                    return

    def shutdown(self) -> None:
        try:
            self.server_sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.server_sock.close()
        self._thread.join(2.0)
        self.client_sock.close()


@pytest.fixture
def fake_gqrx():
    fakes: List[FakeGqrx] = []

    def _make(**kwargs) -> FakeGqrx:
        fake = FakeGqrx(**kwargs)
        fakes.append(fake)
        return fake

    yield _make
    for fake in fakes:
        fake.shutdown()
