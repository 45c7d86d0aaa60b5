from datetime import datetime, timezone

import pytest

from sdrscan.detection.types import DemodulatorMode, DetectedSignal, Gains
from sdrscan.errors import InvalidConfiguration
from sdrscan.io.scan_log import ScanLog, flush, record_signal
from sdrscan.sweep.replay import replay_log, replay_scan


def _log() -> ScanLog:
    log = ScanLog.begin(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
    for freq, mode, bw in ((146_520_000, "FM", 15_000), (118_100_000, "AM", 25_000)):
        record_signal(
            log,
            DetectedSignal(
                freq_hz=freq,
                demodulator_mode=DemodulatorMode(mode),
                bandwidth_hz=bw,
                strength_dbfs=-55.0,
                gains=Gains(audio_gain_db=6.0, rf_gain=0.0, if_gain=32.0, bb_gain=10.0),
                squelch_dbfs=-73.0,
            ),
        )
    return log


def test_replay_visits_signals_in_frequency_order(fake_gqrx) -> None:
    fake = fake_gqrx()
    client = fake.client()
    paused = []
    states = replay_scan(client, _log(), pause=lambda signal, state: paused.append((signal.freq_hz, state.demodulator_mode)))
    assert paused == [(118_100_000, DemodulatorMode.AM), (146_520_000, DemodulatorMode.FM)]
    assert [s.bandwidth_hz for s in states] == [25_000, 15_000]
    assert fake.commands.index("M AM 25000") < fake.commands.index("M FM 15000")
    assert client.closed


def test_replay_stops_on_interrupt(fake_gqrx) -> None:
    fake = fake_gqrx()
    client = fake.client()

    def _pause(signal, state):
        raise KeyboardInterrupt

    states = replay_scan(client, _log(), pause=_pause)
    assert len(states) == 1
    assert client.closed


def test_replay_requires_signals(fake_gqrx, tmp_path) -> None:
    path = tmp_path / "empty.json"
    flush(ScanLog.begin(), path)
    with pytest.raises(InvalidConfiguration):
        replay_log(str(path), "127.0.0.1", 1)
    with pytest.raises(InvalidConfiguration):
        replay_log(str(tmp_path / "missing.json"), "127.0.0.1", 1)
