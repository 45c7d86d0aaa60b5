import json
import threading

import pytest

from conftest import bell
from sdrscan.errors import UnexpectedResponse
from sdrscan.io.scan_log import load_scan_log
from sdrscan.sweep.scanner import Scanner, scan_range
from sdrscan.sweep.session import ScanSession
from sdrscan.util.context import ScanContext
from sdrscan.util.scan_logger import ScanEventLog


def _session(tmp_path, **overrides) -> ScanSession:
    values = dict(
        start_hz=100_000_000,
        target_hz=100_002_000,
        precision=4,
        strength_lock_dbfs=-70.0,
        log_path=str(tmp_path / "scan.json"),
    )
    values.update(overrides)
    return ScanSession(**values)


def _two_bumps(first_hz: int, second_hz: int):
    first = bell(first_hz)
    second = bell(second_hz)
    return lambda hz: max(first(hz), second(hz))


def test_single_bump_yields_one_signal(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=bell(100_001_000))
    client = fake.client()
    log = scan_range(client, _session(tmp_path))

    assert len(log.signals) == 1
    signal = log.signals[0]
    assert abs(signal.freq_hz - 100_001_000) <= 1_000
    assert signal.strength_dbfs > -70.0
    assert signal.strength_lock_dbfs == -70.0
    assert signal.gains.if_gain == 32.0
    assert client.closed

    on_disk = json.loads((tmp_path / "scan.json").read_text())
    assert on_disk["total"] == 1
    assert on_disk["signals"][0]["freq_hz"] == signal.freq_hz


def test_session_setup_happens_once(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=bell(100_001_000))
    scan_range(fake.client(), _session(tmp_path))
    assert fake.count("L SQL") == 1
    assert fake.count("M ") == 1
    assert fake.count("L RF_GAIN") == 1
    assert fake.count("L IF_GAIN") == 1
    assert fake.count("L BB_GAIN") == 1
    assert fake.commands.count("U RDS 0") == 1
    assert fake.commands[0] == "L SQL -73.0"


def test_overlapping_candidate_is_discarded(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=_two_bumps(100_001_000, 100_005_000))
    scanner = Scanner(fake.client(), _session(tmp_path, target_hz=100_008_000))
    log = scanner.run()
    assert [s.freq_hz for s in log.signals] == [100_001_000]
    assert scanner.peak_searches == 1
    assert scanner.overlap_discards == 1


def test_overlap_protection_can_be_disabled(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=_two_bumps(100_001_000, 100_005_000))
    scanner = Scanner(
        fake.client(),
        _session(tmp_path, target_hz=100_008_000, overlap_protection=False),
    )
    log = scanner.run()
    assert [s.freq_hz for s in log.signals] == [100_001_000, 100_005_000]
    assert scanner.peak_searches == 2
    assert scanner.overlap_discards == 0


def test_descending_scan_finds_the_same_signal(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=bell(100_001_000))
    log = scan_range(fake.client(), _session(tmp_path, start_hz=100_002_000, target_hz=100_000_000))
    assert len(log.signals) == 1
    assert abs(log.signals[0].freq_hz - 100_001_000) <= 1_000


def test_quiet_range_writes_empty_log(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx()
    log = scan_range(fake.client(), _session(tmp_path, target_hz=100_010_000))
    assert log.signals == []
    assert load_scan_log(tmp_path / "scan.json").signals == []


def test_cancel_returns_partial_log_and_closes(fake_gqrx, tmp_path) -> None:
    ctx = ScanContext()
    shape = _two_bumps(100_001_000, 100_050_000)

    def _strength(hz: int) -> float:
        if hz >= 100_010_000:
            ctx.cancel()
        return shape(hz)

    fake = fake_gqrx(strength=_strength)
    client = fake.client()
    log = scan_range(client, _session(tmp_path, target_hz=100_060_000), ctx)
    assert [s.freq_hz for s in log.signals] == [100_001_000]
    assert client.closed
    assert fake.count("F 1000500") == 0
    assert load_scan_log(tmp_path / "scan.json").total == 1


def test_cancel_before_start_samples_nothing(fake_gqrx, tmp_path) -> None:
    ctx = ScanContext(cancel_event=threading.Event())
    ctx.cancel()
    fake = fake_gqrx(strength=bell(100_001_000))
    log = scan_range(fake.client(), _session(tmp_path), ctx)
    assert log.signals == []
    assert fake.count("l STRENGTH") == 0


def test_scan_events_are_emitted(fake_gqrx, tmp_path) -> None:
    events = ScanEventLog(tmp_path / "events.jsonl")
    ctx = ScanContext(events=events)
    fake = fake_gqrx(strength=bell(100_001_000))
    scan_range(fake.client(), _session(tmp_path), ctx)
    names = [json.loads(line)["event"] for line in (tmp_path / "events.jsonl").read_text().splitlines()]
    assert names[0] == "scan_start"
    assert names[-1] == "scan_end"
    assert "candidate" in names
    assert "signal_locked" in names
    assert names.index("candidate") < names.index("signal_locked")


def test_signals_carry_band_names(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=bell(162_401_000))
    log = scan_range(
        fake.client(),
        _session(tmp_path, start_hz=162_400_000, target_hz=162_403_000, demodulator_mode="FM", bandwidth_hz=16_000),
    )
    assert len(log.signals) == 1
    assert "noaa_weather" in log.signals[0].bands


def test_receiver_failure_aborts_but_keeps_confirmed_signals(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=_two_bumps(100_001_000, 100_008_000))
    fake.reject_tune_from = 100_005_000
    client = fake.client()
    with pytest.raises(UnexpectedResponse):
        scan_range(client, _session(tmp_path, target_hz=100_010_000))
    assert client.closed
    log = load_scan_log(tmp_path / "scan.json")
    assert log.total == 1
    assert [s.freq_hz for s in log.signals] == [100_001_000]


def test_rds_decoder_is_switched_off_after_each_lock(fake_gqrx, tmp_path) -> None:
    fake = fake_gqrx(strength=bell(100_001_000))
    fake.rds_values = {"RDS_PI": "54A8", "RDS_PS_NAME": "KEXP", "RDS_RADIOTEXT": "Live"}
    log = scan_range(fake.client(), _session(tmp_path, rds=True))
    assert log.signals[0].rds == {"rds_pi": "54A8", "rds_ps_name": "KEXP", "rds_radiotext": "Live"}
    rds_cmds = [c for c in fake.commands if c.startswith("U RDS")]
    assert rds_cmds == ["U RDS 0", "U RDS 0", "U RDS 1", "U RDS 0"]
    assert fake.rds_enabled is False
