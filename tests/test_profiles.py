import json

import pytest

from sdrscan.cli import parse_args, run
from sdrscan.detection.types import DemodulatorMode
from sdrscan.errors import InvalidConfiguration
from sdrscan.io.profiles import default_scan_profiles, get_profile, profiles_for_frequency, serialize_profiles
from sdrscan.sweep.session import ScanSession


def test_profiles_are_well_formed() -> None:
    profiles = default_scan_profiles()
    assert len(profiles) > 50
    for prof in profiles.values():
        assert prof.f_low_hz < prof.f_high_hz
        assert prof.bandwidth_hz > 0
        assert 1 <= prof.precision <= 7


def test_known_allocations() -> None:
    fm = get_profile("fm_radio")
    assert fm is not None
    assert (fm.f_low_hz, fm.f_high_hz) == (87_900_000, 108_000_000)
    assert fm.demodulator_mode is DemodulatorMode.WFM_ST
    assert get_profile(":KEYFOB433").bandwidth_hz == 50_000
    assert get_profile("amateur_160m").bandwidth_hz == 2_700
    assert get_profile("nope") is None


def test_band_lookup_by_frequency() -> None:
    assert "fm_radio" in profiles_for_frequency(99_500_000)
    assert "noaa_weather" in profiles_for_frequency(162_475_000)
    assert profiles_for_frequency(3) == []


def test_serialized_profiles_are_sorted() -> None:
    names = [p["name"] for p in serialize_profiles()["profiles"]]
    assert names == sorted(names)


def test_session_defaults() -> None:
    session = ScanSession(start_hz="100.000.000", target_hz=100_002_000, precision=4)
    assert session.step_hz == 1_000
    assert session.direction == 1
    assert session.squelch_dbfs == -73.0
    assert session.gains.if_gain == 32.0
    assert session.log_path.startswith("/tmp/sdrscan_100.000.000-100.002.000_")
    assert ScanSession(start_hz=5, target_hz=1).direction == -1


def test_session_rejects_bad_options() -> None:
    with pytest.raises(InvalidConfiguration):
        ScanSession(start_hz=1, target_hz=2, demodulator_mode="SSTV")
    with pytest.raises(InvalidConfiguration):
        ScanSession(start_hz=1, target_hz=2, precision=0)
    with pytest.raises(InvalidConfiguration):
        ScanSession(start_hz=1, target_hz=2, bandwidth_hz=0)


def test_session_from_profile_respects_overrides() -> None:
    session = ScanSession.from_profile(get_profile("aviation_vhf"), precision=5, squelch_dbfs=None)
    assert session.start_hz == 118_000_000
    assert session.demodulator_mode is DemodulatorMode.AM
    assert session.precision == 5
    assert session.profile == "aviation_vhf"


def test_cli_profile_fills_unset_options_only() -> None:
    args = parse_args(["--profile", "noaa_weather", "--precision", "3"])
    assert args.start == 162_400_000
    assert args.target == 162_550_000
    assert args.mode is DemodulatorMode.FM
    assert args.bandwidth == 16_000
    assert args.precision == 3


def test_cli_accepts_grouped_frequencies() -> None:
    args = parse_args(["--start", "100.000.000", "--target", "100.002.000", "--precision", "4"])
    assert (args.start, args.target) == (100_000_000, 100_002_000)
    assert args.mode is DemodulatorMode.WFM
    assert args.port == 7356
    assert args.no_overlap_protection is False


def test_cli_validation_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["--start", "100.000.000"])
    assert excinfo.value.code == 2
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["--profile", "nope"])
    assert excinfo.value.code == 2
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["--start", "1", "--target", "2", "--mode", "SSTV"])
    assert excinfo.value.code == 2


def test_list_profiles_prints_json(capsys) -> None:
    assert run(parse_args(["--list-profiles"])) == 0
    payload = json.loads(capsys.readouterr().out)
    assert any(p["name"] == "gsm" for p in payload["profiles"])
