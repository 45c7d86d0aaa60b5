import json
import threading

import numpy as np

from conftest import bell
from sdrscan.detection.peak import PeakLocator, find_peak
from sdrscan.util.scan_logger import ScanEventLog

CENTER_HZ = 100_005_000
STEP_HZ = 1_000


def _counting(probe):
    calls = []

    def _probe(hz: int) -> float:
        calls.append(hz)
        return probe(hz)

    return _probe, calls


def test_bell_peak_converges_near_true_maximum() -> None:
    locator = PeakLocator(bell(CENTER_HZ, half_width_hz=5_000), STEP_HZ)
    peak = locator.locate(100_001_000, 100_008_000)
    assert peak is not None
    assert abs(peak.hz - CENTER_HZ) <= STEP_HZ
    assert peak.strength_dbfs > -70.0
    assert locator.converged
    assert locator.passes <= 100


def test_noisy_peak_still_terminates() -> None:
    rng = np.random.default_rng(7)
    shape = bell(CENTER_HZ, half_width_hz=5_000)
    locator = PeakLocator(lambda hz: shape(hz) + float(rng.normal(0.0, 1.5)), STEP_HZ)
    peak = locator.locate(100_000_000, 100_010_000)
    assert peak is not None
    assert 100_000_000 <= peak.hz <= 100_011_000
    assert locator.passes <= 100


def test_passes_alternate_direction() -> None:
    probe, calls = _counting(lambda hz: -60.0)
    locator = PeakLocator(probe, STEP_HZ)
    peak = locator.locate(1_000, 3_000)
    assert calls == [1_000, 2_000, 3_000, 4_000, 4_000, 3_000, 2_000, 1_000]
    assert locator.passes == 2
    assert peak is not None and peak.hz == 1_000


def test_safeguard_bounds_the_search() -> None:
    locator = PeakLocator(lambda hz: -60.0, STEP_HZ, max_passes=1)
    peak = locator.locate(1_000, 3_000)
    assert locator.safeguard_triggered
    assert not locator.converged
    assert peak is not None and peak.strength_dbfs == -60.0


def test_cancel_before_first_pass_returns_none() -> None:
    cancel = threading.Event()
    cancel.set()
    probe, calls = _counting(lambda hz: -60.0)
    assert find_peak(probe, 1_000, 3_000, STEP_HZ, cancel_event=cancel) is None
    assert calls == []


def test_each_pass_is_recorded(tmp_path) -> None:
    events = ScanEventLog(tmp_path / "events.jsonl")
    locator = PeakLocator(bell(CENTER_HZ, half_width_hz=5_000), STEP_HZ, events=events)
    locator.locate(100_001_000, 100_008_000)
    lines = (tmp_path / "events.jsonl").read_text().splitlines()
    records = [json.loads(line) for line in lines]
    assert len(records) == locator.passes
    assert all(r["event"] == "peak_pass" for r in records)
    assert [r["pass_no"] for r in records] == list(range(1, locator.passes + 1))
