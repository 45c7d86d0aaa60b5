"""Named frequency-allocation profiles and band lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sdrscan.detection.types import DemodulatorMode


@dataclass(frozen=True)
class ScanProfile:
    name: str
    f_low_hz: int
    f_high_hz: int
    demodulator_mode: DemodulatorMode
    bandwidth_hz: int
    precision: int

    def contains(self, freq_hz: int) -> bool:
        return self.f_low_hz <= int(freq_hz) <= self.f_high_hz


# name, start, target, demodulator, passband, precision
_ALLOCATIONS: Tuple[Tuple[str, int, int, str, int, int], ...] = (
    ("ads_b978", 978_000_000, 979_000_000, "RAW", 100_000, 5),
    ("ads_b1090", 1_090_000_000, 1_091_000_000, "RAW", 100_000, 5),
    ("aeronautical_lf", 200_000, 415_000, "AM", 10_000, 3),
    ("aeronautical_mf", 285_000, 325_000, "AM", 10_000, 3),
    ("amateur_1_25m", 222_000_000, 225_000_000, "FM", 25_000, 4),
    ("amateur_160m", 1_800_000, 2_000_000, "LSB", 2_700, 6),
    ("amateur_2m", 144_000_000, 148_000_000, "FM", 15_000, 4),
    ("amateur_30m", 10_100_000, 10_150_000, "CW", 150, 3),
    ("amateur_60m", 5_351_500, 5_366_500, "USB", 2_700, 6),
    ("amateur_6m", 50_000_000, 54_000_000, "USB", 2_700, 6),
    ("amateur_70cm", 420_000_000, 450_000_000, "FM", 25_000, 4),
    ("analog_tv_uhf", 470_000_000, 890_000_000, "WFM_ST", 600_000, 5),
    ("analog_tv_vhf", 54_000_000, 216_000_000, "WFM_ST", 600_000, 5),
    ("am_radio", 540_000, 1_700_000, "AM", 10_000, 4),
    ("aviation_nav", 108_000_000, 118_000_000, "AM", 25_000, 4),
    ("aviation_vhf", 118_000_000, 137_000_000, "AM", 25_000, 4),
    ("aws", 1_710_000_000, 1_755_000_000, "RAW", 200_000, 6),
    ("bluetooth", 2_402_000_000, 2_480_000_000, "RAW", 1_000_000, 5),
    ("cb", 26_965_000, 27_405_000, "AM", 10_000, 3),
    ("cdma", 824_000_000, 849_000_000, "RAW", 1_250_000, 6),
    ("cw20", 14_000_000, 14_350_000, "CW", 150, 3),
    ("cw40", 7_000_000, 7_300_000, "CW", 150, 3),
    ("cw80", 3_500_000, 3_800_000, "CW", 150, 3),
    ("dect", 1_880_000_000, 1_900_000_000, "RAW", 100_000, 5),
    ("fm_radio", 87_900_000, 108_000_000, "WFM_ST", 200_000, 6),
    ("frs", 462_562_500, 467_725_000, "FM", 200_000, 3),
    ("gmrs", 462_550_000, 467_725_000, "FM", 200_000, 3),
    ("gprs", 880_000_000, 915_000_000, "RAW", 171_200, 4),
    ("gps_l1", 1_574_420_000, 1_576_420_000, "RAW", 30_000_000, 6),
    ("gps_l2", 1_226_600_000, 1_228_600_000, "RAW", 11_000_000, 6),
    ("gsm", 824_000_000, 894_000_000, "RAW", 200_000, 4),
    ("high_rfid", 13_560_000, 13_570_000, "RAW", 400_000, 3),
    ("iridium", 1_616_000_000, 1_626_500_000, "RAW", 704_000, 6),
    ("ism_5g", 5_725_000_000, 5_875_000_000, "RAW", 150_000_000, 7),
    ("ism_902", 902_000_000, 928_000_000, "RAW", 26_000_000, 3),
    ("keyfob300", 300_000_000, 300_100_000, "RAW", 50_000, 4),
    ("keyfob310", 310_000_000, 310_100_000, "RAW", 50_000, 4),
    ("keyfob315", 315_000_000, 315_100_000, "RAW", 50_000, 4),
    ("keyfob390", 390_000_000, 390_100_000, "RAW", 50_000, 4),
    ("keyfob433", 433_000_000, 434_000_000, "RAW", 50_000, 4),
    ("keyfob868", 868_000_000, 869_000_000, "RAW", 50_000, 4),
    ("land_mobile_uhf", 450_000_000, 470_000_000, "FM", 25_000, 4),
    ("land_mobile_vhf", 150_000_000, 174_000_000, "FM", 25_000, 4),
    ("longwave_broadcast", 148_500, 283_500, "AM", 10_000, 3),
    ("lora433", 432_000_000, 434_000_000, "RAW", 500_000, 3),
    ("lora915", 902_000_000, 928_000_000, "RAW", 500_000, 3),
    ("low_rfid", 125_000, 134_000, "RAW", 40_000, 1),
    ("marine_vhf", 156_000_000, 162_000_000, "FM", 25_000, 4),
    ("maritime_mf", 415_000, 535_000, "USB", 2_700, 6),
    ("noaa_weather", 162_400_000, 162_550_000, "FM", 16_000, 4),
    ("pager", 929_000_000, 932_000_000, "FM", 12_500, 4),
    ("pcs", 1_850_000_000, 1_990_000_000, "RAW", 200_000, 6),
    ("public_safety_700", 698_000_000, 806_000_000, "FM", 25_000, 4),
    ("rtty20", 14_000_000, 14_350_000, "FM", 170, 3),
    ("rtty40", 7_000_000, 7_300_000, "FM", 170, 3),
    ("rtty80", 3_500_000, 3_800_000, "FM", 170, 3),
    ("shortwave1", 5_900_000, 6_200_000, "AM_SYNC", 10_000, 4),
    ("shortwave2", 7_200_000, 7_450_000, "AM_SYNC", 10_000, 4),
    ("shortwave3", 9_400_000, 9_900_000, "AM_SYNC", 10_000, 4),
    ("shortwave4", 11_600_000, 12_100_000, "AM_SYNC", 10_000, 4),
    ("shortwave5", 13_570_000, 13_870_000, "AM_SYNC", 10_000, 4),
    ("shortwave6", 15_100_000, 15_800_000, "AM_SYNC", 10_000, 4),
    ("ssb10", 28_000_000, 29_700_000, "USB", 3_000, 6),
    ("ssb12", 24_890_000, 24_990_000, "USB", 3_000, 6),
    ("ssb15", 21_000_000, 21_450_000, "USB", 3_000, 6),
    ("ssb17", 18_068_000, 18_168_000, "USB", 3_000, 6),
    ("ssb20", 14_000_000, 14_350_000, "USB", 3_000, 6),
    ("ssb40", 7_000_000, 7_300_000, "LSB", 3_000, 6),
    ("ssb80", 3_500_000, 3_800_000, "LSB", 3_000, 6),
    ("ssb160", 1_800_000, 2_000_000, "LSB", 3_000, 6),
    ("tempest", 400_000_000, 430_000_000, "WFM", 6_000_000, 4),
    ("tv_high_vhf", 174_000_000, 216_000_000, "WFM_ST", 6_000_000, 5),
    ("tv_low_vhf", 54_000_000, 88_000_000, "WFM_ST", 6_000_000, 5),
    ("tv_uhf", 470_000_000, 698_000_000, "WFM_ST", 6_000_000, 5),
    ("uhf_rfid", 860_000_000, 960_000_000, "RAW", 400_000, 5),
    ("umts", 1_920_000_000, 2_170_000_000, "RAW", 5_000_000, 6),
    ("weather_sat", 137_000_000, 138_000_000, "FM", 15_000, 5),
    ("wifi24", 2_400_000_000, 2_500_000_000, "RAW", 20_000_000, 7),
    ("wifi5", 5_150_000_000, 5_850_000_000, "RAW", 20_000_000, 7),
    ("wifi6", 5_925_000_000, 7_125_000_000, "RAW", 20_000_000, 7),
    ("zigbee", 2_405_000_000, 2_485_000_000, "RAW", 2_000_000, 7),
)


def default_scan_profiles() -> Dict[str, ScanProfile]:
    profiles = [
        ScanProfile(
            name=name,
            f_low_hz=start,
            f_high_hz=target,
            demodulator_mode=DemodulatorMode(mode),
            bandwidth_hz=bandwidth,
            precision=precision,
        )
        for name, start, target, mode, bandwidth, precision in _ALLOCATIONS
    ]
    return {p.name.lower(): p for p in profiles}


def get_profile(name: str) -> Optional[ScanProfile]:
    return default_scan_profiles().get(str(name).strip().lower().lstrip(":"))


def profiles_for_frequency(freq_hz: int) -> List[str]:
    """Names of every profile whose range contains freq_hz, alphabetically."""

    return sorted(p.name for p in default_scan_profiles().values() if p.contains(freq_hz))


def serialize_profiles() -> Dict[str, Any]:
    """Return ordered JSON-serializable description of built-in profiles."""

    profiles = default_scan_profiles()
    ordered = sorted(profiles.values(), key=lambda p: p.name.lower())
    payload = {
        "profiles": [
            {
                "name": prof.name,
                "f_low_hz": prof.f_low_hz,
                "f_high_hz": prof.f_high_hz,
                "demodulator_mode": prof.demodulator_mode.value,
                "bandwidth_hz": prof.bandwidth_hz,
                "precision": prof.precision,
            }
            for prof in ordered
        ]
    }
    return payload
