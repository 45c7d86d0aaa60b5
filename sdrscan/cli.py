#!/usr/bin/env python3
"""sdrscan CLI entrypoint (package module)."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List, Optional, Set

from sdrscan.decoders.registry import DECODERS
from sdrscan.detection.types import DemodulatorMode
from sdrscan.errors import InvalidConfiguration, SdrScanError
from sdrscan.io.profiles import get_profile, serialize_profiles
from sdrscan.sweep.runner import run_scan, session_from_args
from sdrscan.util.config import load_env_config
from sdrscan.util.exit_codes import ExitCode
from sdrscan.util.hz import display_to_hz, hz_to_display
from sdrscan.util.logging import configure_logging, get_logger, log_exception


def run(args: argparse.Namespace) -> int:
    """Top-level CLI dispatcher that delegates execution to sweep.runner."""
    if getattr(args, "list_profiles", False):
        _emit_profiles_json()
        return ExitCode.SUCCESS
    return run_scan(args)


def _freq_arg(text: str) -> int:
    try:
        hz = display_to_hz(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None
    if hz < 0:
        raise argparse.ArgumentTypeError(f"Frequency must be non-negative: {text}")
    return hz


def _mode_arg(text: str) -> DemodulatorMode:
    try:
        return DemodulatorMode.parse(text)
    except InvalidConfiguration as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]

    env = load_env_config()

    p = argparse.ArgumentParser(
        description="Range scanner and peak locator for a gqrx receiver over its remote-control port",
        argument_default=argparse.SUPPRESS,
    )
    p.add_argument("--host", type=str, help=f"gqrx remote-control host (default {env.host})")
    p.add_argument("--port", type=int, help=f"gqrx remote-control port (default {env.port})")

    p.add_argument("--start", type=_freq_arg, help="Start frequency in Hz or grouped form (e.g., 88.000.000)")
    p.add_argument("--target", type=_freq_arg, help="Target frequency in Hz or grouped form; may be below --start")
    p.add_argument("--profile", type=str, help="Frequency allocation profile to pre-load range, mode, bandwidth and precision")
    p.add_argument("--mode", type=_mode_arg, help="Demodulator mode (default WFM)")
    p.add_argument("--bandwidth", type=_freq_arg, help="Passband in Hz (default 200.000)")
    p.add_argument("--precision", type=int, help="Step size is 10^(precision-1) Hz (default 1)")

    p.add_argument("--strength-lock", dest="strength_lock", type=float, help="Candidate threshold in dBFS (default -70.0)")
    p.add_argument("--squelch", type=float, help="Squelch in dBFS (default strength lock - 3.0)")
    p.add_argument("--audio-gain", dest="audio_gain", type=float, help="Audio gain in dB (default 6.0)")
    p.add_argument("--rf-gain", dest="rf_gain", type=float, help="RF gain stage (default 0.0)")
    p.add_argument("--if-gain", dest="if_gain", type=float, help="Intermediate gain stage (default 32.0)")
    p.add_argument("--bb-gain", dest="bb_gain", type=float, help="Baseband gain stage (default 10.0)")
    p.add_argument(
        "--no-overlap-protection",
        dest="no_overlap_protection",
        action="store_true",
        help="Search every candidate, even inside half a passband of the previous lock",
    )
    p.add_argument("--settle", type=float, help="Seconds to wait after each tuning step before sampling (default 0)")
    p.add_argument("--location", type=str, help=f"Location hint for signal analysis (default '{env.location}')")

    p.add_argument("--rds", action="store_true", help="Capture RDS PI/PS name/RadioText on lock")
    p.add_argument("--decoder", choices=sorted(DECODERS), help="Run a recording decoder on each lock")
    p.add_argument("--record-dir", dest="record_dir", type=str, help=f"Directory gqrx records into (default {env.record_dir})")
    p.add_argument("--decode-seconds", dest="decode_seconds", type=float, help="Decoder dwell per lock in seconds (default 10)")
    p.add_argument("--keep-recording", dest="keep_recording", action="store_true", help="Keep recordings after decoding")

    p.add_argument("--log", type=str, help="Scan log path (default /tmp/sdrscan_<start>-<target>_<date>.json)")
    p.add_argument("--jsonl", type=str, help="Emit scan events as line-delimited JSON to this path")
    p.add_argument("--log-level", dest="log_level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Console log level")
    p.add_argument("--log-json", dest="log_json", type=str, help="Also write JSON-formatted logs to this path")

    group = p.add_mutually_exclusive_group()
    group.add_argument("--tune", type=_freq_arg, help="Tune to a single frequency, print its state and exit")
    group.add_argument("--replay", type=str, help="Re-tune to every signal of a scan log, pausing between them")
    group.add_argument("--list-profiles", dest="list_profiles", action="store_true", help="Print built-in profiles as JSON and exit")

    args = p.parse_args(argv)
    args._cli_overrides = set()

    _set_default(args, args._cli_overrides, "host", env.host)
    _set_default(args, args._cli_overrides, "port", env.port)
    _set_default(args, args._cli_overrides, "start", None)
    _set_default(args, args._cli_overrides, "target", None)
    _set_default(args, args._cli_overrides, "profile", None)
    _set_default(args, args._cli_overrides, "mode", DemodulatorMode.WFM)
    _set_default(args, args._cli_overrides, "bandwidth", 200_000)
    _set_default(args, args._cli_overrides, "precision", 1)
    _set_default(args, args._cli_overrides, "strength_lock", -70.0)
    _set_default(args, args._cli_overrides, "squelch", None)
    _set_default(args, args._cli_overrides, "audio_gain", 6.0)
    _set_default(args, args._cli_overrides, "rf_gain", 0.0)
    _set_default(args, args._cli_overrides, "if_gain", 32.0)
    _set_default(args, args._cli_overrides, "bb_gain", 10.0)
    _set_default(args, args._cli_overrides, "no_overlap_protection", False)
    _set_default(args, args._cli_overrides, "settle", 0.0)
    _set_default(args, args._cli_overrides, "location", env.location)
    _set_default(args, args._cli_overrides, "rds", False)
    _set_default(args, args._cli_overrides, "decoder", None)
    _set_default(args, args._cli_overrides, "record_dir", env.record_dir)
    _set_default(args, args._cli_overrides, "decode_seconds", 10.0)
    _set_default(args, args._cli_overrides, "keep_recording", False)
    _set_default(args, args._cli_overrides, "log", None)
    _set_default(args, args._cli_overrides, "jsonl", None)
    _set_default(args, args._cli_overrides, "log_level", None)
    _set_default(args, args._cli_overrides, "log_json", None)
    _set_default(args, args._cli_overrides, "tune", None)
    _set_default(args, args._cli_overrides, "replay", None)
    _set_default(args, args._cli_overrides, "list_profiles", False)

    if args.profile:
        _apply_scan_profile(args, p)

    if hasattr(args, "_cli_overrides"):
        delattr(args, "_cli_overrides")

    scanning = not (args.list_profiles or args.replay or args.tune is not None)
    if scanning:
        if args.start is None or args.target is None:
            p.error("--start and --target are required unless --profile, --tune, --replay or --list-profiles is used")
        try:
            session_from_args(args)
        except InvalidConfiguration as exc:
            p.error(str(exc))
    if args.bandwidth <= 0:
        p.error("--bandwidth must be > 0")
    if args.settle < 0:
        p.error("--settle must be >= 0")
    if args.decode_seconds < 0:
        p.error("--decode-seconds must be >= 0")

    return args


def _set_default(args: argparse.Namespace, overrides: Set[str], attr: str, value: Any) -> None:
    if hasattr(args, attr):
        overrides.add(attr)
    else:
        setattr(args, attr, value)


def _apply_scan_profile(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    profile = get_profile(args.profile)
    if not profile:
        parser.error(f"Unknown scan profile '{args.profile}'. Use --list-profiles to inspect options.")

    overrides: Set[str] = getattr(args, "_cli_overrides", set())

    def maybe_set(attr: str, value: Any) -> None:
        if value is None:
            return
        if attr in overrides:
            return
        setattr(args, attr, value)

    maybe_set("start", profile.f_low_hz)
    maybe_set("target", profile.f_high_hz)
    maybe_set("mode", profile.demodulator_mode)
    maybe_set("bandwidth", profile.bandwidth_hz)
    maybe_set("precision", profile.precision)

    print(
        f"[profile] Applied profile '{profile.name}' "
        f"({hz_to_display(args.start)}-{hz_to_display(args.target)} Hz, {args.mode.value})",
        file=sys.stderr,
        flush=True,
    )


def _emit_profiles_json() -> None:
    payload = serialize_profiles()
    print(json.dumps(payload, indent=2, sort_keys=True))


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level, json_file=args.log_json)
    logger = get_logger("cli")
    try:
        return run(args)
    except KeyboardInterrupt:
        return ExitCode.INTERRUPTED
    except SdrScanError as exc:
        code = ExitCode.for_exception(exc)
        logger.error("%s: %s", ExitCode.message(code), exc, extra={"error_type": type(exc).__name__})
        return code
    except OSError as exc:
        log_exception(logger, f"Receiver connection failed: {exc}", error_type=type(exc).__name__)
        return ExitCode.GENERAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
