"""Composite tuning operations built on the gqrx command set."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional, Tuple

from sdrscan.decoders.base import RecordingDecoder
from sdrscan.decoders.rds import decode_rds
from sdrscan.decoders.registry import resolve_decoder, start_decoder, stop_decoder
from sdrscan.detection.types import DemodulatorMode, FrequencyState, Gains, round_dbfs
from sdrscan.drivers.gqrx import RPRT_OK, GqrxClient
from sdrscan.errors import InvalidConfiguration, UnexpectedResponse
from sdrscan.util.context import ScanContext
from sdrscan.util.hz import display_to_hz, hz_to_display

MAX_TUNE_POLLS = 10
MAX_STRENGTH_READS = 10
FLOOR_DBFS = -99.9


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def read_frequency(client: GqrxClient) -> int:
    reply = client.execute("f")
    try:
        return int(str(reply).split()[0])
    except (IndexError, ValueError):
        raise UnexpectedResponse("f", "<integer hz>", reply) from None


def tune(client: GqrxClient, hz: int, *, confirm: bool = True, expect_ack: bool = False) -> int:
    """Set the frequency and optionally poll ``f`` until gqrx reports it."""

    hz = int(hz)
    client.execute(f"F {hz}", expect=RPRT_OK if expect_ack else None)
    if not confirm:
        return hz
    current = None
    for _ in range(MAX_TUNE_POLLS):
        current = read_frequency(client)
        if current == hz:
            return current
    raise UnexpectedResponse("f", str(hz), str(current))


def measure_strength(client: GqrxClient) -> float:
    """Read ``l STRENGTH`` while it keeps rising; return the first non-rising reading."""

    prev = FLOOR_DBFS
    strength = FLOOR_DBFS
    for _ in range(MAX_STRENGTH_READS):
        strength = _to_float(client.execute("l STRENGTH"))
        if strength is None:
            raise UnexpectedResponse("l STRENGTH", "<float dBFS>", None)
        if strength <= prev:
            break
        prev = strength
    return round(strength, 1)


def read_mode(client: GqrxClient) -> Tuple[Optional[DemodulatorMode], Optional[int]]:
    """Parse the ``m`` reply (``<MODE> <passband>``, possibly over two lines)."""

    reply = client.execute("m") or ""
    parts = reply.split()
    mode: Optional[DemodulatorMode] = None
    passband: Optional[int] = None
    if parts:
        try:
            mode = DemodulatorMode(parts[0].upper())
        except ValueError:
            mode = None
    if len(parts) > 1:
        try:
            passband = int(float(parts[1]))
        except ValueError:
            passband = None
    return mode, passband


def set_mode(client: GqrxClient, mode: DemodulatorMode, bandwidth_hz: int) -> None:
    client.execute(f"M {mode.value} {int(bandwidth_hz)}", expect=RPRT_OK)


def set_squelch(client: GqrxClient, squelch_dbfs: float) -> None:
    client.execute(f"L SQL {float(squelch_dbfs)}", expect=RPRT_OK)


def read_squelch(client: GqrxClient) -> Optional[float]:
    return _to_float(client.execute("l SQL"))


def read_gain(client: GqrxClient, stage: str) -> Optional[float]:
    """Gain stage value, or None when the backend lacks the stage."""
    return _to_float(client.execute(f"l {stage}"))


def apply_gains(client: GqrxClient, gains: Gains) -> None:
    """Set audio gain and the three gain stages; unsupported stages only warn."""

    if gains.audio_gain_db is not None:
        client.execute(f"L AF {float(gains.audio_gain_db)}", expect=RPRT_OK)
    for stage, value in (("RF_GAIN", gains.rf_gain), ("IF_GAIN", gains.if_gain), ("BB_GAIN", gains.bb_gain)):
        if value is not None:
            client.execute(f"L {stage} {float(value)}", expect=RPRT_OK)


def read_details(
    client: GqrxClient,
    state: FrequencyState,
    *,
    rds: bool = False,
    rds_leave_on: bool = True,
    ctx: Optional[ScanContext] = None,
) -> FrequencyState:
    state.audio_gain_db = _to_float(client.execute("l AF"))
    state.strength_dbfs = round_dbfs(measure_strength(client))
    state.squelch_dbfs = read_squelch(client)
    state.rf_gain = read_gain(client, "RF_GAIN")
    state.if_gain = read_gain(client, "IF_GAIN")
    state.bb_gain = read_gain(client, "BB_GAIN")
    if rds:
        state.rds = decode_rds(
            client,
            leave_on=rds_leave_on,
            cancel_event=ctx.cancel_event if ctx else None,
            logger=ctx.child_logger("rds") if ctx else None,
        )
    return state


def _validated_hz(freq_hz: Any) -> int:
    try:
        hz = display_to_hz(freq_hz)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(str(exc)) from None
    if hz < 0:
        raise InvalidConfiguration(f"frequency must be non-negative, got {freq_hz}")
    return hz


def init_frequency(
    client: GqrxClient,
    freq_hz: Any,
    demodulator_mode: Any = DemodulatorMode.WFM,
    bandwidth_hz: int = 200_000,
    *,
    squelch: Optional[float] = None,
    rds: bool = False,
    rds_leave_on: bool = True,
    decoder: Optional[str] = None,
    record_dir: str = "/tmp",
    decoder_dwell_s: float = 0.0,
    keep_recording: bool = False,
    suppress_details: bool = False,
    keep_alive: bool = False,
    ctx: Optional[ScanContext] = None,
) -> FrequencyState:
    """Tune the receiver and return the state it reports.

    With ``keep_alive`` the squelch and demodulator are left untouched (a
    re-lock during a scan already configured them) and the connection stays
    open; otherwise the connection is closed on return or failure, including
    configuration errors raised before any command is sent. When a decoder
    key is given, recording is started, the decoder runs for
    ``decoder_dwell_s`` seconds and is joined before recording is disabled.
    ``rds_leave_on=False`` switches the receiver's RDS decoder back off once
    the metadata has been read.
    """

    ctx = ctx or ScanContext()
    logger: logging.Logger = ctx.child_logger("tuning")

    handle: Optional[RecordingDecoder] = None
    recording = False
    state: Optional[FrequencyState] = None
    try:
        mode = DemodulatorMode.parse(demodulator_mode)
        if int(bandwidth_hz) <= 0:
            raise InvalidConfiguration(f"bandwidth must be positive, got {bandwidth_hz}")
        if decoder:
            resolve_decoder(decoder)
            if not os.path.isdir(record_dir):
                raise InvalidConfiguration(
                    f"record_dir '{record_dir}' does not exist. Please create it or provide a valid path."
                )
        hz = _validated_hz(freq_hz)

        if not keep_alive:
            if squelch is None:
                squelch = read_squelch(client)
            if squelch is not None:
                set_squelch(client, squelch)

        tune(client, hz, confirm=False, expect_ack=True)

        if not keep_alive:
            set_mode(client, mode, bandwidth_hz)

        reported_mode, passband = read_mode(client)
        current_hz = read_frequency(client)
        for _ in range(MAX_TUNE_POLLS - 1):
            if current_hz == hz:
                break
            current_hz = read_frequency(client)
        if current_hz != hz:
            raise UnexpectedResponse("f", str(hz), str(current_hz))

        state = FrequencyState(
            frequency_hz=current_hz,
            demodulator_mode=reported_mode or mode,
            bandwidth_hz=passband or int(bandwidth_hz),
            squelch_dbfs=squelch,
        )
        logger.info(
            "Tuned to %s Hz (%s, %s Hz passband)",
            hz_to_display(current_hz),
            state.demodulator_mode.value,
            state.bandwidth_hz,
            extra={"freq_hz": current_hz},
        )

        if not suppress_details:
            read_details(client, state, rds=rds, rds_leave_on=rds_leave_on, ctx=ctx)

        if decoder:
            if client.execute("u RECORD") == "1":
                client.execute("U RECORD 0", expect=RPRT_OK)
            client.execute("U RECORD 1", expect=RPRT_OK)
            recording = True
            state.decoder = decoder
            handle = start_decoder(
                decoder,
                state,
                record_dir,
                logger=ctx.child_logger(f"decoders.{decoder}"),
                keep_recording=keep_recording,
            )
            if decoder_dwell_s > 0:
                ctx.cancel_event.wait(decoder_dwell_s)
        return state
    finally:
        try:
            if handle is not None:
                decoder_info = stop_decoder(handle)
                if state is not None:
                    state.decoder_info = decoder_info
                    state.record_path = decoder_info.get("record_path")
            if recording:
                client.execute("U RECORD 0", expect=RPRT_OK)
        finally:
            if not keep_alive:
                client.close()
