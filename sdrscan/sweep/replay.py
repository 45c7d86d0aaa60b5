"""Re-tune the receiver to every signal of a finished scan for inspection."""

from __future__ import annotations

import json
from typing import Callable, List, Optional

from sdrscan.detection.types import DetectedSignal, FrequencyState
from sdrscan.drivers.gqrx import GqrxClient, ProtocolTimeouts, connect
from sdrscan.drivers.tuning import apply_gains, init_frequency, set_mode, set_squelch
from sdrscan.errors import InvalidConfiguration
from sdrscan.io.scan_log import ScanLog, load_scan_log
from sdrscan.util.config import DEFAULT_HOST, DEFAULT_PORT
from sdrscan.util.context import ScanContext

Pause = Callable[[DetectedSignal, FrequencyState], None]


def wait_for_enter(signal: DetectedSignal, state: FrequencyState) -> None:
    """Default pause: show the merged signal/state and block on ENTER."""

    merged = signal.to_dict()
    merged.update({k: v for k, v in state.to_dict().items() if v is not None})
    print(json.dumps(merged, indent=2), flush=True)
    input("Press [ENTER] to continue...")
    print("\n" * 2, flush=True)


def replay_scan(
    client: GqrxClient,
    log: ScanLog,
    *,
    ctx: Optional[ScanContext] = None,
    pause: Pause = wait_for_enter,
) -> List[FrequencyState]:
    """Visit each signal in ascending frequency order; the client is closed on return."""

    if not log.signals:
        raise InvalidConfiguration("No signals found in log.")
    ctx = ctx or ScanContext()
    visited: List[FrequencyState] = []
    try:
        for signal in sorted(log.signals, key=lambda s: s.freq_hz):
            if ctx.cancelled():
                break
            if signal.squelch_dbfs is not None:
                set_squelch(client, signal.squelch_dbfs)
            set_mode(client, signal.demodulator_mode, signal.bandwidth_hz)
            apply_gains(client, signal.gains)
            state = init_frequency(
                client,
                signal.freq_hz,
                signal.demodulator_mode,
                signal.bandwidth_hz,
                squelch=signal.squelch_dbfs,
                rds=signal.rds is not None,
                keep_alive=True,
                ctx=ctx,
            )
            visited.append(state)
            ctx.event("replay_visit", freq_hz=state.frequency_hz, strength_dbfs=state.strength_dbfs)
            pause(signal, state)
    except KeyboardInterrupt:
        ctx.cancel()
        ctx.logger.warning("Replay interrupted after %d signal(s)", len(visited))
    finally:
        client.close()
    return visited


def replay_log(
    path: str,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    *,
    ctx: Optional[ScanContext] = None,
    pause: Pause = wait_for_enter,
    timeouts: Optional[ProtocolTimeouts] = None,
) -> List[FrequencyState]:
    log = load_scan_log(path)
    if not log.signals:
        raise InvalidConfiguration(f"No signals found in log {path}.")
    ctx = ctx or ScanContext()
    client = connect(host, port, timeouts=timeouts, logger=ctx.child_logger("gqrx"))
    return replay_scan(client, log, ctx=ctx, pause=pause)
