"""High-level runner that binds CLI args to a receiver connection and a scan, tune or replay."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional

from sdrscan.analysis.introspection import AnalysisClient
from sdrscan.drivers.gqrx import GqrxClient, connect
from sdrscan.drivers.tuning import init_frequency
from sdrscan.sweep.replay import replay_log
from sdrscan.sweep.scanner import scan_range
from sdrscan.sweep.session import ScanSession
from sdrscan.util.config import EnvConfig, load_env_config
from sdrscan.util.context import ScanContext
from sdrscan.util.exit_codes import ExitCode
from sdrscan.util.logging import get_logger
from sdrscan.util.scan_logger import ScanEventLog


def session_from_args(args: argparse.Namespace) -> ScanSession:
    return ScanSession(
        start_hz=args.start,
        target_hz=args.target,
        demodulator_mode=args.mode,
        bandwidth_hz=args.bandwidth,
        precision=args.precision,
        strength_lock_dbfs=args.strength_lock,
        squelch_dbfs=args.squelch,
        audio_gain_db=args.audio_gain,
        rf_gain=args.rf_gain,
        if_gain=args.if_gain,
        bb_gain=args.bb_gain,
        overlap_protection=not args.no_overlap_protection,
        lock_settle_s=args.settle,
        location=args.location,
        rds=args.rds,
        decoder=args.decoder,
        decoder_dwell_s=args.decode_seconds,
        record_dir=args.record_dir,
        keep_recording=args.keep_recording,
        log_path=args.log,
        profile=args.profile,
    )


class ScannerRunner:
    """Bind CLI args to connection, run context and execution."""

    def __init__(self, args: argparse.Namespace, env: Optional[EnvConfig] = None):
        self.args = args
        self.env = env or load_env_config()
        self.logger = get_logger("runner")
        self.events = ScanEventLog(Path(args.jsonl), logger=self.logger) if args.jsonl else None
        self.ctx = ScanContext(
            logger=get_logger("scan"),
            events=self.events,
            analysis=AnalysisClient.from_env(self.env),
            location=args.location,
        )
        self.client: Optional[GqrxClient] = None

    def _connect(self) -> GqrxClient:
        self.client = connect(self.args.host, self.args.port, logger=get_logger("drivers.gqrx"))
        return self.client

    def _tune(self) -> None:
        args = self.args
        state = init_frequency(
            self._connect(),
            args.tune,
            args.mode,
            args.bandwidth,
            squelch=args.squelch,
            rds=args.rds,
            decoder=args.decoder,
            record_dir=args.record_dir,
            decoder_dwell_s=args.decode_seconds if args.decoder else 0.0,
            keep_recording=args.keep_recording,
            ctx=self.ctx,
        )
        print(json.dumps(state.to_dict(), indent=2), flush=True)

    def _scan(self) -> None:
        session = session_from_args(self.args)
        if self.ctx.analysis is not None:
            self.logger.info("Signal analysis enabled (%s, %s)", self.ctx.analysis.engine, self.ctx.analysis.model)
        log = scan_range(self._connect(), session, self.ctx)
        print(json.dumps(log.to_dict(), indent=2), flush=True)

    def _replay(self) -> None:
        replay_log(self.args.replay, self.args.host, self.args.port, ctx=self.ctx)

    def run(self) -> int:
        try:
            if self.args.replay:
                self._replay()
            elif self.args.tune is not None:
                self._tune()
            else:
                self._scan()
        except KeyboardInterrupt:
            self.ctx.cancel()
        finally:
            if self.client is not None:
                self.client.close()
        return ExitCode.INTERRUPTED if self.ctx.cancelled() else ExitCode.SUCCESS


def run_scan(args: argparse.Namespace) -> int:
    runner = ScannerRunner(args)
    return runner.run()
