"""Range scanner: step a span, detect rising edges, converge and lock on peaks."""

from __future__ import annotations

import dataclasses
from typing import Optional

from sdrscan.analysis.introspection import analyze_signal
from sdrscan.detection.candidates import CandidateRun, CandidateTracker, overlaps_previous
from sdrscan.detection.peak import PeakLocator
from sdrscan.detection.types import DetectedSignal, PeakSample
from sdrscan.drivers.gqrx import RPRT_OK, GqrxClient
from sdrscan.drivers.tuning import apply_gains, init_frequency, measure_strength, set_mode, set_squelch, tune
from sdrscan.io.profiles import profiles_for_frequency
from sdrscan.io.scan_log import ScanLog, flush, record_signal
from sdrscan.sweep.session import ScanSession
from sdrscan.util.context import ScanContext
from sdrscan.util.hz import hz_to_display


class Scanner:
    """Drive one range scan over an exclusively owned connection.

    The connection is closed when run() returns or raises. Cancellation
    (ctx.cancel_event or Ctrl+C) ends the scan early and still returns the
    partial log after writing it.
    """

    def __init__(self, client: GqrxClient, session: ScanSession, ctx: Optional[ScanContext] = None):
        self.client = client
        self.session = session
        self.ctx = ctx or ScanContext(location=session.location)
        self.logger = self.ctx.logger
        self.log = ScanLog.begin()
        self.tracker = CandidateTracker(session.strength_lock_dbfs, session.step_hz)
        self.prev_locked_hz: Optional[int] = None
        self.peak_searches = 0
        self.overlap_discards = 0

    def _configure(self) -> None:
        """Squelch, demodulator and gains are set once per scan, not per step."""

        session = self.session
        set_squelch(self.client, session.squelch_dbfs)
        self.client.execute("U RDS 0", expect=RPRT_OK)
        set_mode(self.client, session.demodulator_mode, session.bandwidth_hz)
        apply_gains(self.client, session.gains)
        init_frequency(
            self.client,
            session.start_hz,
            session.demodulator_mode,
            session.bandwidth_hz,
            squelch=session.squelch_dbfs,
            suppress_details=True,
            keep_alive=True,
            ctx=self.ctx,
        )

    def _sample(self, hz: int) -> float:
        tune(self.client, hz, confirm=True)
        if self.session.lock_settle_s > 0:
            self.ctx.cancel_event.wait(self.session.lock_settle_s)
        return measure_strength(self.client)

    def _probe(self, hz: int) -> float:
        tune(self.client, hz, confirm=False)
        return measure_strength(self.client)

    def _lock(self, peak: PeakSample) -> DetectedSignal:
        session = self.session
        state = init_frequency(
            self.client,
            peak.hz,
            session.demodulator_mode,
            session.bandwidth_hz,
            squelch=session.squelch_dbfs,
            rds=session.rds,
            rds_leave_on=False,
            decoder=session.decoder,
            record_dir=session.record_dir,
            decoder_dwell_s=session.decoder_dwell_s,
            keep_recording=session.keep_recording,
            keep_alive=True,
            ctx=self.ctx,
        )
        signal = DetectedSignal.from_state(
            state,
            strength_dbfs=peak.strength_dbfs,
            strength_lock_dbfs=session.strength_lock_dbfs,
            bands=tuple(profiles_for_frequency(state.frequency_hz)),
        )
        analysis = analyze_signal(
            self.ctx.analysis,
            signal,
            self.ctx.location,
            logger=self.ctx.child_logger("analysis"),
        )
        if analysis is not None:
            signal = dataclasses.replace(signal, ai_analysis=analysis)
        return signal

    def _handle_run(self, run: CandidateRun) -> Optional[DetectedSignal]:
        session = self.session
        self.logger.info(
            "Candidate signal: begin %s Hz | top %s Hz | end %s Hz",
            hz_to_display(run.beg_hz),
            hz_to_display(run.top_hz),
            hz_to_display(run.end_hz),
            extra={"freq_hz": run.beg_hz, "step_hz": session.step_hz},
        )
        self.ctx.event(
            "candidate",
            beg_hz=run.beg_hz,
            top_hz=run.top_hz,
            end_hz=run.end_hz,
            samples=len(run.samples),
            trailing_avg_dbfs=run.trailing_avg_dbfs,
        )

        if session.overlap_protection and overlaps_previous(run.beg_hz, self.prev_locked_hz, session.bandwidth_hz):
            self.overlap_discards += 1
            self.logger.info(
                "Discarding candidate at %s Hz: within half a passband of %s Hz",
                hz_to_display(run.beg_hz),
                hz_to_display(self.prev_locked_hz or 0),
                extra={"freq_hz": run.beg_hz},
            )
            self.ctx.event("overlap_discard", beg_hz=run.beg_hz, prev_locked_hz=self.prev_locked_hz)
            return None

        self.peak_searches += 1
        locator = PeakLocator(
            self._probe,
            session.step_hz,
            cancel_event=self.ctx.cancel_event,
            logger=self.ctx.child_logger("peak"),
            events=self.ctx.events,
        )
        peak = locator.locate(run.beg_hz, run.top_hz)
        if peak is None or peak.strength_dbfs <= session.strength_lock_dbfs:
            return None

        signal = self._lock(peak)
        self.prev_locked_hz = signal.freq_hz
        record_signal(self.log, signal)
        flush(self.log, session.log_path)
        self.logger.info(
            "Detected signal at %s Hz => %.1f dBFS (%d passes)",
            hz_to_display(signal.freq_hz),
            signal.strength_dbfs,
            locator.passes,
            extra={"freq_hz": signal.freq_hz},
        )
        self.ctx.event("signal_locked", **signal.to_dict())
        return signal

    def _process(self, run: Optional[CandidateRun]) -> None:
        if run is None:
            return
        try:
            self._handle_run(run)
        finally:
            self.tracker.reset()

    def run(self) -> ScanLog:
        session = self.session
        scheduler = session.scheduler()
        self.logger.info(
            "Scanning from %s to %s in steps of %s Hz (%d steps)",
            hz_to_display(session.start_hz),
            hz_to_display(session.target_hz),
            hz_to_display(session.step_hz),
            scheduler.count,
            extra={"step_hz": session.step_hz},
        )
        self.ctx.event(
            "scan_start",
            start_hz=session.start_hz,
            target_hz=session.target_hz,
            step_hz=session.step_hz,
            strength_lock_dbfs=session.strength_lock_dbfs,
            log_path=session.log_path,
        )
        try:
            self._configure()
            for hz in scheduler:
                if self.ctx.cancelled():
                    break
                strength = self._sample(hz)
                self.logger.debug(
                    "%s Hz => %.1f dBFS",
                    hz_to_display(hz),
                    strength,
                    extra={"freq_hz": hz},
                )
                self._process(self.tracker.observe(hz, strength))
            if not self.ctx.cancelled():
                self._process(self.tracker.finish())
        except KeyboardInterrupt:
            self.ctx.cancel()
        finally:
            self.client.close()

        if self.ctx.cancelled():
            self.logger.warning("Scan cancelled; %d signal(s) recorded", self.log.total)
        self.log.touch()
        flush(self.log, session.log_path)
        self.ctx.event(
            "scan_end",
            total=self.log.total,
            duration=self.log.duration,
            cancelled=self.ctx.cancelled(),
            peak_searches=self.peak_searches,
            overlap_discards=self.overlap_discards,
        )
        self.logger.info(
            "Scan complete: %d signal(s) in %s, log written to %s",
            self.log.total,
            self.log.duration,
            session.log_path,
        )
        return self.log


def scan_range(client: GqrxClient, session: ScanSession, ctx: Optional[ScanContext] = None) -> ScanLog:
    return Scanner(client, session, ctx).run()
