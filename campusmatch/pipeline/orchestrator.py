"""Bulk sweeps: resolve and notify every pair affected by one event.

A job sweep runs one posting against all active candidates; a candidate
sweep runs one profile against all open postings. Each sweep is a plain
sequential loop. A pair is a self-contained unit (resolve, then notify), so
a failure or a cancellation between pairs never leaves partial state behind.
"""

import threading
from datetime import datetime
from typing import Callable, Iterable, Optional, Tuple
from uuid import uuid4

from campusmatch.domain.models import CandidateProfile, JobPosting
from campusmatch.logging import get_logger
from campusmatch.logging.context import log_context
from campusmatch.matching.directory import ProfileDirectory
from campusmatch.matching.exceptions import SubjectNotFoundError
from campusmatch.matching.resolver import MatchResolver
from campusmatch.notifications.gate import NotificationGate
from campusmatch.notifications.models import NotificationReason
from campusmatch.utils.timestamps import utc_now

from .models import PairOutcome, SweepResult

logger = get_logger(__name__, component="orchestrator")

DEFAULT_PROGRESS_EVERY = 10

_REASON_COUNTERS = {
    NotificationReason.SENT: "notified",
    NotificationReason.DUPLICATE: "duplicates",
    NotificationReason.BELOW_THRESHOLD: "below_threshold",
    NotificationReason.CHANNEL_ERROR: "channel_errors",
    NotificationReason.NO_ADDRESS: "no_address",
}


class BulkOrchestrator:
    """
    Runs sweeps over candidate/job pairs.

    Pacing between sends is the gate's rate limiter; the orchestrator itself
    never sleeps.
    """

    def __init__(
        self,
        directory: ProfileDirectory,
        resolver: MatchResolver,
        gate: NotificationGate,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the orchestrator.

        Args:
            directory: Source of candidates and postings
            resolver: Match resolver (cache-aware)
            gate: Notification gate
            progress_every: Emit a progress log every N pairs
            cancel_event: Set to stop running sweeps between pairs
            clock: Source of the current UTC time
        """
        self.directory = directory
        self.resolver = resolver
        self.gate = gate
        self.progress_every = max(1, progress_every)
        self.cancel_event = cancel_event or threading.Event()
        self.clock = clock

    def cancel(self) -> None:
        self.cancel_event.set()

    def run_job_sweep(self, job_id: str) -> SweepResult:
        """
        Match one posting against every active candidate.

        Raises:
            SubjectNotFoundError: If the posting does not exist
        """
        job = self.directory.get_job_posting(job_id)
        if job is None:
            raise SubjectNotFoundError("job", job_id)

        result = self._new_result("job", job_id)
        with log_context(sweep_id=result.sweep_id, sweep_kind="job", job_id=job_id):
            if not job.is_open(self.clock()):
                return self._skip(result, "job is inactive or past its deadline")

            candidates = self.directory.list_active_candidates()
            pairs = ((candidate, job) for candidate in candidates)
            return self._run(result, pairs, len(candidates))

    def run_candidate_sweep(self, candidate_id: str) -> SweepResult:
        """
        Match one candidate against every open posting.

        Raises:
            SubjectNotFoundError: If the candidate does not exist
        """
        candidate = self.directory.get_candidate_profile(candidate_id)
        if candidate is None:
            raise SubjectNotFoundError("candidate", candidate_id)

        result = self._new_result("candidate", candidate_id)
        with log_context(
            sweep_id=result.sweep_id, sweep_kind="candidate", candidate_id=candidate_id
        ):
            if not candidate.active:
                return self._skip(result, "candidate is inactive")

            jobs = self.directory.list_active_jobs(self.clock())
            pairs = ((candidate, job) for job in jobs)
            return self._run(result, pairs, len(jobs))

    def process_pair(
        self, candidate_id: str, job_id: str, force_refresh: bool = False
    ) -> PairOutcome:
        """
        Resolve and notify one pair.

        Raises:
            SubjectNotFoundError: If the candidate or the posting does not exist
        """
        candidate, job = self.resolver.load_subjects(candidate_id, job_id)
        return self._process(candidate, job, force_refresh)

    def _process(
        self, candidate: CandidateProfile, job: JobPosting, force_refresh: bool = False
    ) -> PairOutcome:
        outcome = PairOutcome(candidate_id=candidate.candidate_id, job_id=job.job_id)
        outcome.record = self.resolver.resolve_for(candidate, job, force_refresh=force_refresh)
        outcome.notification = self.gate.maybe_notify(candidate, job, outcome.record)
        return outcome

    def _run(
        self,
        result: SweepResult,
        pairs: Iterable[Tuple[CandidateProfile, JobPosting]],
        total: int,
    ) -> SweepResult:
        logger.info(
            f"Sweep started over {total} pairs",
            extra={"event": "sweep.started", "total": total},
        )

        for candidate, job in pairs:
            if self.cancel_event.is_set():
                result.cancelled = True
                logger.warning(
                    f"Sweep cancelled after {result.processed}/{total} pairs",
                    extra={"event": "sweep.cancelled", **result.as_log_fields()},
                )
                break

            result.processed += 1
            try:
                outcome = self._process(candidate, job)
            except Exception as e:
                # Per-pair failure; the sweep goes on
                result.failed += 1
                logger.error(
                    f"Pair failed: {e}",
                    extra={
                        "event": "sweep.pair_failed",
                        "candidate_id": candidate.candidate_id,
                        "job_id": job.job_id,
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )
            else:
                self._tally(result, outcome)

            if result.processed % self.progress_every == 0:
                logger.info(
                    f"Sweep progress: {result.processed}/{total}",
                    extra={"event": "sweep.progress", "total": total, **result.as_log_fields()},
                )

        result.finished_at = self.clock()
        logger.info(
            "Sweep completed",
            extra={
                "event": "sweep.completed",
                "duration_ms": int(result.duration_seconds * 1000),
                "cancelled": result.cancelled,
                **result.as_log_fields(),
            },
        )
        return result

    def _tally(self, result: SweepResult, outcome: PairOutcome) -> None:
        if outcome.record is not None and self.gate.is_eligible(outcome.record):
            result.matched += 1
        if outcome.notification is not None:
            counter = _REASON_COUNTERS[NotificationReason(outcome.notification.reason)]
            setattr(result, counter, getattr(result, counter) + 1)

    def _new_result(self, kind: str, subject_id: str) -> SweepResult:
        return SweepResult(
            sweep_id=uuid4().hex[:12],
            kind=kind,
            subject_id=subject_id,
            started_at=self.clock(),
        )

    def _skip(self, result: SweepResult, reason: str) -> SweepResult:
        result.skipped = True
        result.finished_at = self.clock()
        logger.info(
            f"Sweep skipped: {reason}",
            extra={"event": "sweep.skipped", "reason": reason},
        )
        return result
