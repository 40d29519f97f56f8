"""Background sweep dispatch on APScheduler.

Triggers (a job published, a profile updated, an application submitted)
must not wait for a sweep. They hand the work to SweepDispatcher, which runs
it as a one-shot job on a small thread pool; failures surface through the
scheduler's error listener instead of the caller. The same scheduler runs
the periodic maintenance job that purges abandoned notification claims.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Set
from uuid import uuid4

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from campusmatch.logging import get_logger
from campusmatch.notifications.markers import NotificationMarkerStore
from campusmatch.pipeline.orchestrator import BulkOrchestrator
from campusmatch.utils.timestamps import utc_now

logger = get_logger(__name__, component="scheduler")

MAINTENANCE_JOB_ID = "claim-maintenance"


class SweepDispatcher:
    """
    Runs sweeps as independent background jobs.

    Each submitted sweep is its own APScheduler job with a DateTrigger set to
    "now"; up to ``max_concurrent_sweeps`` run at once and the rest queue.
    """

    def __init__(
        self,
        orchestrator: BulkOrchestrator,
        marker_store: Optional[NotificationMarkerStore] = None,
        max_concurrent_sweeps: int = 2,
        maintenance_interval_seconds: int = 900,
        claim_timeout_seconds: int = 900,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the dispatcher.

        Args:
            orchestrator: Orchestrator whose sweeps are dispatched
            marker_store: Marker store purged by the maintenance job; None disables it
            max_concurrent_sweeps: Worker threads in the sweep pool
            maintenance_interval_seconds: Interval of the maintenance job
            claim_timeout_seconds: Age after which a pending claim is abandoned
            clock: Source of the current UTC time
        """
        self.orchestrator = orchestrator
        self.marker_store = marker_store
        self.max_concurrent_sweeps = max_concurrent_sweeps
        self.maintenance_interval_seconds = maintenance_interval_seconds
        self.claim_timeout = timedelta(seconds=claim_timeout_seconds)
        self.clock = clock

        self._pending: Set[str] = set()
        self._idle = threading.Condition()
        self.completed_count = 0
        self.failed_count = 0

        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_concurrent_sweeps)},
            job_defaults={
                "coalesce": False,
                "max_instances": 1,
                "misfire_grace_time": None,  # queued sweeps run late, never get dropped
            },
            timezone=timezone.utc,
        )
        self.scheduler.add_listener(
            self._on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED
        )

    def start(self) -> None:
        """Start the worker pool and, if configured, the maintenance job."""
        if self.marker_store is not None:
            self.scheduler.add_job(
                func=self.run_maintenance,
                trigger=IntervalTrigger(
                    seconds=self.maintenance_interval_seconds, timezone=timezone.utc
                ),
                id=MAINTENANCE_JOB_ID,
                name="Purge stale notification claims",
                replace_existing=True,
            )

        self.scheduler.start()
        logger.info(
            f"Sweep dispatcher started with {self.max_concurrent_sweeps} workers",
            extra={
                "event": "dispatcher.started",
                "max_concurrent_sweeps": self.max_concurrent_sweeps,
                "maintenance_enabled": self.marker_store is not None,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Stop the dispatcher.

        Running sweeps are asked to stop between pairs; with ``wait`` the
        call blocks until they have.
        """
        logger.info(
            "Shutting down sweep dispatcher",
            extra={"event": "dispatcher.stopping", "wait_for_jobs": wait},
        )
        self.orchestrator.cancel()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        logger.info("Sweep dispatcher stopped", extra={"event": "dispatcher.stopped"})

    def is_running(self) -> bool:
        return self.scheduler.running

    def submit(self, func: Callable[..., Any], *args: Any, name: str) -> str:
        """
        Schedule ``func(*args)`` to run once, as soon as a worker is free.

        Returns:
            Identifier of the background job
        """
        job_id = f"{name}-{uuid4().hex[:12]}"
        with self._idle:
            self._pending.add(job_id)

        self.scheduler.add_job(
            func=func,
            trigger=DateTrigger(run_date=self.clock(), timezone=timezone.utc),
            args=list(args),
            id=job_id,
            name=name,
        )
        logger.info(
            f"Dispatched {name}",
            extra={"event": "dispatcher.submitted", "job": job_id},
        )
        return job_id

    def submit_job_sweep(self, job_id: str) -> str:
        return self.submit(self.orchestrator.run_job_sweep, job_id, name="job-sweep")

    def submit_candidate_sweep(self, candidate_id: str) -> str:
        return self.submit(
            self.orchestrator.run_candidate_sweep, candidate_id, name="candidate-sweep"
        )

    def submit_pair(self, candidate_id: str, job_id: str) -> str:
        return self.submit(self.orchestrator.process_pair, candidate_id, job_id, name="pair")

    def run_maintenance(self) -> int:
        """
        Delete pending claims older than the claim timeout.

        A pending claim that old belongs to a sender that died before calling
        the channel; removing it lets a later sweep retry the alert. Markers
        stuck in 'sending' may already have been delivered, so they are only
        reported for an operator to resolve.

        Returns:
            Number of claims purged
        """
        if self.marker_store is None:
            return 0
        cutoff = self.clock() - self.claim_timeout
        purged = self.marker_store.purge_stale_claims(cutoff)
        log = logger.warning if purged else logger.debug
        log(
            f"Purged {purged} stale notification claims",
            extra={"event": "maintenance.claims_purged", "count": purged},
        )

        stalled = self.marker_store.count_stalled_sends(cutoff)
        if stalled:
            logger.warning(
                f"{stalled} alerts stuck in 'sending'; delivery unknown, not retried",
                extra={"event": "maintenance.sends_stalled", "count": stalled},
            )
        return purged

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted job has finished.

        Returns:
            True if idle, False on timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.job_id == MAINTENANCE_JOB_ID:
            if event.exception is not None:
                logger.error(
                    f"Maintenance job failed: {event.exception}",
                    extra={"event": "maintenance.failed"},
                    exc_info=(type(event.exception), event.exception, event.exception.__traceback__),
                )
            return

        failed = event.code != EVENT_JOB_EXECUTED
        if event.code == EVENT_JOB_ERROR:
            logger.error(
                f"Background job {event.job_id} failed: {event.exception}",
                extra={"event": "dispatcher.job_failed", "job": event.job_id},
                exc_info=(type(event.exception), event.exception, event.exception.__traceback__),
            )
        elif event.code == EVENT_JOB_MISSED:
            logger.error(
                f"Background job {event.job_id} missed its run time",
                extra={"event": "dispatcher.job_missed", "job": event.job_id},
            )
        else:
            logger.debug(
                f"Background job {event.job_id} finished",
                extra={"event": "dispatcher.job_finished", "job": event.job_id},
            )

        with self._idle:
            if failed:
                self.failed_count += 1
            else:
                self.completed_count += 1
            self._pending.discard(event.job_id)
            self._idle.notify_all()
