"""Data models for sweep execution tracking and reporting."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from campusmatch.domain.models import MatchRecord
from campusmatch.notifications.models import NotificationResult


@dataclass
class PairOutcome:
    """
    Result of resolving and notifying a single (candidate, job) pair.

    Attributes:
        candidate_id: Candidate of the pair
        job_id: Job of the pair
        record: Resolved match record
        notification: Gate decision for the record
    """

    candidate_id: str
    job_id: str
    record: Optional[MatchRecord] = None
    notification: Optional[NotificationResult] = None


@dataclass
class SweepResult:
    """
    Aggregate counts of one sweep.

    Attributes:
        sweep_id: Unique identifier used in log context
        kind: "job" (one posting against all candidates) or "candidate"
        subject_id: The posting or candidate the sweep is about
        started_at: UTC timestamp when the sweep began
        finished_at: UTC timestamp when the sweep completed
        processed: Pairs attempted, including failed ones
        matched: Pairs whose score reached the notification threshold
        notified: Alerts sent by this sweep
        duplicates: Eligible pairs already notified earlier
        below_threshold: Pairs scored under the threshold
        channel_errors: Sends that failed and can be retried later
        no_address: Eligible pairs whose candidate has no contact address
        failed: Pairs that raised during resolve or notify
        cancelled: Whether the sweep stopped early on cancellation
        skipped: Whether the subject was inactive and nothing ran
    """

    sweep_id: str
    kind: str
    subject_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    processed: int = 0
    matched: int = 0
    notified: int = 0
    duplicates: int = 0
    below_threshold: int = 0
    channel_errors: int = 0
    no_address: int = 0
    failed: int = 0
    cancelled: bool = False
    skipped: bool = False

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def had_errors(self) -> bool:
        return self.failed > 0

    def as_log_fields(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "matched": self.matched,
            "notified": self.notified,
            "duplicates": self.duplicates,
            "below_threshold": self.below_threshold,
            "channel_errors": self.channel_errors,
            "no_address": self.no_address,
            "failed": self.failed,
        }


@dataclass
class MatchStatistics:
    """Summary of a candidate's active matches, scores in percent."""

    total_matches: int = 0
    average_score: float = 0.0
    max_score: int = 0
    high_matches: int = 0
    medium_matches: int = 0
    low_matches: int = 0
