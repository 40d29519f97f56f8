"""Cache-aware match resolution.

resolve() returns the stored record while it is fresh and otherwise
recomputes: derive signals, score, upsert. A record scored from content the
directory no longer holds is never fresh, so a late write from an older
sweep is not served after an edit. Storage is best-effort in both
directions. A failed read counts as a miss and a failed write is logged
while the freshly computed record is still returned, so a degraded database
slows matching down but never blocks it. Derivation and scoring errors do
propagate, and nothing is written for that pair.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from campusmatch.domain.models import CandidateProfile, JobPosting, MatchRecord
from campusmatch.logging import get_logger
from campusmatch.persistence.exceptions import PersistenceError
from campusmatch.utils.timestamps import is_older_than, utc_now

from .directory import ProfileDirectory
from .engine import Scorer
from .exceptions import SubjectNotFoundError
from .signals import SignalExtractor, source_fingerprint
from .store import MatchStore

logger = get_logger(__name__, component="resolver")

DEFAULT_TTL = timedelta(hours=24)


class MatchResolver:
    """Resolves (candidate, job) pairs to MatchRecords through the store.

    Args:
        directory: Source of candidate profiles and job postings
        extractor: Signal extractor (analyzer + embedder)
        scorer: Scorer producing the breakdown (usually a CompositeScorer)
        store: Durable match store
        ttl: Maximum age of a cached record that is still served
        clock: Source of the current UTC time, injectable for tests
    """

    def __init__(
        self,
        directory: ProfileDirectory,
        extractor: SignalExtractor,
        scorer: Scorer,
        store: MatchStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.directory = directory
        self.extractor = extractor
        self.scorer = scorer
        self.store = store
        self.ttl = ttl
        self.clock = clock

    def is_fresh(
        self,
        record: MatchRecord,
        now: Optional[datetime] = None,
        source_hash: Optional[str] = None,
    ) -> bool:
        """Active and no older than the TTL (an age equal to the TTL is fresh).

        A record scored from other content than ``source_hash`` is stale.
        """
        if not record.active or record.computed_at is None:
            return False
        if source_hash and record.source_hash and record.source_hash != source_hash:
            return False
        return not is_older_than(record.computed_at, self.ttl, now or self.clock())

    def resolve(self, candidate_id: str, job_id: str, force_refresh: bool = False) -> MatchRecord:
        """Return the pair's match record, recomputing when stale or forced.

        Raises:
            SubjectNotFoundError: If the candidate or job does not exist
            ScoringInputError: If the signals cannot be scored
        """
        candidate, job = self.load_subjects(candidate_id, job_id)
        return self.resolve_for(candidate, job, force_refresh=force_refresh)

    def resolve_for(
        self, candidate: CandidateProfile, job: JobPosting, force_refresh: bool = False
    ) -> MatchRecord:
        """resolve() for callers that already hold the profile and the posting."""
        source_hash = source_fingerprint(candidate, job)
        if not force_refresh:
            cached = self._cached(candidate.candidate_id, job.job_id, source_hash)
            if cached is not None:
                return cached
        return self._compute(candidate, job, source_hash)

    def load_subjects(self, candidate_id: str, job_id: str):
        """Fetch both subjects.

        Raises:
            SubjectNotFoundError: If either is missing
        """
        candidate = self.directory.get_candidate_profile(candidate_id)
        if candidate is None:
            raise SubjectNotFoundError("candidate", candidate_id)
        job = self.directory.get_job_posting(job_id)
        if job is None:
            raise SubjectNotFoundError("job", job_id)
        return candidate, job

    def _cached(self, candidate_id: str, job_id: str, source_hash: str) -> Optional[MatchRecord]:
        try:
            record = self.store.get(candidate_id, job_id)
        except PersistenceError as e:
            logger.warning(
                f"Match store read failed, recomputing: {e}",
                extra={
                    "event": "match.cache.read_failed",
                    "candidate_id": candidate_id,
                    "job_id": job_id,
                },
            )
            return None

        if record is not None and self.is_fresh(record, source_hash=source_hash):
            logger.debug(
                "Match cache hit",
                extra={"event": "match.cache.hit", "candidate_id": candidate_id, "job_id": job_id},
            )
            return record

        logger.debug(
            "Match cache miss",
            extra={
                "event": "match.cache.miss",
                "candidate_id": candidate_id,
                "job_id": job_id,
                "stale": record is not None,
            },
        )
        return None

    def _compute(
        self, candidate: CandidateProfile, job: JobPosting, source_hash: str
    ) -> MatchRecord:
        candidate_signals = self.extractor.candidate_signals(candidate)
        job_signals = self.extractor.job_signals(job)
        breakdown = self.scorer.score(candidate_signals, job_signals)
        record = breakdown.to_record(candidate.candidate_id, job.job_id, self.clock())
        record.source_hash = source_hash

        try:
            record = self.store.upsert(record)
        except PersistenceError as e:
            logger.error(
                f"Match store write failed, returning computed record: {e}",
                extra={
                    "event": "match.store.write_failed",
                    "candidate_id": candidate.candidate_id,
                    "job_id": job.job_id,
                },
            )

        logger.info(
            f"Match computed: {record.score_percent}%",
            extra={
                "event": "match.computed",
                "candidate_id": candidate.candidate_id,
                "job_id": job.job_id,
                "final_score": record.final_score,
                "scorer": record.scorer,
            },
        )
        return record
