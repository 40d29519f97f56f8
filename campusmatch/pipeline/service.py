"""Entry points the marketplace calls into.

resolve_match() is synchronous. The event hooks (job published, profile
updated, application submitted) only invalidate what the event made stale
and hand the sweep to the dispatcher; they return immediately and never
raise on sweep failures.
"""

from typing import TYPE_CHECKING, Optional

from campusmatch.domain.models import MatchRecord
from campusmatch.logging import get_logger
from campusmatch.matching.resolver import MatchResolver
from campusmatch.matching.signals import SignalExtractor
from campusmatch.matching.store import MatchStore
from campusmatch.persistence.exceptions import PersistenceError

from .models import MatchStatistics

if TYPE_CHECKING:
    from campusmatch.scheduler.service import SweepDispatcher

logger = get_logger(__name__, component="service")

MEDIUM_MATCH_PERCENT = 40


class MatchingService:
    """Facade over the resolver, the match store and the dispatcher.

    Args:
        resolver: Match resolver for synchronous lookups
        store: Match store, used for invalidation and statistics
        extractor: Signal extractor whose cache is dropped on invalidation
        dispatcher: Background dispatcher for sweeps
    """

    def __init__(
        self,
        resolver: MatchResolver,
        store: MatchStore,
        extractor: SignalExtractor,
        dispatcher: "SweepDispatcher",
    ):
        self.resolver = resolver
        self.store = store
        self.extractor = extractor
        self.dispatcher = dispatcher

    def resolve_match(
        self, candidate_id: str, job_id: str, force_refresh: bool = False
    ) -> MatchRecord:
        """Match record for the pair, from cache when fresh.

        Raises:
            SubjectNotFoundError: If the candidate or the job does not exist
            ScoringInputError: If the pair cannot be scored
        """
        return self.resolver.resolve(candidate_id, job_id, force_refresh=force_refresh)

    def on_job_published(self, job_id: str) -> str:
        """A posting was created or edited: re-match it against all candidates."""
        self._invalidate_quietly(job_id=job_id)
        return self.dispatcher.submit_job_sweep(job_id)

    def on_profile_updated(self, candidate_id: str) -> str:
        """A profile or resume changed: re-match it against all open postings."""
        self._invalidate_quietly(candidate_id=candidate_id)
        return self.dispatcher.submit_candidate_sweep(candidate_id)

    def on_application_submitted(self, candidate_id: str, job_id: str) -> str:
        return self.dispatcher.submit_pair(candidate_id, job_id)

    def _invalidate_quietly(self, **subject: str) -> None:
        try:
            self.invalidate(**subject)
        except PersistenceError as e:
            # Sweep still runs; stale records age out with the TTL
            logger.error(
                f"Invalidation failed before dispatch: {e}",
                extra={"event": "match.invalidate_failed", **subject},
                exc_info=True,
            )

    def invalidate(
        self, candidate_id: Optional[str] = None, job_id: Optional[str] = None
    ) -> int:
        """Mark stored matches of a candidate and/or a job as stale.

        Cached signals of the same subjects are dropped too, so the next
        resolve re-analyzes current content.

        Returns:
            Number of match records deactivated
        """
        if candidate_id is None and job_id is None:
            raise ValueError("invalidate() needs a candidate_id or a job_id")

        count = 0
        if candidate_id is not None:
            count += self.store.invalidate_by_candidate(candidate_id)
        if job_id is not None:
            count += self.store.invalidate_by_job(job_id)
        dropped = self.extractor.invalidate(candidate_id=candidate_id, job_id=job_id)

        logger.debug(
            f"Dropped {dropped} cached signal entries",
            extra={
                "event": "signals.invalidated",
                "candidate_id": candidate_id,
                "job_id": job_id,
                "count": dropped,
            },
        )
        return count

    def match_statistics(self, candidate_id: str) -> MatchStatistics:
        """Summary of the candidate's active matches, in percent.

        High matches are exactly the records eligible for an alert.
        """
        records = self.store.list_for_candidate(candidate_id)
        if not records:
            return MatchStatistics()

        percents = [r.score_percent for r in records]
        high = [r for r in records if r.is_eligible()]
        medium = [
            r for r in records if not r.is_eligible() and r.score_percent >= MEDIUM_MATCH_PERCENT
        ]
        return MatchStatistics(
            total_matches=len(records),
            average_score=round(sum(percents) / len(percents), 2),
            max_score=max(percents),
            high_matches=len(high),
            medium_matches=len(medium),
            low_matches=len(records) - len(high) - len(medium),
        )
