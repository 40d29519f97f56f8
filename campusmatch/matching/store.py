"""Durable store of computed match records.

The store is time-oblivious: it stamps computed_at on write but never
decides freshness. TTL policy lives in the MatchResolver.
"""

from datetime import datetime
from typing import Callable, List, Optional, Protocol

from campusmatch.domain.models import MatchRecord
from campusmatch.logging import get_logger
from campusmatch.persistence import MatchRecordRepository, get_session
from campusmatch.utils.timestamps import utc_now

logger = get_logger(__name__, component="match_store")


class MatchStore(Protocol):
    def get(self, candidate_id: str, job_id: str) -> Optional[MatchRecord]:
        ...

    def upsert(self, record: MatchRecord) -> MatchRecord:
        ...

    def invalidate_by_candidate(self, candidate_id: str) -> int:
        ...

    def invalidate_by_job(self, job_id: str) -> int:
        ...

    def list_for_candidate(
        self, candidate_id: str, min_score: float = 0.0, limit: Optional[int] = None
    ) -> List[MatchRecord]:
        ...

    def list_active(
        self, candidate_id: Optional[str] = None, job_id: Optional[str] = None
    ) -> List[MatchRecord]:
        ...


class SqlMatchStore:
    """MatchStore over the match_records table.

    Args:
        clock: Source of the current UTC time, injectable for tests
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def get(self, candidate_id: str, job_id: str) -> Optional[MatchRecord]:
        """Active record for the pair, or None.

        Raises:
            PersistenceError: If the read fails
        """
        with get_session() as session:
            return MatchRecordRepository(session).get_active(candidate_id, job_id)

    def upsert(self, record: MatchRecord) -> MatchRecord:
        """Write the record as the pair's single active record.

        Sets active=True and computed_at=now; the stored copy is returned.

        Raises:
            PersistenceError: If the write fails
        """
        stored = record.model_copy(update={"active": True, "computed_at": self.clock()})
        with get_session() as session:
            MatchRecordRepository(session).upsert(stored)
        return stored

    def invalidate_by_candidate(self, candidate_id: str) -> int:
        with get_session() as session:
            count = MatchRecordRepository(session).deactivate_by_candidate(candidate_id)
        logger.info(
            f"Invalidated {count} matches for candidate {candidate_id}",
            extra={"event": "match.invalidated", "candidate_id": candidate_id, "count": count},
        )
        return count

    def invalidate_by_job(self, job_id: str) -> int:
        with get_session() as session:
            count = MatchRecordRepository(session).deactivate_by_job(job_id)
        logger.info(
            f"Invalidated {count} matches for job {job_id}",
            extra={"event": "match.invalidated", "job_id": job_id, "count": count},
        )
        return count

    def list_for_candidate(
        self, candidate_id: str, min_score: float = 0.0, limit: Optional[int] = None
    ) -> List[MatchRecord]:
        """Active records of a candidate, best first."""
        with get_session() as session:
            return MatchRecordRepository(session).list_active(
                candidate_id=candidate_id, min_score=min_score, limit=limit
            )

    def list_active(
        self, candidate_id: Optional[str] = None, job_id: Optional[str] = None
    ) -> List[MatchRecord]:
        with get_session() as session:
            return MatchRecordRepository(session).list_active(
                candidate_id=candidate_id, job_id=job_id
            )
