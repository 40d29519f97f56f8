"""Data access layer (repositories) for persistence operations.

Repositories wrap a SQLAlchemy session, return domain models rather than
ORM rows, and translate SQLAlchemy errors into the persistence exception
hierarchy. Writes that must be atomic under concurrency (match upsert,
notification claim) use dialect-level INSERT ... ON CONFLICT.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from campusmatch.domain.models import (
    CandidateProfile,
    JobPosting,
    MarkerStatus,
    MatchRecord,
    NotificationMarker,
)
from campusmatch.utils.timestamps import format_timestamp

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import CandidateModel, JobPostingModel, MatchRecordModel, NotificationMarkerModel

logger = logging.getLogger(__name__)


def _insert_for(session: Session, model):
    """Return a dialect-specific insert() that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert(model)
    if dialect == "postgresql":
        return postgresql.insert(model)
    raise PersistenceError(f"Unsupported database dialect for upsert: {dialect}")


def _upsert_row(session: Session, model, values: dict, key_columns: Tuple[str, ...]) -> None:
    stmt = _insert_for(session, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(key_columns),
        set_={k: stmt.excluded[k] for k in values if k not in key_columns},
    )
    session.execute(stmt)


class CandidateRepository:
    """Repository for candidate profiles."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, candidate_id: str) -> Optional[CandidateProfile]:
        """Retrieve a candidate profile by id, or None if absent.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(CandidateModel, candidate_id)
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving candidate {candidate_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve candidate: {e}") from e

    def upsert(self, profile: CandidateProfile) -> CandidateProfile:
        """Insert or replace a candidate profile.

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            _upsert_row(
                self.session,
                CandidateModel,
                CandidateModel.values_from_domain(profile),
                ("candidate_id",),
            )
            self.session.flush()
            return profile
        except IntegrityError as e:
            logger.error(f"Integrity error upserting candidate {profile.candidate_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert candidate due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting candidate {profile.candidate_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert candidate: {e}") from e

    def list_active(self) -> List[CandidateProfile]:
        """All active candidates, ordered by id for stable sweeps."""
        try:
            stmt = (
                select(CandidateModel)
                .where(CandidateModel.active.is_(True))
                .order_by(CandidateModel.candidate_id)
            )
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing active candidates: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list candidates: {e}") from e


class JobPostingRepository:
    """Repository for job postings."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, job_id: str) -> Optional[JobPosting]:
        """Retrieve a job posting by id, or None if absent.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(JobPostingModel, job_id)
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving job posting {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve job posting: {e}") from e

    def upsert(self, job: JobPosting) -> JobPosting:
        """Insert or replace a job posting.

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            _upsert_row(
                self.session,
                JobPostingModel,
                JobPostingModel.values_from_domain(job),
                ("job_id",),
            )
            self.session.flush()
            return job
        except IntegrityError as e:
            logger.error(f"Integrity error upserting job posting {job.job_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert job posting due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting job posting {job.job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert job posting: {e}") from e

    def list_open(self, now: datetime) -> List[JobPosting]:
        """Active postings whose application deadline is unset or not yet passed.

        Args:
            now: Reference time (UTC)
        """
        try:
            now_str = format_timestamp(now)
            stmt = (
                select(JobPostingModel)
                .where(
                    JobPostingModel.active.is_(True),
                    (JobPostingModel.application_deadline.is_(None))
                    | (JobPostingModel.application_deadline >= now_str),
                )
                .order_by(JobPostingModel.job_id)
            )
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing open job postings: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list job postings: {e}") from e


class MatchRecordRepository:
    """Repository for computed match records."""

    def __init__(self, session: Session):
        self.session = session

    def get_active(self, candidate_id: str, job_id: str) -> Optional[MatchRecord]:
        """Retrieve the active record for a pair, or None.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(MatchRecordModel).where(
                MatchRecordModel.candidate_id == candidate_id,
                MatchRecordModel.job_id == job_id,
                MatchRecordModel.active.is_(True),
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving match record {candidate_id}/{job_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve match record: {e}") from e

    def upsert(self, record: MatchRecord) -> MatchRecord:
        """Insert or replace the record for its pair in one statement.

        Concurrent writers for the same pair resolve last-writer-wins.

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        if record.computed_at is None:
            raise PersistenceError("Match record must have computed_at set before upsert")
        try:
            _upsert_row(
                self.session,
                MatchRecordModel,
                MatchRecordModel.values_from_domain(record),
                ("candidate_id", "job_id"),
            )
            self.session.flush()
            return record
        except IntegrityError as e:
            logger.error(
                f"Integrity error upserting match {record.candidate_id}/{record.job_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(f"Failed to upsert match due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(
                f"Error upserting match {record.candidate_id}/{record.job_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to upsert match record: {e}") from e

    def deactivate_by_candidate(self, candidate_id: str) -> int:
        """Mark every active record of a candidate inactive.

        Returns:
            Number of records deactivated
        """
        return self._deactivate(MatchRecordModel.candidate_id == candidate_id, f"candidate {candidate_id}")

    def deactivate_by_job(self, job_id: str) -> int:
        """Mark every active record of a job inactive.

        Returns:
            Number of records deactivated
        """
        return self._deactivate(MatchRecordModel.job_id == job_id, f"job {job_id}")

    def _deactivate(self, condition, label: str) -> int:
        try:
            stmt = (
                update(MatchRecordModel)
                .where(condition, MatchRecordModel.active.is_(True))
                .values(active=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Error invalidating matches for {label}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to invalidate match records: {e}") from e

    def list_active(
        self,
        candidate_id: Optional[str] = None,
        job_id: Optional[str] = None,
        min_score: float = 0.0,
        limit: Optional[int] = None,
    ) -> List[MatchRecord]:
        """Active records, best score first, optionally filtered.

        Args:
            candidate_id: Restrict to one candidate
            job_id: Restrict to one job
            min_score: Minimum final score (inclusive)
            limit: Maximum number of records
        """
        try:
            stmt = select(MatchRecordModel).where(
                MatchRecordModel.active.is_(True),
                MatchRecordModel.final_score >= min_score,
            )
            if candidate_id is not None:
                stmt = stmt.where(MatchRecordModel.candidate_id == candidate_id)
            if job_id is not None:
                stmt = stmt.where(MatchRecordModel.job_id == job_id)
            stmt = stmt.order_by(MatchRecordModel.final_score.desc(), MatchRecordModel.job_id)
            if limit is not None:
                stmt = stmt.limit(limit)
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing match records: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list match records: {e}") from e


class NotificationMarkerRepository:
    """Repository for durable notification markers."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, candidate_id: str, job_id: str) -> Optional[NotificationMarker]:
        try:
            model = self.session.get(
                NotificationMarkerModel, {"candidate_id": candidate_id, "job_id": job_id}
            )
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving marker {candidate_id}/{job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve notification marker: {e}") from e

    def claim(
        self,
        candidate_id: str,
        job_id: str,
        channel: str,
        score: float,
        claimed_at: datetime,
    ) -> bool:
        """Insert a pending marker unless one already exists for the pair.

        Returns:
            True if this call inserted the marker (the caller owns the send),
            False if a marker already existed

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                _insert_for(self.session, NotificationMarkerModel)
                .values(
                    candidate_id=candidate_id,
                    job_id=job_id,
                    channel=channel,
                    status=MarkerStatus.PENDING.value,
                    score=score,
                    claimed_at=format_timestamp(claimed_at),
                    sent_at=None,
                )
                .on_conflict_do_nothing(index_elements=["candidate_id", "job_id"])
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(f"Error claiming marker {candidate_id}/{job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to claim notification marker: {e}") from e

    def mark_sending(self, candidate_id: str, job_id: str) -> None:
        """Move a pending claim to 'sending' right before the channel call.

        From here on the alert may have been delivered, so maintenance no
        longer purges the marker.

        Raises:
            RecordNotFoundError: If no pending claim exists for the pair
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(NotificationMarkerModel)
                .where(
                    NotificationMarkerModel.candidate_id == candidate_id,
                    NotificationMarkerModel.job_id == job_id,
                    NotificationMarkerModel.status == MarkerStatus.PENDING.value,
                )
                .values(status=MarkerStatus.SENDING.value)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            if result.rowcount == 0:
                raise RecordNotFoundError(f"No pending claim for {candidate_id}/{job_id}")
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error marking send for {candidate_id}/{job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark notification as sending: {e}") from e

    def confirm_sent(self, candidate_id: str, job_id: str, sent_at: datetime) -> None:
        """Flip a claimed marker to 'sent'.

        Raises:
            RecordNotFoundError: If no marker exists for the pair
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(NotificationMarkerModel)
                .where(
                    NotificationMarkerModel.candidate_id == candidate_id,
                    NotificationMarkerModel.job_id == job_id,
                )
                .values(status=MarkerStatus.SENT.value, sent_at=format_timestamp(sent_at))
            )
            result = self.session.execute(stmt)
            self.session.flush()
            if result.rowcount == 0:
                raise RecordNotFoundError(f"No notification marker for {candidate_id}/{job_id}")
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error confirming marker {candidate_id}/{job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to confirm notification marker: {e}") from e

    def release(self, candidate_id: str, job_id: str) -> bool:
        """Delete an unconfirmed claim after a failed send. Sent markers are never removed.

        Returns:
            True if a pending or sending marker was deleted
        """
        try:
            stmt = delete(NotificationMarkerModel).where(
                NotificationMarkerModel.candidate_id == candidate_id,
                NotificationMarkerModel.job_id == job_id,
                NotificationMarkerModel.status.in_(
                    (MarkerStatus.PENDING.value, MarkerStatus.SENDING.value)
                ),
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return (result.rowcount or 0) > 0
        except SQLAlchemyError as e:
            logger.error(f"Error releasing marker {candidate_id}/{job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to release notification marker: {e}") from e

    def list_sent_keys(self) -> List[Tuple[str, str]]:
        """(candidate_id, job_id) of every sent marker."""
        try:
            stmt = select(NotificationMarkerModel.candidate_id, NotificationMarkerModel.job_id).where(
                NotificationMarkerModel.status == MarkerStatus.SENT.value
            )
            return [(row[0], row[1]) for row in self.session.execute(stmt).all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing sent markers: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list notification markers: {e}") from e

    def purge_stale_pending(self, claimed_before: datetime) -> int:
        """Delete pending claims older than a cutoff. Sending markers are kept.

        Returns:
            Number of claims deleted
        """
        try:
            stmt = delete(NotificationMarkerModel).where(
                NotificationMarkerModel.status == MarkerStatus.PENDING.value,
                NotificationMarkerModel.claimed_at < format_timestamp(claimed_before),
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Error purging stale notification claims: {e}", exc_info=True)
            raise PersistenceError(f"Failed to purge notification claims: {e}") from e

    def count_stalled_sending(self, claimed_before: datetime) -> int:
        """Sending markers older than a cutoff; their delivery outcome is unknown."""
        try:
            stmt = select(func.count()).where(
                NotificationMarkerModel.status == MarkerStatus.SENDING.value,
                NotificationMarkerModel.claimed_at < format_timestamp(claimed_before),
            )
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting stalled notification sends: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count notification markers: {e}") from e

    def count_by_status(self) -> dict:
        """Marker counts keyed by status."""
        try:
            stmt = select(NotificationMarkerModel.status, func.count()).group_by(
                NotificationMarkerModel.status
            )
            return {status: count for status, count in self.session.execute(stmt).all()}
        except SQLAlchemyError as e:
            logger.error(f"Error counting notification markers: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count notification markers: {e}") from e
