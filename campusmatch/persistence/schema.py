"""Database schema definition and ORM models.

Timestamps are stored as ISO 8601 UTC strings (see utils.timestamps) so that
string comparison in SQL matches chronological order. Lists are stored as
JSON arrays.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Column, Float, Index, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from campusmatch.domain.models import (
    CandidateProfile,
    JobPosting,
    MatchRecord,
    NotificationMarker,
)
from campusmatch.utils.timestamps import format_timestamp, parse_iso_datetime

logger = logging.getLogger(__name__)

Base = declarative_base()


class CandidateModel(Base):
    """ORM model for the candidates table (default profile store)."""

    __tablename__ = "candidates"

    candidate_id = Column(String(64), primary_key=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    headline = Column(Text, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    resume_text = Column(Text, nullable=True)
    category_preference = Column(String(20), nullable=True)
    work_mode_preference = Column(String(20), nullable=True)
    phone = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_candidates_active", "active"),)

    def to_domain(self) -> CandidateProfile:
        return CandidateProfile(
            candidate_id=self.candidate_id,
            name=self.name or "",
            headline=self.headline,
            skills=list(self.skills or []),
            resume_text=self.resume_text,
            category_preference=self.category_preference,
            work_mode_preference=self.work_mode_preference,
            phone=self.phone,
            email=self.email,
            active=bool(self.active),
            updated_at=_parse_datetime(self.updated_at),
        )

    @staticmethod
    def values_from_domain(profile: CandidateProfile) -> dict:
        return {
            "candidate_id": profile.candidate_id,
            "name": profile.name,
            "headline": profile.headline,
            "skills": list(profile.skills),
            "resume_text": profile.resume_text,
            "category_preference": profile.category_preference,
            "work_mode_preference": profile.work_mode_preference,
            "phone": profile.phone,
            "email": profile.email,
            "active": profile.active,
            "updated_at": _format_datetime(profile.updated_at),
        }


class JobPostingModel(Base):
    """ORM model for the job_postings table (default profile store)."""

    __tablename__ = "job_postings"

    job_id = Column(String(64), primary_key=True, nullable=False)
    title = Column(Text, nullable=False)
    company = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    required_skills = Column(JSON, nullable=False, default=list)
    location = Column(String(255), nullable=True)
    work_mode = Column(String(20), nullable=True)
    category = Column(String(20), nullable=True)
    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    salary_currency = Column(String(8), nullable=False, default="INR")
    application_deadline = Column(String(50), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    published_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_job_postings_open", "active", "application_deadline"),)

    def to_domain(self) -> JobPosting:
        return JobPosting(
            job_id=self.job_id,
            title=self.title,
            company=self.company or "",
            description=self.description or "",
            required_skills=list(self.required_skills or []),
            location=self.location,
            work_mode=self.work_mode,
            category=self.category,
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            salary_currency=self.salary_currency or "INR",
            application_deadline=_parse_datetime(self.application_deadline),
            active=bool(self.active),
            published_at=_parse_datetime(self.published_at),
        )

    @staticmethod
    def values_from_domain(job: JobPosting) -> dict:
        return {
            "job_id": job.job_id,
            "title": job.title,
            "company": job.company,
            "description": job.description,
            "required_skills": list(job.required_skills),
            "location": job.location,
            "work_mode": job.work_mode,
            "category": job.category,
            "salary_min": job.salary_min,
            "salary_max": job.salary_max,
            "salary_currency": job.salary_currency,
            "application_deadline": _format_datetime(job.application_deadline),
            "active": job.active,
            "published_at": _format_datetime(job.published_at),
        }


class MatchRecordModel(Base):
    """ORM model for the match_records table.

    The (candidate_id, job_id) primary key guarantees at most one record per pair.
    """

    __tablename__ = "match_records"

    candidate_id = Column(String(64), primary_key=True, nullable=False)
    job_id = Column(String(64), primary_key=True, nullable=False)

    final_score = Column(Float, nullable=False)
    skill_match = Column(Float, nullable=False)
    tool_match = Column(Float, nullable=False)
    category_match = Column(Float, nullable=False)
    work_mode_match = Column(Float, nullable=False)
    semantic_similarity = Column(Float, nullable=False)

    matched_skills = Column(JSON, nullable=False, default=list)
    skill_gap = Column(JSON, nullable=False, default=list)
    matched_tools = Column(JSON, nullable=False, default=list)
    tool_gap = Column(JSON, nullable=False, default=list)

    scorer = Column(String(32), nullable=False, default="signals")
    computed_at = Column(String(50), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    source_hash = Column(String(64), nullable=True)

    __table_args__ = (
        Index("idx_match_records_job", "job_id"),
        Index("idx_match_records_candidate_score", "candidate_id", "final_score"),
    )

    def to_domain(self) -> MatchRecord:
        return MatchRecord(
            candidate_id=self.candidate_id,
            job_id=self.job_id,
            final_score=self.final_score,
            skill_match=self.skill_match,
            tool_match=self.tool_match,
            category_match=self.category_match,
            work_mode_match=self.work_mode_match,
            semantic_similarity=self.semantic_similarity,
            matched_skills=list(self.matched_skills or []),
            skill_gap=list(self.skill_gap or []),
            matched_tools=list(self.matched_tools or []),
            tool_gap=list(self.tool_gap or []),
            scorer=self.scorer,
            computed_at=_parse_datetime(self.computed_at),
            active=bool(self.active),
            source_hash=self.source_hash,
        )

    @staticmethod
    def values_from_domain(record: MatchRecord) -> dict:
        return {
            "candidate_id": record.candidate_id,
            "job_id": record.job_id,
            "final_score": record.final_score,
            "skill_match": record.skill_match,
            "tool_match": record.tool_match,
            "category_match": record.category_match,
            "work_mode_match": record.work_mode_match,
            "semantic_similarity": record.semantic_similarity,
            "matched_skills": list(record.matched_skills),
            "skill_gap": list(record.skill_gap),
            "matched_tools": list(record.matched_tools),
            "tool_gap": list(record.tool_gap),
            "scorer": record.scorer,
            "computed_at": _format_datetime(record.computed_at),
            "active": record.active,
            "source_hash": record.source_hash,
        }


class NotificationMarkerModel(Base):
    """ORM model for the notification_markers table.

    A row is inserted as 'pending' when a send is claimed, moves to 'sending'
    just before the channel is called, and to 'sent' on delivery. A send that
    definitely failed deletes its row.
    """

    __tablename__ = "notification_markers"

    candidate_id = Column(String(64), primary_key=True, nullable=False)
    job_id = Column(String(64), primary_key=True, nullable=False)

    channel = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    score = Column(Float, nullable=False, default=0.0)
    claimed_at = Column(String(50), nullable=False)
    sent_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_notification_markers_status", "status", "claimed_at"),)

    def to_domain(self) -> NotificationMarker:
        return NotificationMarker(
            candidate_id=self.candidate_id,
            job_id=self.job_id,
            channel=self.channel,
            status=self.status,
            score=self.score,
            claimed_at=_parse_datetime(self.claimed_at),
            sent_at=_parse_datetime(self.sent_at),
        )


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    return format_timestamp(dt)


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    return parse_iso_datetime(dt_str)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet (idempotent)."""
    try:
        Base.metadata.create_all(engine, checkfirst=True)
    except Exception as e:
        logger.error(
            f"Failed to create database schema: {e}",
            extra={"event": "database.schema_failed"},
            exc_info=True,
        )
        raise

    tables = inspect(engine).get_table_names()
    logger.info(
        f"Database schema ready. Tables: {', '.join(sorted(tables))}",
        extra={"event": "database.schema_ready"},
    )
