"""Persistence layer on SQLAlchemy.

Public API:
    - init_database(database_url) / get_session() / get_engine() / close_database()
    - CandidateRepository, JobPostingRepository: default profile store
    - MatchRecordRepository: cached match records
    - NotificationMarkerRepository: at-most-once alert markers
    - PersistenceError and subclasses

Example:
    >>> init_database("sqlite:///./data/campusmatch.db")
    >>> with get_session() as session:
    ...     record = MatchRecordRepository(session).get_active("cand-1", "job-1")
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    CandidateRepository,
    JobPostingRepository,
    MatchRecordRepository,
    NotificationMarkerRepository,
)

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "CandidateRepository",
    "JobPostingRepository",
    "MatchRecordRepository",
    "NotificationMarkerRepository",
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
