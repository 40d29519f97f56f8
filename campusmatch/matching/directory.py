"""Read access to candidate profiles and job postings.

The matching pipeline only reads subjects through ProfileDirectory; the
marketplace owns them. SqlProfileDirectory is the default implementation
over the candidates and job_postings tables.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from campusmatch.domain.models import CandidateProfile, JobPosting
from campusmatch.persistence import CandidateRepository, JobPostingRepository, get_session


class ProfileDirectory(Protocol):
    def get_candidate_profile(self, candidate_id: str) -> Optional[CandidateProfile]:
        ...

    def get_job_posting(self, job_id: str) -> Optional[JobPosting]:
        ...

    def list_active_jobs(self, now: datetime) -> List[JobPosting]:
        ...

    def list_active_candidates(self) -> List[CandidateProfile]:
        ...


class SqlProfileDirectory:
    """ProfileDirectory backed by the SQL profile tables."""

    def get_candidate_profile(self, candidate_id: str) -> Optional[CandidateProfile]:
        with get_session() as session:
            return CandidateRepository(session).get(candidate_id)

    def get_job_posting(self, job_id: str) -> Optional[JobPosting]:
        with get_session() as session:
            return JobPostingRepository(session).get(job_id)

    def list_active_jobs(self, now: datetime) -> List[JobPosting]:
        with get_session() as session:
            return JobPostingRepository(session).list_open(now)

    def list_active_candidates(self) -> List[CandidateProfile]:
        with get_session() as session:
            return CandidateRepository(session).list_active()
