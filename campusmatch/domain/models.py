"""Core domain models for candidates, job postings, matches, and alerts.

This module defines the data structures shared by every layer:
- Signals: structured view of a resume or job description (skills, tools,
  category, work mode)
- CandidateProfile / JobPosting: the subjects being matched
- MatchRecord: a scored (candidate, job) pair
- NotificationMarker: durable record that an alert was claimed or sent
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from campusmatch.utils.timestamps import ensure_utc

# Alerts fire at or above this final score. Defined once; every caller imports it.
NOTIFICATION_THRESHOLD = 0.70


class Category(str, Enum):
    """Job family a candidate prefers or a job belongs to."""

    TECH = "Tech"
    NON_TECH = "Non-Tech"
    CORE = "Core"

    @classmethod
    def parse(cls, value: object) -> "Category":
        """Parse a category label, accepting 'NonTech' and case variants."""
        if isinstance(value, Category):
            return value
        key = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        aliases = {
            "tech": cls.TECH,
            "non-tech": cls.NON_TECH,
            "nontech": cls.NON_TECH,
            "core": cls.CORE,
        }
        if key not in aliases:
            raise ValueError(f"Unknown category: {value!r}")
        return aliases[key]


class WorkMode(str, Enum):
    """Work arrangement. ANY is only meaningful as a candidate preference."""

    REMOTE = "Remote"
    ONSITE = "Onsite"
    HYBRID = "Hybrid"
    ANY = "Any"

    @classmethod
    def parse(cls, value: object) -> "WorkMode":
        """Parse a work mode label case-insensitively ('on-site' is accepted)."""
        if isinstance(value, WorkMode):
            return value
        key = str(value).strip().lower().replace("-", "").replace(" ", "")
        for mode in cls:
            if mode.value.lower() == key:
                return mode
        raise ValueError(f"Unknown work mode: {value!r}")


class MarkerStatus(str, Enum):
    """Lifecycle of a notification marker.

    pending -> sending -> sent. A pending claim never reached the channel and
    may be purged; a sending marker may already have been delivered and is
    never removed automatically.
    """

    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"


def _normalize_terms(values: List[str]) -> List[str]:
    seen = set()
    normalized = []
    for value in values:
        term = str(value).strip().lower()
        if term and term not in seen:
            seen.add(term)
            normalized.append(term)
    return normalized


def _unit_interval(value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"must be within [0, 1], got: {value}")
    return value


class Signals(BaseModel):
    """Structured signals extracted from a resume or job description.

    Both the analyzer and the keyword heuristic produce this shape; ``source``
    only records which path produced it.
    """

    skills: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)
    category: Category = Field(...)
    work_mode: WorkMode = Field(...)
    source: Literal["ai", "fallback"] = "ai"

    model_config = {"use_enum_values": True}

    @field_validator("skills", "tools")
    @classmethod
    def normalize_terms(cls, v: List[str]) -> List[str]:
        return _normalize_terms(v)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return Category.parse(v)

    @field_validator("work_mode", mode="before")
    @classmethod
    def parse_work_mode(cls, v):
        return WorkMode.parse(v)


class CandidateProfile(BaseModel):
    """Candidate (student) profile as stored by the marketplace."""

    candidate_id: str = Field(..., min_length=1)
    name: str = Field("", description="Display name")
    headline: Optional[str] = None
    skills: List[str] = Field(default_factory=list, description="Self-declared skills")
    resume_text: Optional[str] = Field(None, description="Extracted resume text, if uploaded")
    category_preference: Optional[Category] = None
    work_mode_preference: Optional[WorkMode] = None
    phone: Optional[str] = Field(None, description="Messaging address for alerts")
    email: Optional[str] = None
    active: bool = True
    updated_at: Optional[datetime] = None

    model_config = {"use_enum_values": True}

    @field_validator("candidate_id")
    @classmethod
    def strip_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("candidate_id cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, v: List[str]) -> List[str]:
        return _normalize_terms(v)

    @field_validator("phone", "resume_text", "headline")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("category_preference", mode="before")
    @classmethod
    def parse_category(cls, v):
        return None if v in (None, "") else Category.parse(v)

    @field_validator("work_mode_preference", mode="before")
    @classmethod
    def parse_work_mode(cls, v):
        return None if v in (None, "") else WorkMode.parse(v)

    @field_validator("updated_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def contact_address(self) -> Optional[str]:
        return self.phone


class JobPosting(BaseModel):
    """Job posting published by a recruiter."""

    job_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    company: str = Field("", description="Company display name")
    description: str = ""
    required_skills: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    work_mode: Optional[WorkMode] = None
    category: Optional[Category] = None
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    salary_currency: str = "INR"
    application_deadline: Optional[datetime] = None
    active: bool = True
    published_at: Optional[datetime] = None

    model_config = {"use_enum_values": True}

    @field_validator("job_id", "title")
    @classmethod
    def strip_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("required_skills")
    @classmethod
    def normalize_skills(cls, v: List[str]) -> List[str]:
        return _normalize_terms(v)

    @field_validator("location")
    @classmethod
    def strip_location(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return None if v in (None, "") else Category.parse(v)

    @field_validator("work_mode", mode="before")
    @classmethod
    def parse_work_mode(cls, v):
        return None if v in (None, "") else WorkMode.parse(v)

    @field_validator("application_deadline", "published_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def is_open(self, now: datetime) -> bool:
        """Active and the application deadline (if any) has not passed."""
        if not self.active:
            return False
        return self.application_deadline is None or self.application_deadline >= ensure_utc(now)


class MatchRecord(BaseModel):
    """Scored (candidate, job) pair.

    At most one active record exists per pair; recomputation replaces it.
    ``source_hash`` fingerprints the inputs it was scored from.
    """

    candidate_id: str
    job_id: str
    final_score: float
    skill_match: float
    tool_match: float
    category_match: float
    work_mode_match: float
    semantic_similarity: float
    matched_skills: List[str] = Field(default_factory=list)
    skill_gap: List[str] = Field(default_factory=list)
    matched_tools: List[str] = Field(default_factory=list)
    tool_gap: List[str] = Field(default_factory=list)
    scorer: str = "signals"
    computed_at: Optional[datetime] = None
    active: bool = True
    source_hash: Optional[str] = None

    @field_validator(
        "final_score",
        "skill_match",
        "tool_match",
        "category_match",
        "work_mode_match",
        "semantic_similarity",
    )
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        return _unit_interval(v)

    @field_validator("computed_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def is_eligible(self, threshold: float = NOTIFICATION_THRESHOLD) -> bool:
        """Whether the score clears the alert threshold (inclusive)."""
        return self.final_score >= threshold

    @property
    def score_percent(self) -> int:
        return int(round(self.final_score * 100))


class NotificationMarker(BaseModel):
    """Durable record that a candidate was (or is being) alerted about a job."""

    candidate_id: str
    job_id: str
    channel: str
    status: MarkerStatus = MarkerStatus.PENDING
    score: float = 0.0
    claimed_at: datetime
    sent_at: Optional[datetime] = None

    model_config = {"use_enum_values": True}

    @field_validator("claimed_at", "sent_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)
