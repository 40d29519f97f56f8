"""Data models for the scoring engine.

Signals are immutable views computed from profile and posting content;
a ScoreBreakdown is the pure output of a scorer and becomes a MatchRecord
once it is stamped with a pair and a computation time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, List, Optional, Tuple

from campusmatch.domain.models import MatchRecord


@dataclass(frozen=True)
class CandidateSignals:
    """Derived view of a candidate used for scoring.

    Attributes:
        candidate_id: Candidate identifier
        skills: Lower-cased skill set
        tools: Lower-cased tool set
        category: Category preference ("Tech", "Non-Tech", "Core")
        work_mode: Work-mode preference ("Remote", "Onsite", "Hybrid", "Any")
        embedding: Fixed-length vector from the configured embedder
        contact_address: Messaging address (phone) or None
        text: Source text the signals were derived from
    """

    candidate_id: str
    skills: FrozenSet[str]
    tools: FrozenSet[str]
    category: str
    work_mode: str
    embedding: Tuple[float, ...]
    contact_address: Optional[str] = None
    text: str = ""


@dataclass(frozen=True)
class JobSignals:
    """Derived view of a job posting used for scoring."""

    job_id: str
    skills: FrozenSet[str]
    tools: FrozenSet[str]
    category: str
    work_mode: str
    embedding: Tuple[float, ...]
    text: str = ""


@dataclass
class ScoreBreakdown:
    """Component scores and matched/gap lists for one pair.

    Attributes:
        final_score: Weighted sum of the components, in [0, 1]
        scorer: Name of the scorer that produced this breakdown
    """

    final_score: float
    skill_match: float
    tool_match: float
    category_match: float
    work_mode_match: float
    semantic_similarity: float
    matched_skills: List[str] = field(default_factory=list)
    skill_gap: List[str] = field(default_factory=list)
    matched_tools: List[str] = field(default_factory=list)
    tool_gap: List[str] = field(default_factory=list)
    scorer: str = "signals"

    def to_record(self, candidate_id: str, job_id: str, computed_at: datetime) -> MatchRecord:
        return MatchRecord(
            candidate_id=candidate_id,
            job_id=job_id,
            final_score=self.final_score,
            skill_match=self.skill_match,
            tool_match=self.tool_match,
            category_match=self.category_match,
            work_mode_match=self.work_mode_match,
            semantic_similarity=self.semantic_similarity,
            matched_skills=list(self.matched_skills),
            skill_gap=list(self.skill_gap),
            matched_tools=list(self.matched_tools),
            tool_gap=list(self.tool_gap),
            scorer=self.scorer,
            computed_at=computed_at,
            active=True,
        )
