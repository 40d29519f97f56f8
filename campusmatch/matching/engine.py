"""Scoring engine for (candidate, job) pairs.

Scoring is deterministic and does no I/O:
1. SignalScorer computes five components from candidate and job signals and
   combines them with ScoringWeights
2. KeywordOverlapScorer scores resume text against a fixed keyword list
3. CompositeScorer runs every configured scorer and keeps the best final score
"""

import dataclasses
from typing import FrozenSet, Iterable, List, Optional, Protocol, Sequence, Tuple

from campusmatch.config.models import ScorerName, ScoringWeights
from campusmatch.domain.models import WorkMode

from .embedding import cosine_similarity
from .exceptions import ScoringInputError
from .models import CandidateSignals, JobSignals, ScoreBreakdown

HYBRID_PARTIAL_CREDIT = 0.7

# Scores are rounded so that equal inputs give bit-identical results across
# platforms and the threshold comparison is not at the mercy of float noise.
SCORE_PRECISION = 9

OVERLAP_KEYWORDS = (
    "javascript", "python", "java", "react", "node", "angular", "vue", "typescript",
    "aws", "azure", "docker", "kubernetes", "git", "sql", "mongodb", "postgresql",
    "project management", "leadership", "team", "agile", "scrum", "communication",
    "problem solving", "analysis", "design", "development", "testing", "deployment",
    "warehouse", "logistics", "inventory", "supply chain", "operations", "quality",
    "safety", "manufacturing", "distribution", "procurement", "vendor management",
)


class Scorer(Protocol):
    """Scores one candidate against one job."""

    name: str

    def score(self, candidate: CandidateSignals, job: JobSignals) -> ScoreBreakdown:
        ...


def containment_match(
    candidate_terms: Iterable[str], job_terms: Iterable[str]
) -> Tuple[float, List[str], List[str]]:
    """Fuzzy set overlap by substring containment in either direction.

    A candidate term matches if it contains, or is contained in, any job term
    ("react" matches "reactjs"). The ratio is matched candidate terms over job
    terms, capped at 1.0; an empty job set gives 0.

    Returns:
        (ratio, matched candidate terms, job terms no candidate term matched)
    """
    candidate = sorted({t.lower() for t in candidate_terms if t})
    job = sorted({t.lower() for t in job_terms if t})
    if not job:
        return 0.0, [], []

    matched = [c for c in candidate if any(c in j or j in c for j in job)]
    gap = [j for j in job if not any(c in j or j in c for c in candidate)]
    ratio = min(len(matched), len(job)) / len(job)
    return ratio, matched, gap


def work_mode_score(candidate_mode: str, job_mode: str) -> float:
    """1 for equal modes or a candidate open to Any; 0.7 for Hybrid vs Remote/Onsite."""
    if candidate_mode == job_mode or candidate_mode == WorkMode.ANY.value:
        return 1.0
    if candidate_mode == WorkMode.HYBRID.value and job_mode in (
        WorkMode.REMOTE.value,
        WorkMode.ONSITE.value,
    ):
        return HYBRID_PARTIAL_CREDIT
    return 0.0


def _finalize(value: float) -> float:
    return min(1.0, max(0.0, round(value, SCORE_PRECISION)))


class SignalScorer:
    """Weighted five-component scorer over analyzed signals."""

    name = ScorerName.SIGNALS.value

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def score(self, candidate: CandidateSignals, job: JobSignals) -> ScoreBreakdown:
        """Score a pair.

        Raises:
            ScoringInputError: If the embeddings differ in length
        """
        if len(candidate.embedding) != len(job.embedding):
            raise ScoringInputError(
                f"Embedding length mismatch for {candidate.candidate_id}/{job.job_id}: "
                f"{len(candidate.embedding)} != {len(job.embedding)}"
            )

        skill_match, matched_skills, skill_gap = containment_match(candidate.skills, job.skills)
        tool_match, matched_tools, tool_gap = containment_match(candidate.tools, job.tools)
        category_match = 1.0 if candidate.category == job.category else 0.0
        work_mode_match = work_mode_score(candidate.work_mode, job.work_mode)
        # Opposed vectors carry no signal; keep the component in [0, 1].
        semantic = max(0.0, min(1.0, cosine_similarity(candidate.embedding, job.embedding)))

        w = self.weights
        final = (
            w.skill * skill_match
            + w.tool * tool_match
            + w.category * category_match
            + w.work_mode * work_mode_match
            + w.semantic * semantic
        )

        return ScoreBreakdown(
            final_score=_finalize(final),
            skill_match=skill_match,
            tool_match=tool_match,
            category_match=category_match,
            work_mode_match=work_mode_match,
            semantic_similarity=round(semantic, SCORE_PRECISION),
            matched_skills=matched_skills,
            skill_gap=skill_gap,
            matched_tools=matched_tools,
            tool_gap=tool_gap,
            scorer=self.name,
        )


class KeywordOverlapScorer:
    """Share of the job's recognised keywords that also appear in the resume text.

    Keywords come from a fixed list covering tech and operations roles. A job
    text with no recognised keyword scores 0.
    """

    name = ScorerName.KEYWORD_OVERLAP.value

    def __init__(self, keywords: Sequence[str] = OVERLAP_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def overlap(self, candidate_text: str, job_text: str) -> Tuple[float, List[str], List[str]]:
        resume = (candidate_text or "").lower()
        description = (job_text or "").lower()
        job_keywords = [k for k in self.keywords if k in description]
        matched = [k for k in job_keywords if k in resume]
        missing = [k for k in job_keywords if k not in resume]
        return min(1.0, len(matched) / max(len(job_keywords), 1)), matched, missing

    def score(self, candidate: CandidateSignals, job: JobSignals) -> ScoreBreakdown:
        ratio, matched, missing = self.overlap(candidate.text, job.text)
        return ScoreBreakdown(
            final_score=_finalize(ratio),
            skill_match=ratio,
            tool_match=0.0,
            category_match=0.0,
            work_mode_match=0.0,
            semantic_similarity=0.0,
            matched_skills=matched,
            skill_gap=missing,
            scorer=self.name,
        )


class CompositeScorer:
    """Runs several scorers and keeps the highest final score.

    The first scorer is the primary one: its component breakdown is always
    reported. When another scorer wins, only the final score and the scorer
    name are taken from it.
    """

    name = "composite"

    def __init__(self, scorers: Sequence[Scorer]):
        if not scorers:
            raise ValueError("CompositeScorer needs at least one scorer")
        self.scorers = list(scorers)

    @property
    def scorer_names(self) -> FrozenSet[str]:
        return frozenset(s.name for s in self.scorers)

    def score(self, candidate: CandidateSignals, job: JobSignals) -> ScoreBreakdown:
        primary = self.scorers[0].score(candidate, job)
        best = primary
        for scorer in self.scorers[1:]:
            candidate_result = scorer.score(candidate, job)
            if candidate_result.final_score > best.final_score:
                best = dataclasses.replace(
                    primary,
                    final_score=candidate_result.final_score,
                    scorer=candidate_result.scorer,
                )
        return best


def build_scorer(
    scorer_names: Sequence[str], weights: Optional[ScoringWeights] = None
) -> CompositeScorer:
    """Build the composite scorer from configured names ('signals' first)."""
    factories = {
        ScorerName.SIGNALS.value: lambda: SignalScorer(weights),
        ScorerName.KEYWORD_OVERLAP.value: KeywordOverlapScorer,
    }
    scorers = []
    for name in scorer_names:
        key = ScorerName(name).value
        scorers.append(factories[key]())
    return CompositeScorer(scorers)
