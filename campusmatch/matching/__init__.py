"""Matching: signal extraction, scoring, match storage and resolution."""

from .directory import ProfileDirectory, SqlProfileDirectory
from .embedding import Embedder, HashingEmbedder, cosine_similarity
from .engine import (
    CompositeScorer,
    KeywordOverlapScorer,
    Scorer,
    SignalScorer,
    build_scorer,
    containment_match,
    work_mode_score,
)
from .exceptions import MatchingError, ScoringInputError, SubjectNotFoundError
from .models import CandidateSignals, JobSignals, ScoreBreakdown
from .resolver import MatchResolver
from .signals import SignalExtractor, build_candidate_text, build_job_text
from .store import MatchStore, SqlMatchStore

__all__ = [
    "ProfileDirectory",
    "SqlProfileDirectory",
    "Embedder",
    "HashingEmbedder",
    "cosine_similarity",
    "Scorer",
    "SignalScorer",
    "KeywordOverlapScorer",
    "CompositeScorer",
    "build_scorer",
    "containment_match",
    "work_mode_score",
    "MatchingError",
    "ScoringInputError",
    "SubjectNotFoundError",
    "CandidateSignals",
    "JobSignals",
    "ScoreBreakdown",
    "MatchResolver",
    "SignalExtractor",
    "build_candidate_text",
    "build_job_text",
    "MatchStore",
    "SqlMatchStore",
]
