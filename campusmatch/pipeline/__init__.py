"""Sweep orchestration and the matching service entry points."""

from .models import MatchStatistics, PairOutcome, SweepResult
from .orchestrator import BulkOrchestrator
from .service import MatchingService

__all__ = [
    "BulkOrchestrator",
    "MatchingService",
    "MatchStatistics",
    "PairOutcome",
    "SweepResult",
]
