"""Matching exceptions."""


class MatchingError(Exception):
    """Base exception for scoring and match resolution failures."""


class ScoringInputError(MatchingError):
    """Signals cannot be scored (e.g. embeddings of different lengths)."""


class SubjectNotFoundError(MatchingError):
    """The candidate or job being matched does not exist."""

    def __init__(self, kind: str, subject_id: str) -> None:
        super().__init__(f"{kind} not found: {subject_id}")
        self.kind = kind
        self.subject_id = subject_id
