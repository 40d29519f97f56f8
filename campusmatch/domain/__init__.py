"""Domain models for campusmatch."""

from .models import (
    NOTIFICATION_THRESHOLD,
    CandidateProfile,
    Category,
    JobPosting,
    MarkerStatus,
    MatchRecord,
    NotificationMarker,
    Signals,
    WorkMode,
)

__all__ = [
    "NOTIFICATION_THRESHOLD",
    "Category",
    "WorkMode",
    "MarkerStatus",
    "Signals",
    "CandidateProfile",
    "JobPosting",
    "MatchRecord",
    "NotificationMarker",
]
