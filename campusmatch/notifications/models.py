"""Result types and exceptions for alert delivery."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""


class NotificationTemplateError(NotificationError):
    """A message template failed to render (missing variable, syntax error)."""


class ChannelError(NotificationError):
    """The message channel could not deliver a message."""


class NotificationReason(str, Enum):
    """Why the gate did or did not send an alert."""

    SENT = "sent"
    DUPLICATE = "duplicate"
    BELOW_THRESHOLD = "below_threshold"
    CHANNEL_ERROR = "channel_error"
    NO_ADDRESS = "no_address"


@dataclass
class ChannelResult:
    """Outcome reported by a message channel.

    Attributes:
        success: Whether the provider accepted the message
        message: Human-readable status
        data: Provider response body, if any
    """

    success: bool
    message: str = ""
    data: Optional[Any] = None


@dataclass
class NotificationResult:
    """Decision and outcome of one gate evaluation.

    Attributes:
        sent: True only when this call delivered the alert
        reason: Why it was or was not sent
        candidate_id: Candidate the decision is about
        job_id: Job the decision is about
        score: Final match score that was evaluated
        error: Channel error message for channel_error results
    """

    sent: bool
    reason: NotificationReason
    candidate_id: str = ""
    job_id: str = ""
    score: float = 0.0
    error: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_duplicate(self) -> bool:
        return self.reason == NotificationReason.DUPLICATE
