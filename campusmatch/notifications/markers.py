"""Durable notification markers: the at-most-once guard for alerts.

A pair is claimed with an insert-if-absent write before the send. Only the
caller whose insert succeeded may send. It moves the claim to 'sending'
right before the channel call, then confirms (-> sent) or releases the
claim when the send definitely failed. Maintenance purges only claims that
never reached 'sending'.
"""

from datetime import datetime
from typing import Callable, Protocol, Set, Tuple

from campusmatch.domain.models import MarkerStatus
from campusmatch.persistence import NotificationMarkerRepository, get_session
from campusmatch.utils.timestamps import utc_now


class NotificationMarkerStore(Protocol):
    def exists(self, candidate_id: str, job_id: str) -> bool:
        ...

    def claim(self, candidate_id: str, job_id: str, channel: str, score: float) -> bool:
        ...

    def mark_sending(self, candidate_id: str, job_id: str) -> None:
        ...

    def confirm(self, candidate_id: str, job_id: str) -> None:
        ...

    def release(self, candidate_id: str, job_id: str) -> bool:
        ...

    def sent_keys(self) -> Set[Tuple[str, str]]:
        ...

    def purge_stale_claims(self, claimed_before: datetime) -> int:
        ...

    def count_stalled_sends(self, claimed_before: datetime) -> int:
        ...


class SqlNotificationMarkerStore:
    """NotificationMarkerStore over the notification_markers table.

    Args:
        clock: Source of the current UTC time, injectable for tests
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def exists(self, candidate_id: str, job_id: str) -> bool:
        """Whether any marker (pending, sending or sent) exists for the pair."""
        with get_session() as session:
            return NotificationMarkerRepository(session).get(candidate_id, job_id) is not None

    def is_sent(self, candidate_id: str, job_id: str) -> bool:
        with get_session() as session:
            marker = NotificationMarkerRepository(session).get(candidate_id, job_id)
        return marker is not None and marker.status == MarkerStatus.SENT.value

    def status(self, candidate_id: str, job_id: str):
        with get_session() as session:
            marker = NotificationMarkerRepository(session).get(candidate_id, job_id)
        return marker.status if marker is not None else None

    def claim(self, candidate_id: str, job_id: str, channel: str, score: float) -> bool:
        with get_session() as session:
            return NotificationMarkerRepository(session).claim(
                candidate_id, job_id, channel, score, self.clock()
            )

    def mark_sending(self, candidate_id: str, job_id: str) -> None:
        with get_session() as session:
            NotificationMarkerRepository(session).mark_sending(candidate_id, job_id)

    def confirm(self, candidate_id: str, job_id: str) -> None:
        with get_session() as session:
            NotificationMarkerRepository(session).confirm_sent(candidate_id, job_id, self.clock())

    def release(self, candidate_id: str, job_id: str) -> bool:
        with get_session() as session:
            return NotificationMarkerRepository(session).release(candidate_id, job_id)

    def sent_keys(self) -> Set[Tuple[str, str]]:
        with get_session() as session:
            return set(NotificationMarkerRepository(session).list_sent_keys())

    def purge_stale_claims(self, claimed_before: datetime) -> int:
        with get_session() as session:
            return NotificationMarkerRepository(session).purge_stale_pending(claimed_before)

    def count_stalled_sends(self, claimed_before: datetime) -> int:
        with get_session() as session:
            return NotificationMarkerRepository(session).count_stalled_sending(claimed_before)
