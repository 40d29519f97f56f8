"""Notification gate: decides whether a match alert goes out, at most once.

Per (candidate, job) the gate is a two-state machine, not_notified ->
notified, and the second state is terminal. The durable marker table is the
only source of truth; the bounded in-memory set merely skips a database
round trip for pairs this process recently saw sent.
"""

import threading
import time
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Optional, Tuple

from campusmatch.domain.models import (
    NOTIFICATION_THRESHOLD,
    CandidateProfile,
    JobPosting,
    MatchRecord,
)
from campusmatch.logging import get_logger
from campusmatch.logging.context import log_context
from campusmatch.persistence.exceptions import PersistenceError
from campusmatch.utils.rate_limit import RateLimiter
from campusmatch.utils.timestamps import utc_now

from .channel import MessageChannel
from .markers import NotificationMarkerStore
from .models import ChannelError, NotificationReason, NotificationResult
from .payloads import DEFAULT_JOB_LINK_BASE, build_alert_payload
from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")

DEFAULT_MEMORY_SIZE = 100_000
CONFIRM_ATTEMPTS = 3
CONFIRM_BACKOFF_SECONDS = 0.5


class NotificationGate:
    """Threshold check, duplicate suppression and delivery for match alerts.

    Args:
        marker_store: Durable notification markers
        channel: Message channel used for delivery
        rate_limiter: Shared send pacing; None sends unthrottled
        renderer: Template renderer for the personalized message
        job_link_base_url: Base URL the job id is appended to
        threshold: Minimum final score that is eligible
        memory_size: Most recent sent pairs kept in memory
        clock: Source of the current UTC time, injectable for tests
        sleep: Used between confirm retries, injectable for tests
    """

    def __init__(
        self,
        marker_store: NotificationMarkerStore,
        channel: MessageChannel,
        rate_limiter: Optional[RateLimiter] = None,
        renderer: Optional[TemplateRenderer] = None,
        job_link_base_url: str = DEFAULT_JOB_LINK_BASE,
        threshold: float = NOTIFICATION_THRESHOLD,
        memory_size: int = DEFAULT_MEMORY_SIZE,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if memory_size < 1:
            raise ValueError("memory_size must be at least 1")
        self.marker_store = marker_store
        self.channel = channel
        self.rate_limiter = rate_limiter
        self.renderer = renderer or TemplateRenderer()
        self.job_link_base_url = job_link_base_url
        self.threshold = threshold
        self.memory_size = memory_size
        self.clock = clock
        self.sleep = sleep
        self._notified: "OrderedDict[Tuple[str, str], None]" = OrderedDict()
        self._lock = threading.Lock()

    def warm_cache(self) -> int:
        """Load sent pairs from the marker table into memory, up to memory_size.

        Returns:
            Number of pairs held in memory after warming
        """
        for key in self.marker_store.sent_keys():
            self._remember(key)
        with self._lock:
            count = len(self._notified)
        logger.info(
            f"Notification cache warmed with {count} sent pairs",
            extra={"event": "notification.cache_warmed", "count": count},
        )
        return count

    def is_eligible(self, record: MatchRecord) -> bool:
        return record.is_eligible(self.threshold)

    def maybe_notify(
        self, candidate: CandidateProfile, job: JobPosting, record: MatchRecord
    ) -> NotificationResult:
        """Send the alert for a pair if it is eligible and was never sent.

        Returns:
            NotificationResult; ``sent`` is True only for the call that
            delivered the alert

        Raises:
            NotificationTemplateError: If the message cannot be rendered
            PersistenceError: If the marker table cannot be read or claimed;
                never raised once the channel has delivered the alert
        """
        key = (candidate.candidate_id, job.job_id)

        with log_context(candidate_id=candidate.candidate_id, job_id=job.job_id):
            if not self.is_eligible(record):
                logger.debug(
                    f"Score {record.final_score:.3f} below threshold {self.threshold}",
                    extra={"event": "notification.below_threshold"},
                )
                return self._result(False, NotificationReason.BELOW_THRESHOLD, key, record)

            address = candidate.contact_address
            if not address:
                logger.info(
                    "Candidate has no contact address, skipping alert",
                    extra={"event": "notification.no_address"},
                )
                return self._result(False, NotificationReason.NO_ADDRESS, key, record)

            with self._lock:
                known = key in self._notified
            if known or self.marker_store.exists(*key):
                logger.info(
                    "Alert already sent or in flight",
                    extra={"event": "notification.duplicate", "source": "memory" if known else "marker"},
                )
                return self._result(False, NotificationReason.DUPLICATE, key, record)

            payload = build_alert_payload(
                candidate, job, record, self.renderer, self.job_link_base_url
            )

            if not self.marker_store.claim(
                candidate.candidate_id, job.job_id, self.channel.name, record.final_score
            ):
                logger.info(
                    "Lost the claim for this alert to a concurrent sender",
                    extra={"event": "notification.duplicate", "source": "claim"},
                )
                return self._result(False, NotificationReason.DUPLICATE, key, record)

            return self._deliver(key, address, payload, record)

    def _deliver(self, key, address, payload, record) -> NotificationResult:
        if self.rate_limiter is not None:
            waited = self.rate_limiter.acquire()
            if waited:
                logger.debug(
                    f"Send throttled for {waited:.3f}s",
                    extra={"event": "notification.throttled", "waited_seconds": waited},
                )

        # A failure here leaves a pending claim that maintenance may purge; nothing was sent.
        self.marker_store.mark_sending(*key)

        try:
            result = self.channel.send_message(address, payload)
            error = None if result.success else result.message
        except ChannelError as e:
            error = str(e)

        if error is not None:
            self.marker_store.release(*key)
            logger.warning(
                f"Alert delivery failed, claim released: {error}",
                extra={"event": "notification.send.failed", "channel": self.channel.name},
            )
            return self._result(
                False, NotificationReason.CHANNEL_ERROR, key, record, error=error, payload=payload
            )

        # Delivered: from here the pair counts as notified whatever the marker write does.
        confirmed = self._confirm(key)
        self._remember(key)
        logger.info(
            f"Alert sent: {record.score_percent}% match",
            extra={
                "event": "notification.send.success",
                "channel": self.channel.name,
                "final_score": record.final_score,
                "confirmed": confirmed,
            },
        )
        return self._result(True, NotificationReason.SENT, key, record, payload=payload)

    def _confirm(self, key) -> bool:
        """Flip the marker to sent, retrying with backoff.

        Returns:
            False if every attempt failed; the marker then stays 'sending',
            which still blocks a resend
        """
        for attempt in range(1, CONFIRM_ATTEMPTS + 1):
            if attempt > 1:
                self.sleep(CONFIRM_BACKOFF_SECONDS * 2 ** (attempt - 2))
            try:
                self.marker_store.confirm(*key)
                return True
            except PersistenceError as e:
                logger.warning(
                    f"Confirming sent marker failed (attempt {attempt}/{CONFIRM_ATTEMPTS}): {e}",
                    extra={"event": "notification.confirm.failed", "attempt": attempt},
                )

        logger.error(
            "Alert delivered but marker left in 'sending'; it will not be resent",
            extra={"event": "notification.confirm.abandoned"},
        )
        return False

    def _remember(self, key) -> None:
        with self._lock:
            self._notified[key] = None
            self._notified.move_to_end(key)
            while len(self._notified) > self.memory_size:
                self._notified.popitem(last=False)

    @staticmethod
    def _result(sent, reason, key, record, error=None, payload=None) -> NotificationResult:
        return NotificationResult(
            sent=sent,
            reason=reason,
            candidate_id=key[0],
            job_id=key[1],
            score=record.final_score,
            error=error,
            payload=payload or {},
        )
