"""Unit tests for the notification gate."""

import threading
from unittest.mock import Mock

import pytest

from campusmatch.notifications import (
    NotificationGate,
    NotificationReason,
    NotificationTemplateError,
    SqlNotificationMarkerStore,
)
from campusmatch.persistence import PersistenceError, close_database, init_database
from campusmatch.utils.rate_limit import RateLimiter
from tests.helpers import (
    InMemoryMarkerStore,
    RecordingChannel,
    make_candidate,
    make_job,
    make_record,
)


@pytest.fixture
def markers():
    return InMemoryMarkerStore()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def gate(markers, channel):
    return NotificationGate(markers, channel)


def notify(gate, final_score=0.8, **candidate_overrides):
    return gate.maybe_notify(
        make_candidate(**candidate_overrides), make_job(), make_record(final_score=final_score)
    )


class TestMaybeNotify:
    """Tests for NotificationGate.maybe_notify decisions."""

    def test_eligible_pair_is_sent_once(self, gate, markers, channel):
        result = notify(gate)

        assert result.sent is True
        assert result.reason == NotificationReason.SENT
        assert result.payload["jobLink"] == "https://campuspe.com/jobs/job-1"
        assert markers.markers == {("cand-1", "job-1"): "sent"}
        assert channel.sent[0][0] == "919800000001"

    def test_second_call_is_duplicate(self, gate, channel):
        notify(gate)

        result = notify(gate)

        assert result.sent is False
        assert result.is_duplicate
        assert len(channel.sent) == 1

    def test_score_at_threshold_is_sent(self, gate):
        assert notify(gate, final_score=0.70).sent is True

    def test_below_threshold(self, gate, markers, channel):
        result = notify(gate, final_score=0.6999999)

        assert result.reason == NotificationReason.BELOW_THRESHOLD
        assert markers.markers == {}
        assert channel.sent == []

    def test_missing_address(self, gate, markers):
        result = notify(gate, phone=None)

        assert result.reason == NotificationReason.NO_ADDRESS
        assert markers.markers == {}

    def test_existing_marker_is_duplicate(self, gate, markers, channel):
        """Test that a marker written by another process suppresses the send."""
        markers.claim("cand-1", "job-1", "webhook", 0.9)

        result = notify(gate)

        assert result.reason == NotificationReason.DUPLICATE
        assert channel.sent == []

    def test_lost_claim_is_duplicate(self, channel):
        store = Mock()
        store.exists.return_value = False
        store.claim.return_value = False

        result = notify(NotificationGate(store, channel))

        assert result.reason == NotificationReason.DUPLICATE
        assert channel.sent == []
        store.confirm.assert_not_called()

    def test_unsuccessful_send_releases_claim(self, markers):
        gate = NotificationGate(markers, RecordingChannel(succeed=False))

        result = notify(gate)

        assert result.reason == NotificationReason.CHANNEL_ERROR
        assert result.error == "HTTP 500: Internal Server Error"
        assert markers.markers == {}

    def test_channel_exception_releases_claim(self, markers):
        gate = NotificationGate(markers, RecordingChannel(raise_error=True))

        result = notify(gate)

        assert result.reason == NotificationReason.CHANNEL_ERROR
        assert result.error == "connection refused"
        assert markers.markers == {}

    def test_failed_pair_can_be_retried(self, markers):
        failing = RecordingChannel(raise_error=True)
        gate = NotificationGate(markers, failing)
        notify(gate)

        failing.raise_error = False

        assert notify(gate).sent is True

    def test_template_error_leaves_no_marker(self, markers, channel):
        renderer = Mock()
        renderer.render_message.side_effect = NotificationTemplateError("bad template")
        gate = NotificationGate(markers, channel, renderer=renderer)

        with pytest.raises(NotificationTemplateError):
            notify(gate)

        assert markers.markers == {}

    def test_rate_limiter_paces_sends(self, markers, channel):
        limiter = Mock(spec=RateLimiter)
        limiter.acquire.return_value = 0.0
        gate = NotificationGate(markers, channel, rate_limiter=limiter)

        notify(gate)
        notify(gate, final_score=0.1)

        limiter.acquire.assert_called_once_with()

    def test_custom_threshold(self, markers, channel):
        gate = NotificationGate(markers, channel, threshold=0.9)

        assert notify(gate, final_score=0.85).reason == NotificationReason.BELOW_THRESHOLD


class FlakyConfirmStore(InMemoryMarkerStore):
    """Marker store whose first ``failures`` confirms raise."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.confirm_calls = 0

    def confirm(self, candidate_id, job_id):
        self.confirm_calls += 1
        if self.confirm_calls <= self.failures:
            raise PersistenceError("database is locked")
        super().confirm(candidate_id, job_id)


class TestConfirmFailures:
    """A delivered alert stays delivered when the sent marker cannot be written."""

    def test_confirm_is_retried(self, channel):
        store = FlakyConfirmStore(failures=1)
        sleeps = []
        gate = NotificationGate(store, channel, sleep=sleeps.append)

        result = notify(gate)

        assert result.sent is True
        assert store.confirm_calls == 2
        assert sleeps == [0.5]
        assert store.markers == {("cand-1", "job-1"): "sent"}

    def test_exhausted_confirm_still_counts_as_sent(self, channel):
        store = FlakyConfirmStore(failures=99)
        gate = NotificationGate(store, channel, sleep=lambda seconds: None)

        result = notify(gate)

        assert result.sent is True
        assert result.reason == NotificationReason.SENT
        assert store.confirm_calls == 3
        assert store.markers == {("cand-1", "job-1"): "sending"}

    def test_unconfirmed_pair_is_not_resent(self, channel):
        store = FlakyConfirmStore(failures=99)
        notify(NotificationGate(store, channel, sleep=lambda seconds: None))

        later = NotificationGate(store, channel)

        assert notify(later).reason == NotificationReason.DUPLICATE
        assert len(channel.sent) == 1

    def test_mark_sending_failure_sends_nothing(self, markers, channel):
        markers.mark_sending = Mock(side_effect=PersistenceError("disk I/O error"))
        gate = NotificationGate(markers, channel)

        with pytest.raises(PersistenceError):
            notify(gate)

        assert channel.sent == []
        assert markers.markers == {("cand-1", "job-1"): "pending"}


class TestMemoryBound:
    def test_sent_pairs_in_memory_are_bounded(self, markers, channel):
        gate = NotificationGate(markers, channel, memory_size=2)

        for job_id in ("job-1", "job-2", "job-3"):
            gate.maybe_notify(make_candidate(), make_job(job_id), make_record(job_id=job_id))

        assert list(gate._notified) == [("cand-1", "job-2"), ("cand-1", "job-3")]

    def test_evicted_pair_is_still_a_duplicate(self, markers, channel):
        gate = NotificationGate(markers, channel, memory_size=1)
        notify(gate)
        gate.maybe_notify(make_candidate(), make_job("job-2"), make_record(job_id="job-2"))

        assert notify(gate).reason == NotificationReason.DUPLICATE
        assert len(channel.sent) == 2

    def test_warm_cache_respects_bound(self, markers, channel):
        for job_id in ("job-1", "job-2", "job-3"):
            markers.claim("cand-1", job_id, "webhook", 0.9)
            markers.confirm("cand-1", job_id)

        assert NotificationGate(markers, channel, memory_size=2).warm_cache() == 2

    def test_memory_size_must_be_positive(self, markers, channel):
        with pytest.raises(ValueError):
            NotificationGate(markers, channel, memory_size=0)


class TestWarmCache:
    def test_sent_pairs_skip_marker_lookup(self, markers, channel):
        markers.claim("cand-1", "job-1", "webhook", 0.9)
        markers.confirm("cand-1", "job-1")
        gate = NotificationGate(markers, channel)

        assert gate.warm_cache() == 1

        markers.markers.clear()
        assert notify(gate).reason == NotificationReason.DUPLICATE


class TestConcurrentDelivery:
    """At-most-once delivery against the SQL marker table."""

    @pytest.fixture
    def file_database(self, tmp_path):
        init_database(f"sqlite:///{tmp_path / 'markers.db'}")
        yield
        close_database()

    def run_concurrently(self, gates, threads_per_gate=4):
        barrier = threading.Barrier(len(gates) * threads_per_gate)
        results = []
        results_lock = threading.Lock()

        def worker(gate):
            barrier.wait()
            result = notify(gate)
            with results_lock:
                results.append(result)

        threads = [
            threading.Thread(target=worker, args=(gate,))
            for gate in gates
            for _ in range(threads_per_gate)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_one_gate_many_threads(self, file_database):
        channel = RecordingChannel()
        gate = NotificationGate(SqlNotificationMarkerStore(), channel)

        results = self.run_concurrently([gate], threads_per_gate=8)

        assert sum(r.sent for r in results) == 1
        assert len(channel.sent) == 1
        assert all(r.is_duplicate for r in results if not r.sent)

    def test_independent_gates_share_marker_table(self, file_database):
        """Test that gates in separate workers still send only once."""
        channel = RecordingChannel()
        gates = [NotificationGate(SqlNotificationMarkerStore(), channel) for _ in range(3)]

        results = self.run_concurrently(gates)

        assert sum(r.sent for r in results) == 1
        assert len(channel.sent) == 1
        assert SqlNotificationMarkerStore().is_sent("cand-1", "job-1") is True

    def test_release_after_failure_allows_resend(self, file_database):
        store = SqlNotificationMarkerStore()
        failing = NotificationGate(store, RecordingChannel(succeed=False))
        working = NotificationGate(store, RecordingChannel())

        assert notify(failing).reason == NotificationReason.CHANNEL_ERROR
        assert store.exists("cand-1", "job-1") is False
        assert notify(working).sent is True
