"""Unit tests for bulk sweeps."""

import logging
from datetime import timedelta
from unittest.mock import Mock

import pytest

from campusmatch.matching import MatchResolver, SignalExtractor, build_scorer
from campusmatch.matching.exceptions import SubjectNotFoundError
from campusmatch.notifications import NotificationGate, NotificationReason
from campusmatch.persistence import PersistenceError
from campusmatch.pipeline import BulkOrchestrator, SweepResult
from campusmatch.scheduler import SweepDispatcher
from tests.helpers import (
    FIXED_NOW,
    CountingAnalyzer,
    FakeClock,
    FakeDirectory,
    InMemoryMarkerStore,
    InMemoryMatchStore,
    RecordingChannel,
    make_candidate,
    make_job,
)


class FixedEmbedder:
    """Every text embeds to the same vector, so semantic similarity is 1."""

    dimensions = 2

    def embed(self, text):
        return (1.0, 0.0)


class ExplodingAnalyzer(CountingAnalyzer):
    """Raises for any text mentioning 'Broken'."""

    def analyze(self, text, kind):
        if "Broken" in text:
            raise RuntimeError("analyzer exploded")
        return super().analyze(text, kind)


class Harness:
    """Orchestrator over in-memory collaborators.

    With a fixed embedder and no analyzed skills the final score is
    0.4 + 0.5 * skill_match, so a job requiring only 'python' scores 0.9
    for a python candidate and a job requiring 'java' scores 0.4.
    """

    def __init__(self, candidates, jobs, progress_every=10):
        self.clock = FakeClock()
        self.directory = FakeDirectory(candidates, jobs)
        self.analyzer = ExplodingAnalyzer()
        self.store = InMemoryMatchStore(self.clock)
        self.markers = InMemoryMarkerStore()
        self.channel = RecordingChannel()
        self.resolver = MatchResolver(
            directory=self.directory,
            extractor=SignalExtractor(self.analyzer, FixedEmbedder()),
            scorer=build_scorer(["signals"]),
            store=self.store,
            clock=self.clock,
        )
        self.gate = NotificationGate(self.markers, self.channel, clock=self.clock)
        self.orchestrator = BulkOrchestrator(
            self.directory,
            self.resolver,
            self.gate,
            progress_every=progress_every,
            clock=self.clock,
        )


@pytest.fixture
def job_sweep_harness():
    return Harness(
        candidates=[
            make_candidate("cand-1"),
            make_candidate("cand-2", skills=["python"], phone=None),
            make_candidate("cand-3", skills=["excel"]),
            make_candidate("cand-4", active=False),
        ],
        jobs=[make_job("job-1", required_skills=["python"])],
    )


@pytest.fixture
def candidate_sweep_harness():
    return Harness(
        candidates=[make_candidate("cand-1")],
        jobs=[
            make_job("job-1", required_skills=["python"]),
            make_job("job-2", title="Broken Posting", required_skills=["python"]),
            make_job("job-3", required_skills=["java"]),
        ],
    )


class TestJobSweep:
    """Tests for BulkOrchestrator.run_job_sweep."""

    def test_counts_every_outcome(self, job_sweep_harness):
        result = job_sweep_harness.orchestrator.run_job_sweep("job-1")

        assert result.kind == "job"
        assert result.processed == 3
        assert result.matched == 2
        assert result.notified == 1
        assert result.no_address == 1
        assert result.below_threshold == 1
        assert result.failed == 0
        assert job_sweep_harness.channel.sent[0][1]["jobLink"].endswith("/job-1")

    def test_rerun_reports_duplicates(self, job_sweep_harness):
        job_sweep_harness.orchestrator.run_job_sweep("job-1")

        result = job_sweep_harness.orchestrator.run_job_sweep("job-1")

        assert result.notified == 0
        assert result.duplicates == 1
        assert len(job_sweep_harness.channel.sent) == 1

    def test_closed_job_is_skipped(self, job_sweep_harness):
        job_sweep_harness.directory.jobs["job-1"] = make_job(
            "job-1", application_deadline=FIXED_NOW - timedelta(days=1)
        )

        result = job_sweep_harness.orchestrator.run_job_sweep("job-1")

        assert result.skipped is True
        assert result.processed == 0
        assert job_sweep_harness.analyzer.calls == []

    def test_unknown_job_raises(self, job_sweep_harness):
        with pytest.raises(SubjectNotFoundError):
            job_sweep_harness.orchestrator.run_job_sweep("ghost")


class TestUnconfirmedDelivery:
    """A delivered alert whose sent marker cannot be written."""

    @pytest.fixture
    def harness(self, job_sweep_harness):
        job_sweep_harness.markers.confirm = Mock(side_effect=PersistenceError("database is locked"))
        job_sweep_harness.gate.sleep = lambda seconds: None
        return job_sweep_harness

    def test_counts_as_notified(self, harness):
        result = harness.orchestrator.run_job_sweep("job-1")

        assert result.notified == 1
        assert result.failed == 0
        assert len(harness.channel.sent) == 1

    def test_not_resent_after_maintenance(self, harness):
        harness.orchestrator.run_job_sweep("job-1")
        dispatcher = SweepDispatcher(
            harness.orchestrator,
            marker_store=harness.markers,
            clock=FakeClock(FIXED_NOW + timedelta(hours=1)),
        )

        assert dispatcher.run_maintenance() == 0

        fresh_gate = NotificationGate(harness.markers, harness.channel, clock=harness.clock)
        rerun = BulkOrchestrator(harness.directory, harness.resolver, fresh_gate, clock=harness.clock)
        result = rerun.run_job_sweep("job-1")

        assert result.notified == 0
        assert result.duplicates == 1
        assert len(harness.channel.sent) == 1


class TestCandidateSweep:
    """Tests for BulkOrchestrator.run_candidate_sweep."""

    def test_failing_pair_does_not_stop_sweep(self, candidate_sweep_harness):
        result = candidate_sweep_harness.orchestrator.run_candidate_sweep("cand-1")

        assert result.processed == 3
        assert result.failed == 1
        assert result.notified == 1
        assert result.below_threshold == 1
        assert result.had_errors is True
        assert set(candidate_sweep_harness.store.records) == {
            ("cand-1", "job-1"),
            ("cand-1", "job-3"),
        }

    def test_inactive_candidate_is_skipped(self, candidate_sweep_harness):
        candidate_sweep_harness.directory.candidates["cand-1"] = make_candidate(active=False)

        result = candidate_sweep_harness.orchestrator.run_candidate_sweep("cand-1")

        assert result.skipped is True
        assert result.processed == 0

    def test_unknown_candidate_raises(self, candidate_sweep_harness):
        with pytest.raises(SubjectNotFoundError):
            candidate_sweep_harness.orchestrator.run_candidate_sweep("ghost")


class TestCancellation:
    def test_cancel_before_start(self, candidate_sweep_harness):
        candidate_sweep_harness.orchestrator.cancel()

        result = candidate_sweep_harness.orchestrator.run_candidate_sweep("cand-1")

        assert result.cancelled is True
        assert result.processed == 0

    def test_cancel_between_pairs(self, candidate_sweep_harness):
        """Test that a cancel during the first send stops before the second pair."""
        harness = candidate_sweep_harness
        original_send = harness.channel.send_message

        def send_then_cancel(address, payload):
            harness.orchestrator.cancel()
            return original_send(address, payload)

        harness.channel.send_message = send_then_cancel

        result = harness.orchestrator.run_candidate_sweep("cand-1")

        assert result.cancelled is True
        assert result.processed == 1
        assert result.notified == 1


class TestProgressLogging:
    def test_progress_every_n_pairs(self, caplog):
        harness = Harness(
            candidates=[make_candidate(f"cand-{i}") for i in range(5)],
            jobs=[make_job("job-1")],
            progress_every=2,
        )

        with caplog.at_level(logging.INFO, logger="campusmatch.pipeline.orchestrator"):
            harness.orchestrator.run_job_sweep("job-1")

        events = [getattr(r, "event", None) for r in caplog.records]
        assert events.count("sweep.progress") == 2
        assert events[-1] == "sweep.completed"


class TestProcessPair:
    def test_returns_record_and_decision(self, candidate_sweep_harness):
        outcome = candidate_sweep_harness.orchestrator.process_pair("cand-1", "job-1")

        assert outcome.record.final_score == pytest.approx(0.9)
        assert outcome.notification.reason == NotificationReason.SENT

    def test_missing_subject_raises(self, candidate_sweep_harness):
        with pytest.raises(SubjectNotFoundError):
            candidate_sweep_harness.orchestrator.process_pair("cand-1", "ghost")


class TestSweepResult:
    def test_duration_and_log_fields(self):
        result = SweepResult(sweep_id="abc", kind="job", subject_id="job-1", started_at=FIXED_NOW)

        assert result.duration_seconds == 0.0

        result.finished_at = FIXED_NOW + timedelta(seconds=2)
        result.notified = 3

        assert result.duration_seconds == 2.0
        assert result.as_log_fields()["notified"] == 3
        assert result.had_errors is False
