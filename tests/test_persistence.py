"""Unit tests for persistence layer."""

from datetime import timedelta

import pytest
from sqlalchemy import inspect

from campusmatch.persistence import (
    CandidateRepository,
    DatabaseConnectionError,
    JobPostingRepository,
    MatchRecordRepository,
    NotificationMarkerRepository,
    PersistenceError,
    RecordNotFoundError,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from campusmatch.persistence.schema import create_schema
from tests.helpers import FIXED_NOW, make_candidate, make_job, make_record


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_creates_file_and_parents(self, tmp_path):
        db_file = tmp_path / "nested" / "campusmatch.db"

        init_database(f"sqlite:///{db_file}")
        try:
            assert db_file.exists()
            tables = set(inspect(get_engine()).get_table_names())
            assert {"candidates", "job_postings", "match_records", "notification_markers"} <= tables
        finally:
            close_database()

    def test_invalid_url_raises(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")
        with pytest.raises(DatabaseConnectionError):
            init_database("not a url")

    def test_session_before_init_raises(self):
        close_database()

        with pytest.raises(DatabaseConnectionError, match="not initialized"):
            with get_session():
                pass

    def test_schema_creation_is_idempotent(self, database):
        create_schema(get_engine())
        create_schema(get_engine())

    def test_session_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                CandidateRepository(session).upsert(make_candidate())
                raise RuntimeError("abort")

        with get_session() as session:
            assert CandidateRepository(session).get("cand-1") is None

    def test_close_database_is_safe_twice(self):
        close_database()
        close_database()


class TestProfileRepositories:
    """Tests for CandidateRepository and JobPostingRepository."""

    def test_candidate_round_trip(self, database):
        with get_session() as session:
            CandidateRepository(session).upsert(make_candidate(updated_at=FIXED_NOW))

        with get_session() as session:
            loaded = CandidateRepository(session).get("cand-1")

        assert loaded == make_candidate(updated_at=FIXED_NOW)

    def test_candidate_upsert_replaces(self, database):
        with get_session() as session:
            repo = CandidateRepository(session)
            repo.upsert(make_candidate())
            repo.upsert(make_candidate(skills=["java"]))

        with get_session() as session:
            assert CandidateRepository(session).get("cand-1").skills == ["java"]

    def test_list_active_candidates_excludes_inactive(self, database):
        with get_session() as session:
            repo = CandidateRepository(session)
            repo.upsert(make_candidate("cand-2"))
            repo.upsert(make_candidate("cand-1"))
            repo.upsert(make_candidate("cand-3", active=False))

        with get_session() as session:
            ids = [c.candidate_id for c in CandidateRepository(session).list_active()]

        assert ids == ["cand-1", "cand-2"]

    def test_list_open_jobs(self, database):
        with get_session() as session:
            repo = JobPostingRepository(session)
            repo.upsert(make_job("job-open"))
            repo.upsert(make_job("job-deadline", application_deadline=FIXED_NOW))
            repo.upsert(make_job("job-expired", application_deadline=FIXED_NOW - timedelta(days=1)))
            repo.upsert(make_job("job-closed", active=False))

        with get_session() as session:
            ids = [j.job_id for j in JobPostingRepository(session).list_open(FIXED_NOW)]

        assert ids == ["job-deadline", "job-open"]


class TestMatchRecordRepository:
    """Tests for MatchRecordRepository."""

    def test_upsert_keeps_single_record_per_pair(self, database):
        with get_session() as session:
            repo = MatchRecordRepository(session)
            repo.upsert(make_record(final_score=0.4))
            repo.upsert(make_record(final_score=0.9))

        with get_session() as session:
            records = MatchRecordRepository(session).list_active()

        assert len(records) == 1
        assert records[0].final_score == 0.9

    def test_upsert_replaces_source_hash(self, database):
        with get_session() as session:
            repo = MatchRecordRepository(session)
            repo.upsert(make_record(source_hash="a" * 64))
            repo.upsert(make_record(source_hash="b" * 64))

        with get_session() as session:
            record = MatchRecordRepository(session).get_active("cand-1", "job-1")

        assert record.source_hash == "b" * 64

    def test_upsert_requires_computed_at(self, database):
        with get_session() as session:
            with pytest.raises(PersistenceError, match="computed_at"):
                MatchRecordRepository(session).upsert(make_record(computed_at=None))

    def test_deactivate_hides_records(self, database):
        with get_session() as session:
            repo = MatchRecordRepository(session)
            repo.upsert(make_record("cand-1", "job-1"))
            repo.upsert(make_record("cand-1", "job-2"))
            repo.upsert(make_record("cand-2", "job-1"))

        with get_session() as session:
            assert MatchRecordRepository(session).deactivate_by_candidate("cand-1") == 2

        with get_session() as session:
            repo = MatchRecordRepository(session)
            assert repo.get_active("cand-1", "job-1") is None
            assert repo.get_active("cand-2", "job-1") is not None
            assert repo.deactivate_by_candidate("cand-1") == 0
            assert repo.deactivate_by_job("job-1") == 1

    def test_upsert_reactivates_pair(self, database):
        with get_session() as session:
            repo = MatchRecordRepository(session)
            repo.upsert(make_record())
            repo.deactivate_by_job("job-1")
            repo.upsert(make_record(final_score=0.75))

        with get_session() as session:
            assert MatchRecordRepository(session).get_active("cand-1", "job-1").final_score == 0.75

    def test_list_active_filters_and_orders(self, database):
        with get_session() as session:
            repo = MatchRecordRepository(session)
            repo.upsert(make_record(job_id="job-a", final_score=0.3))
            repo.upsert(make_record(job_id="job-b", final_score=0.9))
            repo.upsert(make_record(job_id="job-c", final_score=0.7))

        with get_session() as session:
            records = MatchRecordRepository(session).list_active(candidate_id="cand-1", min_score=0.5)

        assert [r.job_id for r in records] == ["job-b", "job-c"]

    def test_record_fields_survive_storage(self, database):
        record = make_record(matched_tools=["docker"], tool_gap=["kubernetes"], scorer="keyword_overlap")
        with get_session() as session:
            MatchRecordRepository(session).upsert(record)

        with get_session() as session:
            loaded = MatchRecordRepository(session).get_active("cand-1", "job-1")

        assert loaded.matched_skills == ["python"]
        assert loaded.tool_gap == ["kubernetes"]
        assert loaded.scorer == "keyword_overlap"
        assert loaded.computed_at == FIXED_NOW


class TestNotificationMarkerRepository:
    """Tests for the claim / confirm / release lifecycle."""

    def claim(self, candidate_id="cand-1", job_id="job-1", claimed_at=FIXED_NOW):
        with get_session() as session:
            return NotificationMarkerRepository(session).claim(
                candidate_id, job_id, "webhook", 0.8, claimed_at
            )

    def test_first_claim_wins(self, database):
        assert self.claim() is True
        assert self.claim() is False

    def test_confirm_marks_sent(self, database):
        self.claim()
        with get_session() as session:
            NotificationMarkerRepository(session).confirm_sent("cand-1", "job-1", FIXED_NOW)

        with get_session() as session:
            repo = NotificationMarkerRepository(session)
            marker = repo.get("cand-1", "job-1")
            keys = repo.list_sent_keys()

        assert marker.status == "sent"
        assert marker.sent_at == FIXED_NOW
        assert keys == [("cand-1", "job-1")]

    def test_confirm_without_claim_raises(self, database):
        with get_session() as session:
            with pytest.raises(RecordNotFoundError):
                NotificationMarkerRepository(session).confirm_sent("cand-1", "job-1", FIXED_NOW)

    def test_release_keeps_sent_markers(self, database):
        self.claim("cand-1", "job-1")
        self.claim("cand-1", "job-2")
        with get_session() as session:
            NotificationMarkerRepository(session).confirm_sent("cand-1", "job-2", FIXED_NOW)

        with get_session() as session:
            repo = NotificationMarkerRepository(session)
            assert repo.release("cand-1", "job-1") is True
            assert repo.release("cand-1", "job-2") is False

        assert self.claim("cand-1", "job-1") is True

    def test_purge_stale_pending(self, database):
        self.claim("cand-1", "job-old", claimed_at=FIXED_NOW - timedelta(hours=1))
        self.claim("cand-1", "job-new", claimed_at=FIXED_NOW)

        with get_session() as session:
            purged = NotificationMarkerRepository(session).purge_stale_pending(
                FIXED_NOW - timedelta(minutes=15)
            )

        with get_session() as session:
            counts = NotificationMarkerRepository(session).count_by_status()

        assert purged == 1
        assert counts == {"pending": 1}

    def test_mark_sending_requires_pending_claim(self, database):
        self.claim()
        with get_session() as session:
            repo = NotificationMarkerRepository(session)
            repo.mark_sending("cand-1", "job-1")
            with pytest.raises(RecordNotFoundError):
                repo.mark_sending("cand-1", "job-1")

        with get_session() as session:
            assert NotificationMarkerRepository(session).get("cand-1", "job-1").status == "sending"

    def test_purge_never_removes_sending_markers(self, database):
        """Test that a claim whose send may have started survives maintenance."""
        old = FIXED_NOW - timedelta(hours=2)
        self.claim("cand-1", "job-sending", claimed_at=old)
        self.claim("cand-1", "job-pending", claimed_at=old)
        with get_session() as session:
            NotificationMarkerRepository(session).mark_sending("cand-1", "job-sending")

        cutoff = FIXED_NOW - timedelta(minutes=15)
        with get_session() as session:
            repo = NotificationMarkerRepository(session)
            purged = repo.purge_stale_pending(cutoff)
            stalled = repo.count_stalled_sending(cutoff)

        with get_session() as session:
            counts = NotificationMarkerRepository(session).count_by_status()

        assert purged == 1
        assert stalled == 1
        assert counts == {"sending": 1}

    def test_release_clears_sending_marker(self, database):
        self.claim()
        with get_session() as session:
            repo = NotificationMarkerRepository(session)
            repo.mark_sending("cand-1", "job-1")
            assert repo.release("cand-1", "job-1") is True

        assert self.claim() is True
