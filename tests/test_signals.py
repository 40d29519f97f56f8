"""Unit tests for signal extraction and its analysis cache."""

from campusmatch.matching.embedding import HashingEmbedder
from campusmatch.matching.signals import SignalExtractor, build_candidate_text, build_job_text
from tests.helpers import CountingAnalyzer, make_candidate, make_job


class TestSubjectText:
    def test_resume_text_preferred(self):
        candidate = make_candidate(resume_text="Full resume body")

        assert build_candidate_text(candidate) == "Full resume body"

    def test_profile_fields_without_resume(self):
        text = build_candidate_text(make_candidate())

        assert text == "Asha\n\nSkills: python, django\n\nFinal-year CS student"

    def test_job_text(self):
        text = build_job_text(make_job())

        assert text.startswith("Backend Developer\n\nBuild APIs")
        assert text.endswith("Required skills: python, aws")


class TestSignalExtractor:
    """Tests for SignalExtractor."""

    def test_declared_fields_merge_with_analysis(self):
        analyzer = CountingAnalyzer(skills=["sql"], tools=["git"], category="Core", work_mode="Remote")
        extractor = SignalExtractor(analyzer, HashingEmbedder(32))

        signals = extractor.candidate_signals(make_candidate())

        assert signals.skills == frozenset({"python", "django", "sql"})
        assert signals.tools == frozenset({"git"})
        assert signals.category == "Tech"
        assert signals.work_mode == "Any"
        assert signals.contact_address == "919800000001"
        assert len(signals.embedding) == 32

    def test_analysis_fills_missing_preferences(self):
        analyzer = CountingAnalyzer(category="Non-Tech", work_mode="Hybrid")
        extractor = SignalExtractor(analyzer)

        signals = extractor.candidate_signals(
            make_candidate(category_preference=None, work_mode_preference=None)
        )

        assert signals.category == "Non-Tech"
        assert signals.work_mode == "Hybrid"

    def test_job_signals(self):
        analyzer = CountingAnalyzer(skills=["rest"])
        extractor = SignalExtractor(analyzer)

        signals = extractor.job_signals(make_job(work_mode=None))

        assert signals.skills == frozenset({"python", "aws", "rest"})
        assert signals.work_mode == "Onsite"
        assert analyzer.calls[0][0] == "job"

    def test_unchanged_content_is_analyzed_once(self):
        analyzer = CountingAnalyzer()
        extractor = SignalExtractor(analyzer)

        extractor.candidate_signals(make_candidate())
        extractor.candidate_signals(make_candidate())

        assert len(analyzer.calls) == 1
        assert extractor.cache_size_in_use() == 1

    def test_edited_content_is_reanalyzed(self):
        analyzer = CountingAnalyzer()
        extractor = SignalExtractor(analyzer)

        extractor.candidate_signals(make_candidate())
        extractor.candidate_signals(make_candidate(skills=["python", "django", "sql"]))

        assert len(analyzer.calls) == 2

    def test_invalidate_drops_subject_entries(self):
        analyzer = CountingAnalyzer()
        extractor = SignalExtractor(analyzer)
        extractor.candidate_signals(make_candidate())
        extractor.job_signals(make_job())

        assert extractor.invalidate(candidate_id="cand-1") == 1
        assert extractor.cache_size_in_use() == 1

        extractor.candidate_signals(make_candidate())
        assert len(analyzer.calls) == 3

    def test_cache_is_bounded(self):
        analyzer = CountingAnalyzer()
        extractor = SignalExtractor(analyzer, cache_size=1)

        extractor.job_signals(make_job("job-1"))
        extractor.job_signals(make_job("job-2"))
        extractor.job_signals(make_job("job-1"))

        assert extractor.cache_size_in_use() == 1
        assert len(analyzer.calls) == 3

    def test_zero_cache_size_disables_cache(self):
        analyzer = CountingAnalyzer()
        extractor = SignalExtractor(analyzer, cache_size=0)

        extractor.job_signals(make_job())
        extractor.job_signals(make_job())

        assert len(analyzer.calls) == 2
        assert extractor.cache_size_in_use() == 0
