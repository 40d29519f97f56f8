"""Signal extraction for candidates and job postings.

Builds the text to analyze from a profile or posting, runs the analyzer and
the embedder, and merges explicit structured fields (declared skills,
category, work mode) over what the analyzer inferred. Results are cached in
a bounded LRU keyed by (kind, id, content hash), so unchanged content is
never re-analyzed and edited content always is.
"""

import threading
from collections import OrderedDict
from typing import Optional, Tuple

from campusmatch.analysis.analyzer import Analyzer
from campusmatch.domain.models import CandidateProfile, JobPosting, Signals
from campusmatch.logging import get_logger
from campusmatch.utils.hashing import compute_content_hash

from .embedding import Embedder, HashingEmbedder
from .models import CandidateSignals, JobSignals

logger = get_logger(__name__, component="signals")

CacheKey = Tuple[str, str, str]
CacheValue = Tuple[Signals, Tuple[float, ...]]

DEFAULT_CACHE_SIZE = 1024


def build_candidate_text(profile: CandidateProfile) -> str:
    """Resume text if uploaded, otherwise name, skills and headline."""
    if profile.resume_text:
        return profile.resume_text

    parts = []
    if profile.name:
        parts.append(profile.name)
    if profile.skills:
        parts.append("Skills: " + ", ".join(profile.skills))
    if profile.headline:
        parts.append(profile.headline)
    return "\n\n".join(parts)


def build_job_text(job: JobPosting) -> str:
    """Title, description and required skills."""
    parts = [job.title]
    if job.description:
        parts.append(job.description)
    if job.required_skills:
        parts.append("Required skills: " + ", ".join(job.required_skills))
    return "\n\n".join(parts)


def source_fingerprint(profile: CandidateProfile, job: JobPosting) -> str:
    """Hash of every input that feeds a pair's score.

    Covers the analyzed texts and the structured fields merged over the
    analysis. The analyzer is not called.
    """
    return compute_content_hash(
        "candidate:" + build_candidate_text(profile),
        "skills:" + ",".join(sorted(profile.skills)),
        f"prefers:{profile.category_preference}/{profile.work_mode_preference}",
        "job:" + build_job_text(job),
        "requires:" + ",".join(sorted(job.required_skills)),
        f"offers:{job.category}/{job.work_mode}",
    )


class SignalExtractor:
    """Turns profiles and postings into scoreable signals.

    Args:
        analyzer: Text analyzer (LLM with fallback)
        embedder: Embedder for the semantic component
        cache_size: Maximum cached analyses; 0 disables caching
    """

    def __init__(
        self,
        analyzer: Analyzer,
        embedder: Optional[Embedder] = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        self.analyzer = analyzer
        self.embedder = embedder or HashingEmbedder()
        self.cache_size = cache_size
        self._cache: "OrderedDict[CacheKey, CacheValue]" = OrderedDict()
        self._lock = threading.Lock()

    def candidate_signals(self, profile: CandidateProfile) -> CandidateSignals:
        text = build_candidate_text(profile)
        signals, embedding = self._analyze("resume", profile.candidate_id, text)

        return CandidateSignals(
            candidate_id=profile.candidate_id,
            skills=frozenset(signals.skills) | frozenset(profile.skills),
            tools=frozenset(signals.tools),
            category=profile.category_preference or signals.category,
            work_mode=profile.work_mode_preference or signals.work_mode,
            embedding=embedding,
            contact_address=profile.contact_address,
            text=text,
        )

    def job_signals(self, job: JobPosting) -> JobSignals:
        text = build_job_text(job)
        signals, embedding = self._analyze("job", job.job_id, text)

        return JobSignals(
            job_id=job.job_id,
            skills=frozenset(signals.skills) | frozenset(job.required_skills),
            tools=frozenset(signals.tools),
            category=job.category or signals.category,
            work_mode=job.work_mode or signals.work_mode,
            embedding=embedding,
            text=text,
        )

    def _analyze(self, kind: str, subject_id: str, text: str) -> CacheValue:
        key = (kind, subject_id, compute_content_hash(text))

        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        # Analyze outside the lock: the analyzer may block on HTTP.
        signals = self.analyzer.analyze(text, kind)
        embedding = self.embedder.embed(text)
        value = (signals, embedding)

        logger.debug(
            f"Analyzed {kind} {subject_id}",
            extra={
                "event": "signals.analyzed",
                "kind": kind,
                "subject_id": subject_id,
                "signals_source": signals.source,
            },
        )

        if self.cache_size > 0:
            with self._lock:
                self._cache[key] = value
                self._cache.move_to_end(key)
                while len(self._cache) > self.cache_size:
                    self._cache.popitem(last=False)
        return value

    def invalidate(self, candidate_id: Optional[str] = None, job_id: Optional[str] = None) -> int:
        """Drop cached analyses for a candidate and/or a job.

        Returns:
            Number of cache entries removed
        """
        targets = set()
        if candidate_id is not None:
            targets.add(("resume", candidate_id))
        if job_id is not None:
            targets.add(("job", job_id))

        with self._lock:
            stale = [key for key in self._cache if (key[0], key[1]) in targets]
            for key in stale:
                del self._cache[key]
        return len(stale)

    def cache_size_in_use(self) -> int:
        with self._lock:
            return len(self._cache)
