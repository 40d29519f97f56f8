"""Test helper utilities for campusmatch tests."""

from .builders import (
    FIXED_NOW,
    candidate_signals,
    job_signals,
    make_candidate,
    make_job,
    make_record,
)
from .fakes import (
    CountingAnalyzer,
    FakeClock,
    FakeDirectory,
    InMemoryMarkerStore,
    InMemoryMatchStore,
    RecordingChannel,
)

__all__ = [
    "FIXED_NOW",
    "candidate_signals",
    "job_signals",
    "make_candidate",
    "make_job",
    "make_record",
    "CountingAnalyzer",
    "FakeClock",
    "FakeDirectory",
    "InMemoryMarkerStore",
    "InMemoryMatchStore",
    "RecordingChannel",
]
