"""Utility functions for hashing, time handling, and rate limiting."""

from .hashing import compute_content_hash, stable_token_bucket
from .rate_limit import RateLimiter
from .timestamps import (
    ensure_utc,
    format_timestamp,
    is_older_than,
    parse_iso_datetime,
    utc_now,
)

__all__ = [
    # Hashing
    "compute_content_hash",
    "stable_token_bucket",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "parse_iso_datetime",
    "format_timestamp",
    "is_older_than",
    # Rate limiting
    "RateLimiter",
]
