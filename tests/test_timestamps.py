"""Unit tests for timestamp utilities."""

from datetime import datetime, timedelta, timezone

from campusmatch.utils.timestamps import (
    ensure_utc,
    format_timestamp,
    is_older_than,
    parse_iso_datetime,
    utc_now,
)


class TestUtcNow:
    """Tests for utc_now function."""

    def test_utc_now_returns_utc_datetime(self):
        """Test that utc_now returns a timezone-aware datetime in UTC."""
        now = utc_now()

        assert now.tzinfo == timezone.utc
        assert isinstance(now, datetime)

    def test_utc_now_is_recent(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after


class TestEnsureUtc:
    """Tests for ensure_utc function."""

    def test_ensure_utc_with_none(self):
        assert ensure_utc(None) is None

    def test_ensure_utc_with_naive_datetime(self):
        """Test that naive datetime is treated as UTC."""
        result = ensure_utc(datetime(2025, 6, 1, 12, 0, 0))

        assert result.tzinfo == timezone.utc
        assert result.hour == 12

    def test_ensure_utc_with_other_timezone(self):
        """Test that an IST datetime is converted to UTC."""
        ist = timezone(timedelta(hours=5, minutes=30))
        result = ensure_utc(datetime(2025, 6, 1, 12, 0, 0, tzinfo=ist))

        assert result.tzinfo == timezone.utc
        assert (result.hour, result.minute) == (6, 30)


class TestParseIsoDatetime:
    """Tests for parse_iso_datetime function."""

    def test_parse_storage_format(self):
        result = parse_iso_datetime("2025-06-01T12:00:00.123456Z")

        assert result == datetime(2025, 6, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

    def test_parse_with_offset(self):
        result = parse_iso_datetime("2025-06-01T12:00:00+05:30")

        assert result == datetime(2025, 6, 1, 6, 30, tzinfo=timezone.utc)

    def test_parse_date_only(self):
        result = parse_iso_datetime("2025-06-01")

        assert result == datetime(2025, 6, 1, tzinfo=timezone.utc)

    def test_parse_empty_and_invalid_return_none(self):
        assert parse_iso_datetime(None) is None
        assert parse_iso_datetime("   ") is None
        assert parse_iso_datetime("not-a-date") is None


class TestFormatTimestamp:
    """Tests for format_timestamp function."""

    def test_format_utc(self):
        dt = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

        assert format_timestamp(dt) == "2025-06-01T12:00:00.000000Z"

    def test_format_none(self):
        assert format_timestamp(None) is None

    def test_format_round_trips_through_parse(self):
        dt = datetime(2025, 6, 1, 12, 0, 0, 42, tzinfo=timezone.utc)

        assert parse_iso_datetime(format_timestamp(dt)) == dt

    def test_lexical_order_matches_chronological_order(self):
        """Stored strings must sort like the datetimes they encode."""
        earlier = format_timestamp(datetime(2025, 6, 1, 9, 59, 59, 999999, tzinfo=timezone.utc))
        later = format_timestamp(datetime(2025, 6, 1, 10, 0, 0, tzinfo=timezone.utc))

        assert earlier < later


class TestIsOlderThan:
    """Tests for is_older_than function."""

    NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_exactly_max_age_is_not_older(self):
        dt = self.NOW - timedelta(hours=24)

        assert is_older_than(dt, timedelta(hours=24), now=self.NOW) is False

    def test_one_microsecond_past_max_age_is_older(self):
        dt = self.NOW - timedelta(hours=24, microseconds=1)

        assert is_older_than(dt, timedelta(hours=24), now=self.NOW) is True

    def test_recent_is_not_older(self):
        dt = self.NOW - timedelta(minutes=5)

        assert is_older_than(dt, timedelta(hours=24), now=self.NOW) is False
