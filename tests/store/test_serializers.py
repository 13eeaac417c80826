"""Tests for timestamp and amount serialization helpers."""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

from chaser.store.serializers import format_amount, format_timestamp, parse_timestamp


class TestTimestamps:
    """Timestamps are stored as fixed-width UTC strings."""

    def test_format_aware(self):
        value = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
        assert format_timestamp(value) == "2026-03-10T12:00:00.000000Z"

    def test_format_converts_to_utc(self):
        value = datetime(2026, 3, 10, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value) == "2026-03-10T12:00:00.000000Z"

    def test_format_naive_assumed_utc(self):
        assert format_timestamp(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000000Z"

    def test_none(self):
        assert format_timestamp(None) is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_parse_round_trip(self):
        value = datetime(2026, 3, 10, 12, 0, 5, 123456, tzinfo=UTC)
        assert parse_timestamp(format_timestamp(value)) == value

    def test_parse_plain_iso(self):
        assert parse_timestamp("2026-03-10T12:00:00Z") == datetime(2026, 3, 10, 12, tzinfo=UTC)

    def test_lexicographic_order_matches_chronological(self):
        earlier = format_timestamp(datetime(2026, 3, 9, 23, 59, tzinfo=UTC))
        later = format_timestamp(datetime(2026, 3, 10, 0, 0, tzinfo=UTC))
        assert earlier < later


def test_format_amount_exact():
    assert format_amount(Decimal("1250.10")) == "1250.10"
    assert format_amount(None) is None
