"""Time helper tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from club_voting.utils.time import FixedClock, parse_iso_datetime


def test_parse_iso_datetime_with_default() -> None:
    """Missing input should return default value when provided."""
    default = parse_iso_datetime("2026-02-01T10:00:00Z")
    assert parse_iso_datetime(None, default=default) == default


def test_parse_iso_datetime_requires_value_without_default() -> None:
    """Missing input without default is an error."""
    with pytest.raises(ValueError):
        parse_iso_datetime("")


def test_parse_iso_datetime_treats_naive_as_utc() -> None:
    """Naive timestamps are interpreted as UTC."""
    result = parse_iso_datetime("2026-02-07T08:30:00")
    assert result == datetime(2026, 2, 7, 8, 30, tzinfo=UTC)


def test_fixed_clock_advances() -> None:
    """FixedClock only moves when told to."""
    start = datetime(2026, 1, 1, tzinfo=UTC)
    clock = FixedClock(start)
    assert clock.now() == start
    assert clock.advance(hours=12) == start + timedelta(hours=12)
    clock.set(start)
    assert clock.now() == start
