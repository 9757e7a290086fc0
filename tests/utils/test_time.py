from datetime import datetime, timedelta, timezone

from healthauth.utils.time import ensure_utc, utcnow


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None
    assert utcnow().utcoffset() == timedelta(0)


def test_ensure_utc_attaches_utc_to_naive():
    value = ensure_utc(datetime(2026, 3, 2, 9, 0))
    assert value == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets():
    plus_two = timezone(timedelta(hours=2))
    value = ensure_utc(datetime(2026, 3, 2, 11, 0, tzinfo=plus_two))
    assert value == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    assert value.tzinfo == timezone.utc


def test_ensure_utc_none():
    assert ensure_utc(None) is None
