"""
backend/tests/test_utils.py

Purpose:
    UTC helpers used when reading dates back from MongoDB.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import sys

sys.path.insert(0, "backend")

from app.utils import as_utc, ensure_utc, utcnow


def test_utcnow_is_aware():
    assert utcnow().tzinfo is timezone.utc


def test_ensure_utc_tags_naive_datetimes():
    naive = datetime(2026, 5, 1, 9, 30)
    aware = ensure_utc(naive)
    assert aware.tzinfo is timezone.utc
    assert aware.replace(tzinfo=None) == naive
    assert utcnow() - aware > timedelta(0)


def test_ensure_utc_keeps_aware_datetimes():
    dt = datetime(2026, 5, 1, 9, 30, tzinfo=timezone.utc)
    assert ensure_utc(dt) is dt


def test_as_utc_passes_none_through():
    assert as_utc(None) is None
    assert as_utc(datetime(2026, 1, 1)).isoformat().endswith("+00:00")
