"""Tests for datetime helpers."""
from datetime import datetime, timedelta, timezone

import pytest

from focus_engine.core.datetime_utils import ensure_timezone_aware, utc_now


def test_utc_now_is_aware():
    assert utc_now().tzinfo == timezone.utc


def test_naive_becomes_utc():
    naive = datetime(2024, 1, 1, 9, 30)
    assert ensure_timezone_aware(naive) == datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


def test_aware_unchanged():
    aware = datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_timezone_aware(aware) is aware


def test_none_rejected():
    with pytest.raises(ValueError):
        ensure_timezone_aware(None)
