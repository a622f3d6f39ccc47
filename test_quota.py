"""
Tests for daily admission, attempt storage and XP.
Run with: pytest test_quota.py
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

import pytest

from typrr.errors import DailyAttemptsExhausted, InvalidDailySnippet
from typrr.quota import DailyQuotaGuard, utc_day_window
from typrr.store import AttemptRecord, SQLiteAttemptStore, open_store
from typrr.xp import xp_for_attempt

NOW = datetime(2026, 10, 18, 12, 30, tzinfo=timezone.utc)
TODAY = date(2026, 10, 18)


@pytest.fixture
def store():
    s = SQLiteAttemptStore()
    s.set_daily_challenge(TODAY, "daily-1")
    yield s
    s.close()


@pytest.fixture
def guard(store):
    return DailyQuotaGuard(store)


def record(user_id="u1", mode="daily", snippet_id="daily-1", created_at=NOW):
    return AttemptRecord(
        user_id=user_id,
        snippet_id=snippet_id,
        mode=mode,
        wpm=70.0,
        accuracy=98.0,
        elapsed_ms=20000,
        created_at=created_at,
    )


def test_utc_day_window():
    start, end = utc_day_window(NOW)
    assert start == datetime(2026, 10, 18, tzinfo=timezone.utc)
    assert end == datetime(2026, 10, 19, tzinfo=timezone.utc)

    local = datetime(2026, 10, 19, 1, 0, tzinfo=timezone(timedelta(hours=5)))
    assert utc_day_window(local)[0] == datetime(2026, 10, 18, tzinfo=timezone.utc)


def test_only_daily_mode_is_guarded(guard):
    assert guard.applies_to("daily")
    assert not guard.applies_to("practice")
    assert not guard.applies_to("tricky_chars")


def test_snippet_must_match_today(guard, store):
    guard.check_snippet("daily-1", NOW)
    with pytest.raises(InvalidDailySnippet):
        guard.check_snippet("other", NOW)
    with pytest.raises(InvalidDailySnippet):
        guard.check_snippet("daily-1", NOW + timedelta(days=1))


def test_fourth_attempt_is_refused(guard):
    for _ in range(3):
        guard.admit(record(), NOW)
    assert guard.attempts_used("u1", NOW) == 3
    assert guard.attempts_remaining("u1", NOW) == 0

    with pytest.raises(DailyAttemptsExhausted) as excinfo:
        guard.admit(record(), NOW)
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "daily attempts exhausted"


def test_count_scopes_to_user_mode_and_day(guard, store):
    yesterday = datetime(2026, 10, 17, 23, 59, 59, 900000, tzinfo=timezone.utc)
    store.insert_attempt(record(created_at=yesterday))
    store.insert_attempt(record(created_at=yesterday))
    store.insert_attempt(record(created_at=yesterday))
    store.insert_attempt(record(mode="practice"))
    store.insert_attempt(record(user_id="u2"))

    assert guard.attempts_used("u1", NOW) == 0
    assert guard.attempts_remaining("u1", NOW) == 3
    guard.admit(record(), NOW)
    assert guard.attempts_used("u1", NOW) == 1


def test_concurrent_admission_never_exceeds_limit(store):
    start, end = utc_day_window(NOW)
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: store.admit_attempt(record(), 3, start, end), range(10)))

    admitted = [r for r in results if r is not None]
    assert len(admitted) == 3
    assert store.count_attempts("u1", "daily", start, end) == 3


def test_xp_totals(store):
    assert store.total_xp("u1") == 0
    store.award_xp("u1", 5)
    store.award_xp("u1", 7)
    assert store.total_xp("u1") == 12


def test_xp_for_attempt():
    assert xp_for_attempt("practice", 100, 100) == 10
    assert xp_for_attempt("daily", 20, 100) == 5
    assert xp_for_attempt("tricky_chars", 100, 100) == 16
    assert xp_for_attempt("tricky_chars", 300, 100) == 16
    assert xp_for_attempt("tricky_chars", 10, 50) == 5
    # halves round up
    assert xp_for_attempt("practice", 65, 100) == 7
    assert xp_for_attempt("practice", 85, 100) == 9
    assert xp_for_attempt("daily", 105, 100) == 11
    assert xp_for_attempt("tricky_chars", 53.125, 100) == 9


def test_open_store():
    s = open_store("sqlite://")
    assert isinstance(s, SQLiteAttemptStore)
    s.close()
    with pytest.raises(ValueError):
        open_store("mysql://localhost/typrr")
