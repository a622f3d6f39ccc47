"""
Daily-challenge admission: the right snippet, at most three scored attempts
per user per UTC day.
"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Tuple

from . import config
from .errors import DailyAttemptsExhausted, InvalidDailySnippet
from .store import AttemptRecord, AttemptStore

logger = logging.getLogger(__name__)


def utc_day_window(now: datetime) -> Tuple[datetime, datetime]:
    """[00:00:00Z today, 00:00:00Z tomorrow)"""
    start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class DailyQuotaGuard:
    def __init__(self, store: AttemptStore, max_allowed: int = config.MAX_DAILY_ATTEMPTS):
        self.store = store
        self.max_allowed = max_allowed

    def applies_to(self, mode: str) -> bool:
        return mode == config.DAILY_MODE

    def attempts_used(self, user_id: str, now: datetime) -> int:
        start, end = utc_day_window(now)
        return self.store.count_attempts(user_id, config.DAILY_MODE, start, end)

    def attempts_remaining(self, user_id: str, now: datetime) -> int:
        return max(0, self.max_allowed - self.attempts_used(user_id, now))

    def check_snippet(self, snippet_id: Optional[str], now: datetime):
        today = now.astimezone(timezone.utc).date()
        expected = self.store.daily_snippet_id(today)
        if expected is None or expected != snippet_id:
            raise InvalidDailySnippet()

    def check(self, user_id: str, snippet_id: Optional[str], now: datetime):
        """Both daily checks, without reserving a slot."""
        self.check_snippet(snippet_id, now)
        if self.attempts_used(user_id, now) >= self.max_allowed:
            raise DailyAttemptsExhausted()

    def admit(self, record: AttemptRecord, now: datetime) -> int:
        """
        Check and record a daily attempt. The store decides whether the
        count and insert are atomic.
        """
        self.check(record.user_id, record.snippet_id, now)
        start, end = utc_day_window(now)
        attempt_id = self.store.admit_attempt(record, self.max_allowed, start, end)
        if attempt_id is None:
            logger.info(f"Daily slot taken concurrently for user {record.user_id}")
            raise DailyAttemptsExhausted()
        return attempt_id
