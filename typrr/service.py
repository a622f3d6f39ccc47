"""
Attempt recording: validation, daily admission, persistence and XP.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .clock import Clock, SYSTEM_CLOCK
from .quota import DailyQuotaGuard
from .ratelimit import RateLimiter
from .store import AttemptRecord, AttemptStore
from .validator import AttemptValidator
from .xp import xp_for_attempt

logger = logging.getLogger(__name__)


@dataclass
class AttemptOutcome:
    attempt_id: int
    xp_earned: int
    flagged: bool = False


class AttemptService:
    def __init__(
        self,
        store: AttemptStore,
        clock: Clock = SYSTEM_CLOCK,
        validator: Optional[AttemptValidator] = None,
        quota: Optional[DailyQuotaGuard] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.store = store
        self.clock = clock
        self.validator = validator or AttemptValidator()
        self.quota = quota or DailyQuotaGuard(store)
        self.rate_limiter = rate_limiter

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock.epoch_ms() / 1000, tz=timezone.utc)

    def record(self, user_id: str, submission) -> AttemptOutcome:
        """
        Validate and store one submission for an authenticated user.

        Raises a TyprrError subclass when the attempt is refused.
        """
        if self.rate_limiter:
            self.rate_limiter.hit(user_id)

        server_now_ms = self.clock.epoch_ms()
        attempt = self.validator.validate(submission, server_now_ms)
        now = datetime.fromtimestamp(server_now_ms / 1000, tz=timezone.utc)

        record = AttemptRecord(
            user_id=user_id,
            snippet_id=attempt.snippet_id,
            mode=attempt.mode,
            wpm=attempt.wpm,
            accuracy=attempt.accuracy,
            elapsed_ms=attempt.elapsed_ms,
            keystrokes=attempt.keystrokes,
            flagged=attempt.flagged,
            created_at=now,
        )
        if self.quota.applies_to(attempt.mode):
            attempt_id = self.quota.admit(record, now)
        else:
            attempt_id = self.store.insert_attempt(record)

        xp_earned = self.award_xp(user_id, attempt.mode, attempt.wpm, attempt.accuracy)
        logger.info(
            f"Recorded {attempt.mode} attempt {attempt_id} for user {user_id} "
            f"({attempt.wpm:.1f} wpm, {attempt.accuracy:.1f}%, +{xp_earned} xp)"
        )
        return AttemptOutcome(attempt_id=attempt_id, xp_earned=xp_earned, flagged=attempt.flagged)

    def award_xp(self, user_id: str, mode: str, wpm: float, accuracy: float) -> int:
        """Best effort: a failure is logged and the attempt still stands."""
        xp = xp_for_attempt(mode, wpm, accuracy)
        try:
            self.store.award_xp(user_id, xp)
        except Exception as e:
            logger.error(f"Error awarding XP to {user_id}: {e}")
        return xp

    def daily_attempts_used(self, user_id: str) -> int:
        return self.quota.attempts_used(user_id, self.now())
