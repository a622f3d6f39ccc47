"""
Server-side plausibility checks for submitted attempts.

Checks run in order and the first failure is terminal:

1. Schema/enum: known mode, snippet id present where the mode needs one
2. Bounds: elapsed time, WPM, accuracy inside physical limits
3. Cross-field: elapsed time long enough for the claimed WPM
4. Server clock: claimed start time agrees with the claimed duration

Accepted attempts get their numbers clamped and may be flagged as suspicious.
A flag is a monitoring signal only, never a rejection.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from . import config
from .errors import AttemptRejected

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a validation check"""
    valid: bool
    reason: str = ""
    flagged: bool = False  # For review, not rejection


@dataclass
class ValidatedAttempt:
    snippet_id: Optional[str]
    mode: str
    elapsed_ms: int
    wpm: float
    accuracy: float
    keystrokes: int
    start_time: int
    flagged: bool = False
    flag_reason: str = ""


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def expected_min_time_ms(wpm: float) -> float:
    """Lower bound on how long ~5 words take at the claimed WPM."""
    if wpm > 0:
        return max(config.MIN_TIME_FLOOR_MS, config.MS_FOR_FIVE_WORDS_AT_1_WPM / wpm)
    return max(config.MIN_TIME_FLOOR_MS, config.ZERO_WPM_EXPECTED_MS)


class AttemptValidator:
    """Stateless; one instance can serve every request."""

    def check_schema(self, submission) -> ValidationResult:
        if submission.mode not in config.MODES:
            return ValidationResult(False, "invalid mode")
        if submission.mode not in config.SNIPPETLESS_MODES and not submission.snippet_id:
            return ValidationResult(False, "missing snippet_id")
        return ValidationResult(True)

    def check_bounds(self, submission) -> ValidationResult:
        # Written as "not inside" so NaN fails too
        if not (config.MIN_ELAPSED_MS <= submission.elapsed_ms <= config.MAX_ELAPSED_MS):
            return ValidationResult(False, "impossible time duration")
        if not (config.MIN_WPM <= submission.wpm <= config.MAX_WPM):
            return ValidationResult(False, "impossible WPM")
        if not (config.MIN_ACCURACY <= submission.accuracy <= config.MAX_ACCURACY):
            return ValidationResult(False, "impossible accuracy")
        return ValidationResult(True)

    def check_consistency(self, submission) -> ValidationResult:
        expected = expected_min_time_ms(submission.wpm)
        if submission.elapsed_ms < config.TIME_WPM_TOLERANCE * expected:
            return ValidationResult(False, "time/WPM mismatch detected")
        return ValidationResult(True)

    def check_server_clock(self, submission, server_now_ms: int) -> ValidationResult:
        start_time = resolve_start_time(submission, server_now_ms)
        drift = abs((server_now_ms - start_time) - submission.elapsed_ms)
        if drift > config.MAX_CLOCK_DRIFT_MS:
            return ValidationResult(False, "timing manipulation detected")
        return ValidationResult(True)

    def check_suspicious(self, submission) -> ValidationResult:
        if submission.wpm >= config.SUSPICIOUS_WPM and submission.accuracy >= config.SUSPICIOUS_ACCURACY:
            return ValidationResult(True, f"{submission.wpm:.0f} wpm at {submission.accuracy:.1f}%", flagged=True)
        keystrokes = submission.keystrokes or 0
        if keystrokes > 0:
            implied_chars = submission.wpm * config.CHARS_PER_WORD * submission.elapsed_ms / 60000
            if keystrokes < config.SUSPICIOUS_KEYSTROKE_RATIO * implied_chars:
                return ValidationResult(
                    True, f"{keystrokes} keystrokes for ~{implied_chars:.0f} chars", flagged=True
                )
        return ValidationResult(True)

    def evaluate(self, submission, server_now_ms: int) -> ValidationResult:
        """Run the gating checks in order; first failure wins."""
        for result in (
            self.check_schema(submission),
            self.check_bounds(submission),
            self.check_consistency(submission),
            self.check_server_clock(submission, server_now_ms),
        ):
            if not result.valid:
                return result
        return self.check_suspicious(submission)

    def validate(self, submission, server_now_ms: int) -> ValidatedAttempt:
        """Return the cleaned attempt, or raise AttemptRejected."""
        result = self.evaluate(submission, server_now_ms)
        if not result.valid:
            logger.warning(f"Attempt rejected: {result.reason}")
            raise AttemptRejected(result.reason)
        if result.flagged:
            logger.warning(f"Suspicious attempt accepted: {result.reason}")

        return ValidatedAttempt(
            snippet_id=submission.snippet_id,
            mode=submission.mode,
            elapsed_ms=int(submission.elapsed_ms),
            wpm=round(clamp(submission.wpm, config.MIN_WPM, config.MAX_WPM), 2),
            accuracy=round(clamp(submission.accuracy, config.MIN_ACCURACY, config.MAX_ACCURACY), 2),
            keystrokes=max(0, submission.keystrokes or 0),
            start_time=resolve_start_time(submission, server_now_ms),
            flagged=result.flagged,
            flag_reason=result.reason,
        )


def resolve_start_time(submission, server_now_ms: int) -> int:
    """start_time is optional on the wire; absent means "now"."""
    start_time = getattr(submission, "start_time", None)
    return server_now_ms if start_time is None else int(start_time)
