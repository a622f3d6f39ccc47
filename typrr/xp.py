import math

from . import config


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def xp_for_attempt(mode: str, wpm: float, accuracy: float) -> int:
    """XP earned for an accepted attempt. Halves round up."""
    performance = (wpm * (accuracy / 100)) / config.XP_PERFORMANCE_DIVISOR
    if mode == "tricky_chars":
        # Higher base with a floor, performance multiplier capped at 2x
        return max(config.XP_MIN_TRICKY, _round_half_up(config.XP_BASE_TRICKY * max(0.5, min(2.0, performance))))
    return _round_half_up(config.XP_BASE * max(1.0, performance))
