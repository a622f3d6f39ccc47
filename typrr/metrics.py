"""
Live typing metrics.

Pure reads over a session; recomputing them is how the UI "polls". Nothing
here mutates session state.
"""

from dataclasses import dataclass
from typing import Optional

from .clock import Clock, SYSTEM_CLOCK
from .config import CHARS_PER_WORD
from .events import Session


def wpm(session: Session, clock: Clock = SYSTEM_CLOCK) -> float:
    """(characters typed / 5) per elapsed minute; 0 before the first keystroke."""
    if not session.started or session.start_ms is None:
        return 0.0
    words = len(session.input) / CHARS_PER_WORD
    minutes = session.elapsed_ms(clock.monotonic_ms()) / 60000
    if minutes <= 0:
        return 0.0
    return words / minutes


def accuracy(session: Session) -> Optional[float]:
    """
    Percentage of keystrokes that matched when typed.

    None until something has been typed, so "no data" is never shown as 0% or
    100%.
    """
    keys = session.total_keys_pressed
    if keys == 0:
        return None
    return max(0.0, (keys - session.total_mistakes) / keys * 100)


@dataclass
class LiveStats:
    """Snapshot of a session's metrics at one instant."""
    wpm: float = 0.0
    accuracy: Optional[float] = None
    elapsed_ms: float = 0.0
    chars_typed: int = 0
    keystrokes: int = 0
    mistakes: int = 0

    @property
    def words_typed(self) -> float:
        return self.chars_typed / CHARS_PER_WORD

    def to_dict(self) -> dict:
        return {
            "wpm": round(self.wpm, 2),
            "accuracy": round(self.accuracy, 2) if self.accuracy is not None else None,
            "elapsed_ms": int(self.elapsed_ms),
            "chars_typed": self.chars_typed,
            "keystrokes": self.keystrokes,
            "mistakes": self.mistakes,
        }


def snapshot(session: Session, clock: Clock = SYSTEM_CLOCK) -> LiveStats:
    return LiveStats(
        wpm=wpm(session, clock),
        accuracy=accuracy(session),
        elapsed_ms=session.elapsed_ms(clock.monotonic_ms()),
        chars_typed=len(session.input),
        keystrokes=session.total_keys_pressed,
        mistakes=session.total_mistakes,
    )
