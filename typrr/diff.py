"""
Per-character comparison of typed input against the target.

Everything here is a pure function of (target, input) and is safe to call on
every render tick.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .config import INDENT_CHARS
from .events import normalize_newlines


class CharStatus(Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    CURSOR = "cursor"
    PENDING = "pending"


@dataclass(frozen=True)
class CharacterClassification:
    index: int
    char: str
    status: CharStatus
    leading_indent: bool = False

    @property
    def highlighted(self) -> bool:
        """Whether match/mismatch colouring should be shown for this character."""
        typed = self.status in (CharStatus.MATCH, CharStatus.MISMATCH)
        return typed and not self.leading_indent


def is_leading_indent(target: str, index: int) -> bool:
    """
    True when target[index] is a space or tab with only spaces/tabs between
    it and the start of its line.
    """
    if index < 0 or index >= len(target) or target[index] not in INDENT_CHARS:
        return False
    k = index - 1
    while k >= 0 and target[k] != "\n":
        if target[k] not in INDENT_CHARS:
            return False
        k -= 1
    return True


def classify(target: str, input: str) -> List[CharacterClassification]:
    """Classify every character of target against the typed input."""
    typed = normalize_newlines(input)
    out: List[CharacterClassification] = []
    # Running flag instead of calling is_leading_indent per index keeps this O(n)
    at_line_start = True
    for i, ch in enumerate(target):
        indent = at_line_start and ch in INDENT_CHARS
        if ch == "\n":
            at_line_start = True
        elif ch not in INDENT_CHARS:
            at_line_start = False

        if i < len(typed):
            status = CharStatus.MATCH if typed[i] == ch else CharStatus.MISMATCH
        elif i == len(typed):
            status = CharStatus.CURSOR
        else:
            status = CharStatus.PENDING
        out.append(CharacterClassification(i, ch, status, indent))
    return out


def count_mismatches(target: str, input: str, start: int = 0, end: Optional[int] = None) -> int:
    """Count positions in input[start:end] that differ from the target."""
    if end is None:
        end = len(input)
    end = min(end, len(input))
    return sum(
        1 for i in range(max(0, start), end)
        if i >= len(target) or input[i] != target[i]
    )


def has_mistake(target: str, input: str) -> bool:
    return count_mismatches(target, input) > 0
