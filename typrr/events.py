"""
Event schema and session state for live typing.

This module defines the keystroke events fed to the input controller and the
value objects the controller works on: the immutable target text and the
mutable per-session counters.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import INDENT_CHARS


class EventType(Enum):
    """Types of keystroke events."""

    EDIT = "edit"                # Whole buffer replaced (paste, IME, textarea change)
    CHAR_ADD = "char_add"        # User typed a printable character
    CHAR_DELETE = "char_delete"  # User pressed backspace
    TAB = "tab"                  # Tab key, inserts two spaces
    ENTER = "enter"              # Enter key, inserts newline plus target indentation
    END = "end"                  # End of input stream (for simulation)


@dataclass
class KeystrokeEvent:
    """
    Represents a single keystroke event in the typing pipeline.

    Attributes:
        event_type: The type of event (CHAR_ADD, EDIT, etc.)
        char: The character typed (only for CHAR_ADD events)
        value: The full buffer after the edit (only for EDIT events)
        timestamp_ms: Timestamp in milliseconds since session start
    """
    event_type: EventType
    char: Optional[str] = None
    value: Optional[str] = None
    timestamp_ms: float = 0.0

    def __post_init__(self):
        """Validate event data."""
        if self.event_type == EventType.CHAR_ADD and not self.char:
            raise ValueError("CHAR_ADD events must include a character")
        if self.event_type == EventType.EDIT and self.value is None:
            raise ValueError("EDIT events must include the new buffer value")

    def __repr__(self) -> str:
        if self.event_type == EventType.CHAR_ADD:
            return f"KeystrokeEvent(ADD {self.char!r})"
        elif self.event_type == EventType.EDIT:
            return f"KeystrokeEvent(EDIT {self.value!r})"
        else:
            return f"KeystrokeEvent({self.event_type.name})"


def normalize_newlines(text: str) -> str:
    """Collapse Windows line endings to '\\n'."""
    return text.replace("\r\n", "\n")


@dataclass(frozen=True)
class TargetText:
    """The snippet a user reproduces. Never changes once a session is bound to it."""
    content: str
    snippet_id: Optional[str] = None

    @classmethod
    def from_snippet(cls, content: str, snippet_id: Optional[str] = None) -> "TargetText":
        return cls(content=normalize_newlines(content), snippet_id=snippet_id)

    @property
    def length(self) -> int:
        return len(self.content)

    def char_at(self, index: int) -> str:
        """Character at index, or '' past either end."""
        if 0 <= index < len(self.content):
            return self.content[index]
        return ""

    def expects_newline_at(self, index: int) -> bool:
        return self.char_at(index) == "\n"

    def indent_after(self, index: int) -> str:
        """The run of spaces/tabs that starts at index."""
        end = index
        while end < len(self.content) and self.content[end] in INDENT_CHARS:
            end += 1
        return self.content[index:end]


@dataclass
class Session:
    """
    Mutable state of one attempt against a target.

    Only the input controller writes to it.
    """
    input: str = ""
    caret: int = 0
    started: bool = False
    start_ms: Optional[float] = None        # monotonic clock
    start_epoch_ms: Optional[int] = None    # wall clock, sent to the server
    total_keys_pressed: int = 0
    total_mistakes: int = 0
    complete: bool = False
    completed_ms: Optional[float] = None

    def elapsed_ms(self, now_ms: float) -> float:
        """Time elapsed since session start, frozen at completion."""
        if self.start_ms is None:
            return 0.0
        end = self.completed_ms if self.completed_ms is not None else now_ms
        return end - self.start_ms
