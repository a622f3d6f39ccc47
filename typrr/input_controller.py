"""
InputController: the only writer of typing-session state.

Edits arrive either as whole-buffer replacements (what a textarea reports) or
as discrete key presses. Edits that would run past the end of the target or
step over an expected line break are dropped silently; that is ordinary
typing behaviour, not an error.
"""

import logging
from typing import Callable, Optional

from .clock import Clock, SYSTEM_CLOCK
from .config import TAB_INSERT
from .events import EventType, KeystrokeEvent, Session, TargetText, normalize_newlines

logger = logging.getLogger(__name__)

SessionCallback = Callable[[Session], None]


class InputController:
    def __init__(
        self,
        target: TargetText,
        clock: Clock = SYSTEM_CLOCK,
        on_start: Optional[SessionCallback] = None,
        on_complete: Optional[SessionCallback] = None,
    ):
        self.clock = clock
        self._on_start = on_start
        self._on_complete = on_complete
        self.bind(target)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def bind(self, target: TargetText):
        """Bind a new target. The previous session is discarded outright."""
        self.target = target
        self.session = Session()
        self._selection_end: Optional[int] = None
        logger.debug(f"[Controller] Bound target ({target.length} chars)")

    def set_start_callback(self, callback: Optional[SessionCallback]):
        self._on_start = callback

    def set_complete_callback(self, callback: Optional[SessionCallback]):
        self._on_complete = callback

    @property
    def input(self) -> str:
        return self.session.input

    @property
    def caret(self) -> int:
        return self.session.caret

    def is_complete(self) -> bool:
        return self.session.complete

    def select(self, start: int, end: Optional[int] = None):
        """Move the caret, optionally selecting input[start:end]."""
        n = len(self.session.input)
        start = max(0, min(start, n))
        self.session.caret = start
        if end is not None and end > start:
            self._selection_end = min(end, n)
        else:
            self._selection_end = None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def on_raw_edit(self, new_value: str, caret: Optional[int] = None) -> bool:
        """
        Replace the buffer with new_value.

        caret, when known, is the caret position after the edit; characters
        just before it are the ones that were inserted. Returns False when the
        edit was rejected.
        """
        s = self.session
        if s.complete:
            return False

        new_value = normalize_newlines(new_value)
        if len(new_value) > self.target.length:
            return False

        prev_length = len(s.input)
        added = len(new_value) - prev_length
        insert_start = self._insert_start(new_value, added, caret)

        if added > 0 and self._skips_newline(new_value, insert_start, added):
            return False

        if prev_length == 0 and len(new_value) > 0 and not s.started:
            self._start()

        if added > 0:
            s.total_keys_pressed += added
            s.total_mistakes += sum(
                1 for i in range(insert_start, insert_start + added)
                if new_value[i] != self.target.content[i]
            )

        s.input = new_value
        if caret is None:
            caret = insert_start + added if added > 0 else min(insert_start, len(new_value))
        s.caret = max(0, min(caret, len(new_value)))
        self._selection_end = None

        if len(s.input) == self.target.length and s.input == self.target.content:
            self._complete()
        return True

    def on_char_key(self, ch: str) -> bool:
        """A printable key. Suppressed where the target expects a line break."""
        if self.target.expects_newline_at(self.session.caret):
            return False
        return self._insert(ch)

    def on_space_key(self) -> bool:
        return self.on_char_key(" ")

    def on_tab_key(self) -> bool:
        """Insert two spaces instead of a tab character."""
        return self._insert(TAB_INSERT)

    def on_enter_key(self) -> bool:
        """
        Insert a line break plus the target's indentation for the next line.

        Only valid where the target itself has a line break at the caret.
        """
        caret = self.session.caret
        if not self.target.expects_newline_at(caret):
            return False
        return self._insert("\n" + self.target.indent_after(caret + 1))

    def on_backspace(self) -> bool:
        s = self.session
        if self._selection_end is not None:
            return self._insert("")
        if s.caret == 0:
            return False
        return self.on_raw_edit(s.input[:s.caret - 1] + s.input[s.caret:], caret=s.caret - 1)

    def on_key(self, key: str) -> bool:
        """Dispatch a key name as reported by a browser KeyboardEvent."""
        if key == "Tab":
            return self.on_tab_key()
        if key == "Enter":
            return self.on_enter_key()
        if key == "Backspace":
            return self.on_backspace()
        if key in (" ", "Space"):
            return self.on_space_key()
        if len(key) == 1 and key.isprintable():
            return self.on_char_key(key)
        return False

    def handle(self, event: KeystrokeEvent) -> bool:
        """Apply a keystroke event from a stream."""
        if event.event_type == EventType.EDIT:
            return self.on_raw_edit(event.value)
        if event.event_type == EventType.CHAR_ADD:
            return self.on_key(event.char)
        if event.event_type == EventType.CHAR_DELETE:
            return self.on_backspace()
        if event.event_type == EventType.TAB:
            return self.on_tab_key()
        if event.event_type == EventType.ENTER:
            return self.on_enter_key()
        return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _insert(self, text: str) -> bool:
        s = self.session
        start = s.caret
        end = self._selection_end if self._selection_end is not None else start
        next_value = s.input[:start] + text + s.input[end:]
        return self.on_raw_edit(next_value, caret=start + len(text))

    def _insert_start(self, new_value: str, added: int, caret: Optional[int]) -> int:
        if caret is not None and added > 0 and added <= caret <= len(new_value):
            return caret - added
        # No usable caret hint: the edit starts where the old and new buffers diverge
        old = self.session.input
        p = 0
        limit = min(len(old), len(new_value))
        while p < limit and old[p] == new_value[p]:
            p += 1
        return p

    def _skips_newline(self, new_value: str, start: int, added: int) -> bool:
        content = self.target.content
        for i in range(start, start + added):
            if content[i] == "\n" and new_value[i] != "\n":
                return True
        return False

    def _start(self):
        s = self.session
        s.started = True
        s.start_ms = self.clock.monotonic_ms()
        s.start_epoch_ms = self.clock.epoch_ms()
        logger.debug("[Controller] Session started")
        if self._on_start:
            self._on_start(s)

    def _complete(self):
        s = self.session
        if s.complete:
            return
        s.complete = True
        s.completed_ms = self.clock.monotonic_ms()
        logger.debug(
            f"[Controller] Session complete: {s.total_keys_pressed} keys, {s.total_mistakes} mistakes"
        )
        if self._on_complete:
            self._on_complete(s)
