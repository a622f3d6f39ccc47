"""
Tests for the input controller state machine.
Run with: pytest test_input_controller.py
"""

import random

from typrr.clock import FakeClock
from typrr.events import EventType, KeystrokeEvent, TargetText
from typrr.input_controller import InputController
from typrr.metrics import accuracy, wpm


def controller_for(content, clock=None, **kwargs):
    return InputController(TargetText.from_snippet(content), clock=clock or FakeClock(), **kwargs)


def type_keys(controller, keys):
    return [controller.on_key(k) for k in keys]


def test_rejects_edits_past_target_length():
    c = controller_for("ab")
    assert c.on_raw_edit("abc") is False
    assert c.input == ""
    assert not c.session.started


def test_start_transition_happens_once():
    clock = FakeClock(epoch_ms=5000, monotonic_ms=100)
    starts = []
    c = controller_for("abc", clock=clock, on_start=starts.append)

    assert c.on_raw_edit("a")
    assert c.session.started
    assert c.session.start_ms == 100
    assert c.session.start_epoch_ms == 5000

    clock.advance(1000)
    c.on_raw_edit("")
    c.on_raw_edit("a")
    assert c.session.start_ms == 100
    assert len(starts) == 1


def test_counters_are_ratchets():
    c = controller_for("abc")
    c.on_raw_edit("x")
    assert (c.session.total_keys_pressed, c.session.total_mistakes) == (1, 1)
    c.on_raw_edit("")
    assert (c.session.total_keys_pressed, c.session.total_mistakes) == (1, 1)
    c.on_raw_edit("a")
    c.on_raw_edit("ab")
    assert (c.session.total_keys_pressed, c.session.total_mistakes) == (3, 1)


def test_counters_monotonic_under_random_edits():
    rng = random.Random(7)
    target = "for x in y:\n    print(x)"
    c = controller_for(target)
    last = (0, 0)
    for _ in range(500):
        roll = rng.random()
        if roll < 0.25:
            c.on_backspace()
        elif roll < 0.35:
            c.on_enter_key()
        elif roll < 0.4:
            c.on_tab_key()
        else:
            c.on_key(rng.choice("forxiny:pt() "))
        keys, mistakes = c.session.total_keys_pressed, c.session.total_mistakes
        assert keys >= last[0] and mistakes >= last[1]
        assert mistakes <= keys
        assert len(c.input) <= len(target)
        last = (keys, mistakes)


def test_multi_character_edit_counts_each_character():
    c = controller_for("abc")
    c.on_raw_edit("axc")
    assert c.session.total_keys_pressed == 3
    assert c.session.total_mistakes == 1


def test_newline_cannot_be_skipped():
    c = controller_for("a\nb")
    assert c.on_key("a")
    assert c.on_space_key() is False
    assert c.on_key("b") is False
    assert c.on_raw_edit("a b") is False
    assert c.input == "a"

    assert c.on_enter_key()
    assert c.input == "a\n"
    assert c.on_key("b")
    assert c.is_complete()


def test_enter_is_noop_unless_target_breaks_line():
    c = controller_for("ab")
    assert c.on_enter_key() is False
    assert c.input == ""
    assert not c.session.started


def test_enter_copies_target_indentation():
    c = controller_for("if x:\n\t  y")
    type_keys(c, "if x:")
    assert c.on_enter_key()
    assert c.input == "if x:\n\t  "
    assert c.caret == 9
    assert c.session.total_mistakes == 0


def test_tab_inserts_two_spaces():
    c = controller_for("    x")
    assert c.on_tab_key()
    assert c.input == "  "
    assert c.caret == 2
    assert c.session.started
    assert c.on_tab_key()
    assert c.on_key("x")
    assert c.is_complete()


def test_tab_respects_length_ceiling():
    c = controller_for("a")
    assert c.on_tab_key() is False
    assert c.input == ""
    assert not c.session.started


def test_insertion_at_caret():
    c = controller_for("abc")
    type_keys(c, "ac")
    assert c.session.total_mistakes == 1
    c.select(1)
    assert c.on_key("b")
    assert c.input == "abc"
    assert c.caret == 2
    assert c.session.total_keys_pressed == 3
    assert c.session.total_mistakes == 1
    assert c.is_complete()


def test_caret_hint_past_buffer_end_is_ignored():
    c = controller_for("abcdef")
    assert c.on_raw_edit("ab", caret=9)
    assert c.input == "ab"
    assert c.caret == 2
    assert (c.session.total_keys_pressed, c.session.total_mistakes) == (2, 0)

    assert c.on_raw_edit("abX", caret=3)
    assert c.input == "abX"
    assert c.session.total_mistakes == 1


def test_space_key_name():
    c = controller_for("a b\nc")
    type_keys(c, "a")
    assert c.on_key("Space")
    assert c.input == "a "
    type_keys(c, "b")
    assert c.on_key("Space") is False
    assert c.input == "a b"


def test_backspace():
    c = controller_for("ab")
    c.on_key("x")
    assert c.on_backspace()
    assert c.input == ""
    assert c.on_backspace() is False
    assert (c.session.total_keys_pressed, c.session.total_mistakes) == (1, 1)


def test_crlf_edit_is_normalized():
    c = controller_for("a\nb")
    assert c.on_raw_edit("a\r\nb")
    assert c.is_complete()


def test_completion_is_terminal_and_fires_once():
    completions = []
    c = controller_for("ab", on_complete=completions.append)
    type_keys(c, "ab")
    assert c.is_complete()
    assert c.on_backspace() is False
    assert c.on_raw_edit("a") is False
    assert c.on_key("x") is False
    assert c.is_complete()
    assert c.input == "ab"
    assert len(completions) == 1


def test_handle_dispatches_events():
    c = controller_for("a\n  b")
    assert c.handle(KeystrokeEvent(EventType.CHAR_ADD, char="a"))
    assert c.handle(KeystrokeEvent(EventType.ENTER))
    assert c.input == "a\n  "
    assert c.handle(KeystrokeEvent(EventType.CHAR_ADD, char="x"))
    assert c.handle(KeystrokeEvent(EventType.CHAR_DELETE))
    assert c.handle(KeystrokeEvent(EventType.EDIT, value="a\n  b"))
    assert c.is_complete()
    assert c.handle(KeystrokeEvent(EventType.END)) is False


def test_bind_discards_session():
    c = controller_for("ab")
    c.on_key("a")
    c.bind(TargetText.from_snippet("xyz"))
    assert c.input == ""
    assert c.session.total_keys_pressed == 0
    assert not c.session.started


def test_end_to_end_with_tab_indentation():
    clock = FakeClock()
    c = controller_for("def f():\n    pass", clock=clock)
    for ch in "def f():":
        assert c.on_key(ch)
        clock.advance(200)
    assert c.on_raw_edit(c.input + "\n")
    clock.advance(200)
    assert c.on_tab_key()
    assert c.on_tab_key()
    for ch in "pass":
        clock.advance(200)
        assert c.on_key(ch)

    assert c.is_complete()
    assert accuracy(c.session) == 100.0
    assert wpm(c.session, clock) > 0


def test_end_to_end_with_enter_indentation():
    clock = FakeClock()
    c = controller_for("def f():\n    pass", clock=clock)
    for key in list("def f():") + ["Enter"] + list("pass"):
        clock.advance(150)
        assert c.on_key(key)
    assert c.is_complete()
    assert accuracy(c.session) == 100.0
    assert wpm(c.session, clock) > 0
