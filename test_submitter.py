"""
Tests for attempt packaging and the one-shot submission latch.
Run with: pytest test_submitter.py
"""

import httpx

from typrr.clock import FakeClock
from typrr.events import TargetText
from typrr.input_controller import InputController
from typrr.submitter import AttemptSubmission, AttemptSubmitter, HttpAttemptSink


def make_submitter(content="ab", snippet_id="s1", mode="practice"):
    clock = FakeClock(epoch_ms=1_700_000_000_000)
    controller = InputController(TargetText.from_snippet(content, snippet_id), clock=clock)
    sent = []
    submitter = AttemptSubmitter(controller, mode, sent.append, clock=clock)
    return clock, controller, submitter, sent


def test_submits_once_on_completion():
    clock, controller, submitter, sent = make_submitter()
    controller.on_key("a")
    clock.advance(1000)
    assert sent == []
    controller.on_key("b")

    assert len(sent) == 1
    submission = sent[0]
    assert submission == AttemptSubmission(
        snippet_id="s1",
        mode="practice",
        elapsed_ms=1000,
        wpm=24.0,
        accuracy=100.0,
        keystrokes=2,
        start_time=1_700_000_000_000,
    )


def test_latch_blocks_duplicate_sends():
    clock, controller, submitter, sent = make_submitter()
    controller.on_key("a")
    clock.advance(500)
    controller.on_key("b")
    submitter.on_complete(controller.session)
    submitter.on_complete(controller.session)
    assert len(sent) == 1
    assert submitter.submitted


def test_incomplete_session_is_never_sent():
    clock, controller, submitter, sent = make_submitter()
    controller.on_key("a")
    submitter.on_complete(controller.session)
    assert sent == []
    assert not submitter.submitted


def test_reset_rearms_for_new_target():
    clock, controller, submitter, sent = make_submitter()
    controller.on_key("a")
    controller.on_key("b")
    controller.bind(TargetText.from_snippet("cd", "s2"))
    submitter.reset()
    controller.on_key("c")
    clock.advance(2000)
    controller.on_key("d")
    assert [s.snippet_id for s in sent] == ["s1", "s2"]


def test_accuracy_reflects_corrected_mistakes():
    clock, controller, submitter, sent = make_submitter("abcd")
    for key in ["a", "x", "Backspace", "b", "c", "d"]:
        clock.advance(300)
        controller.on_key(key)
    assert sent[0].keystrokes == 5
    assert sent[0].accuracy == 80.0


def test_payload_matches_wire_contract():
    submission = AttemptSubmission(None, "tricky_chars", 1200, 40.0, 97.5, 30, 1)
    assert submission.to_payload() == {
        "snippet_id": None,
        "mode": "tricky_chars",
        "elapsed_ms": 1200,
        "wpm": 40.0,
        "accuracy": 97.5,
        "keystrokes": 30,
        "start_time": 1,
    }


def test_http_sink_posts_with_bearer_token(monkeypatch):
    calls = []

    def fake_post(url, json, headers, timeout):
        calls.append((url, json, headers))
        request = httpx.Request("POST", url)
        return httpx.Response(200, json={"success": True, "attempt_id": 1, "xp_earned": 5}, request=request)

    monkeypatch.setattr(httpx, "post", fake_post)
    sink = HttpAttemptSink("http://localhost:8000/", "tok")
    body = sink(AttemptSubmission("s1", "practice", 5000, 50.0, 99.0, 40, 123))

    assert body["attempt_id"] == 1
    url, payload, headers = calls[0]
    assert url == "http://localhost:8000/api/attempt"
    assert payload["snippet_id"] == "s1"
    assert headers["Authorization"] == "Bearer tok"
