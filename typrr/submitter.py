"""
Packages a completed session into an attempt submission and sends it once.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Optional

import httpx

from .clock import Clock, SYSTEM_CLOCK
from .events import Session
from .input_controller import InputController
from . import metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptSubmission:
    """Wire payload for POST /api/attempt. Built once per completed session."""
    snippet_id: Optional[str]
    mode: str
    elapsed_ms: int
    wpm: float
    accuracy: float
    keystrokes: int
    start_time: int

    def to_payload(self) -> dict:
        return asdict(self)


AttemptSink = Callable[[AttemptSubmission], Any]


class HttpAttemptSink:
    """Posts submissions to a running server."""

    def __init__(self, base_url: str, token: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def __call__(self, submission: AttemptSubmission) -> dict:
        response = httpx.post(
            f"{self.base_url}/api/attempt",
            json=submission.to_payload(),
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.timeout,
        )
        body = response.json()
        if response.is_error:
            logger.warning(f"Attempt rejected ({response.status_code}): {body.get('error')}")
        return body


class AttemptSubmitter:
    """
    Watches a controller for completion and submits exactly once.

    The latch survives repeated completion notifications; it is re-armed only
    by reset(), which callers use when a new target is bound.
    """

    def __init__(
        self,
        controller: InputController,
        mode: str,
        sink: AttemptSink,
        clock: Clock = SYSTEM_CLOCK,
    ):
        self.controller = controller
        self.mode = mode
        self.sink = sink
        self.clock = clock
        self.submitted = False
        self.submission: Optional[AttemptSubmission] = None
        self.response: Any = None
        controller.set_complete_callback(self.on_complete)

    def reset(self):
        self.submitted = False
        self.submission = None
        self.response = None

    def build(self, session: Session) -> AttemptSubmission:
        stats = metrics.snapshot(session, self.clock)
        return AttemptSubmission(
            snippet_id=self.controller.target.snippet_id,
            mode=self.mode,
            elapsed_ms=int(round(stats.elapsed_ms)),
            wpm=round(stats.wpm, 2),
            accuracy=round(stats.accuracy if stats.accuracy is not None else 0.0, 2),
            keystrokes=session.total_keys_pressed,
            start_time=session.start_epoch_ms,
        )

    def on_complete(self, session: Session):
        if self.submitted or not session.complete:
            return
        self.submitted = True
        self.submission = self.build(session)
        logger.info(
            f"Submitting {self.mode} attempt: {self.submission.wpm:.1f} wpm, "
            f"{self.submission.accuracy:.1f}% in {self.submission.elapsed_ms} ms"
        )
        self.response = self.sink(self.submission)
