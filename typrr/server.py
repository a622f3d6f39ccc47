"""
HTTP and WebSocket server for the typing engine.

API Routes:
- POST /api/attempt - Validate and record a completed attempt
- GET /api/daily-attempts-remaining - Daily attempts left for the caller
- WebSocket /ws/session - Live typing session
- GET /health - Health check
- GET /api/status - Server status

WebSocket Protocol (JSON):
- Frontend -> Backend: {"type": "start_session", "snippet_id": "...", "content": "...", "mode": "practice"}
- Frontend -> Backend: {"type": "edit", "value": "...", "caret": 3}
- Frontend -> Backend: {"type": "key", "key": "Tab|Enter|Backspace| |x"}
- Frontend -> Backend: {"type": "state"}
- Backend -> Frontend: {"event": "connected|session_started|update|session_complete|error", ...}
"""

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .auth import Authenticator, StaticTokenAuthenticator
from .clock import Clock, SYSTEM_CLOCK
from .diff import classify
from .errors import TyprrError
from .events import TargetText
from .input_controller import InputController
from .metrics import snapshot
from .ratelimit import RateLimiter
from .schemas import (
    AttemptRequest,
    AttemptResponse,
    DailyAttemptsRemaining,
    ServerStatus,
)
from .service import AttemptService
from .store import AttemptStore, open_store
from .submitter import AttemptSubmission, AttemptSubmitter

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


# =============================================================================
# Live typing sessions
# =============================================================================

class LiveSession:
    """One websocket's typing session: controller plus one-shot submitter."""

    def __init__(self, target: TargetText, mode: str, clock: Clock):
        self.clock = clock
        self.controller = InputController(target, clock=clock)
        self.completed: Optional[AttemptSubmission] = None
        self.submitter = AttemptSubmitter(self.controller, mode, self._on_submission, clock=clock)

    def _on_submission(self, submission: AttemptSubmission):
        self.completed = submission

    def state(self, accepted: bool = True) -> dict:
        session = self.controller.session
        cells = classify(self.controller.target.content, session.input)
        return {
            "event": "update",
            "accepted": accepted,
            "input": session.input,
            "caret": session.caret,
            "complete": session.complete,
            "stats": snapshot(session, self.clock).to_dict(),
            "classification": [c.status.value for c in cells],
            "neutral": [c.index for c in cells if c.leading_indent],
        }


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def current_user(request: Request, authorization: Optional[str] = Header(default=None)) -> str:
    """Resolved before the body is validated, so 401 wins over 400."""
    return request.app.state.authenticator.authenticate(authorization)


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    store: Optional[AttemptStore] = None,
    authenticator: Optional[Authenticator] = None,
    clock: Clock = SYSTEM_CLOCK,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """
    Build the application. Collaborators left as None are created from the
    environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = app.state.store is None
        if owns_store:
            logger.info(f"Opening attempt store: {config.DATABASE_URL.split('@')[-1]}")
            app.state.store = open_store(config.DATABASE_URL)
        if app.state.authenticator is None:
            app.state.authenticator = StaticTokenAuthenticator.from_string(config.API_TOKENS)
        if app.state.rate_limiter is None:
            app.state.rate_limiter = RateLimiter(config.RATE_LIMIT, config.RATE_WINDOW_SECONDS)
        app.state.service = AttemptService(
            app.state.store, clock=app.state.clock, rate_limiter=app.state.rate_limiter
        )

        yield  # Server is running here

        if owns_store:
            app.state.store.close()
            app.state.store = None
            logger.info("Attempt store released.")

    app = FastAPI(
        title="Typrr Attempt API",
        description="Live typing sessions and anti-cheat attempt recording",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.authenticator = authenticator
    app.state.clock = clock
    app.state.rate_limiter = rate_limiter
    app.state.service = None
    app.state.started_at = time.time()
    app.state.active_sessions = {}

    @app.exception_handler(TyprrError)
    async def typrr_error_handler(request: Request, exc: TyprrError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Malformed attempt payload: {exc.errors()}")
        return _error(400, "missing fields")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Attempt handler error: {exc}")
        return _error(500, "server error")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.get("/api/status", response_model=ServerStatus)
    async def get_status():
        return ServerStatus(
            status="running",
            active_sessions=len(app.state.active_sessions),
            uptime_seconds=time.time() - app.state.started_at,
        )

    @app.post("/api/attempt", response_model=AttemptResponse)
    def record_attempt(body: AttemptRequest, user_id: str = Depends(current_user)):
        outcome = app.state.service.record(user_id, body)
        return AttemptResponse(success=True, attempt_id=outcome.attempt_id, xp_earned=outcome.xp_earned)

    @app.get("/api/daily-attempts-remaining", response_model=DailyAttemptsRemaining)
    def daily_attempts_remaining(user_id: str = Depends(current_user)):
        service: AttemptService = app.state.service
        used = service.daily_attempts_used(user_id)
        max_attempts = service.quota.max_allowed
        return DailyAttemptsRemaining(
            attempts_remaining=max(0, max_attempts - used),
            attempts_used=used,
            max_attempts=max_attempts,
        )

    @app.websocket("/ws/session")
    async def websocket_session(websocket: WebSocket):
        """
        Live typing over a websocket.

        Every accepted or rejected edit is answered with an "update" carrying
        the buffer, caret, stats and per-character classification. When the
        target is reproduced exactly a "session_complete" follows with the
        submission payload, which the client posts to /api/attempt.
        """
        await websocket.accept()
        session_id = f"session_{int(time.time() * 1000)}_{id(websocket)}"
        live: Optional[LiveSession] = None
        logger.info(f"New WebSocket connection: {session_id}")

        try:
            await websocket.send_json({"event": "connected", "session_id": session_id})

            while True:
                data = await websocket.receive_text()

                try:
                    message = json.loads(data)
                    if not isinstance(message, dict):
                        raise json.JSONDecodeError("expected an object", data, 0)
                    msg_type = message.get("type", "")

                    if msg_type == "start_session":
                        content = message.get("content")
                        if not isinstance(content, str) or not content:
                            await websocket.send_json({"event": "error", "message": "content required"})
                            continue
                        target = TargetText.from_snippet(content, message.get("snippet_id"))
                        live = LiveSession(target, message.get("mode", "practice"), app.state.clock)
                        app.state.active_sessions[session_id] = live
                        await websocket.send_json({
                            "event": "session_started",
                            "session_id": session_id,
                            "length": target.length,
                        })

                    elif live is None:
                        await websocket.send_json({"event": "error", "message": "no active session"})

                    elif msg_type == "edit":
                        caret = message.get("caret")
                        accepted = live.controller.on_raw_edit(
                            str(message.get("value", "")), caret=caret if isinstance(caret, int) else None
                        )
                        await websocket.send_json(live.state(accepted))

                    elif msg_type == "key":
                        accepted = live.controller.on_key(str(message.get("key", "")))
                        await websocket.send_json(live.state(accepted))

                    elif msg_type == "state":
                        await websocket.send_json(live.state())

                    else:
                        await websocket.send_json({
                            "event": "error",
                            "message": f"Unknown message type: {msg_type}",
                        })

                    if live is not None and live.completed is not None:
                        await websocket.send_json({
                            "event": "session_complete",
                            "submission": live.completed.to_payload(),
                        })
                        live.completed = None

                except json.JSONDecodeError:
                    await websocket.send_json({"event": "error", "message": "Invalid JSON"})

        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: {session_id}")
        finally:
            app.state.active_sessions.pop(session_id, None)

    return app


app = create_app()
