"""
Pydantic models for the HTTP API.

The request model only checks shape and types. Mode and range checks belong to
the attempt validator so that their failures stay generic to the caller.
"""

from typing import Optional

from pydantic import BaseModel


class AttemptRequest(BaseModel):
    snippet_id: Optional[str] = None
    mode: str
    elapsed_ms: int
    wpm: float
    accuracy: float
    keystrokes: int = 0
    start_time: Optional[int] = None  # epoch ms; receipt time when absent


class AttemptResponse(BaseModel):
    success: bool = True
    attempt_id: int
    xp_earned: int


class ErrorResponse(BaseModel):
    error: str


class DailyAttemptsRemaining(BaseModel):
    attempts_remaining: int
    attempts_used: int
    max_attempts: int


class ServerStatus(BaseModel):
    status: str
    active_sessions: int
    uptime_seconds: float
