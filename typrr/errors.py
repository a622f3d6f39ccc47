"""
Server-side error taxonomy.

Each error carries the HTTP status and the message the caller is allowed to
see. Anti-cheat rejections keep their real reason private.
"""


class TyprrError(Exception):
    status_code = 500
    message = "server error"

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationError(TyprrError):
    status_code = 401
    message = "unauthorized"


class RateLimitError(TyprrError):
    status_code = 429
    message = "rate limited"


class AttemptRejected(TyprrError):
    """Anti-cheat rejection. reason is for server logs only."""
    status_code = 400
    message = "invalid input detected"

    def __init__(self, reason: str):
        super().__init__()
        self.reason = reason


class InvalidDailySnippet(TyprrError):
    status_code = 400
    message = "invalid daily snippet"


class DailyAttemptsExhausted(TyprrError):
    status_code = 403
    message = "daily attempts exhausted"


class StorageError(TyprrError):
    status_code = 500
    message = "failed to store attempt"
