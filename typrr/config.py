"""
Runtime configuration.

Values that operators may tune come from the environment (a local .env file is
honoured). Anti-cheat thresholds are fixed here on purpose.
"""

import os

from dotenv import load_dotenv

load_dotenv()


# =============================================================================
# Environment
# =============================================================================

DATABASE_URL = os.getenv("TYPRR_DATABASE_URL", "sqlite:///typrr.db")
API_TOKENS = os.getenv("TYPRR_API_TOKENS", "")  # "token:user_id,token2:user_id2"
RATE_LIMIT = int(os.getenv("TYPRR_RATE_LIMIT", "10"))
RATE_WINDOW_SECONDS = float(os.getenv("TYPRR_RATE_WINDOW_SECONDS", "60"))
LOG_LEVEL = os.getenv("TYPRR_LOG_LEVEL", "INFO")


# =============================================================================
# Typing session
# =============================================================================

CHARS_PER_WORD = 5
TAB_INSERT = "  "  # Tab inserts two spaces
INDENT_CHARS = (" ", "\t")


# =============================================================================
# Attempt validation
# =============================================================================

MODES = ("practice", "daily", "tricky_chars")
SNIPPETLESS_MODES = ("tricky_chars",)

MIN_ELAPSED_MS = 1000
MAX_ELAPSED_MS = 600_000
MIN_WPM = 0.0
MAX_WPM = 300.0
MIN_ACCURACY = 0.0
MAX_ACCURACY = 100.0

MIN_TIME_FLOOR_MS = 1000
MS_FOR_FIVE_WORDS_AT_1_WPM = 300_000  # 5 words at 1 wpm
ZERO_WPM_EXPECTED_MS = 10_000
TIME_WPM_TOLERANCE = 0.7
MAX_CLOCK_DRIFT_MS = 5000

# Monitoring only, never a gate
SUSPICIOUS_WPM = 200.0
SUSPICIOUS_ACCURACY = 99.5
SUSPICIOUS_KEYSTROKE_RATIO = 0.9


# =============================================================================
# Daily challenge
# =============================================================================

DAILY_MODE = "daily"
MAX_DAILY_ATTEMPTS = 3


# =============================================================================
# XP
# =============================================================================

XP_BASE = 5
XP_BASE_TRICKY = 8
XP_MIN_TRICKY = 5
XP_PERFORMANCE_DIVISOR = 50.0
