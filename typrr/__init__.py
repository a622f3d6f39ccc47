# Typing-assessment engine: live input evaluation and server-side attempt validation

__version__ = "1.0.0"

from .events import EventType, KeystrokeEvent, Session, TargetText
from .diff import CharStatus, CharacterClassification, classify, is_leading_indent
from .input_controller import InputController
from .metrics import LiveStats, accuracy, snapshot, wpm
from .submitter import AttemptSubmission, AttemptSubmitter, HttpAttemptSink
from .validator import AttemptValidator, ValidatedAttempt, ValidationResult
from .quota import DailyQuotaGuard
