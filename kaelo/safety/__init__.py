"""Safety and identity enforcement for tutor responses."""

from .engine import SafetyCheckResult, SafetyEngine, default_rules
from .facts import SessionFactLedger, contradicts
from .identity import (
    SYSTEM_INSTRUCTION,
    enforce_identity,
    get_system_instruction,
    validate_response,
)
from .rules import (
    ContradictionRule,
    ForbiddenPhraseRule,
    LengthRule,
    SafetyRule,
    Severity,
    ToneRule,
)

__all__ = [
    "SafetyEngine",
    "SafetyCheckResult",
    "default_rules",
    "SessionFactLedger",
    "contradicts",
    "SYSTEM_INSTRUCTION",
    "enforce_identity",
    "get_system_instruction",
    "validate_response",
    "SafetyRule",
    "Severity",
    "ContradictionRule",
    "ToneRule",
    "LengthRule",
    "ForbiddenPhraseRule",
]
