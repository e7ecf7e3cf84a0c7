"""Safety rules applied to every capability response.

Each rule inspects the learner-facing text and reports findings. A rule's
severity decides whether its findings are hard issues or warnings.
"""

import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable

from .facts import SessionFactLedger, contradicts


class Severity(str, Enum):
    """How a rule's findings affect the safety verdict."""

    ISSUE = "issue"      # Makes the response unsafe
    WARNING = "warning"  # Reported only


class SafetyRule(ABC):
    """Abstract base class for safety rules."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the rule name for logging and debugging."""
        pass

    @property
    def severity(self) -> Severity:
        return Severity.ISSUE

    @abstractmethod
    def evaluate(self, text: str, ledger: SessionFactLedger | None) -> list[str]:
        """Evaluate the rule against response text.

        Args:
            text: Learner-facing response text
            ledger: Session facts, if the caller tracks them

        Returns:
            Findings, empty when the rule passes
        """
        pass


class ContradictionRule(SafetyRule):
    """Flags statements that contradict facts asserted earlier in the session."""

    @property
    def name(self) -> str:
        return "contradiction"

    def evaluate(self, text: str, ledger: SessionFactLedger | None) -> list[str]:
        if ledger is None:
            return []
        return [
            f"Contradicts previous fact: {fact}"
            for fact in ledger.facts
            if contradicts(text, fact)
        ]


class ToneRule(SafetyRule):
    """Flags condescending language and negative framing."""

    CONDESCENDING_PATTERNS = (
        r"\bobviously\b",
        r"\bclearly\b",
        r"\byou should know\b",
        r"\beveryone knows\b",
    )

    NEGATIVE_PATTERNS = (
        r"\byou are wrong\b",
        r"\bthat's incorrect\b",
        r"\byou failed\b",
        r"\byou can't\b",
    )

    def __init__(self) -> None:
        self._condescending = [re.compile(p, re.IGNORECASE) for p in self.CONDESCENDING_PATTERNS]
        self._negative = [re.compile(p, re.IGNORECASE) for p in self.NEGATIVE_PATTERNS]

    @property
    def name(self) -> str:
        return "tone"

    def evaluate(self, text: str, ledger: SessionFactLedger | None) -> list[str]:
        issues = []

        # One finding per category
        if any(pattern.search(text) for pattern in self._condescending):
            issues.append("Contains potentially condescending language")

        if any(pattern.search(text) for pattern in self._negative):
            issues.append("Contains negative framing - should use positive language")

        return issues


class LengthRule(SafetyRule):
    """Warns when a response exceeds the maximum length."""

    def __init__(self, max_length: int):
        self.max_length = max_length

    @property
    def name(self) -> str:
        return "length"

    @property
    def severity(self) -> Severity:
        return Severity.WARNING

    def evaluate(self, text: str, ledger: SessionFactLedger | None) -> list[str]:
        if len(text) > self.max_length:
            return [f"Response too long ({len(text)} chars, max {self.max_length})"]
        return []


class ForbiddenPhraseRule(SafetyRule):
    """Flags any phrase from the configured block-list."""

    def __init__(self, phrases: Iterable[str]):
        self.phrases = [phrase for phrase in phrases if phrase]

    @property
    def name(self) -> str:
        return "forbidden_phrases"

    def evaluate(self, text: str, ledger: SessionFactLedger | None) -> list[str]:
        lowered = text.lower()
        return [
            f'Contains forbidden phrase: "{phrase}"'
            for phrase in self.phrases
            if phrase.lower() in lowered
        ]
