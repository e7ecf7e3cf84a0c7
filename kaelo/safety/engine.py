"""Safety engine implementation.

This module provides the SafetyEngine class that validates capability
responses against tone, contradiction, length and forbidden-phrase rules.
"""

import logging

from pydantic import BaseModel, Field

from ..core.config import Settings, settings
from ..core.domain.capabilities import CapabilityResponse
from .facts import SessionFactLedger
from .rules import (
    ContradictionRule,
    ForbiddenPhraseRule,
    LengthRule,
    SafetyRule,
    Severity,
    ToneRule,
)

logger = logging.getLogger(__name__)


class SafetyCheckResult(BaseModel):
    """Outcome of a safety check. ``safe`` is true iff there are no issues."""

    safe: bool = True
    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def default_rules(config: Settings | None = None) -> list[SafetyRule]:
    """Rule set built from application settings."""
    config = config or settings
    return [
        ContradictionRule(),
        ToneRule(),
        LengthRule(config.max_response_length),
        ForbiddenPhraseRule(config.forbidden_phrases),
    ]


class SafetyEngine:
    """Validates responses before they reach the learner.

    The engine itself holds no session state: contradiction checks read the
    ledger the caller passes in.
    """

    def __init__(self, rules: list[SafetyRule] | None = None):
        """Initialize the safety engine.

        Args:
            rules: Rules to evaluate instead of the defaults
        """
        self.rules = rules if rules is not None else default_rules()

    def check_response(
        self,
        response: CapabilityResponse,
        ledger: SessionFactLedger | None = None
    ) -> SafetyCheckResult:
        """Check a capability response.

        Every rule is evaluated; nothing short-circuits.

        Args:
            response: Response to validate
            ledger: Facts asserted earlier in the session

        Returns:
            SafetyCheckResult with issues and warnings
        """
        return self.check_text(response.text, ledger)

    def check_text(
        self,
        text: str,
        ledger: SessionFactLedger | None = None
    ) -> SafetyCheckResult:
        issues: list[str] = []
        warnings: list[str] = []

        for rule in self.rules:
            findings = rule.evaluate(text, ledger)
            if not findings:
                continue
            if rule.severity == Severity.WARNING:
                warnings.extend(findings)
            else:
                issues.extend(findings)

        result = SafetyCheckResult(safe=not issues, issues=issues, warnings=warnings)

        if not result.safe:
            session = ledger.session_id if ledger else "unknown"
            logger.info(f"Safety check failed for session {session}: {issues}")

        return result

    def add_rule(self, rule: SafetyRule) -> None:
        """Add a rule to the engine."""
        self.rules.append(rule)
        logger.info(f"Added safety rule: {rule.name}")

    def remove_rule(self, rule_name: str) -> bool:
        """Remove a rule by name.

        Returns:
            True if a rule was removed
        """
        initial_count = len(self.rules)
        self.rules = [rule for rule in self.rules if rule.name != rule_name]
        removed = len(self.rules) < initial_count

        if removed:
            logger.info(f"Removed safety rule: {rule_name}")

        return removed
