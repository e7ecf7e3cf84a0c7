"""Intent classification strategies.

The routing engine depends only on the ``Classifier`` interface, so the
pattern-based classifier below can be replaced by a statistical one
without touching the coordinator.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from ...core.domain.capabilities import DEFAULT_CAPABILITY, CapabilityTag, TaskType
from ...core.domain.routing import Intent, RoutingDecision

MATCH_CONFIDENCE = 0.8
DEFAULT_CONFIDENCE = 0.5


class Classifier(ABC):
    """Strategy that turns a raw message into a routing decision."""

    @abstractmethod
    def classify(
        self,
        message: str,
        context: Mapping[str, Any] | None = None
    ) -> RoutingDecision:
        """Classify a message.

        Must be pure and must always terminate with a decision.
        """
        pass


@dataclass(frozen=True)
class IntentRule:
    """One priority-ordered routing rule."""

    intent: Intent
    patterns: tuple[re.Pattern[str], ...]
    capability: CapabilityTag
    task: TaskType

    def matches(self, message: str) -> bool:
        return any(pattern.search(message) for pattern in self.patterns)


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


# Order encodes priority: the first matching rule wins.
DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        intent=Intent.SUBMIT_ANSWER,
        patterns=_compile(
            r"^(the answer is|it's|it is|i think|i believe|my answer is)",
            r"^(a\)|b\)|c\)|d\)|true|false)",
        ),
        capability=CapabilityTag.EVALUATOR,
        task=TaskType.EVALUATE,
    ),
    IntentRule(
        intent=Intent.SIGNAL_CONFUSION,
        patterns=_compile(
            r"(i don'?t (understand|get it)|confused|not sure|unclear|help)",
            r"(what\?|huh\?|i'm lost)",
        ),
        capability=CapabilityTag.CONVERSATIONAL,
        task=TaskType.TEACH,
    ),
    IntentRule(
        intent=Intent.REQUEST_EXERCISE,
        patterns=_compile(
            r"(give me|can i have|i want|generate|create).*(exercise|question|problem|practice)",
            r"(test|quiz|practice).*(me|my understanding)",
        ),
        capability=CapabilityTag.CONTENT_EXPERT,
        task=TaskType.GENERATE,
    ),
    IntentRule(
        intent=Intent.REQUEST_PLAN,
        patterns=_compile(
            r"(create|make|generate|give me).*(plan|schedule|study plan|learning plan)",
            r"(plan|schedule).*(for|to study)",
        ),
        capability=CapabilityTag.PLANNER,
        task=TaskType.PLAN,
    ),
    IntentRule(
        intent=Intent.REVIEW_MISTAKE,
        patterns=_compile(
            r"(explain|why|how).*(wrong|mistake|error|incorrect)",
            r"(what did i do wrong|why was that wrong)",
        ),
        capability=CapabilityTag.CONVERSATIONAL,
        task=TaskType.TEACH,
    ),
    IntentRule(
        intent=Intent.CHECK_PROGRESS,
        patterns=_compile(
            r"(how am i doing|my progress|my stats|my strengths|my weaknesses)",
            r"(show|analy[sz]e|review).*(progress|performance)",
        ),
        capability=CapabilityTag.ANALYZER,
        task=TaskType.ANALYZE,
    ),
    IntentRule(
        intent=Intent.ADJUST_DIFFICULTY,
        patterns=_compile(
            r"(too (easy|hard|difficult))",
            r"(make it|something|questions?|exercises?) (easier|harder|more challenging)",
        ),
        capability=CapabilityTag.DIFFICULTY_ADVISOR,
        task=TaskType.ADJUST,
    ),
    IntentRule(
        intent=Intent.NEED_MOTIVATION,
        patterns=_compile(
            r"(motivate me|i want to give up|i'm giving up|i feel stupid|i'm tired of)",
            r"(i can't do this|this is hopeless)",
        ),
        capability=CapabilityTag.MOTIVATOR,
        task=TaskType.MOTIVATE,
    ),
    IntentRule(
        intent=Intent.DIAGNOSTIC,
        patterns=_compile(
            r"(start|begin|new|first time|first session)",
            r"(i want to learn|i'm studying|i need help with)",
        ),
        capability=CapabilityTag.CONVERSATIONAL,
        task=TaskType.TEACH,
    ),
    IntentRule(
        intent=Intent.ASK_QUESTION,
        patterns=_compile(
            r"^(what|how|why|when|where|can you|explain|tell me)",
            r"\?$",
        ),
        capability=CapabilityTag.CONVERSATIONAL,
        task=TaskType.TEACH,
    ),
)


class EntityExtractor:
    """Best-effort topic and level extraction.

    Independent of the matched rule. Anything that cannot be extracted is
    simply left out of the result.
    """

    _TOPIC_PATTERNS = _compile(
        r"\b(?:about|on|regarding|topic|subject)\s+(?:the\s+)?([a-z]+(?:\s+[a-z]+){0,3})",
        r"\b(?:learn|study|studying|teach me|explain)\s+(?:about\s+)?(?:the\s+)?([a-z]+(?:\s+[a-z]+){0,3})",
    )
    _LEVEL_PATTERN = re.compile(
        r"\b(beginner|intermediate|advanced|easy|medium|hard)\b", re.IGNORECASE
    )
    _TRAILING_WORDS = {"please", "now", "today", "again", "for", "to", "me", "and", "with"}

    def extract(self, message: str) -> dict[str, Any]:
        entities: dict[str, Any] = {}

        topic = self._extract_topic(message)
        if topic:
            entities["topic"] = topic

        level_match = self._LEVEL_PATTERN.search(message)
        if level_match:
            entities["level"] = level_match.group(1).lower()

        return entities

    def _extract_topic(self, message: str) -> str | None:
        for pattern in self._TOPIC_PATTERNS:
            match = pattern.search(message)
            if not match:
                continue
            words = match.group(1).lower().split()
            while words and words[-1] in self._TRAILING_WORDS:
                words.pop()
            if words:
                return " ".join(words)
        return None


class PatternClassifier(Classifier):
    """Regex classifier with first-match-wins rule evaluation."""

    def __init__(
        self,
        rules: tuple[IntentRule, ...] = DEFAULT_RULES,
        entity_extractor: EntityExtractor | None = None
    ):
        self.rules = rules
        self.entity_extractor = entity_extractor or EntityExtractor()

    def classify(
        self,
        message: str,
        context: Mapping[str, Any] | None = None
    ) -> RoutingDecision:
        entities = self.entity_extractor.extract(message)

        for rule in self.rules:
            if rule.matches(message):
                return RoutingDecision(
                    intent=rule.intent,
                    capability=rule.capability,
                    task=rule.task,
                    confidence=MATCH_CONFIDENCE,
                    entities=entities,
                )

        return RoutingDecision(
            intent=Intent.GENERAL_CHAT,
            capability=DEFAULT_CAPABILITY,
            task=TaskType.TEACH,
            confidence=DEFAULT_CONFIDENCE,
            entities=entities,
        )
