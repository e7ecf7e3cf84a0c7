"""Routing engine implementation.

The RoutingEngine classifies every inbound message into an intent, a target
capability, a task and extracted entities.
"""

import logging
from typing import Any, Mapping

from ...core.domain.capabilities import DEFAULT_CAPABILITY, CapabilityTag, TaskType
from ...core.domain.routing import RoutingDecision
from .classifier import Classifier, PatternClassifier

logger = logging.getLogger(__name__)


TASK_TO_CAPABILITY: dict[TaskType, CapabilityTag] = {
    TaskType.TEACH: CapabilityTag.CONVERSATIONAL,
    TaskType.EXPLAIN: CapabilityTag.CONTENT_EXPERT,
    TaskType.EVALUATE: CapabilityTag.EVALUATOR,
    TaskType.GENERATE: CapabilityTag.CONTENT_EXPERT,
    TaskType.ADJUST: CapabilityTag.DIFFICULTY_ADVISOR,
    TaskType.MOTIVATE: CapabilityTag.MOTIVATOR,
    TaskType.ANALYZE: CapabilityTag.ANALYZER,
    TaskType.PLAN: CapabilityTag.PLANNER,
}


class RoutingEngine:
    """Intent detection and capability routing.

    Routing is a pure function of the message and optional context: no I/O
    and no mutation.
    """

    def __init__(self, classifier: Classifier | None = None):
        """Initialize the routing engine.

        Args:
            classifier: Classification strategy, pattern-based by default
        """
        self.classifier = classifier or PatternClassifier()

    def route(
        self,
        message: str,
        context: Mapping[str, Any] | None = None
    ) -> RoutingDecision:
        """Classify a message and pick the capability that should answer it.

        Args:
            message: Raw learner message
            context: Optional request context

        Returns:
            RoutingDecision for this message
        """
        decision = self.classifier.classify(message or "", context)

        logger.debug(
            f"Routed message: intent={decision.intent.value}, "
            f"capability={decision.capability.value}, "
            f"confidence={decision.confidence:.1f}, entities={list(decision.entities)}"
        )

        return decision

    def capability_for_task(self, task: TaskType) -> CapabilityTag:
        """Get the capability responsible for a task."""
        return TASK_TO_CAPABILITY.get(task, DEFAULT_CAPABILITY)
