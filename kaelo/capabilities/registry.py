"""Capability registry: the single dispatch table tag -> handler."""

import logging
from typing import Iterable

from ..core.domain.capabilities import DEFAULT_CAPABILITY, CapabilityTag
from ..core.llm.base import ModelProvider
from .analyzer import AnalyzerCapability
from .base import Capability, CapabilityError
from .content import ContentExpertCapability
from .conversational import ConversationalCapability
from .difficulty import DifficultyAdvisorCapability
from .evaluator import EvaluatorCapability
from .motivator import MotivatorCapability
from .planner import PlannerCapability

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """Maps capability tags to handler instances.

    The default conversational handler must always be registered since it
    serves fallback, repair and synthesis.
    """

    def __init__(self, capabilities: Iterable[Capability]):
        self._handlers: dict[CapabilityTag, Capability] = {}
        for capability in capabilities:
            self.register(capability)

        if DEFAULT_CAPABILITY not in self._handlers:
            raise ValueError(
                f"Registry requires the default '{DEFAULT_CAPABILITY.value}' capability"
            )

    def register(self, capability: Capability) -> None:
        if capability.tag in self._handlers:
            logger.warning(f"Capability '{capability.tag.value}' is being re-registered")
        self._handlers[capability.tag] = capability

    def get(self, tag: CapabilityTag) -> Capability:
        """Get the handler for a tag.

        Raises:
            CapabilityError: If nothing is registered for the tag
        """
        handler = self._handlers.get(tag)
        if handler is None:
            raise CapabilityError(f"No capability registered for '{tag.value}'")
        return handler

    @property
    def default(self) -> Capability:
        return self._handlers[DEFAULT_CAPABILITY]

    def list_capabilities(self) -> list[CapabilityTag]:
        return list(self._handlers)

    def __contains__(self, tag: object) -> bool:
        return tag in self._handlers


def build_default_registry(provider: ModelProvider) -> CapabilityRegistry:
    """Registry with every built-in capability."""
    return CapabilityRegistry([
        ConversationalCapability(provider),
        ContentExpertCapability(provider),
        EvaluatorCapability(provider),
        DifficultyAdvisorCapability(),
        MotivatorCapability(provider),
        AnalyzerCapability(),
        PlannerCapability(provider),
    ])
