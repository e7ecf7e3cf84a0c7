"""Capability handlers the coordinator dispatches to."""

from .analyzer import AnalyzerCapability
from .base import Capability, CapabilityError, ModelBackedCapability
from .content import ContentExpertCapability
from .conversational import ConversationalCapability
from .difficulty import DifficultyAdvisorCapability
from .evaluator import EvaluatorCapability
from .motivator import MotivatorCapability
from .planner import PlannerCapability
from .registry import CapabilityRegistry, build_default_registry

__all__ = [
    "Capability",
    "CapabilityError",
    "ModelBackedCapability",
    "CapabilityRegistry",
    "build_default_registry",
    "ConversationalCapability",
    "ContentExpertCapability",
    "EvaluatorCapability",
    "DifficultyAdvisorCapability",
    "MotivatorCapability",
    "AnalyzerCapability",
    "PlannerCapability",
]
