"""Routing decision models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .capabilities import CapabilityTag, TaskType


class Intent(str, Enum):
    """Learner intents recognised by the routing engine."""

    SUBMIT_ANSWER = "submit_answer"
    SIGNAL_CONFUSION = "signal_confusion"
    REQUEST_EXERCISE = "request_exercise"
    REQUEST_PLAN = "request_plan"
    REVIEW_MISTAKE = "review_mistake"
    CHECK_PROGRESS = "check_progress"
    ADJUST_DIFFICULTY = "adjust_difficulty"
    NEED_MOTIVATION = "need_motivation"
    DIAGNOSTIC = "diagnostic"
    ASK_QUESTION = "ask_question"
    GENERAL_CHAT = "general_chat"


class RoutingDecision(BaseModel):
    """Classified intent, target capability and entities for one message.

    Produced fresh for every inbound message and never persisted.
    """

    intent: Intent
    capability: CapabilityTag
    task: TaskType
    confidence: float = Field(..., ge=0.0, le=1.0)
    entities: dict[str, Any] = Field(default_factory=dict)
