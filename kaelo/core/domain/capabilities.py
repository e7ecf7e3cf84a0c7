"""Capability request/response envelopes.

These models define the canonical envelope the coordinator builds for every
dispatch and the response shape every capability returns.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .memory import ProgressEntry, StudentProfile
from .messages import Message, utc_now


class CapabilityTag(str, Enum):
    """The closed set of capability handlers the coordinator can dispatch to."""

    CONVERSATIONAL = "conversational"        # Default tutor voice
    CONTENT_EXPERT = "content_expert"        # Lesson content and exercises
    EVALUATOR = "evaluator"                  # Answer assessment
    DIFFICULTY_ADVISOR = "difficulty_advisor"
    MOTIVATOR = "motivator"
    ANALYZER = "analyzer"                    # Progress analysis
    PLANNER = "planner"                      # Study plans


DEFAULT_CAPABILITY = CapabilityTag.CONVERSATIONAL


class TaskType(str, Enum):
    """Task a capability is asked to perform."""

    TEACH = "teach"
    EXPLAIN = "explain"
    EVALUATE = "evaluate"
    GENERATE = "generate"
    ADJUST = "adjust"
    MOTIVATE = "motivate"
    ANALYZE = "analyze"
    PLAN = "plan"


class CapabilityInput(BaseModel):
    """Input payload of a capability request."""

    message: str = Field(..., description="Instruction or learner message")
    session_id: str = Field(..., description="Session identifier")
    user_id: str = Field(..., description="User identifier")
    topic: str | None = None
    level: str | None = None
    exercise: dict[str, Any] | None = None
    user_answer: str | None = None
    performance_history: list[ProgressEntry] = Field(default_factory=list)
    student_profile: StudentProfile | None = None
    conversation_history: list[Message] = Field(default_factory=list)


class RequestMetadata(BaseModel):
    """Request bookkeeping plus free-form dispatch hints."""

    model_config = ConfigDict(extra="allow")

    timestamp: datetime = Field(default_factory=utc_now)
    request_id: str = Field(default_factory=lambda: str(uuid4()))


class CapabilityRequest(BaseModel):
    """Canonical envelope owned by the coordinator for one pipeline run."""

    capability: CapabilityTag
    task: TaskType
    input: CapabilityInput
    metadata: RequestMetadata = Field(default_factory=RequestMetadata)


class CapabilityOutput(BaseModel):
    """Capability output: the message plus capability-specific diagnostics."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    success: bool = True


class ResponseMetadata(BaseModel):
    """Response provenance. Extra keys carry capability diagnostics."""

    model_config = ConfigDict(extra="allow")

    timestamp: datetime = Field(default_factory=utc_now)
    model_used: str | None = None
    synthesized_from: CapabilityTag | None = None


class CapabilityResponse(BaseModel):
    """Response returned by a capability handler.

    The coordinator never mutates a response in place; repair, enforcement
    and synthesis each produce a new object via ``model_copy``.
    """

    capability: CapabilityTag
    task: TaskType
    output: CapabilityOutput = Field(default_factory=CapabilityOutput)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    @property
    def text(self) -> str:
        """The learner-facing text of this response."""
        return self.output.message or ""

    def with_text(self, text: str) -> "CapabilityResponse":
        """Copy of this response carrying different learner-facing text."""
        output = self.output.model_copy(update={"message": text})
        return self.model_copy(update={"output": output})
