"""Domain models for the Kaelo orchestrator.

This module contains the core data structures shared by routing,
capabilities, safety, memory and the coordinator pipeline.
"""

# Capability envelopes - Coordinator <-> capability contract
from .capabilities import (
    DEFAULT_CAPABILITY,
    CapabilityInput,
    CapabilityOutput,
    CapabilityRequest,
    CapabilityResponse,
    CapabilityTag,
    RequestMetadata,
    ResponseMetadata,
    TaskType,
)

# Memory models - Durable session profile
from .memory import (
    DifficultyLevel,
    MemoryData,
    ProgressEntry,
    StudentProfile,
)

# Message models - Conversation turns
from .messages import Message, MessageRole, utc_now

# Routing models - Intent classification output
from .routing import Intent, RoutingDecision

__all__ = [
    # Capability models
    "CapabilityTag",
    "DEFAULT_CAPABILITY",
    "TaskType",
    "CapabilityInput",
    "CapabilityOutput",
    "CapabilityRequest",
    "CapabilityResponse",
    "RequestMetadata",
    "ResponseMetadata",

    # Memory models
    "DifficultyLevel",
    "MemoryData",
    "ProgressEntry",
    "StudentProfile",

    # Message models
    "Message",
    "MessageRole",
    "utc_now",

    # Routing models
    "Intent",
    "RoutingDecision",
]
