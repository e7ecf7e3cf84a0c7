"""Shared test doubles for the orchestrator test suite."""

import asyncio
from typing import Any

import pytest

from kaelo.capabilities.base import Capability, CapabilityError
from kaelo.core.config import Settings
from kaelo.core.domain.capabilities import (
    CapabilityInput,
    CapabilityRequest,
    CapabilityResponse,
    CapabilityTag,
    TaskType,
)
from kaelo.core.llm.base import GenerationRequest, GenerationResult, ModelProvider
from kaelo.memory.base import StoreError
from kaelo.memory.tiers.long_term import InMemoryLongTermMemory


class StubModelProvider(ModelProvider):
    """Model provider returning scripted replies and recording requests."""

    def __init__(self, replies: list[Any] | None = None, default: str = "Great question! Does that make sense?"):
        self.replies = list(replies or [])
        self.default = default
        self.requests: list[GenerationRequest] = []

    @property
    def model_name(self) -> str:
        return "stub-model"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return GenerationResult(text=reply, model=self.model_name, tokens_used=10, finish_reason="stop")


class ScriptedCapability(Capability):
    """Capability returning scripted replies; an Exception entry is raised."""

    def __init__(self, tag: CapabilityTag, replies: list[Any] | None = None, default: str = "Let's work through it together. Ready?", **output_fields: Any):
        self._tag = tag
        self.replies = list(replies or [])
        self.default = default
        self.output_fields = output_fields
        self.requests: list[CapabilityRequest] = []

    @property
    def tag(self) -> CapabilityTag:
        return self._tag

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return self.respond(request, reply, model_used="scripted", **self.output_fields)


class FailingCapability(Capability):
    """Capability that always raises."""

    def __init__(self, tag: CapabilityTag, error: Exception | None = None):
        self._tag = tag
        self.error = error or CapabilityError("handler exploded")
        self.calls = 0

    @property
    def tag(self) -> CapabilityTag:
        return self._tag

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        self.calls += 1
        raise self.error


class SlowCapability(Capability):
    """Capability that never answers within a short timeout."""

    def __init__(self, tag: CapabilityTag, delay: float = 5.0):
        self._tag = tag
        self.delay = delay

    @property
    def tag(self) -> CapabilityTag:
        return self._tag

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        await asyncio.sleep(self.delay)
        return self.respond(request, "Too late. Ready?")


class FailingWriteLongTermMemory(InMemoryLongTermMemory):
    """Long-term memory whose writes always fail."""

    async def _write(self, session_id, data) -> None:
        raise StoreError("store unavailable")


class FakeClock:
    """Controllable epoch clock."""

    def __init__(self, now: float = 1_700_000_040.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_request(
    capability: CapabilityTag = CapabilityTag.CONVERSATIONAL,
    task: TaskType = TaskType.TEACH,
    message: str = "What is photosynthesis?",
    **input_fields: Any
) -> CapabilityRequest:
    """Capability request for session s1."""
    return CapabilityRequest(
        capability=capability,
        task=task,
        input=CapabilityInput(message=message, session_id="s1", user_id="u1", **input_fields),
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        capability_timeout_seconds=0.2,
        max_response_length=1000,
        forbidden_phrases=["you are wrong", "that's incorrect"],
    )


@pytest.fixture
def stub_provider() -> StubModelProvider:
    return StubModelProvider()


@pytest.fixture
def long_term() -> InMemoryLongTermMemory:
    return InMemoryLongTermMemory(max_recent_messages=5)
