"""Base capability interface.

A capability is one specialised handler the coordinator can dispatch a
canonical request to. Handlers that talk to a language model share the
helpers in ``ModelBackedCapability``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from ..core.domain.capabilities import (
    CapabilityOutput,
    CapabilityRequest,
    CapabilityResponse,
    CapabilityTag,
    ResponseMetadata,
)
from ..core.llm.base import (
    GenerationRequest,
    GenerationResult,
    ModelInvocationError,
    ModelProvider,
)
from ..safety.identity import get_system_instruction

logger = logging.getLogger(__name__)


class CapabilityError(Exception):
    """Exception raised when a capability cannot produce a response."""
    pass


class Capability(ABC):
    """Abstract base class for capability handlers."""

    @property
    @abstractmethod
    def tag(self) -> CapabilityTag:
        """Tag this handler is registered under."""
        pass

    @abstractmethod
    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        """Handle a canonical request.

        Args:
            request: Request envelope built by the coordinator

        Returns:
            Response with learner-facing text in ``output.message``

        Raises:
            CapabilityError: If the handler cannot respond
        """
        pass

    def respond(
        self,
        request: CapabilityRequest,
        message: str,
        model_used: str | None = None,
        success: bool = True,
        metadata: dict[str, Any] | None = None,
        **output_fields: Any
    ) -> CapabilityResponse:
        """Build a response for this capability."""
        return CapabilityResponse(
            capability=self.tag,
            task=request.task,
            output=CapabilityOutput(message=message, success=success, **output_fields),
            metadata=ResponseMetadata(model_used=model_used, **(metadata or {})),
        )


class ModelBackedCapability(Capability):
    """Capability that generates its text with a language model."""

    # Task-specific guidance appended to the persona instruction
    instruction: str = ""

    def __init__(self, provider: ModelProvider):
        self.provider = provider

    def system_instruction(self, extra: str | None = None) -> str:
        return get_system_instruction(extra if extra is not None else self.instruction)

    async def generate(
        self,
        messages: list[dict[str, str]],
        instruction: str | None = None
    ) -> GenerationResult:
        """Invoke the model, translating provider failures."""
        try:
            return await self.provider.generate(
                GenerationRequest(
                    messages=messages,
                    system_instruction=self.system_instruction(instruction),
                )
            )
        except ModelInvocationError as e:
            logger.error(f"{self.tag.value} model call failed: {e}")
            raise CapabilityError(f"{self.tag.value} could not generate a response") from e

    async def prompt(self, prompt: str, instruction: str | None = None) -> GenerationResult:
        """Single-turn generation."""
        return await self.generate([{"role": "user", "content": prompt}], instruction)


def conversation_messages(
    request: CapabilityRequest,
    content: str | None = None
) -> list[dict[str, str]]:
    """Conversation history followed by the current user message."""
    messages = [m.as_prompt_message() for m in request.input.conversation_history]
    messages.append({"role": "user", "content": content or request.input.message})
    return messages
