"""Base model provider interface using strategy pattern."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class GenerationRequest(BaseModel):
    """Role-tagged messages plus optional generation parameters."""

    messages: list[dict[str, str]] = Field(default_factory=list)
    system_instruction: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


class GenerationResult(BaseModel):
    """Text returned by a model call."""

    text: str
    model: str
    tokens_used: int | None = None
    finish_reason: str | None = None


class ModelProvider(ABC):
    """Abstract base class for language model providers."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Name/identifier of the model."""
        pass

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate text for a conversation.

        Args:
            request: Messages, system instruction and sampling parameters

        Returns:
            Generated text with model information

        Raises:
            ModelTimeoutError: If the call timed out
            ModelInvocationError: If generation failed
        """
        pass

    async def close(self) -> None:
        """Release provider resources."""
        return None

    async def __aenter__(self) -> "ModelProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


class ModelInvocationError(Exception):
    """Exception raised when a model call fails."""
    pass


class ModelOverloadedError(ModelInvocationError):
    """Model endpoint is overloaded or rate limited; safe to retry."""
    pass


class ModelTimeoutError(ModelInvocationError):
    """Model call timed out; surfaced to the caller without retry."""
    pass
