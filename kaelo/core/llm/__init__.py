"""Language model invocation."""

from .base import (
    GenerationRequest,
    GenerationResult,
    ModelInvocationError,
    ModelOverloadedError,
    ModelProvider,
    ModelTimeoutError,
)
from .openai_provider import OpenAIChatProvider
from .provider_factory import get_model_provider

__all__ = [
    "ModelProvider",
    "GenerationRequest",
    "GenerationResult",
    "ModelInvocationError",
    "ModelOverloadedError",
    "ModelTimeoutError",
    "OpenAIChatProvider",
    "get_model_provider",
]
