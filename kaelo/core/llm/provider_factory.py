"""Factory for creating model providers."""

from ..config import Settings, settings as default_settings
from .base import ModelInvocationError, ModelProvider
from .openai_provider import OpenAIChatProvider


def get_model_provider(config: Settings | None = None) -> ModelProvider:
    """Create the model provider described by configuration.

    Args:
        config: Settings to read, the global settings if omitted

    Returns:
        Model provider instance

    Raises:
        ModelInvocationError: If no API key is configured outside development
    """
    config = config or default_settings

    if not config.model_api_key and config.is_production():
        raise ModelInvocationError(
            "Model API key required but not configured. "
            "Set MODEL_API_KEY environment variable."
        )

    return OpenAIChatProvider(
        api_key=config.model_api_key,
        base_url=config.model_base_url,
        model=config.model_name,
        timeout=config.model_timeout_seconds,
        max_retries=config.model_max_retries,
    )
