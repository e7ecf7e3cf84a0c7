"""OpenAI-compatible chat completion provider."""

import json
import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import settings
from .base import (
    GenerationRequest,
    GenerationResult,
    ModelInvocationError,
    ModelOverloadedError,
    ModelProvider,
    ModelTimeoutError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 503}


class OpenAIChatProvider(ModelProvider):
    """Calls ``/chat/completions`` on an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_min: float = 2.0,
        backoff_max: float = 10.0,
        client: httpx.AsyncClient | None = None
    ):
        """Initialize the provider.

        Args:
            api_key: Bearer token, defaults to ``settings.model_api_key``
            base_url: Endpoint base URL
            model: Model name sent with every request
            timeout: Per-call timeout in seconds
            max_retries: Retries after an overloaded response
            backoff_min: Minimum wait between retries in seconds
            backoff_max: Maximum wait between retries in seconds
            client: Existing httpx client, mainly for tests
        """
        self.api_key = api_key if api_key is not None else settings.model_api_key
        self.base_url = (base_url or settings.model_base_url).rstrip("/")
        self.model = model or settings.model_name
        self.timeout = timeout if timeout is not None else settings.model_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.model_max_retries
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self.client = client or httpx.AsyncClient(timeout=self.timeout)

    @property
    def model_name(self) -> str:
        return self.model

    async def close(self) -> None:
        await self.client.aclose()

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate a completion, retrying overloaded responses with backoff."""
        payload = self._build_payload(request)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=self.backoff_min, max=self.backoff_max),
            retry=retry_if_exception_type(ModelOverloadedError),
            reraise=True
        ):
            with attempt:
                return await self._call_chat_completions(payload)

        raise ModelInvocationError("Model call did not complete")

    def _build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        messages = []
        if request.system_instruction:
            messages.append({"role": "system", "content": request.system_instruction})
        messages.extend(request.messages)

        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": request.max_tokens or settings.model_max_tokens,
            "temperature": (
                request.temperature
                if request.temperature is not None
                else settings.model_temperature
            ),
        }

    async def _call_chat_completions(self, payload: dict[str, Any]) -> GenerationResult:
        """Make a single API call."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                headers=headers,
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json()
            choice = result["choices"][0]

            return GenerationResult(
                text=(choice["message"]["content"] or "").strip(),
                model=result.get("model", self.model),
                tokens_used=(result.get("usage") or {}).get("total_tokens"),
                finish_reason=choice.get("finish_reason"),
            )

        except httpx.TimeoutException as e:
            logger.error(f"Model call timed out after {self.timeout}s")
            raise ModelTimeoutError(f"Model call timed out: {e}") from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in RETRYABLE_STATUS_CODES:
                logger.warning(f"Model endpoint overloaded ({status}), retrying...")
                raise ModelOverloadedError(f"Model endpoint overloaded: {status}") from e
            logger.error(f"Model API error {status}: {e.response.text}")
            raise ModelInvocationError(f"API error: {status}") from e

        except httpx.RequestError as e:
            logger.error(f"Model request failed: {str(e)}")
            raise ModelInvocationError(f"Request failed: {str(e)}") from e

        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            logger.error(f"Malformed model response: {str(e)}")
            raise ModelInvocationError(f"Malformed response: {str(e)}") from e
