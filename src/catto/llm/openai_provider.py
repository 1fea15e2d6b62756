"""
OpenAI Provider

LLM provider for the OpenAI API and any OpenAI-compatible endpoint.
"""

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from catto.core.exceptions import LLMProviderError, LLMRateLimitError
from catto.llm.base import BaseLLMProvider, LLMResponse, Message
from catto.observability.metrics import metrics

logger = logging.getLogger(__name__)

JSON_RESPONSE_FORMAT = {"type": "json_object"}


class OpenAIProvider(BaseLLMProvider):
    """
    OpenAI chat-completions provider.

    Subclasses reuse it for OpenAI-compatible endpoints by overriding
    provider_name and default_base_url.
    """

    provider_name = "openai"
    default_base_url: str | None = None

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 0,
    ) -> None:
        base_url = base_url or self.default_base_url
        super().__init__(model, api_key, base_url, timeout, max_retries)

        client_kwargs: dict[str, Any] = {"timeout": timeout, "max_retries": max_retries}
        if api_key:
            client_kwargs["api_key"] = api_key
        if base_url:
            client_kwargs["base_url"] = base_url

        self._async_client = AsyncOpenAI(**client_kwargs)

    @property
    def name(self) -> str:
        return self.provider_name

    def _request(
        self,
        messages: list[Message],
        temperature: float,
        max_tokens: int | None,
        json_mode: bool,
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self._model,
            "messages": [m.to_dict() for m in self._normalize_messages(messages)],
            "temperature": temperature,
            **kwargs,
        }
        if max_tokens:
            request["max_tokens"] = max_tokens
        if json_mode:
            request["response_format"] = JSON_RESPONSE_FORMAT
        return request

    def _to_response(self, response: Any) -> LLMResponse:
        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model or self._model,
            provider=self.name,
            usage={
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
            },
            finish_reason=response.choices[0].finish_reason,
        )

    def _translate_error(self, e: Exception) -> LLMProviderError:
        metrics.counter("catto.llm.errors", labels={"provider": self.name})
        if isinstance(e, openai.RateLimitError):
            retry_after = None
            if getattr(e, "response", None) is not None:
                header = e.response.headers.get("Retry-After")
                retry_after = float(header) if header and header.isdigit() else None
            return LLMRateLimitError(provider=self.name, retry_after=retry_after)
        status_code = getattr(e, "status_code", None)
        return LLMProviderError(
            f"{self.name} API error: {e}", provider=self.name, status_code=status_code
        )

    async def acomplete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> LLMResponse:
        """Async completion."""
        request = self._request(messages, temperature, max_tokens, json_mode, kwargs)
        metrics.counter("catto.llm.requests", labels={"provider": self.name})
        try:
            with metrics.timer("catto.llm.latency_seconds", labels={"provider": self.name}):
                response = await self._async_client.chat.completions.create(**request)
        except openai.APIError as e:
            raise self._translate_error(e) from e

        result = self._to_response(response)
        logger.debug(
            "%s completion: %d prompt / %d completion tokens",
            self.name,
            result.input_tokens,
            result.output_tokens,
        )
        return result
