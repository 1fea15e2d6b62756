"""
LLM Factory

Factory for creating LLM provider instances based on configuration.
Gemini is the default provider; OpenAI is available as an alternative.
"""

import logging
from typing import Any, Literal

from catto.config import get_settings
from catto.core.exceptions import ConfigurationError
from catto.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

ProviderType = Literal["gemini", "openai"]


def create_provider(
    provider: ProviderType | None = None,
    model: str | None = None,
    api_key: str | None = None,
    **kwargs: Any,
) -> BaseLLMProvider:
    """
    Create an LLM provider instance.

    Args:
        provider: 'gemini' or 'openai'. Defaults to LLM_DEFAULT_PROVIDER.
        model: Model name. Defaults to the provider's configured model.
        api_key: Per-run key; falls back to the configured key.
        **kwargs: Additional provider arguments (timeout, max_retries).

    Raises:
        ConfigurationError: If the provider is unknown or has no API key.
    """
    settings = get_settings().llm
    provider = provider or settings.default_provider
    kwargs.setdefault("timeout", settings.timeout)
    kwargs.setdefault("max_retries", settings.max_retries)

    if provider == "gemini":
        from catto.llm.gemini_provider import GeminiProvider

        api_key = api_key or settings.google_api_key or settings.gemini_api_key
        if not api_key:
            raise ConfigurationError(
                "Google AI API key not configured. Set GOOGLE_API_KEY or GEMINI_API_KEY."
            )
        llm: BaseLLMProvider = GeminiProvider(
            model=model or settings.gemini_model, api_key=api_key, **kwargs
        )

    elif provider == "openai":
        from catto.llm.openai_provider import OpenAIProvider

        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise ConfigurationError("OpenAI API key not configured. Set OPENAI_API_KEY.")
        llm = OpenAIProvider(model=model or settings.openai_model, api_key=api_key, **kwargs)

    else:
        raise ConfigurationError(f"Unknown LLM provider: {provider}", {"provider": provider})

    logger.info("Using LLM provider %s (%s)", llm.name, llm.model)
    return llm
