"""
Google Gemini LLM Provider

Integration with Google AI Studio (Gemini) through its OpenAI-compatible
endpoint, using the standard OpenAI SDK with a modified base_url.

Base URL: https://generativelanguage.googleapis.com/v1beta/openai/
API Key: https://aistudio.google.com/apikey
"""

from catto.llm.openai_provider import OpenAIProvider

GEMINI_MODELS = {
    "default": "gemini-2.5-flash",
    "fast": "gemini-2.0-flash",
    "pro": "gemini-2.5-pro",
}


class GeminiProvider(OpenAIProvider):
    """Google Gemini provider via the OpenAI-compatible API."""

    provider_name = "gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"

    def __init__(
        self,
        model: str = GEMINI_MODELS["default"],
        api_key: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 0,
    ) -> None:
        super().__init__(
            model=model,
            api_key=api_key,
            base_url=self.default_base_url,
            timeout=timeout,
            max_retries=max_retries,
        )
