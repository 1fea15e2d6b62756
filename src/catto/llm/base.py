"""
LLM Provider Base

Abstract base class for the generative-model boundary. The model is an
opaque function: messages in, text out. Callers must treat the text as
untrusted and run it through catto.parsing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Message:
    """Chat message."""

    role: str  # system, user, assistant
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None

    @property
    def input_tokens(self) -> int:
        return self.usage.get("prompt_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("completion_tokens", 0)


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Providers perform no automatic retries unless max_retries is raised in
    configuration; a failed call fails the run and the user resubmits.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 0,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries

    @staticmethod
    def _normalize_messages(messages: list[Message] | list[dict]) -> list[Message]:
        """
        Normalize messages to Message objects.

        Accepts both Message objects and dicts with role/content keys.

        Raises:
            ValueError: If message format is invalid.
        """
        normalized = []
        for msg in messages:
            if isinstance(msg, Message):
                normalized.append(msg)
            elif isinstance(msg, dict):
                role = msg.get("role")
                content = msg.get("content")
                if not role or content is None:
                    raise ValueError(
                        f"Dict message must have 'role' and 'content' keys, got: {list(msg)}"
                    )
                normalized.append(Message(role=role, content=content))
            else:
                raise ValueError(
                    f"Message must be Message object or dict, got: {type(msg).__name__}"
                )
        return normalized

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'gemini', 'openai')."""
        ...

    @property
    def model(self) -> str:
        return self._model

    @abstractmethod
    async def acomplete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Async completion.

        Args:
            messages: List of chat messages.
            temperature: Sampling temperature (0.0 = deterministic).
            max_tokens: Maximum tokens to generate.
            json_mode: Ask the provider for strict-JSON output.
            **kwargs: Provider-specific arguments.
        """
        ...


def build_messages(system: str | None = None, user: str | None = None) -> list[Message]:
    """Build a system + user message list, skipping empty parts."""
    messages: list[Message] = []
    if system:
        messages.append(Message(role="system", content=system))
    if user:
        messages.append(Message(role="user", content=user))
    return messages
