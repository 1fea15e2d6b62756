"""
CATTO LLM Abstraction Layer

Unified interface for the generative-model boundary.

Providers:
1. Gemini (Google AI Studio, OpenAI-compatible endpoint) - default
2. OpenAI
"""

from catto.llm.base import BaseLLMProvider, LLMResponse, Message, build_messages
from catto.llm.factory import create_provider

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "Message",
    "build_messages",
    "create_provider",
]
