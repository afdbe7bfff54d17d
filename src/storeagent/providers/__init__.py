"""LLM provider abstractions."""

from storeagent.providers.base import LLMProvider, LLMResponse, Message
from storeagent.providers.factory import ProviderRegistry, create_provider
from storeagent.providers.gemini import GeminiProvider
from storeagent.providers.ollama import OllamaProvider
from storeagent.providers.openai_compat import OpenAICompatibleProvider

__all__ = [
    "GeminiProvider",
    "LLMProvider",
    "LLMResponse",
    "Message",
    "OllamaProvider",
    "OpenAICompatibleProvider",
    "ProviderRegistry",
    "create_provider",
]
