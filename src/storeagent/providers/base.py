"""Abstract base class for LLM providers.

The assistant talks to models through a JSON protocol carried in plain
messages, so a provider only has to turn a message list into text.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from storeagent.models.config import LLMConfig

# Default max tokens value from LLMConfig
DEFAULT_MAX_TOKENS = 4096


class Message(BaseModel):
    """Unified message format for LLM conversations."""

    role: str  # "user", "assistant", "system"
    content: str


class LLMResponse(BaseModel):
    """Unified response format from LLM providers."""

    content: str
    finish_reason: str = "stop"
    usage: dict[str, int] = Field(default_factory=dict)  # prompt_tokens, completion_tokens
    raw_response: Any = None  # Provider-specific response for debugging


class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    def __init__(self, config: LLMConfig) -> None:
        """Initialize the provider with configuration."""
        self._config = config

    @property
    def config(self) -> LLMConfig:
        """Get the provider configuration."""
        return self._config

    @property
    def model(self) -> str:
        """Model identifier requests are sent to."""
        return self._config.model

    def _temperature(self, override: float | None) -> float | None:
        if override is not None:
            return override
        return self._config.temperature if self._config.temperature != 0.0 else None

    def _max_tokens(self, override: int | None) -> int | None:
        if override is not None:
            return override
        return self._config.max_tokens if self._config.max_tokens != DEFAULT_MAX_TOKENS else None

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        *,
        json_output: bool = False,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages.

        Args:
            messages: List of conversation messages.
            json_output: Ask the model for a single JSON object.
            temperature: Override the configured temperature.
            max_tokens: Override the configured max tokens.

        Returns:
            LLMResponse with the generated content and metadata.

        Raises:
            LLMProviderError: If the API call fails.
        """
        ...
