"""OpenAI-compatible LLM provider.

Works with any OpenAI API-compatible endpoint (OpenAI, Azure OpenAI, vLLM,
LiteLLM, Ollama in compatibility mode).
"""

import os
from typing import Any

from openai import AsyncOpenAI

from storeagent.exceptions import LLMProviderError, ProviderConfigError
from storeagent.models.config import LLMConfig
from storeagent.providers.base import LLMProvider, LLMResponse, Message
from storeagent.providers.factory import ProviderRegistry


@ProviderRegistry.register("openai", default_model="gpt-4o-mini")
class OpenAICompatibleProvider(LLMProvider):
    """OpenAI-compatible provider for LLM inference."""

    def __init__(self, config: LLMConfig) -> None:
        """Initialize the OpenAI-compatible provider.

        Args:
            config: LLM configuration with model, optional base_url, and api_key.

        Raises:
            ProviderConfigError: If no API key is available.
        """
        super().__init__(config)

        # Resolve API key: config takes priority, then environment variable
        if config.api_key:
            api_key: str | None = config.api_key.get_secret_value()
        else:
            api_key = os.environ.get("OPENAI_API_KEY")

        if not api_key:
            msg = (
                "OpenAI API key not found. Provide via config.api_key "
                "or OPENAI_API_KEY environment variable."
            )
            raise ProviderConfigError(msg)

        client_kwargs: dict[str, Any] = {"api_key": api_key}
        if config.base_url:
            client_kwargs["base_url"] = config.base_url

        self._client = AsyncOpenAI(**client_kwargs)

    @staticmethod
    def _convert_messages(messages: list[Message]) -> list[dict[str, Any]]:
        return [{"role": msg.role, "content": msg.content} for msg in messages]

    async def generate(
        self,
        messages: list[Message],
        *,
        json_output: bool = False,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a chat completion.

        Raises:
            LLMProviderError: If the API call fails.
        """
        request_kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": self._convert_messages(messages),
        }
        resolved_temperature = self._temperature(temperature)
        if resolved_temperature is not None:
            request_kwargs["temperature"] = resolved_temperature
        resolved_max_tokens = self._max_tokens(max_tokens)
        if resolved_max_tokens is not None:
            request_kwargs["max_tokens"] = resolved_max_tokens
        if json_output:
            request_kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**request_kwargs)
        except Exception as e:
            msg = f"OpenAI API error: {e}"
            raise LLMProviderError(msg) from e

        if not response.choices:
            msg = "OpenAI returned no choices"
            raise LLMProviderError(msg)
        choice = response.choices[0]

        usage: dict[str, int] = {
            "prompt_tokens": response.usage.prompt_tokens if response.usage else 0,
            "completion_tokens": response.usage.completion_tokens if response.usage else 0,
        }

        return LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
            raw_response=response,
        )
