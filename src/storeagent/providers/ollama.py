"""Ollama LLM provider.

Uses the ollama Python SDK for local model inference.
"""

from typing import Any

import ollama

from storeagent.exceptions import LLMProviderError
from storeagent.models.config import LLMConfig
from storeagent.providers.base import LLMProvider, LLMResponse, Message
from storeagent.providers.factory import ProviderRegistry

# Default context size for Ollama (much larger than Ollama's default of 2048)
DEFAULT_CONTEXT_SIZE = 65536


@ProviderRegistry.register("ollama", default_model="llama3.2")
class OllamaProvider(LLMProvider):
    """Ollama provider for local LLM inference."""

    def __init__(self, config: LLMConfig) -> None:
        """Initialize the Ollama provider.

        Args:
            config: LLM configuration with model and optional base_url.
        """
        super().__init__(config)

        client_kwargs: dict[str, Any] = {}
        if config.base_url:
            client_kwargs["host"] = config.base_url

        self._client = ollama.AsyncClient(**client_kwargs)

    def _options(self, temperature: float | None, max_tokens: int | None) -> dict[str, Any]:
        options: dict[str, Any] = {"num_ctx": self._config.context_size or DEFAULT_CONTEXT_SIZE}
        resolved_temperature = self._temperature(temperature)
        if resolved_temperature is not None:
            options["temperature"] = resolved_temperature
        resolved_max_tokens = self._max_tokens(max_tokens)
        if resolved_max_tokens is not None:
            options["num_predict"] = resolved_max_tokens
        # Thinking level for models like gpt-oss
        if self._config.reasoning:
            options["think"] = self._config.reasoning
        return options

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
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "options": self._options(temperature, max_tokens),
        }
        if json_output:
            request_kwargs["format"] = "json"

        try:
            response = await self._client.chat(**request_kwargs)
        except ollama.ResponseError as e:
            if "not found" in str(e).lower():
                msg = (
                    f"Ollama model '{self._config.model}' not found. "
                    f"Check that the model exists on the server "
                    f"(run 'ollama list' or check /api/tags endpoint). "
                    f"Original error: {e}"
                )
            else:
                msg = f"Ollama API error: {e}"
            raise LLMProviderError(msg) from e
        except Exception as e:
            msg = f"Ollama API error: {e}"
            raise LLMProviderError(msg) from e

        return LLMResponse(
            content=response.message.content or "",
            finish_reason=response.done_reason or "stop",
            usage={
                "prompt_tokens": response.prompt_eval_count or 0,
                "completion_tokens": response.eval_count or 0,
            },
            raw_response=response,
        )
