"""Gemini LLM provider.

Uses the google-genai SDK. System messages become the system instruction,
assistant messages are sent with the ``model`` role.
"""

import os

from google import genai
from google.genai import types

from storeagent.exceptions import LLMProviderError, ProviderConfigError
from storeagent.models.config import LLMConfig
from storeagent.providers.base import LLMProvider, LLMResponse, Message
from storeagent.providers.factory import ProviderRegistry

API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")

_ROLE_MAP = {"user": "user", "assistant": "model", "model": "model"}


@ProviderRegistry.register("gemini", default_model="gemini-2.5-flash")
class GeminiProvider(LLMProvider):
    """Google Gemini provider."""

    def __init__(self, config: LLMConfig) -> None:
        """Initialize the Gemini provider.

        Args:
            config: LLM configuration with model and optional api_key.

        Raises:
            ProviderConfigError: If no API key is available.
        """
        super().__init__(config)

        api_key = config.api_key.get_secret_value() if config.api_key else None
        if not api_key:
            api_key = next((os.environ[v] for v in API_KEY_ENV_VARS if os.environ.get(v)), None)
        if not api_key:
            msg = (
                "Gemini API key not found. Provide via config.api_key "
                "or GEMINI_API_KEY environment variable."
            )
            raise ProviderConfigError(msg)

        self._client = genai.Client(api_key=api_key)

    @staticmethod
    def _convert_messages(
        messages: list[Message],
    ) -> tuple[str | None, list[types.Content]]:
        system_parts = [m.content for m in messages if m.role == "system"]
        contents = [
            types.Content(role=_ROLE_MAP.get(m.role, "user"), parts=[types.Part(text=m.content)])
            for m in messages
            if m.role != "system"
        ]
        return ("\n\n".join(system_parts) or None), contents

    async def generate(
        self,
        messages: list[Message],
        *,
        json_output: bool = False,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate content with Gemini.

        Raises:
            LLMProviderError: If the API call fails.
        """
        system_instruction, contents = self._convert_messages(messages)
        generation_config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self._temperature(temperature),
            max_output_tokens=self._max_tokens(max_tokens),
            response_mime_type="application/json" if json_output else None,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self._config.model,
                contents=contents,
                config=generation_config,
            )
        except Exception as e:
            msg = f"Gemini API error: {e}"
            raise LLMProviderError(msg) from e

        finish_reason = "stop"
        if response.candidates and response.candidates[0].finish_reason:
            finish_reason = str(response.candidates[0].finish_reason.value).lower()

        metadata = response.usage_metadata
        return LLMResponse(
            content=response.text or "",
            finish_reason=finish_reason,
            usage={
                "prompt_tokens": (metadata.prompt_token_count or 0) if metadata else 0,
                "completion_tokens": (metadata.candidates_token_count or 0) if metadata else 0,
            },
            raw_response=response,
        )
