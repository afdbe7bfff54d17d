"""Tests for Gemini provider."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import SecretStr

from storeagent.exceptions import LLMProviderError, ProviderConfigError
from storeagent.models.config import LLMConfig
from storeagent.providers.base import Message
from storeagent.providers.gemini import GeminiProvider


@pytest.fixture
def provider() -> GeminiProvider:
    """Gemini provider with a test key."""
    config = LLMConfig(provider="gemini", model="gemini-2.5-flash", api_key=SecretStr("k"))
    return GeminiProvider(config)


class TestConfiguration:
    """Tests for API key resolution."""

    def test_missing_api_key(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ProviderConfigError, match="API key not found"):
                GeminiProvider(LLMConfig(provider="gemini", model="gemini-2.5-flash"))

    def test_api_key_from_environment(self) -> None:
        with patch.dict(os.environ, {"GEMINI_API_KEY": "env-key"}, clear=True):
            provider = GeminiProvider(LLMConfig(provider="gemini", model="gemini-2.5-flash"))
            assert provider._client is not None


class TestMessageConversion:
    """Tests for message conversion."""

    def test_system_messages_become_instruction(self) -> None:
        system, contents = GeminiProvider._convert_messages(
            [
                Message(role="system", content="Be brief."),
                Message(role="user", content="Hi"),
                Message(role="assistant", content="Hello"),
            ]
        )
        assert system == "Be brief."
        assert [c.role for c in contents] == ["user", "model"]
        assert contents[0].parts[0].text == "Hi"

    def test_no_system_message(self) -> None:
        system, _ = GeminiProvider._convert_messages([Message(role="user", content="Hi")])
        assert system is None


class TestGenerate:
    """Tests for generate."""

    @pytest.mark.asyncio
    async def test_generate_json(self, provider: GeminiProvider) -> None:
        response = MagicMock()
        response.text = '{"action": "final_answer", "answer": "ok"}'
        response.candidates = []
        response.usage_metadata.prompt_token_count = 12
        response.usage_metadata.candidates_token_count = 4
        generate = AsyncMock(return_value=response)
        provider._client = MagicMock()
        provider._client.aio.models.generate_content = generate

        result = await provider.generate([Message(role="user", content="q")], json_output=True)

        assert result.content == '{"action": "final_answer", "answer": "ok"}'
        assert result.usage == {"prompt_tokens": 12, "completion_tokens": 4}
        config = generate.call_args.kwargs["config"]
        assert config.response_mime_type == "application/json"
        assert generate.call_args.kwargs["model"] == "gemini-2.5-flash"

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self, provider: GeminiProvider) -> None:
        provider._client = MagicMock()
        provider._client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("quota"))

        with pytest.raises(LLMProviderError, match="quota"):
            await provider.generate([Message(role="user", content="q")])
