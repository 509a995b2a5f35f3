"""Unit tests for LLM client construction and the httpx-based providers."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.ai.errors import CompletionError
from src.ai.llm_client import (
    AnthropicClient,
    GoogleClient,
    LLMConfig,
    OpenAICompatibleClient,
    build_completion_client,
)
from src.config import Settings


def _config(provider: str = "openai", api_key: str = "sk-test", **kwargs) -> LLMConfig:
    return LLMConfig(provider=provider, model="test-model", api_key=api_key, **kwargs)


class TestBuildCompletionClient:
    """Tests for build_completion_client."""

    @pytest.mark.parametrize("api_key", ["", "   ", "sk-your-key-here"])
    def test_missing_key(self, api_key):
        with pytest.raises(CompletionError, match="No AI model available"):
            build_completion_client(_config(api_key=api_key))

    def test_unknown_provider(self):
        with pytest.raises(CompletionError, match="Provider mistral is not implemented yet."):
            build_completion_client(_config(provider="mistral"))

    @pytest.mark.parametrize("provider", ["openai", "deepseek", "openrouter", "siliconflow"])
    def test_openai_compatible(self, provider):
        client = build_completion_client(_config(provider=provider))

        assert isinstance(client, OpenAICompatibleClient)

    def test_anthropic_and_google(self):
        assert isinstance(build_completion_client(_config(provider="anthropic")), AnthropicClient)
        assert isinstance(build_completion_client(_config(provider="google")), GoogleClient)

    def test_base_url_defaults_per_provider(self):
        assert _config(provider="deepseek").resolved_base_url == "https://api.deepseek.com/v1"
        assert _config(base_url="http://local/v1/").resolved_base_url == "http://local/v1"


class TestSettingsLLMConfig:

    def test_payload_defaults(self):
        config = Settings(llm_api_key="sk-real").llm_config()

        assert config.max_tokens == 1024
        assert config.temperature == 0.7
        assert config.base_url is None

    def test_placeholder_key_is_not_configured(self):
        assert not Settings(llm_api_key="sk-your-openai-key").ai_configured
        assert Settings(llm_api_key="sk-real").ai_configured


def _response(status_code: int, payload: dict) -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request("POST", "http://test"))


def _patched_http(response=None, error=None):
    http = MagicMock()
    http.__aenter__ = AsyncMock(return_value=http)
    http.__aexit__ = AsyncMock(return_value=False)
    http.post = AsyncMock(return_value=response, side_effect=error)
    return patch("src.ai.llm_client.httpx.AsyncClient", return_value=http), http


class TestHttpProviders:

    @pytest.mark.asyncio
    async def test_anthropic_text(self):
        patcher, http = _patched_http(_response(200, {"content": [{"text": " Hello "}]}))
        with patcher:
            text = await AnthropicClient(_config(provider="anthropic")).complete("hi")

        assert text == "Hello"
        url = http.post.await_args.args[0]
        assert url == "https://api.anthropic.com/v1/messages"
        assert http.post.await_args.kwargs["json"]["max_tokens"] == 1024

    @pytest.mark.asyncio
    async def test_google_text(self):
        payload = {"candidates": [{"content": {"parts": [{"text": "Answer"}]}}]}
        patcher, _ = _patched_http(_response(200, payload))
        with patcher:
            text = await GoogleClient(_config(provider="google")).complete("hi")

        assert text == "Answer"

    @pytest.mark.asyncio
    async def test_api_error_message(self):
        patcher, _ = _patched_http(_response(429, {"error": {"message": "Too many requests"}}))
        with patcher:
            with pytest.raises(CompletionError, match="Too many requests"):
                await AnthropicClient(_config(provider="anthropic")).complete("hi")

    @pytest.mark.asyncio
    async def test_empty_content(self):
        patcher, _ = _patched_http(_response(200, {"content": []}))
        with patcher:
            with pytest.raises(CompletionError, match="No content"):
                await AnthropicClient(_config(provider="anthropic")).complete("hi")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        patcher, _ = _patched_http(error=httpx.ConnectError("refused"))
        with patcher:
            with pytest.raises(CompletionError) as excinfo:
                await GoogleClient(_config(provider="google")).complete("hi")

        assert excinfo.value.provider == "google"
