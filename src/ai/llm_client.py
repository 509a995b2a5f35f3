"""
LLM completion transport.

Every provider is reduced to one contract: ``await client.complete(prompt)``
returns text or raises :class:`CompletionError`.  Clients are built per job
from an explicit :class:`LLMConfig`; nothing is cached at module level.

Providers:
  - openai, deepseek, openrouter, siliconflow -- OpenAI-compatible chat API
    (openai SDK with a provider-specific base_url)
  - anthropic -- Messages API over httpx
  - google -- Generative Language API over httpx
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import httpx

from src.ai.errors import CompletionError

logger = logging.getLogger(__name__)


DEFAULT_BASE_URLS: Dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "deepseek": "https://api.deepseek.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "siliconflow": "https://api.siliconflow.cn/v1",
    "anthropic": "https://api.anthropic.com/v1",
    "google": "https://generativelanguage.googleapis.com/v1",
}

OPENAI_COMPATIBLE = frozenset({"openai", "deepseek", "openrouter", "siliconflow"})


@dataclass(frozen=True)
class LLMConfig:
    """Credentials and sampling parameters for one generation context."""
    provider: str
    model: str
    api_key: str
    base_url: Optional[str] = None
    max_tokens: int = 1024
    temperature: float = 0.7

    @property
    def resolved_base_url(self) -> str:
        return (self.base_url or DEFAULT_BASE_URLS.get(self.provider, "")).rstrip("/")


class CompletionClient(Protocol):
    """Anything that turns a prompt into text."""

    async def complete(self, prompt: str) -> str:
        ...


class OpenAICompatibleClient:
    """Chat-completions client for OpenAI and OpenAI-compatible providers."""

    def __init__(self, config: LLMConfig):
        from openai import AsyncOpenAI

        self.config = config
        headers = {"X-Title": "Research Assistant"} if config.provider == "openrouter" else None
        self._client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.resolved_base_url,
            default_headers=headers,
        )

    async def complete(self, prompt: str) -> str:
        messages = [{"role": "user", "content": prompt}]
        if self.config.provider == "deepseek":
            messages.insert(0, {"role": "system", "content": "You are a helpful research assistant."})
        try:
            response = await self._client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except Exception as exc:
            logger.error("%s completion failed: %s", self.config.provider, exc)
            raise CompletionError(str(exc), provider=self.config.provider) from exc

        if not response.choices:
            raise CompletionError("No content in API response", provider=self.config.provider)
        content = (response.choices[0].message.content or "").strip()
        if not content:
            raise CompletionError("No content in API response", provider=self.config.provider)
        return content


class _HttpCompletionClient:
    """Shared POST/JSON handling for providers called directly over httpx."""

    def __init__(self, config: LLMConfig, timeout: Optional[float] = None):
        self.config = config
        self.timeout = timeout

    async def _post(self, url: str, payload: dict, headers: Dict[str, str]) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("%s request failed: %s", self.config.provider, exc)
            raise CompletionError(str(exc), provider=self.config.provider) from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
            raise CompletionError(
                message or f"API Error: {resp.status_code}",
                provider=self.config.provider,
            )
        return data


class AnthropicClient(_HttpCompletionClient):
    """Anthropic Messages API."""

    async def complete(self, prompt: str) -> str:
        payload = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
        }
        headers = {
            "x-api-key": self.config.api_key,
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }
        data = await self._post(f"{self.config.resolved_base_url}/messages", payload, headers)
        blocks = data.get("content") or []
        if blocks and blocks[0].get("text"):
            return blocks[0]["text"].strip()
        raise CompletionError("No content in API response", provider=self.config.provider)


class GoogleClient(_HttpCompletionClient):
    """Google Generative Language API."""

    async def complete(self, prompt: str) -> str:
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }
        url = (
            f"{self.config.resolved_base_url}/models/{self.config.model}:generateContent"
            f"?key={self.config.api_key}"
        )
        data = await self._post(url, payload, {"Content-Type": "application/json"})
        candidates = data.get("candidates") or []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            if parts and parts[0].get("text"):
                return parts[0]["text"].strip()
        raise CompletionError("No content in API response", provider=self.config.provider)


def build_completion_client(config: LLMConfig) -> CompletionClient:
    """Pick the transport for ``config.provider``."""
    key = (config.api_key or "").strip()
    if not key or key.startswith("sk-your-"):
        raise CompletionError(
            "No AI model available. Please configure one in AI Settings.",
            provider=config.provider,
        )

    if config.provider in OPENAI_COMPATIBLE:
        return OpenAICompatibleClient(config)
    if config.provider == "anthropic":
        return AnthropicClient(config)
    if config.provider == "google":
        return GoogleClient(config)
    raise CompletionError(
        f"Provider {config.provider} is not implemented yet.",
        provider=config.provider,
    )
