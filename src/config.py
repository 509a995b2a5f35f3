"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from src.ai.llm_client import LLMConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./research_canvas.db"

    # LLM provider (openai, deepseek, openrouter, siliconflow, anthropic, google)
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    llm_api_key: str = ""
    llm_base_url: str = ""
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.7

    # Section generation
    section_max_attempts: int = 3
    continuation_anchor_chars: int = 150

    # Seconds a finished job's progress events stay replayable
    event_history_seconds: float = 60.0

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Research Canvas"
    version: str = "1.0.0"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",  # Vite default
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    @property
    def ai_configured(self) -> bool:
        key = (self.llm_api_key or "").strip()
        return bool(key and not key.startswith("sk-your-"))

    def llm_config(self) -> LLMConfig:
        """Build the per-job LLM context from current settings."""
        return LLMConfig(
            provider=self.llm_provider,
            model=self.llm_model,
            api_key=self.llm_api_key,
            base_url=self.llm_base_url or None,
            max_tokens=self.llm_max_tokens,
            temperature=self.llm_temperature,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
