"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    gemini_api_key: str
    gemini_model: str = "gemini-2.5-flash"
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "low"
    openai_store: bool = False
    supabase_url: str
    supabase_service_key: str
    storage_bucket: str = "slideshow-uploads"
    public_base_url: str | None = None
    caption_concurrency: int = 3
    caption_max_retries: int = 3
    caption_retry_base_delay: float = 1.0
    caption_submit_delay: float = 0.2
    cleanup_concurrency: int = 5
    history_limit: int = 50
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
