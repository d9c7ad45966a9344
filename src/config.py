from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings

DEFAULT_SECRET_KEY = "fallback-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # Speech-to-text (OpenAI audio transcriptions)
    openai_api_key: str = ""
    openai_audio_model: str = "whisper-1"
    transcribe_chunk_seconds: int = 600
    transcript_max_chars: int = 200_000

    # Summarization provider ("anthropic" or "openai-compatible"; inferred from key if blank)
    summary_provider: str = ""
    summary_api_key: str = ""
    summary_api_base_url: str = ""
    summary_model: str = ""
    summary_timeout_seconds: float = 90.0
    summary_max_tokens: int = 800
    summary_temperature: float = 0.2
    summary_chunk_chars: int = 12_000

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Accounts and quota
    secret_key: str = DEFAULT_SECRET_KEY
    free_upload_limit: int = 10

    # Media toolchain
    max_upload_bytes: int = 500 * 1024 * 1024
    ffmpeg_binary: str = ""
    tmp_root: str = ""

    # App config
    environment: str = "development"
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_url: str = "http://localhost:8000"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
