from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuration sourced from environment variables."""

    llm_api_key: str | None = None
    llm_api_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    llm_model: str = "google/gemini-2.5-flash"
    assistant_model: str = "google/gemini-3-flash-preview"
    llm_timeout: float = 30.0
    use_ai_classifier: bool = True
    redis_url: str | None = None
    cors_origins: str = "*"
    rate_limit_per_minute: int = Field(default=30, ge=1)
    seed_demo_reports: bool = False
    data_dir: Path = Path(__file__).resolve().parents[2] / "data"
    debug: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "case_sensitive": False,
    }

    @property
    def ai_enabled(self) -> bool:
        return self.use_ai_classifier and bool(self.llm_api_key)

    def get_cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(1)
def get_settings() -> Settings:
    return Settings()
