from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Direct OpenAI API
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None

    # OpenRouter (alternative, OpenAI-compatible)
    openrouter_api_key: Optional[str] = None

    # Model config
    openai_model: str = "gpt-4.1"
    llm_timeout_seconds: float = 120.0
    # Retries are a transport concern; the generation flows never retry.
    llm_max_retries: int = 2

    # ------------------------------------------------------------------
    # Web search (SerpAPI)
    # ------------------------------------------------------------------
    serpapi_key: Optional[str] = None
    serpapi_url: str = "https://serpapi.com/search.json"
    search_num_results: int = 5
    search_timeout_seconds: float = 20.0

    # ------------------------------------------------------------------
    # Opportunity generation
    # ------------------------------------------------------------------
    # Number of tool round-trips allowed before the final, tool-free answer.
    max_tool_rounds: int = 1

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    data_dir: Optional[Path] = None

    # ------------------------------------------------------------------
    # Logging / HTTP
    # ------------------------------------------------------------------
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def llm_api_key(self) -> Optional[str]:
        return self.openai_api_key or self.openrouter_api_key

    @property
    def llm_base_url(self) -> Optional[str]:
        if self.openai_base_url:
            return self.openai_base_url
        if not self.openai_api_key and self.openrouter_api_key:
            return OPENROUTER_BASE_URL
        return None


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
