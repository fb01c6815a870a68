"""Application settings loaded from environment variables.

Defines all environment-driven configuration used by the app, plus the
explicit configuration structs handed to the context assembler and the
summarization compactor.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ContextConfig:
    """Knobs used when assembling the prompt for a chat turn."""

    window_size: int = 12
    temperature: float = 0.2


@dataclass(frozen=True)
class CompactionConfig:
    """Knobs used by the summarization compactor and its background retries."""

    threshold: int = 30
    keep_recent: int = 12
    carry_forward: bool = False
    temperature: float = 0.2
    max_attempts: int = 3
    retry_delay: float = 1.0


class Settings(BaseSettings):
    """Typed configuration model for the application."""

    # Database
    DATABASE_URL: str = "sqlite:///./tutor.db"

    # LLM parameters (Upstage exposes an OpenAI compatible API)
    UPSTAGE_API_KEY: Optional[str] = None
    UPSTAGE_BASE_URL: str = "https://api.upstage.ai/v1"
    UPSTAGE_MODEL: str = "solar-pro2"
    COMPLETION_TEMPERATURE: float = Field(default=0.2, ge=0.0, le=2.0)

    # Context window and compaction
    CHAT_CONTEXT_LIMIT: int = Field(default=12, ge=0)
    SUMMARY_THRESHOLD: int = Field(default=30, ge=1)
    SUMMARY_KEEP_RECENT: int = Field(default=12, ge=0)
    SUMMARY_CARRY_FORWARD: bool = False
    COMPACTION_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    COMPACTION_RETRY_DELAY: float = Field(default=1.0, ge=0.0)

    # Redis compaction queue (optional)
    REDIS_HOST: Optional[str] = None
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_SSL: bool = False
    BACKEND_HOST: str = "localhost:8000"
    CONSUMER_POLL_SECONDS: float = 2.0

    # API parameters
    INTERNAL_API_TOKEN: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    ROOT_PATH_BACKEND: str = ""
    ALLOWED_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def context_config(self) -> ContextConfig:
        """Build the context assembler configuration."""
        return ContextConfig(
            window_size=self.CHAT_CONTEXT_LIMIT,
            temperature=self.COMPLETION_TEMPERATURE,
        )

    def compaction_config(self) -> CompactionConfig:
        """Build the compactor configuration."""
        return CompactionConfig(
            threshold=self.SUMMARY_THRESHOLD,
            keep_recent=self.SUMMARY_KEEP_RECENT,
            carry_forward=self.SUMMARY_CARRY_FORWARD,
            temperature=self.COMPLETION_TEMPERATURE,
            max_attempts=self.COMPACTION_MAX_ATTEMPTS,
            retry_delay=self.COMPACTION_RETRY_DELAY,
        )


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings
