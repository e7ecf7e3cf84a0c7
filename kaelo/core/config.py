"""Application configuration using pydantic-settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="forbid",
        protected_namespaces=("settings_",),
    )

    # Application Configuration
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    debug: bool = True

    # Storage Configuration (long-term memory + quota counters)
    storage_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Backend for session memory and rate-limit counters",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL",
    )
    session_ttl_days: int = Field(
        default=30,
        description="Days of inactivity before a stored session expires",
    )

    # Model Invocation Configuration
    model_api_key: str = Field(
        default="",
        description="API key for the OpenAI-compatible model endpoint",
    )
    model_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the OpenAI-compatible model endpoint",
    )
    model_name: str = "gpt-4o-mini"
    model_max_tokens: int = 2048
    model_temperature: float = 0.7
    model_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for a single model call",
    )
    model_max_retries: int = Field(
        default=3,
        description="Retries for overloaded model responses",
    )
    capability_timeout_seconds: float = Field(
        default=45.0,
        description="Upper bound for one capability handler invocation",
    )

    # Memory Configuration
    short_term_message_count: int = Field(
        default=5,
        description="Messages kept in short-term memory and recent history",
    )

    # Rate Limiting Configuration
    rate_limit_per_minute: int = 30
    rate_limit_per_hour: int = 500
    rate_limit_per_day: int = 5000

    # Safety Configuration
    max_message_length: int = 2000
    max_response_length: int = 1000
    forbidden_phrases: list[str] = Field(
        default_factory=lambda: ["you are wrong", "that's incorrect"],
        description="Phrases the tutor must never say",
    )

    # FastAPI Configuration
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000
    fastapi_reload: bool = True

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
