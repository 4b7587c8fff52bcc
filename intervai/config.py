"""
Application configuration management using Pydantic Settings.

This module provides a type-safe, centralized configuration system
that loads from environment variables with sensible defaults.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me"


class AppConfig(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via .env file or environment variables.
    Settings are validated at startup using Pydantic.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===== Redis (queues, cache, notifications, analytics) =====
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL shared by the job queues, content cache and notification hub"
    )

    # ===== Supabase (sessions + questions) =====
    SUPABASE_URL: str | None = Field(
        default=None,
        description="Supabase project URL"
    )

    SUPABASE_SERVICE_KEY: str | None = Field(
        default=None,
        description="Supabase service role key (server-side access, bypasses RLS)"
    )

    # ===== LLM Configuration =====
    ANTHROPIC_API_KEY: str | None = Field(
        default=None,
        description="Anthropic API key used by the question generation worker"
    )

    MODEL_NAME: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Claude model used to write interview questions"
    )

    TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="LLM temperature for question generation"
    )

    MAX_TOKENS: int = Field(
        default=2000,
        ge=100,
        le=8000,
        description="Maximum tokens per generation response"
    )

    LLM_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for a single LLM call (must stay below the generation job timeout)"
    )

    # ===== Auth =====
    JWT_SECRET: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to verify the signed session cookie. Must be overridden in production."
    )

    JWT_ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )

    AUTH_COOKIE_NAME: str = Field(
        default="token",
        description="Name of the HTTP-only cookie carrying the session token"
    )

    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="Key required by admin endpoints (X-Admin-Key). Admin endpoints are disabled when unset."
    )

    # ===== Generation / Quotas =====
    MAX_QUESTIONS_PER_SESSION: int = Field(
        default=50,
        ge=1,
        description="Maximum number of questions a session may hold"
    )

    QUESTIONS_PER_GENERATION: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Number of question/answer pairs requested per generation job"
    )

    CACHE_TTL_SECONDS: int = Field(
        default=3600,
        ge=1,
        description="Lifetime of a cached generation result"
    )

    STALL_THRESHOLD_SECONDS: int = Field(
        default=90,
        ge=1,
        description="A running job without a worker heartbeat for this long is reported as stalled"
    )

    # ===== Exports =====
    EXPORT_DIR: str = Field(
        default="./exports",
        description="Directory where rendered exports wait for download"
    )

    EXPORT_MAX_AGE_HOURS: int = Field(
        default=24,
        ge=1,
        description="Exports not downloaded within this many hours are purged by the maintenance process"
    )

    # ===== Application Settings =====
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment mode: development or production"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    API_BASE_PATH: str = Field(
        default="/api/v1",
        description="Prefix for all API routes"
    )

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for all (dev only)."
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @model_validator(mode="after")
    def require_real_jwt_secret(self):
        """Refuse to start in production with a blank or placeholder JWT secret."""
        if self.is_production and self.JWT_SECRET.strip() in ("", DEFAULT_JWT_SECRET):
            raise ValueError("JWT_SECRET must be set to a real secret in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get list of allowed CORS origins.

        '*' is ignored in production, leaving no cross-origin access until
        ALLOWED_ORIGINS is set explicitly.
        """
        if self.ALLOWED_ORIGINS == "*":
            return [] if self.is_production else ["*"]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase is properly configured."""
        return (
            self.SUPABASE_URL is not None
            and self.SUPABASE_SERVICE_KEY is not None
        )

    @property
    def llm_configured(self) -> bool:
        """Check if the question writer can reach the LLM."""
        return bool(self.ANTHROPIC_API_KEY and self.ANTHROPIC_API_KEY.strip())


# Global configuration instance
# Import this in other modules: from intervai.config import config
config = AppConfig()


if __name__ == "__main__":
    print("Configuration loaded successfully!")
    print(f"Model: {config.MODEL_NAME}")
    print(f"Redis: {config.REDIS_URL.split('@')[-1]}")
    print(f"Supabase: {'✓' if config.supabase_configured else '✗'}")
    print(f"LLM: {'✓' if config.llm_configured else '✗'}")
    print(f"Exports: {config.EXPORT_DIR}")
