"""Application configuration using pydantic-settings.

API keys for Composio and Gemini are read from the environment. They are not
required at start-up: the superagent endpoint reports a missing key to the
caller instead, so health checks keep working on a half-configured deploy.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars not defined in Settings
    )

    # Server
    port: int = 8000
    environment: str = "development"
    log_level: str = "INFO"

    # CORS (comma-separated)
    allowed_origins: str = "http://localhost:3000"

    # External services
    composio_api_key: str = ""
    google_generative_ai_api_key: str = ""

    # Models
    agent_model: str = "gemini-2.5-pro"
    slide_model: str = "gemini-2.5-pro"
    agent_max_steps: int = 50

    # Per-toolkit cap on tools requested from Composio
    toolkit_limit: int = 10

    # slowapi limit string for the superagent endpoint
    superagent_rate_limit: str = "30/minute"

    # Anonymous user id cookie lifetime (1 year)
    user_cookie_max_age: int = 60 * 60 * 24 * 365

    # Browser automation navigation timeout
    browser_timeout_ms: int = 30000

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of: {allowed}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known value."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper

    @field_validator("agent_max_steps", "toolkit_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Step and toolkit limits must be positive."""
        if v < 1:
            raise ValueError("value must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the application.
    """
    return Settings()
