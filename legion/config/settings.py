"""Application settings using Pydantic BaseSettings."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for Grudge Studio game development. "
    "You help with code generation, game design, Three.js, Socket.io, combat "
    "systems, terrain generation, and all aspects of building multiplayer 3D games."
)

DEFAULT_PROVIDER_ORDER = "megallm,openrouter,agentrouter,routeway"


class Settings(BaseSettings):
    """Gateway configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    # Bind to 127.0.0.1 by default. Use 0.0.0.0 only in containers.
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    public_base_url: str = Field(default="")

    # HTTP surface
    cors_origins: str = Field(default="*")
    max_request_bytes: int = Field(default=52428800)
    static_dir: str = Field(default="")

    # Providers
    providers_enabled: str = Field(default=DEFAULT_PROVIDER_ORDER)
    provider_timeout_seconds: float = Field(default=15.0)
    default_temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=2048)
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    referer_url: str = Field(default="https://grudachain.vercel.app")
    app_title: str = Field(default="GrudaChain Grudge Studio")

    # Per-provider credentials. Base URLs default to the built-in catalog.
    megallm_api_key: str = Field(default="")
    megallm_base_url: str = Field(default="")
    openrouter_api_key: str = Field(default="")
    openrouter_base_url: str = Field(default="")
    agentrouter_api_key: str = Field(default="")
    agentrouter_base_url: str = Field(default="")
    routeway_api_key: str = Field(default="")
    routeway_base_url: str = Field(default="")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def providers_enabled_list(self) -> List[str]:
        """Parse the provider try-order from comma-separated string."""
        if not self.providers_enabled:
            return []
        return [p.strip().lower() for p in self.providers_enabled.split(",") if p.strip()]

    def provider_credential(self, key: str) -> str:
        return (getattr(self, f"{key}_api_key", "") or "").strip()

    def provider_base_url(self, key: str) -> str:
        return (getattr(self, f"{key}_base_url", "") or "").strip()

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.environment == "test"

    @property
    def docs_url(self) -> str | None:
        """Return docs URL if not in production, else None."""
        return None if self.is_production else "/docs"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "staging", "production", "test"}:
            raise ValueError("ENVIRONMENT must be one of: development, staging, production, test")
        return vv

    @model_validator(mode="after")
    def validate_cross_field_constraints(self) -> "Settings":
        if self.provider_timeout_seconds <= 0:
            raise ValueError("PROVIDER_TIMEOUT_SECONDS must be positive")
        if not (0.0 <= self.default_temperature <= 2.0):
            raise ValueError("DEFAULT_TEMPERATURE must be between 0 and 2")
        if not self.providers_enabled_list:
            raise ValueError("PROVIDERS_ENABLED must name at least one provider")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
