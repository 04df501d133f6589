from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from harmony.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Harmony AI Artists"
    debug: bool = False
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # PostgreSQL (ledger)
    database_url: str
    db_pool_size: int = 20
    db_max_overflow: int = 5
    db_pool_timeout: int = 2       # seconds to wait for a pooled connection
    db_pool_recycle: int = 300
    db_command_timeout: int = 30

    # MongoDB (mirror)
    mongodb_url: str
    mongodb_db: str = "harmony"
    mongodb_max_pool_size: int = 10
    mongodb_server_selection_timeout_ms: int = 5000
    mongodb_socket_timeout_ms: int = 45000

    # Redis
    redis_url: str = "redis://localhost:6379"
    redis_max_retries: int = 10

    # AI provider keys
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "google_gemini_api_key"),
    )
    nanobanana_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("nanobanana_api_key", "nano_banana_api_key"),
    )
    seedance_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"

    # AI key management
    ai_key_encryption_key: str
    ai_cache_ttl_seconds: float = 3600.0
    ai_service_rate_limit: int = 100
    ai_rate_window_seconds: float = 60.0
    ai_service_timeout: int = 30
    ai_service_max_retries: int = 3  # declared for provider clients, not enforced here

    # Discovery / mirror
    popular_artists_cache_ttl: int = 300
    mirror_reconcile_minutes: int = 0  # 0 disables the reconciliation job

    def provider_api_key(self, service_name: str) -> Optional[str]:
        """Look up a provider key by service name (e.g. 'gemini')."""
        return getattr(self, f"{service_name.lower()}_api_key", None)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(f"Invalid or missing configuration: {', '.join(missing)}") from e
