from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    environment: str = "dev"  # "dev", "prod"
    debug: bool = True

    # ==========================================================================
    # DATABASE
    # ==========================================================================
    database_url: str = "sqlite:///./commentguard.db"

    # ==========================================================================
    # AI PROVIDER (bootstrap values, editable later via /admin/settings)
    # ==========================================================================
    default_ai_provider: str = ""  # "openai", "anthropic", "openrouter"
    default_ai_provider_token: str = ""
    provider_timeout: int = 30  # Seconds per provider call
    site_url: str = "http://localhost"  # Sent as HTTP-Referer to OpenRouter

    # ==========================================================================
    # SECRETS
    # ==========================================================================
    secret_key: str = "change-me"  # Used to derive the token encryption key

    # ==========================================================================
    # API SECURITY
    # ==========================================================================
    api_token: str = ""  # Required in production, optional in dev
    api_token_header: str = "X-API-Key"

    # ==========================================================================
    # RATE LIMITING (comment gate)
    # ==========================================================================
    rate_limit_requests: int = 60  # Max requests per window
    rate_limit_window: int = 60  # Window in seconds (60 = per minute)

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_origins: str = "*"  # Comma-separated origins, or "*" for all

    # ==========================================================================
    # CACHING
    # ==========================================================================
    settings_cache_ttl: int = 3600  # Settings row cache (1 hour)
    processed_marker_ttl: int = 300  # "AI processed" marker lifetime (5 min)
    processed_marker_capacity: int = 1000

    # ==========================================================================
    # LOG RETENTION
    # ==========================================================================
    retention_interval: int = 86400  # Seconds between cleanup runs (daily)
    retention_worker_enabled: bool = True

    model_config = SettingsConfigDict(
        env_prefix="COMMENTGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "prod"

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()
