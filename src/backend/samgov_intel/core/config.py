"""
Application configuration management.

Loads settings from environment variables via .env file.
Supports multiple environments (development, staging, production).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Federal Supply Class -> related Product Service Codes searched together.
DEFAULT_RELATED_CODES: dict[str, list[str]] = {
    "6810": ["6810", "6840", "6850"],  # Chemicals
    "6820": ["6820"],                  # Dyes
    "6830": ["6830"],                  # Gases
    "6840": ["6840", "6810"],          # Pest control agents
    "6850": ["6850", "6810"],          # Miscellaneous chemical specialties
}

DEFAULT_DOMAIN_KEYWORDS: list[str] = [
    "acid",
    "base",
    "solvent",
    "reagent",
    "solution",
    "compound",
    "chemical",
    "hydrochloric",
    "sulfuric",
    "sodium",
    "potassium",
    "hydroxide",
    "nitric",
    "phosphoric",
    "acetone",
    "methanol",
    "ethanol",
    "isopropyl",
    "toluene",
    "xylene",
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values should be stored in .env file (not committed to git).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "SAM.gov Intelligence"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=False, description="Enable debug mode")
    app_url: str = Field(
        default="http://localhost:3000",
        description="Public URL of the web UI, used in notification links",
    )

    # API Configuration
    api_prefix: str = "/api/v1"
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS allowed origins (comma-separated)"
    )

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./samgov_intel.db",
        description="Database connection string (PostgreSQL in production)"
    )
    database_pool_size: int = Field(default=5, ge=1, le=100)
    database_max_overflow: int = Field(default=10, ge=0, le=100)
    database_pool_timeout: int = Field(default=30, ge=5, le=120)
    database_ssl: bool = Field(default=False, description="Require SSL for PostgreSQL")
    database_echo: bool = Field(default=False, description="Echo SQL queries")

    # SAM.gov API
    sam_gov_api_key: str | None = Field(
        default=None,
        description="SAM.gov public API key (api.data.gov)"
    )
    sam_gov_base_url: str = "https://api.sam.gov"
    sam_gov_timeout: float = Field(default=30.0, ge=1.0, le=300.0)
    sam_gov_max_attempts: int = Field(default=3, ge=1, le=10)
    sam_gov_retry_initial_wait: float = Field(
        default=2.0,
        ge=0.0,
        description="First backoff delay in seconds; doubles on every retry",
    )
    sam_gov_sync_api_key: str | None = Field(
        default=None,
        description="Shared secret required by the scheduler sync trigger",
    )

    # Opportunity sync
    sync_cold_start_days: int = Field(default=7, ge=1)
    sync_page_limit: int = Field(default=100, ge=1, le=1000)
    sync_lease_seconds: int = Field(
        default=900,
        ge=30,
        description="How long a sync run may hold the run lease",
    )

    # Pricing intelligence
    pricing_related_codes: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_RELATED_CODES.items()}
    )
    pricing_domain_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DOMAIN_KEYWORDS)
    )
    pricing_default_lookback_days: int = Field(default=730, ge=1)
    pricing_cache_limit: int = Field(default=100, ge=1)
    pricing_min_cached_awards: int = Field(default=5, ge=0)
    pricing_fetch_limit: int = Field(default=50, ge=1, le=100)

    # Microsoft Graph (notification mail)
    graph_tenant_id: str | None = None
    graph_client_id: str | None = None
    graph_client_secret: str | None = None
    graph_sender_mailbox: str | None = Field(
        default=None,
        description="Mailbox (UPN or id) the notifications are sent from",
    )

    @property
    def graph_configured(self) -> bool:
        """Whether all Microsoft Graph credentials are present."""
        return all(
            (
                self.graph_tenant_id,
                self.graph_client_id,
                self.graph_client_secret,
                self.graph_sender_mailbox,
            )
        )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure PostgreSQL URLs use the asyncpg driver."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
