"""Application configuration using Pydantic Settings.

Environment variables are loaded with the SEARCH_PROXY_ prefix, e.g.
``SEARCH_PROXY_CACHE_V1_URL=redis://cache-a:6379/0``.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    service_name: str = "search-proxy"
    port: int = 8080
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")
    allowed_origins: list[str] = Field(
        default=["https://www.seattleu.edu"],
        description="Origins allowed by CORS",
    )

    # Search backend
    backend_base_url: str = Field(
        default="https://dxp-us-search.funnelback.squiz.cloud",
        description="Funnelback base URL",
    )
    backend_timeout_seconds: float = Field(default=10.0, gt=0, description="Backend request timeout")
    backend_timeout_status: int = Field(
        default=500,
        ge=400,
        le=599,
        description="Status returned to clients when the backend times out",
    )

    # Key-value cache (two clusters for rotation)
    cache_v1_url: str | None = Field(default=None, description="Redis URL of cache instance v1")
    cache_v2_url: str | None = Field(default=None, description="Redis URL of cache instance v2")
    cache_active_version: str = Field(default="v1", description="Cache instance active at startup")
    cache_timeout_seconds: float = Field(default=0.5, gt=0, description="Per-operation cache timeout")

    # Document store
    mongodb_uri: SecretStr | None = Field(default=None, description="MongoDB connection URI")
    mongodb_database: str = Field(default="search_analytics", description="MongoDB database")
    mongodb_collection: str = Field(default="queries", description="MongoDB collection for query records")

    # Analytics worker
    analytics_queue_size: int = Field(default=1000, ge=1, description="Pending analytics writes")
    analytics_max_attempts: int = Field(default=3, ge=1, description="Write attempts before dropping")
    analytics_backoff_seconds: float = Field(default=0.5, ge=0, description="Initial retry backoff")
    analytics_timeout_seconds: float = Field(default=2.0, gt=0, description="Per-write timeout")
    analytics_drain_timeout_seconds: float = Field(default=5.0, ge=0, description="Shutdown drain window")

    # Geolocation
    geo_lookup_enabled: bool = Field(default=True, description="Allow active IP lookups")
    geo_lookup_url: str = Field(
        default="http://ip-api.com/json/{ip}",
        description="IP geolocation endpoint, {ip} is substituted",
    )
    geo_timeout_seconds: float = Field(default=1.5, gt=0, description="IP lookup timeout")

    # Operator access
    admin_token: SecretStr | None = Field(default=None, description="Token required for admin routes")

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_PROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cache_urls(self) -> dict[str, str | None]:
        """Map of cache version to configured Redis URL."""
        return {"v1": self.cache_v1_url, "v2": self.cache_v2_url}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
