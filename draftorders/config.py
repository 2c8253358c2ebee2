"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Shopify Admin API
    shop: str = ""  # your-store.myshopify.com
    admin_api_token: str = ""
    admin_api_version: str = "2024-07"

    # Redis (optional shared cache / idempotency backend)
    redis_url: Optional[str] = None

    # Application
    log_level: str = "INFO"
    port: int = 8080
    allowed_origin: str = ""  # comma-separated; empty allows any origin

    # Cache and idempotency TTLs
    cache_ttl_seconds: int = 600
    idempotency_ttl_seconds: int = 600

    # Upstream retry policy
    upstream_max_attempts: int = 3
    upstream_backoff_base_ms: int = 250
    upstream_timeout_seconds: float = 30.0

    # Maximum distinct variants priced in one batched lookup
    max_batch_size: int = 100

    # Draft order defaults
    draft_note: str = "Fabric tool"
    draft_tag: str = "fabric-tool"

    # Sampled request logging, 0 disables
    request_log_interval_seconds: float = 300.0

    @property
    def admin_api_url(self) -> str:
        """Get the Admin GraphQL endpoint."""
        return f"https://{self.shop}/admin/api/{self.admin_api_version}/graphql.json"

    @property
    def allowed_origins(self) -> list[str]:
        """Get the CORS allow-list."""
        return [origin.strip() for origin in self.allowed_origin.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra environment variables


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
