"""
asset_tracker.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (local JWT secret, Firebase private key).
- Decide which auth schemes are available for this deployment.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Deployment configuration.

    A scheme whose configuration is missing is reported as unavailable at request time
    instead of failing the process; only `missing_boot_requirements()` is fatal.
    """

    model_config = SettingsConfigDict(env_prefix="ASSET_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "asset-tracker"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    # Proxies whose X-Forwarded-For is trusted for audit source addresses.
    forwarded_allow_ips: str = "127.0.0.1"

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./asset_tracker.db"

    # Local JWT
    jwt_secret: str | None = Field(default=None, repr=False)
    jwt_issuer: str = "asset-tracker"
    jwt_default_ttl_minutes: int = 60

    # Firebase (remote identity provider)
    firebase_project_id: str | None = None
    firebase_service_account_path: str | None = None
    firebase_client_email: str | None = None
    firebase_private_key: str | None = Field(default=None, repr=False)
    firebase_issuer_marker: str = "securetoken.google.com"
    firebase_verify_timeout_seconds: float = 10.0

    # Fixed demo tokens: explicit opt-in, and never honoured outside env=dev.
    demo_tokens_enabled: bool = False
    # Unauthenticated `POST /v1/dev/token`: explicit opt-in, never served with env=prod.
    dev_token_route_enabled: bool = False

    @property
    def demo_mode(self) -> bool:
        return self.env == "dev" and self.demo_tokens_enabled

    @property
    def dev_token_route_active(self) -> bool:
        return self.env != "prod" and self.dev_token_route_enabled

    @property
    def expose_error_details(self) -> bool:
        return self.env == "dev"

    @property
    def local_jwt_available(self) -> bool:
        return bool(self.jwt_secret)

    @property
    def firebase_configured(self) -> bool:
        return bool(self.firebase_project_id or self.firebase_service_account_path)

    def missing_boot_requirements(self) -> list[str]:
        missing: list[str] = []
        if not self.database_url:
            missing.append("database_url")
        if self.env == "prod" and not (self.local_jwt_available or self.firebase_configured):
            missing.append("jwt_secret or firebase_project_id")
        return missing


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Secrets use repr=False so structured logs of the settings object never leak them.
