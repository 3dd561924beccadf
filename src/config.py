"""
Runtime configuration, read from environment variables and an optional
.env file. SECRET_KEY is the only required value.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

WEAK_KEY_PATTERNS = ("changeme", "secret", "password", "12345678")

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "options-trade-journal"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Auth
    secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Storage: "memory" keeps everything in process, "sql" uses DATABASE_URL
    storage_backend: Literal["memory", "sql"] = "memory"
    seed_demo_data: bool = True
    database_url: str = "sqlite+aiosqlite:///./trade_journal.db"

    # Quotes
    alpha_vantage_api_key: str | None = None
    alpha_vantage_base_url: str = "https://www.alphavantage.co/query"
    quote_cache_ttl_seconds: int = 300
    quote_request_timeout_seconds: float = 10.0
    quote_batch_delay_seconds: float = 0.2

    # CORS, comma separated; "*" allows any origin
    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "GET,POST,PUT,DELETE,OPTIONS"
    cors_allow_headers: str = "Authorization,Content-Type,X-Correlation-ID"

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """
        JWTs are signed with HS256, so the key needs at least 256 bits.
        Keys containing obvious placeholder words are accepted with a warning.
        """
        if len(v) < 32:
            raise ValueError(
                "SECRET_KEY must be at least 32 characters. "
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
        if any(pattern in v.lower() for pattern in WEAK_KEY_PATTERNS):
            logger.warning("SECRET_KEY looks like a placeholder; use a random value in production")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        if self.cors_allowed_origins.strip() == "*":
            return ["*"]
        return _split_csv(self.cors_allowed_origins)

    @property
    def cors_methods_list(self) -> list[str]:
        return _split_csv(self.cors_allow_methods)

    @property
    def cors_headers_list(self) -> list[str]:
        return _split_csv(self.cors_allow_headers)

    @property
    def async_database_url(self) -> str:
        """DATABASE_URL with a plain postgresql:// or sqlite:// scheme swapped for its async driver."""
        for plain, async_scheme in ASYNC_DRIVERS.items():
            if self.database_url.startswith(plain):
                return self.database_url.replace(plain, async_scheme, 1)
        return self.database_url


@lru_cache
def get_settings() -> Settings:
    return Settings()
