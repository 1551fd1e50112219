"""
VCA Production Workflow - Configuration Module
==============================================
All configuration is loaded from environment variables.
No hardcoded secrets: the token secret and the database password are required.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

ENV_PREFIX = "VCA_"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    # App
    app_name: str = "VCA Production Workflow"
    app_env: str = "development"
    app_debug: bool = True
    app_port: int = 8000

    # Local compatibility token (shared with the database API)
    jwt_secret: str = Field(..., min_length=32)
    access_token_expire_minutes: int = 60
    password_reset_expire_minutes: int = 30

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "vca_db"
    postgres_user: str = "vca"
    postgres_password: str = Field(..., min_length=8)

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Identity provider (Authentik)
    authentik_url: str = "http://localhost:9000"
    authentik_api_token: str = ""
    authentik_client_id: str = ""
    authentik_client_secret: str = ""
    authentik_flow_slug: str = "default-authentication-flow"
    authentik_app_password_ttl_seconds: int = 60
    authentik_timeout_seconds: int = 15

    @property
    def authentik_base_url(self) -> str:
        return self.authentik_url.rstrip("/")

    # Workflow rules
    dissolution_threshold: int = 5
    rejection_warning_threshold: int = 4

    # Voice note storage
    voice_notes_dir: str = "./data/voice-notes"
    public_base_url: str = "http://localhost:8000"

    # Email
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "VCA <no-reply@localhost>"
    smtp_use_tls: bool = True
    frontend_url: str = "http://localhost:5173"

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = ENV_PREFIX


def _load_dotenv_pairs(dotenv_path: str = ".env") -> dict[str, str]:
    path = Path(dotenv_path)
    if not path.exists():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            values[key] = value
    return values


def _bootstrap_prefixed_env() -> None:
    """Populate VCA_ vars from bare keys (JWT_SECRET, AUTHENTIK_URL, ...) used by older deployments."""
    legacy_pairs = _load_dotenv_pairs(".env")

    for field_name in Settings.model_fields.keys():
        legacy_key = field_name.upper()
        prefixed_key = f"{ENV_PREFIX}{legacy_key}"

        if os.getenv(prefixed_key):
            continue

        legacy_value = os.getenv(legacy_key)
        if legacy_value is not None:
            os.environ[prefixed_key] = legacy_value
            continue

        if legacy_key in legacy_pairs:
            os.environ[prefixed_key] = legacy_pairs[legacy_key]


_bootstrap_prefixed_env()


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
