"""
Girona Neta - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./gironaneta.db"
    db_echo: bool = False

    # Object storage (Supabase Storage compatible)
    storage_url: Optional[str] = None
    storage_service_key: Optional[str] = None
    storage_bucket: str = "report-media"
    storage_timeout_seconds: float = 30.0

    # FCC Medi Ambient ingestion endpoint
    fcc_api_url: str = "https://appgirona.fccma.com/apprest/app-tarjeta-submit"
    fcc_timeout_seconds: float = 30.0

    # Reply routing (info+<report_id>@gironaneta.cat)
    reply_local_part: str = "info"
    reply_domain: str = "gironaneta.cat"
    reply_webhook_secret: Optional[str] = None
    reply_callback_url: str = "http://localhost:8000/api/v1/replies"

    # Nominatim reverse geocoding
    nominatim_url: str = "https://nominatim.openstreetmap.org/reverse"
    nominatim_user_agent: str = "GiroTrash/1.0 (contact@girotrash.app)"
    geocode_timeout_seconds: float = 10.0

    # Operator authentication
    operator_jwt_secret: Optional[str] = None
    operator_jwt_algorithm: str = "HS256"
    admin_email_allowlist: str = ""

    # Admission rules
    service_radius_m: int = 5000
    max_photos: int = 5
    rate_limit_per_hour: int = 10

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def allowed_admin_emails(self) -> List[str]:
        """Comma separated allowlist, normalized to lowercase."""
        return [
            e.strip().lower()
            for e in self.admin_email_allowlist.split(",")
            if e.strip()
        ]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
