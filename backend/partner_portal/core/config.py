"""
Core configuration module for the Partner Portal backend.
Settings are loaded from environment variables (or .env) via pydantic-settings.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Record-store credentials are validated lazily, when a base is first opened.
    """

    # Application
    app_name: str = "Partner Portal"
    app_version: str = "1.0.0"
    environment: str = "production"
    debug: bool = False

    # API Configuration
    api_prefix: str = "/api/v1"
    api_host: str = "0.0.0.0"
    api_port: int = 8890
    api_workers: int = 4

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "json" switches to the structured formatter

    # CORS - restrict to known frontend origins (extend via .env)
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["GET", "POST", "OPTIONS"]
    cors_allow_headers: List[str] = ["Content-Type", "Accept", "Authorization"]

    # Record store (Airtable)
    airtable_api_key: str = ""
    airtable_api_url: str = "https://api.airtable.com/v0"
    airtable_timeout_seconds: float = 20.0
    airtable_base_id: str = ""
    airtable_product_base_id: str = ""
    airtable_agency_base_id: str = ""

    # Table names (current name first, legacy fallback second)
    product_table: str = "Passeios"
    product_legacy_table: str = "Products"
    agency_table: str = "tblkVI2PX3jPgYKXF"
    mural_table: str = "Mural"
    mural_legacy_table: str = "Avisos"
    read_log_table: str = "Notice_read_log"
    reservation_table: str = "Reservas"

    # Identity provider (Clerk)
    clerk_secret_key: str = ""
    clerk_api_url: str = "https://api.clerk.com/v1"
    clerk_jwks_url: str = ""
    clerk_authorized_parties: List[str] = []
    clerk_timeout_seconds: float = 10.0

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def default_base_id(self) -> str:
        return self.airtable_base_id.strip()

    @property
    def product_base_id(self) -> str:
        """Tariff sheet base; falls back to the default base."""
        return (self.airtable_product_base_id or self.airtable_base_id).strip()

    @property
    def agency_base_id(self) -> str:
        return (self.airtable_agency_base_id or self.airtable_base_id).strip()

    @property
    def base_id_prefix(self) -> str:
        """Redacted base id for logs: first 7 characters only."""
        return self.default_base_id[:7] + "..."

    def resolved_jwks_url(self) -> Optional[str]:
        return self.clerk_jwks_url.strip() or None


# Global settings instance
settings = Settings()
