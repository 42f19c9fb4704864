from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class ConfigurationError(RuntimeError):
    """Required configuration is missing or unsafe."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message if not details else f"{message}: {details}")
        self.message = message
        self.details = details


class Settings(BaseSettings):
    # App
    app_name: str = "Marketplace Admin API"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # Database
    database_url: str = "sqlite:///./marketplace.db"
    db_statement_timeout_ms: int = 10000
    db_connect_timeout: int = 10

    # Capability tokens
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    token_issuer: str = "roam-admin"
    token_audience: str = "roam-provider-app"
    approval_token_ttl_days: int = 7

    # Onboarding links
    frontend_url: str = "http://localhost:5173"

    # Email (Resend)
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from_address: str = "providersupport@roamyourbestlife.com"
    email_from_name: str = "ROAM Provider Support"
    support_email: str = "providersupport@roamyourbestlife.com"
    email_timeout: int = 10  # seconds

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()
