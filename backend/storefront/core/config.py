"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./storefront.db"

    # Redis - optional, used for cart storage when set
    redis_url: Optional[str] = None
    cart_ttl_seconds: int = 7 * 24 * 3600

    # Security
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours, monitor screens stay logged in

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:5173,http://localhost:8000"

    # Accounts: comma-separated admin emails, one monitor account
    admin_emails: str = ""
    monitor_email: str = "monitor@byserkan.de"
    # Initial passwords; accounts are created at startup when set and missing
    admin_password: Optional[str] = None
    monitor_password: Optional[str] = None

    # Shop
    timezone: str = "Europe/Berlin"
    shop_name: str = "bySerkan.de"
    whatsapp_phone: str = "+4915771459166"
    extra_price: float = 1.00
    popular_item_numbers: str = "1,26,6,2,7"
    popular_item_count: int = 6

    # Store status poller
    status_poll_seconds: int = 60

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if v == "change-me-in-production":
            import warnings
            warnings.warn(
                "Using default SECRET_KEY is insecure! Set SECRET_KEY environment variable.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Refuse to start in production mode with the default secret."""
        if not self.debug and self.secret_key == "change-me-in-production":
            raise ValueError(
                "FATAL: Cannot start in production mode with default SECRET_KEY. "
                "Set a secure SECRET_KEY environment variable (minimum 32 characters)."
            )
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def admin_emails_list(self) -> List[str]:
        """Admin emails, normalized to lowercase."""
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]

    @property
    def popular_item_numbers_list(self) -> List[int]:
        return [int(n) for n in self.popular_item_numbers.split(",") if n.strip()]

    def is_admin_email(self, email: Optional[str]) -> bool:
        if not email:
            return False
        return email.strip().lower() in self.admin_emails_list


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
