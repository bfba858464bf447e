"""
Configuration module for the salon appointment service.
Loads environment variables and provides typed configuration.
"""

import hmac
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.slot import SlotCalendarConfig

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Business hours (single implicit business timezone)
    business_open_hour: int = 9
    business_close_hour: int = 17
    slot_interval_minutes: int = 30

    # Storage
    storage_backend: str = "memory"  # memory, supabase
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    store_timeout_seconds: float = 5.0

    # Admin Settings
    admin_api_tokens: str = ""  # Comma-separated bearer tokens
    admin_telegram_ids: str = ""  # Comma-separated Telegram user IDs
    admin_email: Optional[str] = None

    # Telegram (admin notifications)
    bot_token: Optional[str] = None

    # SMTP (customer notifications)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    email_from: str = '"Salon Appointments" <noreply@example.com>'
    notification_timeout_seconds: float = 10.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def calendar_config(self) -> SlotCalendarConfig:
        """Build the explicit slot calendar configuration."""
        return SlotCalendarConfig(
            open_hour=self.business_open_hour,
            close_hour=self.business_close_hour,
            interval_minutes=self.slot_interval_minutes,
        )

    def is_admin_token(self, token: Optional[str]) -> bool:
        """
        Check whether a bearer token belongs to the administrative actor.

        Args:
            token: Token presented by the caller

        Returns:
            True if the token matches a configured admin token
        """
        if not token:
            return False
        return any(
            hmac.compare_digest(token.encode(), candidate.encode())
            for candidate in _split_csv(self.admin_api_tokens)
        )

    def get_admin_telegram_ids(self) -> List[int]:
        """Telegram chat IDs that receive new-request notifications."""
        return [int(value) for value in _split_csv(self.admin_telegram_ids)]

    def validate_all_required(self) -> None:
        """
        Validate that all settings required by the chosen backend are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        missing = []

        if self.storage_backend not in ("memory", "supabase"):
            missing.append("storage_backend")

        if self.storage_backend == "supabase":
            for field in ("supabase_url", "supabase_key"):
                value = getattr(self, field, None)
                if not value or str(value).lower().startswith("your_"):
                    missing.append(field)

        if not _split_csv(self.admin_api_tokens):
            missing.append("admin_api_tokens")

        if self.business_close_hour <= self.business_open_hour:
            missing.append("business_close_hour")

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
