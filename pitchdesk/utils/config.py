"""Application configuration read from environment variables."""

import os
from typing import Optional

from pitchdesk.utils.errors import ConfigurationError


REQUIRED_ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "SESSION_SECRET",
)

# Published per-pitch pricing: $25 under $5M production, $50 at $5M+
CONTACT_FEE_STANDARD_CENTS = 2500
CONTACT_FEE_HIGH_VOLUME_CENTS = 5000
HIGH_VOLUME_THRESHOLD = 5_000_000


class AppConfig:
    """Environment-backed settings.

    Values are read on access so tests and serverless cold starts always
    see the current environment.
    """

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        value = os.environ.get(key, default)
        if isinstance(value, str):
            value = value.strip()
        return value or default

    @classmethod
    def require(cls, key: str) -> str:
        value = cls.get(key)
        if not value:
            raise ConfigurationError(f"{key} must be set")
        return value

    @classmethod
    def app_base_url(cls) -> str:
        return cls.get("APP_BASE_URL", "http://localhost:3000").rstrip("/")

    @classmethod
    def contact_fee_override_cents(cls) -> Optional[int]:
        raw = cls.get("STRIPE_CONTACT_FEE_CENTS")
        if not raw:
            return None
        try:
            cents = int(raw)
        except ValueError:
            raise ConfigurationError("STRIPE_CONTACT_FEE_CENTS must be an integer")
        if cents <= 0:
            raise ConfigurationError("STRIPE_CONTACT_FEE_CENTS must be positive")
        return cents

    @classmethod
    def email_from(cls) -> str:
        return cls.get("EMAIL_FROM", "Agent Agent <noreply@agent-agent.com>")

    @classmethod
    def resend_api_key(cls) -> Optional[str]:
        return cls.get("RESEND_API_KEY")

    @classmethod
    def notification_batch_size(cls) -> int:
        return int(cls.get("NOTIFICATION_BATCH_SIZE", "10"))

    @classmethod
    def cron_secret(cls) -> Optional[str]:
        return cls.get("CRON_SECRET")


def validate_config() -> None:
    """Raise ConfigurationError naming every missing required variable."""
    missing = [key for key in REQUIRED_ENV_VARS if not AppConfig.get(key)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
