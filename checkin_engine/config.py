"""
Check-in engine settings.

Extends the base settings with submission-engine configuration.
"""

from typing import Optional
from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Check-in engine specific settings."""

    # ==========================================================================
    # Scheduling
    # ==========================================================================
    # Time of day (HH:MM) every computed due date is normalized to
    CHECKIN_DUE_TIME: str = "09:00"

    # Timezone used to anchor check-in windows to a calendar week
    CHECKIN_TIMEZONE: str = "UTC"

    # ==========================================================================
    # Submission
    # ==========================================================================
    # Accept a client-supplied overall score instead of the recomputed one
    TRUST_CLIENT_SCORE: bool = False

    # Run response creation + assignment completion in a Mongo transaction
    # (requires a replica set)
    MONGODB_USE_TRANSACTIONS: bool = False

    # Upper bound for a single persistence call
    PERSISTENCE_TIMEOUT_SECONDS: float = 10.0

    # ==========================================================================
    # Side effects
    # ==========================================================================
    SIDE_EFFECT_TIMEOUT_SECONDS: float = 10.0
    DASHBOARD_CACHE_TTL_SECONDS: int = 60

    # Downstream goal-progress endpoint; the trigger is skipped when unset
    GOAL_PROGRESS_URL: Optional[str] = None

    # ==========================================================================
    # Email Settings
    # ==========================================================================
    EMAIL_MODE: str = "console"  # console, smtp, resend
    RESEND_API_KEY: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "noreply@example.com"
    SMTP_FROM_NAME: str = "Coach Check-ins"

    # ==========================================================================
    # Frontend URL (for email links)
    # ==========================================================================
    APP_URL: str = "http://localhost:3000"

    def get_due_time(self) -> tuple:
        """Parse CHECKIN_DUE_TIME into (hour, minute)."""
        hours, _, minutes = self.CHECKIN_DUE_TIME.partition(":")
        return int(hours or 0), int(minutes or 0)


# Global settings instance
settings = Settings()
