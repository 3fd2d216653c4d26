"""
Configuration module - Fixed, environment-independent constants.
"""

from config.email_config import RESEND_API_URL, EMAIL_DEFAULTS
from config.checkin_config import (
    DEFAULT_CHECK_IN_WINDOW,
    SCORING_PROFILES,
    DEFAULT_SCORING_PROFILE,
)

__all__ = [
    "RESEND_API_URL",
    "EMAIL_DEFAULTS",
    "DEFAULT_CHECK_IN_WINDOW",
    "SCORING_PROFILES",
    "DEFAULT_SCORING_PROFILE",
]
