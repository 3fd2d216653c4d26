"""
Email service configuration constants.

These are fixed values that don't change per environment.
Environment-specific values (API keys, URLs) are loaded from settings.
"""

# Resend API endpoint
RESEND_API_URL = "https://api.resend.com/emails"

# Default values (can be overridden by env vars)
EMAIL_DEFAULTS = {
    "mode": "console",
    "from_name": "Coach Check-ins",
    "team_name": "Your Coaching Team",
}
