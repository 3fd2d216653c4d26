"""
Check-in configuration constants.

Default recurrence window and traffic-light scoring profiles.
"""

# Friday 10:00 AM through Monday 10:00 PM
DEFAULT_CHECK_IN_WINDOW = {
    "enabled": True,
    "startDay": "friday",
    "startTime": "10:00",
    "endDay": "monday",
    "endTime": "22:00",
}

# Upper bounds (inclusive) of the red and orange zones; green is everything above.
SCORING_PROFILES = {
    "lifestyle": {"redMax": 33, "orangeMax": 80},
    "high-performance": {"redMax": 75, "orangeMax": 89},
    "moderate": {"redMax": 60, "orangeMax": 85},
    "custom": {"redMax": 70, "orangeMax": 85},
}

DEFAULT_SCORING_PROFILE = "moderate"
