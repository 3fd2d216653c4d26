"""
Traffic-light classification of check-in scores.
"""

from typing import Any, Dict, Optional

from config.checkin_config import SCORING_PROFILES, DEFAULT_SCORING_PROFILE

RED = "red"
ORANGE = "orange"
GREEN = "green"


def get_thresholds(client: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
    """
    Thresholds for a client document.

    Explicit `scoringThresholds` win over the named `scoringProfile`;
    unknown profiles fall back to the default profile.
    """
    client = client or {}
    custom = client.get("scoringThresholds")
    if isinstance(custom, dict) and "redMax" in custom and "orangeMax" in custom:
        return {"redMax": custom["redMax"], "orangeMax": custom["orangeMax"]}

    profile = client.get("scoringProfile") or DEFAULT_SCORING_PROFILE
    return dict(SCORING_PROFILES.get(profile, SCORING_PROFILES[DEFAULT_SCORING_PROFILE]))


def get_traffic_light_status(score: float, thresholds: Dict[str, int]) -> str:
    """Map a score to "red", "orange" or "green" (bounds are inclusive)."""
    if score <= thresholds["redMax"]:
        return RED
    if score <= thresholds["orangeMax"]:
        return ORANGE
    return GREEN
