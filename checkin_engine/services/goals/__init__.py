"""Goal services."""

from checkin_engine.services.goals.goal_progress_service import GoalProgressService

__all__ = ["GoalProgressService"]
