"""
FastAPI dependencies for the check-in engine.

Provides dependency injection for all services.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from checkin_engine.config import settings

# Check-in services
from checkin_engine.services.checkin.assignment_store import AssignmentStore, MongoAssignmentStore
from checkin_engine.services.checkin.assignment_resolver import AssignmentResolver
from checkin_engine.services.checkin.submission_guard import SubmissionGuard

# Side-effect services
from checkin_engine.services.notifications.notification_service import NotificationService
from checkin_engine.services.email.email_service import EmailService
from checkin_engine.services.cache.dashboard_cache import DashboardCache
from checkin_engine.services.goals.goal_progress_service import GoalProgressService
from checkin_engine.services.dispatch.side_effect_dispatcher import (
    SideEffectDispatcher,
    BestEffortDispatcher,
)


# ─────────────────────────────────────────────────────────────────
# Global service instances
# ─────────────────────────────────────────────────────────────────

# Check-in
_assignment_store: Optional[AssignmentStore] = None
_assignment_resolver: Optional[AssignmentResolver] = None
_submission_guard: Optional[SubmissionGuard] = None

# Side effects
_notification_service: Optional[NotificationService] = None
_email_service: Optional[EmailService] = None
_dashboard_cache: Optional[DashboardCache] = None
_goal_progress_service: Optional[GoalProgressService] = None
_side_effect_dispatcher: Optional[SideEffectDispatcher] = None


# ─────────────────────────────────────────────────────────────────
# Initialization functions
# ─────────────────────────────────────────────────────────────────

def init_checkin_services(
    db: AsyncIOMotorDatabase,
    client: Optional[AsyncIOMotorClient] = None,
) -> None:
    """Initialize assignment resolution and submission services."""
    global _assignment_store, _assignment_resolver, _submission_guard

    _assignment_store = MongoAssignmentStore(
        db=db,
        client=client,
        use_transactions=settings.MONGODB_USE_TRANSACTIONS,
        timeout=settings.PERSISTENCE_TIMEOUT_SECONDS,
    )
    _assignment_resolver = AssignmentResolver(
        store=_assignment_store,
        due_time=settings.get_due_time(),
    )
    _submission_guard = SubmissionGuard(
        store=_assignment_store,
        trust_client_score=settings.TRUST_CLIENT_SCORE,
        timezone_name=settings.CHECKIN_TIMEZONE,
    )


def init_side_effect_services(db: AsyncIOMotorDatabase) -> None:
    """Initialize post-submission side-effect services."""
    global _notification_service, _email_service, _dashboard_cache
    global _goal_progress_service, _side_effect_dispatcher

    _notification_service = NotificationService(db=db)
    _email_service = EmailService(
        mode=settings.EMAIL_MODE,
        resend_api_key=settings.RESEND_API_KEY,
        from_email=settings.SMTP_FROM_EMAIL,
        from_name=settings.SMTP_FROM_NAME,
        app_url=settings.APP_URL,
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
        timeout=settings.SIDE_EFFECT_TIMEOUT_SECONDS,
    )
    _dashboard_cache = DashboardCache(cache_ttl=settings.DASHBOARD_CACHE_TTL_SECONDS)
    _goal_progress_service = GoalProgressService(
        track_progress_url=settings.GOAL_PROGRESS_URL,
        timeout=settings.SIDE_EFFECT_TIMEOUT_SECONDS,
    )
    _side_effect_dispatcher = BestEffortDispatcher(
        db=db,
        notification_service=_notification_service,
        email_service=_email_service,
        dashboard_cache=_dashboard_cache,
        goal_progress_service=_goal_progress_service,
        timeout=settings.SIDE_EFFECT_TIMEOUT_SECONDS,
    )


def init_all_services(
    db: AsyncIOMotorDatabase,
    client: Optional[AsyncIOMotorClient] = None,
) -> None:
    """
    Initialize all services at application startup.

    Args:
        db: Main MongoDB database connection
        client: Motor client, needed when MONGODB_USE_TRANSACTIONS is on
    """
    init_checkin_services(db, client)
    init_side_effect_services(db)


# ─────────────────────────────────────────────────────────────────
# Check-in getters
# ─────────────────────────────────────────────────────────────────

def get_assignment_resolver() -> AssignmentResolver:
    """Get assignment resolver instance."""
    if _assignment_resolver is None:
        raise RuntimeError("Check-in services not initialized.")
    return _assignment_resolver


def get_submission_guard() -> SubmissionGuard:
    """Get submission guard instance."""
    if _submission_guard is None:
        raise RuntimeError("Check-in services not initialized.")
    return _submission_guard


# ─────────────────────────────────────────────────────────────────
# Side-effect getters
# ─────────────────────────────────────────────────────────────────

def get_side_effect_dispatcher() -> SideEffectDispatcher:
    """Get side-effect dispatcher instance."""
    if _side_effect_dispatcher is None:
        raise RuntimeError("Side-effect services not initialized.")
    return _side_effect_dispatcher
