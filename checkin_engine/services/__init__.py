"""
Check-in engine services.

All service classes organized by feature.
"""

# Check-in services
from checkin_engine.services.checkin.assignment_store import AssignmentStore, MongoAssignmentStore
from checkin_engine.services.checkin.assignment_resolver import AssignmentResolver
from checkin_engine.services.checkin.submission_guard import SubmissionGuard
from checkin_engine.services.checkin.payload_validator import PayloadValidator

# Side-effect services
from checkin_engine.services.notifications.notification_service import NotificationService
from checkin_engine.services.email.email_service import EmailService
from checkin_engine.services.cache.dashboard_cache import DashboardCache
from checkin_engine.services.goals.goal_progress_service import GoalProgressService
from checkin_engine.services.dispatch.side_effect_dispatcher import SideEffectDispatcher, BestEffortDispatcher
