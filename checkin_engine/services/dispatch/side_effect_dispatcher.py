"""
Post-commit side effects of a check-in submission.

Runs only after the submission guard reports a new completion. Every
trigger is independent: each has its own timeout, and a failure is logged
and never reaches the submitter.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Set

from motor.motor_asyncio import AsyncIOMotorDatabase

from checkin_engine.database.collections import CLIENTS, key_filter
from checkin_engine.services.cache.dashboard_cache import DashboardCache
from checkin_engine.services.checkin.traffic_light import get_thresholds, get_traffic_light_status
from checkin_engine.services.checkin.types import CompletedSubmission
from checkin_engine.services.email.email_service import EmailService
from checkin_engine.services.goals.goal_progress_service import GoalProgressService
from checkin_engine.services.notifications.notification_service import NotificationService

logger = logging.getLogger(__name__)


class SideEffectDispatcher(ABC):
    """
    Abstract interface for post-commit side effects.
    """

    @abstractmethod
    async def dispatch(self, completed: CompletedSubmission) -> Dict[str, bool]:
        """
        Run every side effect for a freshly completed submission.

        Args:
            completed: Submission committed by the guard

        Returns:
            dict of trigger name -> whether it succeeded
        """
        pass

    def schedule(self, completed: CompletedSubmission) -> asyncio.Task:
        """Run `dispatch` in the background without awaiting it."""
        return asyncio.ensure_future(self.dispatch(completed))


class BestEffortDispatcher(SideEffectDispatcher):
    """
    Dispatches the coach notification, client confirmation email,
    dashboard cache invalidation and goal-progress trigger.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        notification_service: NotificationService,
        email_service: EmailService,
        dashboard_cache: DashboardCache,
        goal_progress_service: GoalProgressService,
        timeout: float = 10.0,
    ):
        """
        Initialize BestEffortDispatcher.

        Args:
            db: MongoDB database connection (client profile lookup)
            notification_service: Coach notifications
            email_service: Client confirmation email
            dashboard_cache: Cache to invalidate
            goal_progress_service: Goal recomputation trigger
            timeout: Per-trigger timeout in seconds
        """
        self._clients = db[CLIENTS]
        self._notification_service = notification_service
        self._email_service = email_service
        self._dashboard_cache = dashboard_cache
        self._goal_progress_service = goal_progress_service
        self._timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    def schedule(self, completed: CompletedSubmission) -> asyncio.Task:
        task = super().schedule(completed)
        # Hold a reference until the task finishes
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def dispatch(self, completed: CompletedSubmission) -> Dict[str, bool]:
        client = await self._load_client(completed.client_id)

        results = {
            "notification": await self._run(
                "coach notification", self._notify_coach(completed, client), completed
            ),
            "email": await self._run(
                "confirmation email", self._email_client(completed, client), completed
            ),
            "dashboard_cache": await self._run(
                "dashboard cache", self._clear_dashboard(completed), completed
            ),
            "goal_progress": await self._run(
                "goal progress", self._track_goals(completed), completed
            ),
        }

        logger.info(
            f"Side effects for assignment {completed.assignment_id}: "
            + ", ".join(f"{name}={'ok' if ok else 'failed'}" for name, ok in results.items())
        )
        return results

    async def _run(self, name: str, awaitable, completed: CompletedSubmission) -> bool:
        """Await one trigger under the timeout; False if it failed or timed out."""
        try:
            await asyncio.wait_for(awaitable, timeout=self._timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                f"{name} timed out after {self._timeout}s for assignment {completed.assignment_id}"
            )
        except Exception as e:
            logger.warning(f"{name} failed for assignment {completed.assignment_id}: {e}")
        return False

    async def _load_client(self, client_id: str) -> Dict[str, Any]:
        """Client profile for names, email and thresholds; {} if unavailable."""
        try:
            client = await asyncio.wait_for(
                self._clients.find_one(key_filter(client_id)), timeout=self._timeout
            )
        except Exception as e:
            logger.warning(f"Client lookup failed for {client_id}: {e}")
            return {}
        if client is None:
            logger.warning(f"Client {client_id} not found; using defaults for side effects")
            return {}
        return client

    @staticmethod
    def _client_name(client: Dict[str, Any]) -> str:
        first = client.get("firstName") or ""
        last = client.get("lastName") or ""
        name = f"{first} {last}".strip()
        return name or client.get("name") or "A client"

    async def _notify_coach(self, completed: CompletedSubmission, client: Dict[str, Any]):
        if not completed.coach_id:
            logger.warning(f"Assignment {completed.assignment_id} has no coach; notification skipped")
            return

        traffic_light = get_traffic_light_status(completed.score, get_thresholds(client))
        await self._notification_service.create_checkin_completed_notification(
            coach_id=completed.coach_id,
            client_name=self._client_name(client),
            form_title=completed.form_title or "Check-in",
            score=completed.score,
            response_id=completed.response_id,
            client_id=completed.client_id,
            form_id=completed.form_id,
            traffic_light=traffic_light,
        )

    async def _email_client(self, completed: CompletedSubmission, client: Dict[str, Any]):
        email = client.get("email")
        if not email:
            logger.info(f"Client {completed.client_id} has no email; confirmation skipped")
            return

        result = await self._email_service.send_checkin_confirmation_email(
            to_email=email,
            client_name=client.get("firstName") or client.get("name"),
            form_title=completed.form_title or "Check-in",
            score=completed.score,
            language=client.get("language") or "en",
        )
        if not result.get("success"):
            raise RuntimeError(result.get("error", "email send failed"))

    async def _clear_dashboard(self, completed: CompletedSubmission):
        self._dashboard_cache.clear_dashboard_cache(completed.client_id)

    async def _track_goals(self, completed: CompletedSubmission):
        await self._goal_progress_service.track_progress(completed.client_id)
