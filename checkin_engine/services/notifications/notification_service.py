"""
Notification service for in-app notifications.

Creates coach-facing notifications when a client completes a check-in.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from checkin_engine.database.collections import NOTIFICATIONS

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Handles in-app notification creation.

    Notification types:
    - check_in_completed: A client submitted a check-in (sent to the coach)
    """

    NOTIFICATION_TYPES = [
        "check_in_completed",
    ]

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize NotificationService.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._collection = db[NOTIFICATIONS]

    async def create_notification(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a new notification for a user.

        Args:
            user_id: Target user ID
            notification_type: One of NOTIFICATION_TYPES
            title: Short notification title
            message: Full notification message
            action_url: Frontend path the notification links to
            metadata: Optional metadata (clientId, formId, responseId, etc.)

        Returns:
            Created notification document
        """
        now = datetime.now(timezone.utc)

        notification_doc = {
            "userId": user_id,
            "type": notification_type,
            "title": title,
            "message": message,
            "actionUrl": action_url,
            "metadata": metadata or {},
            "read": False,
            "readAt": None,
            "createdAt": now,
            "updatedAt": now
        }

        result = await self._collection.insert_one(notification_doc)
        notification_doc["_id"] = result.inserted_id

        logger.info(f"Created notification for user {user_id}: {notification_type}")
        return notification_doc

    async def create_checkin_completed_notification(
        self,
        coach_id: str,
        client_name: str,
        form_title: str,
        score: int,
        response_id: Optional[str] = None,
        client_id: Optional[str] = None,
        form_id: Optional[str] = None,
        traffic_light: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Notify a coach that one of their clients completed a check-in.

        Args:
            coach_id: Coach to notify
            client_name: Display name of the client
            form_title: Title of the check-in form
            score: Final score (0-100)
            response_id: Stored response, used for the action link
            client_id: Client who submitted
            form_id: Form that was submitted
            traffic_light: "red", "orange" or "green" for the client's thresholds

        Returns:
            Created notification document
        """
        metadata = {
            "coachId": coach_id,
            "responseId": response_id,
            "clientId": client_id,
            "formId": form_id,
            "score": str(score),
            "formTitle": form_title,
        }
        if traffic_light:
            metadata["trafficLight"] = traffic_light

        return await self.create_notification(
            user_id=coach_id,
            notification_type="check_in_completed",
            title="Check-in Completed",
            message=f"{client_name} completed their {form_title} check-in with a score of {score}%.",
            action_url=f"/responses/{response_id}" if response_id else "/clients",
            metadata=metadata,
        )
