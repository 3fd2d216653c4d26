"""Notification services."""

from checkin_engine.services.notifications.notification_service import NotificationService

__all__ = ["NotificationService"]
