"""
Check-in window classification.

A window is a weekly recurring range such as "Friday 10:00 to Monday 22:00",
anchored to the calendar week of an assignment's due date. Classification is
advisory: it drives client-facing messaging and never blocks a submission.
"""

import logging
from datetime import datetime, date, time, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import pytz

from checkin_engine.services.checkin.types import AssignmentContext, WindowClassification

logger = logging.getLogger(__name__)

BEFORE_WINDOW = "beforeWindow"
WITHIN_WINDOW = "withinWindow"
AFTER_WINDOW = "afterWindow"
DISABLED = "disabled"

# Monday-based, matching datetime.weekday()
DAY_INDEX = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def _day_index(day_name: Optional[str]) -> int:
    # Unknown names fall back to Sunday
    return DAY_INDEX.get((day_name or "").strip().lower(), DAY_INDEX["sunday"])


def _parse_time(time_string: Optional[str]) -> Tuple[int, int]:
    """Convert "HH:MM" to (hours, minutes); malformed parts become 0."""
    hours, _, minutes = (time_string or "").partition(":")
    try:
        h = int(hours)
    except ValueError:
        h = 0
    try:
        m = int(minutes)
    except ValueError:
        m = 0
    return h, m


def format_time(time_string: str) -> str:
    """Format "HH:MM" for display, e.g. "22:00" -> "10:00 PM"."""
    hours, minutes = _parse_time(time_string)
    hours, minutes = divmod((hours * 60 + minutes) % (24 * 60), 60)
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
    return f"{display_hours}:{minutes:02d} {period}"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _localize(tz, day: date, hours: int, minutes: int) -> datetime:
    # Offsets past the day roll over, so "24:00" is midnight of the next day
    return tz.localize(datetime.combine(day, time(0)) + timedelta(hours=hours, minutes=minutes))


def window_bounds(
    window: Dict[str, Any],
    due_date: datetime,
    tz_name: str = "UTC",
) -> Tuple[datetime, datetime]:
    """
    Resolve a window to concrete (start, end) instants for a due date.

    Both ends are placed in the Monday-based week containing the due date.
    A window that wraps the week boundary (start on or after end) has its
    start pulled back one week.

    Returns:
        (window_start, window_end) as UTC datetimes
    """
    tz = pytz.timezone(tz_name)
    local_due = ensure_utc(due_date).astimezone(tz)
    week_start = local_due.date() - timedelta(days=local_due.weekday())

    start_hours, start_minutes = _parse_time(window.get("startTime"))
    end_hours, end_minutes = _parse_time(window.get("endTime"))
    start_day = week_start + timedelta(days=_day_index(window.get("startDay")))
    end_day = week_start + timedelta(days=_day_index(window.get("endDay")))

    window_end = _localize(tz, end_day, end_hours, end_minutes)
    window_start = _localize(tz, start_day, start_hours, start_minutes)
    if window_start >= window_end:
        window_start = _localize(tz, start_day - timedelta(days=7), start_hours, start_minutes)

    return window_start.astimezone(timezone.utc), window_end.astimezone(timezone.utc)


def classify(
    window: Optional[Dict[str, Any]],
    due_date: datetime,
    now: datetime,
    tz_name: str = "UTC",
) -> WindowClassification:
    """
    Classify `now` against the check-in window of a due date.

    Args:
        window: CheckInWindow config (enabled, startDay, startTime, endDay, endTime)
        due_date: Due date of the assignment instance
        now: Submission instant
        tz_name: Timezone the weekday/time values are expressed in

    Returns:
        WindowClassification; a disabled window is always open
    """
    if not window or not window.get("enabled"):
        return WindowClassification(status=DISABLED, message="Check-ins are always available")

    window_start, window_end = window_bounds(window, due_date, tz_name)
    now = ensure_utc(now)

    if now < window_start:
        day = (window.get("startDay") or "sunday").capitalize()
        return WindowClassification(
            status=BEFORE_WINDOW,
            message=f"Check-in window opens {day} at {format_time(window.get('startTime', '00:00'))}",
            window_start=window_start,
            window_end=window_end,
        )

    if now <= window_end:
        return WindowClassification(
            status=WITHIN_WINDOW,
            message="Check-in window is open",
            window_start=window_start,
            window_end=window_end,
        )

    return WindowClassification(
        status=AFTER_WINDOW,
        message="Check-in window closed. Your check-in was saved and may be reviewed next period",
        window_start=window_start,
        window_end=window_end,
    )


def classify_context(
    context: AssignmentContext,
    now: datetime,
    tz_name: str = "UTC",
) -> WindowClassification:
    """
    Classify `now` for a resolved assignment.

    An assignment without a due date, or with a window that cannot be
    placed on the calendar, is reported as disabled.
    """
    if context.due_date is None:
        return classify(None, now, now)
    try:
        return classify(context.check_in_window, context.due_date, now, tz_name)
    except (ValueError, TypeError, AttributeError, OverflowError, pytz.UnknownTimeZoneError) as e:
        logger.warning(
            f"Unusable check-in window {context.check_in_window!r} for client {context.client_id}"
            f" week {context.recurring_week}: {e}"
        )
        return classify(None, now, now)


def describe_window(window: Optional[Dict[str, Any]]) -> str:
    """Human-readable description, e.g. "Friday 10:00 AM - Monday 10:00 PM"."""
    if not window or not window.get("enabled"):
        return "Check-ins available anytime"

    start_day = (window.get("startDay") or "").capitalize()
    end_day = (window.get("endDay") or "").capitalize()
    start_time = format_time(window.get("startTime", "00:00"))
    end_time = format_time(window.get("endTime", "00:00"))

    return f"{start_day} {start_time} - {end_day} {end_time}"
