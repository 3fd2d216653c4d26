"""
Assignment reference resolution.

A reference is either a stored assignment id / external id, or a virtual
week reference of the form "{base}_week_{N}" pointing at a recurring week
that may not have a document yet.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple

from common.utils.exceptions import NotFoundException
from config.checkin_config import DEFAULT_CHECK_IN_WINDOW
from checkin_engine.services.checkin.assignment_store import AssignmentStore
from checkin_engine.services.checkin.types import (
    AssignmentContext,
    PersistedAssignment,
    VirtualAssignment,
    STATUS_PENDING,
)
from checkin_engine.services.checkin.window_classifier import ensure_utc

logger = logging.getLogger(__name__)

VIRTUAL_WEEK_PATTERN = re.compile(r"^(?P<base>.+)_week_(?P<week>\d+)$")

DAYS_PER_WEEK = 7


def parse_week_reference(reference: str) -> Optional[Tuple[str, int]]:
    """Split "{base}_week_{N}" into (base, N); None if the pattern doesn't match."""
    match = VIRTUAL_WEEK_PATTERN.match(reference)
    if not match:
        return None
    return match.group("base"), int(match.group("week"))


def checkin_link_id(assignment: Dict[str, Any]) -> str:
    """
    Reference a client link should use to open a specific recurring week.

    Recurring assignments are addressed as "{id}_week_{N}" so the form opens
    the right week rather than the series' base document.
    """
    link_id = str(assignment.get("id") or assignment.get("_id"))
    week = assignment.get("recurringWeek")
    if assignment.get("isRecurring") and week is not None and "_week_" not in link_id:
        return f"{link_id}_week_{week}"
    return link_id


def to_context(document: Dict[str, Any]) -> PersistedAssignment:
    """Build a persisted assignment context from a stored document."""
    due_date = document.get("dueDate")
    return PersistedAssignment(
        assignment_id=str(document["_id"]),
        client_id=document.get("clientId"),
        coach_id=document.get("coachId"),
        form_id=document.get("formId"),
        recurring_week=document.get("recurringWeek") or 1,
        due_date=ensure_utc(due_date) if isinstance(due_date, datetime) else None,
        status=document.get("status") or STATUS_PENDING,
        check_in_window=document.get("checkInWindow") or dict(DEFAULT_CHECK_IN_WINDOW),
        form_title=document.get("formTitle"),
        total_weeks=document.get("totalWeeks"),
        response_id=document.get("responseId"),
        score=document.get("score"),
        link_id=checkin_link_id(document),
    )


class AssignmentResolver:
    """
    Resolves assignment references to concrete or virtual contexts.
    Read only - never writes.
    """

    def __init__(self, store: AssignmentStore, due_time: Tuple[int, int] = (9, 0)):
        """
        Initialize AssignmentResolver.

        Args:
            store: Assignment persistence
            due_time: (hour, minute) every computed due date is normalized to
        """
        self._store = store
        self._due_time = due_time

    async def resolve(self, reference: str) -> AssignmentContext:
        """
        Resolve a reference to an assignment context.

        Args:
            reference: Assignment id, external id, or "{base}_week_{N}"

        Returns:
            PersistedAssignment or VirtualAssignment

        Raises:
            NotFoundException: Nothing matches the reference
        """
        week_reference = parse_week_reference(reference)
        if week_reference is not None:
            base_reference, week = week_reference
            return await self._resolve_week(reference, base_reference, week)

        document = await self._store.get_assignment(reference)
        if document is None:
            document = await self._store.find_assignment_by_external_id(reference)
        if document is None:
            raise self._not_found(reference)

        return to_context(document)

    async def _resolve_week(self, reference: str, base_reference: str, week: int) -> AssignmentContext:
        base = await self._store.find_assignment_by_external_id(base_reference)
        if base is None:
            base = await self._store.get_assignment(base_reference)
        if base is None or week < 1:
            raise self._not_found(reference)

        existing = await self._store.find_assignment_for_week(base.get("clientId"), base.get("formId"), week)
        if existing is not None:
            return to_context(existing)

        base_week = base.get("recurringWeek") or 1
        if week == base_week:
            # Week 1 is never virtual; the base document is that week.
            return to_context(base)

        total_weeks = base.get("totalWeeks")
        if week < base_week or (total_weeks and week > total_weeks):
            logger.info(f"Week {week} is outside the recurring series of {base_reference}")
            raise self._not_found(reference)

        base_due = base.get("dueDate")
        if not isinstance(base_due, datetime):
            logger.error(f"Base assignment {base.get('_id')} has no usable due date")
            raise self._not_found(reference)

        logger.debug(f"Resolved {reference} to virtual week {week} of {base.get('_id')}")
        return VirtualAssignment(
            reference=reference,
            base_id=str(base["_id"]),
            client_id=base.get("clientId"),
            coach_id=base.get("coachId"),
            form_id=base.get("formId"),
            recurring_week=week,
            due_date=self.week_due_date(ensure_utc(base_due), week - base_week),
            check_in_window=base.get("checkInWindow") or dict(DEFAULT_CHECK_IN_WINDOW),
            form_title=base.get("formTitle"),
            total_weeks=total_weeks,
        )

    def week_due_date(self, base_due: datetime, weeks_after: int) -> datetime:
        """Due date `weeks_after` weeks after the base, at the normalized time of day."""
        hour, minute = self._due_time
        due = base_due + timedelta(days=DAYS_PER_WEEK * weeks_after)
        return due.replace(hour=hour, minute=minute, second=0, microsecond=0)

    @staticmethod
    def _not_found(reference: str) -> NotFoundException:
        return NotFoundException(
            message="Assignment not found",
            code="ASSIGNMENT_NOT_FOUND",
            details={"reference": reference},
        )
