"""
Check-in submission pipeline functions.

Stateless orchestration logic for check-in submission and lookup.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from fastapi import BackgroundTasks

from common.utils.exceptions import ValidationException
from checkin_engine.services.checkin.assignment_resolver import AssignmentResolver
from checkin_engine.services.checkin.payload_validator import PayloadValidator
from checkin_engine.services.checkin.submission_guard import SubmissionGuard
from checkin_engine.services.checkin.types import AssignmentContext
from checkin_engine.services.checkin import window_classifier
from checkin_engine.services.dispatch.side_effect_dispatcher import SideEffectDispatcher

logger = logging.getLogger(__name__)


def _invalid(message: str) -> ValidationException:
    return ValidationException(message=message, code="INVALID_PAYLOAD")


async def submit_checkin_pipeline(
    resolver: AssignmentResolver,
    guard: SubmissionGuard,
    dispatcher: SideEffectDispatcher,
    reference: Optional[str],
    responses: Optional[List[Dict[str, Any]]],
    score: Optional[Any] = None,
    background_tasks: Optional[BackgroundTasks] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Orchestrates the check-in submission flow.

    Args:
        resolver: For turning the reference into an assignment context
        guard: For the exactly-once commit
        dispatcher: For post-commit side effects
        reference: Assignment id, external id, or "{base}_week_{N}"
        responses: Raw question responses from the request
        score: Optional client-computed overall score
        background_tasks: FastAPI background tasks; side effects are
            scheduled on the event loop when omitted
        now: Submission instant (defaults to the current UTC time)

    Returns:
        Submission result dict (success, responseId, score, ...)
    """
    # Validate before touching storage
    for is_valid, error in (
        PayloadValidator.validate_reference(reference),
        PayloadValidator.validate_responses(responses),
        PayloadValidator.validate_score(score),
    ):
        if not is_valid:
            raise _invalid(error)

    payload = PayloadValidator.to_payload(responses, score)
    context = await resolver.resolve(reference.strip())

    result, completed = await guard.submit(context, payload, now=now)

    # Side effects only for a new completion, never on the idempotent branch
    if completed is not None:
        if background_tasks is not None:
            background_tasks.add_task(dispatcher.dispatch, completed)
        else:
            dispatcher.schedule(completed)

    return result.to_dict()


async def get_checkin_status_pipeline(
    resolver: AssignmentResolver,
    reference: str,
    timezone_name: str = "UTC",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Resolve a reference and report its state and window position.

    Args:
        resolver: For turning the reference into an assignment context
        reference: Assignment id, external id, or "{base}_week_{N}"
        timezone_name: Timezone check-in windows are expressed in
        now: Instant to classify (defaults to the current UTC time)

    Returns:
        dict matching CheckInStatusResponse
    """
    is_valid, error = PayloadValidator.validate_reference(reference)
    if not is_valid:
        raise _invalid(error)

    now = now or datetime.now(timezone.utc)
    context = await resolver.resolve(reference.strip())

    window = window_classifier.classify_context(context, now, timezone_name)

    return _format_context(reference, context, window)


def _format_context(reference: str, context: AssignmentContext, window) -> Dict[str, Any]:
    """Format an assignment context for API response."""
    return {
        "reference": reference,
        "linkId": context.link_id or reference,
        "assignmentId": None if context.is_virtual else context.assignment_id,
        "isVirtual": context.is_virtual,
        "status": context.status,
        "clientId": context.client_id,
        "coachId": context.coach_id,
        "formId": context.form_id,
        "formTitle": context.form_title,
        "recurringWeek": context.recurring_week,
        "totalWeeks": context.total_weeks,
        "dueDate": context.due_date,
        "responseId": None if context.is_virtual else context.response_id,
        "score": None if context.is_virtual else context.score,
        "window": {
            "status": window.status,
            "message": window.message,
            "description": window_classifier.describe_window(context.check_in_window),
            "windowStart": window.window_start,
            "windowEnd": window.window_end,
        },
    }
