"""
FastAPI router for check-in submission endpoints.

Provides endpoints for submitting check-ins and looking up assignments.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends

from checkin_engine.config import settings
from checkin_engine.dependencies import (
    get_assignment_resolver,
    get_submission_guard,
    get_side_effect_dispatcher,
)
from checkin_engine.services.checkin.assignment_resolver import AssignmentResolver
from checkin_engine.services.checkin.submission_guard import SubmissionGuard
from checkin_engine.services.dispatch.side_effect_dispatcher import SideEffectDispatcher
from checkin_engine.schemas.checkin import (
    SubmitCheckInRequest,
    SubmitCheckInByReferenceRequest,
    SubmitCheckInResponse,
    CheckInStatusResponse,
)
from checkin_engine.pipelines import submission as pipelines

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/check-ins", tags=["check-ins"])


@router.post("/submit", response_model=SubmitCheckInResponse, response_model_exclude_none=True)
async def submit_checkin_by_reference(
    body: SubmitCheckInByReferenceRequest,
    background_tasks: BackgroundTasks,
    resolver: Annotated[AssignmentResolver, Depends(get_assignment_resolver)],
    guard: Annotated[SubmissionGuard, Depends(get_submission_guard)],
    dispatcher: Annotated[SideEffectDispatcher, Depends(get_side_effect_dispatcher)],
):
    """
    Submit a check-in, with the assignment reference in the body.
    """
    result = await pipelines.submit_checkin_pipeline(
        resolver=resolver,
        guard=guard,
        dispatcher=dispatcher,
        reference=body.reference,
        responses=body.responses,
        score=body.score,
        background_tasks=background_tasks,
    )

    return SubmitCheckInResponse(**result)


@router.post("/{reference}/submit", response_model=SubmitCheckInResponse, response_model_exclude_none=True)
async def submit_checkin(
    reference: str,
    body: SubmitCheckInRequest,
    background_tasks: BackgroundTasks,
    resolver: Annotated[AssignmentResolver, Depends(get_assignment_resolver)],
    guard: Annotated[SubmissionGuard, Depends(get_submission_guard)],
    dispatcher: Annotated[SideEffectDispatcher, Depends(get_side_effect_dispatcher)],
):
    """
    Submit a check-in for an assignment.

    The reference may be a stored assignment id or a recurring week such as
    "{assignmentId}_week_3". Resubmitting a completed assignment returns the
    original result with alreadyCompleted=true.
    """
    result = await pipelines.submit_checkin_pipeline(
        resolver=resolver,
        guard=guard,
        dispatcher=dispatcher,
        reference=reference,
        responses=body.responses,
        score=body.score,
        background_tasks=background_tasks,
    )

    return SubmitCheckInResponse(**result)


@router.get("/{reference}", response_model=CheckInStatusResponse)
async def get_checkin(
    reference: str,
    resolver: Annotated[AssignmentResolver, Depends(get_assignment_resolver)],
):
    """
    Resolve an assignment reference.

    Returns the assignment state and where now falls in its check-in window.
    """
    result = await pipelines.get_checkin_status_pipeline(
        resolver=resolver,
        reference=reference,
        timezone_name=settings.CHECKIN_TIMEZONE,
    )

    return CheckInStatusResponse(**result)
