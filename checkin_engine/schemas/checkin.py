"""
Pydantic models for check-in submission request/response validation.

Request bodies are deliberately loose; field-level rules are enforced by
PayloadValidator so every rejection uses the INVALID_PAYLOAD error envelope.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


# =============================================================================
# Request Schemas
# =============================================================================

class SubmitCheckInRequest(BaseModel):
    """POST /api/v1/check-ins/{reference}/submit"""
    responses: Optional[List[Dict[str, Any]]] = Field(
        None, description="Ordered list of {questionId, type, answer, weight, score}"
    )
    score: Optional[Any] = Field(None, description="Client-computed overall score (0-100)")


class SubmitCheckInByReferenceRequest(SubmitCheckInRequest):
    """POST /api/v1/check-ins/submit"""
    reference: Optional[str] = Field(None, description="Assignment id or {base}_week_{N}")


# =============================================================================
# Response Schemas
# =============================================================================

class SubmitCheckInResponse(BaseModel):
    """Response for both submit endpoints"""
    success: bool
    responseId: Optional[str] = None
    score: Optional[int] = None
    assignmentId: Optional[str] = None
    alreadyCompleted: Optional[bool] = None
    message: Optional[str] = None
    windowStatus: Optional[str] = None
    windowMessage: Optional[str] = None


class CheckInWindowInfo(BaseModel):
    """Window classification at request time"""
    status: str
    message: str
    description: str
    windowStart: Optional[datetime] = None
    windowEnd: Optional[datetime] = None


class CheckInStatusResponse(BaseModel):
    """Response for GET /api/v1/check-ins/{reference}"""
    reference: str
    linkId: str
    assignmentId: Optional[str] = None
    isVirtual: bool
    status: str
    clientId: str
    coachId: Optional[str] = None
    formId: str
    formTitle: Optional[str] = None
    recurringWeek: int
    totalWeeks: Optional[int] = None
    dueDate: Optional[datetime] = None
    responseId: Optional[str] = None
    score: Optional[int] = None
    window: CheckInWindowInfo
