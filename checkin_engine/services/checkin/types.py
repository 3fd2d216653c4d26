"""
Type definitions for the check-in submission engine.

Contains dataclasses shared by the resolver, guard and dispatcher.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Dict, Any, Union


STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_VIRTUAL_PENDING = "virtual-pending"


@dataclass(frozen=True)
class PersistedAssignment:
    """An assignment backed by a stored document."""
    assignment_id: str
    client_id: str
    coach_id: str
    form_id: str
    recurring_week: int
    due_date: Optional[datetime]
    status: str  # "pending" | "completed"
    check_in_window: Dict[str, Any]
    form_title: Optional[str] = None
    total_weeks: Optional[int] = None
    response_id: Optional[str] = None
    score: Optional[int] = None
    link_id: Optional[str] = None  # reference client links should use

    @property
    def is_virtual(self) -> bool:
        return False

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED


@dataclass(frozen=True)
class VirtualAssignment:
    """A future recurring week that has no stored document yet."""
    reference: str
    base_id: str
    client_id: str
    coach_id: str
    form_id: str
    recurring_week: int
    due_date: datetime
    check_in_window: Dict[str, Any]
    form_title: Optional[str] = None
    total_weeks: Optional[int] = None
    status: str = STATUS_VIRTUAL_PENDING

    @property
    def is_virtual(self) -> bool:
        return True

    @property
    def link_id(self) -> str:
        return self.reference

    @property
    def is_completed(self) -> bool:
        return False


AssignmentContext = Union[PersistedAssignment, VirtualAssignment]


@dataclass
class QuestionResponse:
    """A single answered question as submitted by the client."""
    question_id: str
    type: str
    answer: Any = None
    weight: float = 0
    score: float = 0

    def to_document(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "type": self.type,
            "answer": self.answer,
            "weight": self.weight,
            "score": self.score,
        }


@dataclass
class SubmissionPayload:
    """Validated submission body."""
    responses: List[QuestionResponse]
    score: Optional[float] = None


@dataclass
class ScoreResult:
    """Output of the score calculator."""
    score: int
    answered_count: int
    total_questions: int


@dataclass
class WindowClassification:
    """Advisory position of a submission relative to its check-in window."""
    status: str  # "beforeWindow" | "withinWindow" | "afterWindow" | "disabled"
    message: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None


@dataclass
class SubmissionResult:
    """Result returned to the caller of the submission guard."""
    success: bool
    response_id: str
    score: int
    assignment_id: str
    already_completed: bool = False
    message: Optional[str] = None
    window: Optional[WindowClassification] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "responseId": self.response_id,
            "score": self.score,
            "assignmentId": self.assignment_id,
        }
        if self.already_completed:
            data["alreadyCompleted"] = True
        if self.message:
            data["message"] = self.message
        if self.window is not None:
            data["windowStatus"] = self.window.status
            data["windowMessage"] = self.window.message
        return data


@dataclass
class CompletedSubmission:
    """A freshly committed submission, handed to the side-effect dispatcher."""
    assignment_id: str
    response_id: str
    client_id: str
    coach_id: str
    form_id: str
    form_title: Optional[str]
    recurring_week: int
    score: int
    submitted_at: datetime
    window_status: Optional[str] = None
