"""Check-in services."""

from checkin_engine.services.checkin.assignment_store import (
    AssignmentStore,
    MongoAssignmentStore,
    DuplicateAssignmentError,
)
from checkin_engine.services.checkin.assignment_resolver import AssignmentResolver
from checkin_engine.services.checkin.submission_guard import SubmissionGuard
from checkin_engine.services.checkin.payload_validator import PayloadValidator

__all__ = [
    "AssignmentStore",
    "MongoAssignmentStore",
    "DuplicateAssignmentError",
    "AssignmentResolver",
    "SubmissionGuard",
    "PayloadValidator",
]
