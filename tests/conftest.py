"""Shared test fixtures for check-in engine tests."""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

import pytest
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from checkin_engine.services.checkin.assignment_store import AssignmentStore, DuplicateAssignmentError


class InMemoryAssignmentStore(AssignmentStore):
    """
    AssignmentStore test double.

    Every call yields to the event loop first so concurrent submissions
    interleave; the conditional write and the slot check are atomic.
    Operation names listed in `fail_on` raise RuntimeError before doing
    anything; names in `fail_after` apply their write and then time out.
    """

    def __init__(self):
        self.assignments: Dict[str, Dict[str, Any]] = {}
        self.responses: Dict[str, Dict[str, Any]] = {}
        self.fail_on: set = set()
        self.fail_after: set = set()
        self.calls: List[str] = []

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        await asyncio.sleep(0)
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} failed")

    def _exit(self, operation: str) -> None:
        if operation in self.fail_after:
            raise asyncio.TimeoutError()

    def add_assignment(self, document: Dict[str, Any]) -> Dict[str, Any]:
        document = dict(document)
        document.setdefault("_id", ObjectId())
        self.assignments[str(document["_id"])] = document
        return document

    def slot(self, client_id: str, form_id: str, week: int) -> List[Dict[str, Any]]:
        return [
            a for a in self.assignments.values()
            if a.get("clientId") == client_id and a.get("formId") == form_id
            and a.get("recurringWeek") == week
        ]

    def new_id(self) -> str:
        return str(ObjectId())

    async def get_assignment(self, assignment_id: str) -> Optional[Dict[str, Any]]:
        await self._enter("get_assignment")
        return copy.deepcopy(self.assignments.get(assignment_id))

    async def find_assignment_by_external_id(self, external_id: str) -> Optional[Dict[str, Any]]:
        await self._enter("find_assignment_by_external_id")
        for a in self.assignments.values():
            if a.get("id") == external_id:
                return copy.deepcopy(a)
        return None

    async def find_assignment_for_week(self, client_id, form_id, recurring_week):
        await self._enter("find_assignment_for_week")
        matches = self.slot(client_id, form_id, recurring_week)
        return copy.deepcopy(matches[0]) if matches else None

    async def create_response(self, response_id: str, response: Dict[str, Any]) -> str:
        await self._enter("create_response")
        self.responses[response_id] = {**response, "_id": ObjectId(response_id)}
        self._exit("create_response")
        return response_id

    async def delete_response(self, response_id: str) -> None:
        await self._enter("delete_response")
        self.responses.pop(response_id, None)

    async def compare_and_complete(self, assignment_id, expected_status, new_state) -> bool:
        await self._enter("compare_and_complete")
        current = self.assignments.get(assignment_id)
        if current is None or current.get("status") != expected_status:
            return False
        current.update(new_state)
        self._exit("compare_and_complete")
        return True

    async def materialize_assignment(self, assignment_id: str, assignment: Dict[str, Any]) -> str:
        await self._enter("materialize_assignment")
        if self.slot(assignment["clientId"], assignment["formId"], assignment["recurringWeek"]):
            raise DuplicateAssignmentError(
                assignment["clientId"], assignment["formId"], assignment["recurringWeek"]
            )
        self.assignments[assignment_id] = {**assignment, "_id": ObjectId(assignment_id)}
        self._exit("materialize_assignment")
        return assignment_id


@pytest.fixture
def store():
    return InMemoryAssignmentStore()


@pytest.fixture
def check_in_window():
    return {
        "enabled": True,
        "startDay": "friday",
        "startTime": "10:00",
        "endDay": "monday",
        "endTime": "22:00",
    }


@pytest.fixture
def base_due_date():
    # Monday
    return datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_assignment(store, check_in_window, base_due_date):
    """Week 1 of a 12-week recurring series, still pending."""
    return store.add_assignment({
        "id": "assignment-123",
        "clientId": "client-1",
        "coachId": "coach-1",
        "formId": "form-1",
        "formTitle": "Weekly Check-in",
        "isRecurring": True,
        "recurringWeek": 1,
        "totalWeeks": 12,
        "dueDate": base_due_date,
        "checkInWindow": check_in_window,
        "status": "pending",
    })


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, insert_one,
    # count_documents etc. stay as AsyncMock.
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db
