"""
Persistence interface for assignments and responses.

The submission guard only talks to an AssignmentStore, so the exactly-once
guarantees rest on two primitives every implementation must provide:

- compare_and_complete: a conditional update keyed by assignment id
- materialize_assignment: an insert that fails on a duplicate recurring slot
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional, Dict, Any, AsyncIterator

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from checkin_engine.database.collections import ASSIGNMENTS, RESPONSES, key_filter

logger = logging.getLogger(__name__)


class DuplicateAssignmentError(Exception):
    """Raised when a recurring slot already has an assignment document."""

    def __init__(self, client_id: str, form_id: str, recurring_week: int):
        self.client_id = client_id
        self.form_id = form_id
        self.recurring_week = recurring_week
        super().__init__(
            f"Assignment already exists for client {client_id}, form {form_id}, week {recurring_week}"
        )


class ConcurrentWriteError(Exception):
    """Raised when a transaction aborts because another writer touched the same documents."""


class AssignmentStore(ABC):
    """
    Abstract interface over the assignment and response collections.

    Documents are plain dicts using the stored camelCase field names;
    ids are passed around as strings.
    """

    @abstractmethod
    def new_id(self) -> str:
        """Allocate a fresh document id."""
        pass

    @abstractmethod
    async def get_assignment(self, assignment_id: str) -> Optional[Dict[str, Any]]:
        """Fetch an assignment by primary key, or None."""
        pass

    @abstractmethod
    async def find_assignment_by_external_id(self, external_id: str) -> Optional[Dict[str, Any]]:
        """Fetch an assignment by its secondary `id` field, or None."""
        pass

    @abstractmethod
    async def find_assignment_for_week(
        self,
        client_id: str,
        form_id: str,
        recurring_week: int
    ) -> Optional[Dict[str, Any]]:
        """Fetch the assignment occupying a recurring slot, or None."""
        pass

    @abstractmethod
    async def create_response(self, response_id: str, response: Dict[str, Any]) -> str:
        """Insert a response document under a pre-allocated id."""
        pass

    @abstractmethod
    async def delete_response(self, response_id: str) -> None:
        """Remove a response (compensation for an uncommitted submission)."""
        pass

    @abstractmethod
    async def compare_and_complete(
        self,
        assignment_id: str,
        expected_status: str,
        new_state: Dict[str, Any]
    ) -> bool:
        """
        Apply `new_state` only if the assignment still has `expected_status`.

        Returns:
            True if this call performed the transition
        """
        pass

    @abstractmethod
    async def materialize_assignment(self, assignment_id: str, assignment: Dict[str, Any]) -> str:
        """
        Insert a new assignment for a previously virtual week.

        Raises:
            DuplicateAssignmentError: The recurring slot is already taken
        """
        pass

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Scope for multi-document atomicity; a no-op unless overridden.

        Raises:
            ConcurrentWriteError: The scope lost a write conflict and was rolled back
        """
        yield


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoAssignmentStore(AssignmentStore):
    """
    MongoDB implementation backed by Motor.

    Every call is bounded by `timeout` seconds. When transactions are
    enabled, calls made inside `transaction()` join the same session.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        client: Optional[AsyncIOMotorClient] = None,
        use_transactions: bool = False,
        timeout: float = 10.0,
    ):
        """
        Initialize MongoAssignmentStore.

        Args:
            db: MongoDB database connection
            client: Motor client (required for transactions)
            use_transactions: Wrap `transaction()` scopes in a Mongo transaction
            timeout: Per-call timeout in seconds
        """
        self._db = db
        self._client = client
        self._use_transactions = use_transactions and client is not None
        self._timeout = timeout
        self._assignments = db[ASSIGNMENTS]
        self._responses = db[RESPONSES]
        self._session: ContextVar = ContextVar("checkin_store_session", default=None)

    async def _bounded(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    def new_id(self) -> str:
        return str(ObjectId())

    async def get_assignment(self, assignment_id: str) -> Optional[Dict[str, Any]]:
        return await self._bounded(
            self._assignments.find_one(key_filter(assignment_id), session=self._session.get())
        )

    async def find_assignment_by_external_id(self, external_id: str) -> Optional[Dict[str, Any]]:
        return await self._bounded(
            self._assignments.find_one({"id": external_id}, session=self._session.get())
        )

    async def find_assignment_for_week(
        self,
        client_id: str,
        form_id: str,
        recurring_week: int
    ) -> Optional[Dict[str, Any]]:
        return await self._bounded(
            self._assignments.find_one(
                {"clientId": client_id, "formId": form_id, "recurringWeek": recurring_week},
                session=self._session.get(),
            )
        )

    async def create_response(self, response_id: str, response: Dict[str, Any]) -> str:
        document = {**response, "_id": ObjectId(response_id)}
        await self._bounded(self._responses.insert_one(document, session=self._session.get()))
        logger.debug(f"Created response {response_id}")
        return response_id

    async def delete_response(self, response_id: str) -> None:
        await self._bounded(
            self._responses.delete_one(key_filter(response_id), session=self._session.get())
        )
        logger.info(f"Deleted uncommitted response {response_id}")

    async def compare_and_complete(
        self,
        assignment_id: str,
        expected_status: str,
        new_state: Dict[str, Any]
    ) -> bool:
        result = await self._bounded(
            self._assignments.find_one_and_update(
                {**key_filter(assignment_id), "status": expected_status},
                {"$set": {**new_state, "updatedAt": _utcnow()}},
                return_document=ReturnDocument.AFTER,
                session=self._session.get(),
            )
        )
        if result is None:
            logger.info(
                f"Assignment {assignment_id} was not in status '{expected_status}'; completion skipped"
            )
            return False
        return True

    async def materialize_assignment(self, assignment_id: str, assignment: Dict[str, Any]) -> str:
        now = _utcnow()
        document = {**assignment, "_id": ObjectId(assignment_id), "createdAt": now, "updatedAt": now}
        try:
            await self._bounded(self._assignments.insert_one(document, session=self._session.get()))
        except DuplicateKeyError:
            raise DuplicateAssignmentError(
                assignment.get("clientId"),
                assignment.get("formId"),
                assignment.get("recurringWeek"),
            )
        logger.info(
            f"Materialized week {assignment.get('recurringWeek')} assignment {assignment_id}"
            f" for client {assignment.get('clientId')}"
        )
        return assignment_id

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if not self._use_transactions:
            yield
            return

        async with await self._client.start_session() as session:
            token = self._session.set(session)
            try:
                async with session.start_transaction():
                    yield
            except PyMongoError as e:
                if e.has_error_label("TransientTransactionError"):
                    raise ConcurrentWriteError(str(e)) from e
                raise
            finally:
                self._session.reset(token)
