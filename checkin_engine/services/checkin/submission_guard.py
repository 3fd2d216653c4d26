"""
Exactly-once check-in submission.

Each assignment instance moves Pending -> Completed once. The transition is
decided by the store's conditional write (or, for a virtual week, by the
unique recurring-slot index), never by a read followed by a write. A request
that loses the race removes the response it created and answers with the
winner's result, exactly like a retry against a completed assignment.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple

from common.utils.exceptions import APIException, InternalServerException, NotFoundException
from checkin_engine.services.checkin.assignment_resolver import to_context
from checkin_engine.services.checkin.assignment_store import (
    AssignmentStore,
    ConcurrentWriteError,
    DuplicateAssignmentError,
)
from checkin_engine.services.checkin.score_calculator import calculate_score, resolve_final_score
from checkin_engine.services.checkin.types import (
    AssignmentContext,
    CompletedSubmission,
    PersistedAssignment,
    SubmissionPayload,
    SubmissionResult,
    VirtualAssignment,
    WindowClassification,
    STATUS_COMPLETED,
)
from checkin_engine.services.checkin import window_classifier

logger = logging.getLogger(__name__)

# Losing a materialization race to the scheduler leaves a pending row, and a
# conditional complete can miss on a status change that is not a completion.
# A transaction that loses a write conflict is rolled back and lands in one of
# those two cases. One retry against the refreshed row covers them.
MAX_ATTEMPTS = 2


class _LostRace(Exception):
    """The assignment no longer had the status the submission expected."""

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__(assignment_id)


class _SlotTaken(Exception):
    """The virtual week's slot already holds a document."""


class SubmissionGuard:
    """
    Commits a check-in submission exactly once per assignment instance.
    """

    def __init__(
        self,
        store: AssignmentStore,
        trust_client_score: bool = False,
        timezone_name: str = "UTC",
    ):
        """
        Initialize SubmissionGuard.

        Args:
            store: Assignment persistence with conditional writes
            trust_client_score: Persist a client-supplied score instead of the computed one
            timezone_name: Timezone check-in windows are expressed in
        """
        self._store = store
        self._trust_client_score = trust_client_score
        self._timezone_name = timezone_name

    async def submit(
        self,
        context: AssignmentContext,
        payload: SubmissionPayload,
        now: Optional[datetime] = None,
    ) -> Tuple[SubmissionResult, Optional[CompletedSubmission]]:
        """
        Submit a check-in against a resolved assignment.

        Args:
            context: Output of AssignmentResolver.resolve
            payload: Validated responses and optional client score
            now: Submission instant (defaults to the current UTC time)

        Returns:
            (result for the caller, completed submission for side effects).
            The second element is None when nothing new was committed.

        Raises:
            NotFoundException: The assignment disappeared before commit
            InternalServerException: Persistence failed; the response is removed
                unless the completion outcome could not be read back
        """
        now = now or datetime.now(timezone.utc)

        for _ in range(MAX_ATTEMPTS):
            if context.is_completed:
                # Freshness check right before acting
                document = await self._load(context.assignment_id)
                if document.get("status") == STATUS_COMPLETED:
                    return self._already_completed(document), None
                context = to_context(document)

            try:
                return await self._commit(context, payload, now)
            except _LostRace as lost:
                document = await self._load(lost.assignment_id)
                if document.get("status") == STATUS_COMPLETED:
                    return self._already_completed(document), None
                context = to_context(document)
            except _SlotTaken:
                document = await self._store.find_assignment_for_week(
                    context.client_id, context.form_id, context.recurring_week
                )
                if document is None:
                    # The competing write was rolled back; the slot is free again
                    continue
                logger.info(
                    f"Week {context.recurring_week} for client {context.client_id} was materialized"
                    f" concurrently as {document.get('_id')}"
                )
                context = to_context(document)

        raise InternalServerException(
            message="Failed to complete check-in",
            code="SUBMISSION_FAILED",
        )

    async def _load(self, assignment_id: str) -> Dict[str, Any]:
        document = await self._store.get_assignment(assignment_id)
        if document is None:
            raise NotFoundException(
                message="Assignment not found",
                code="ASSIGNMENT_NOT_FOUND",
                details={"reference": assignment_id},
            )
        return document

    def _already_completed(self, document: Dict[str, Any]) -> SubmissionResult:
        """Idempotent branch: answer from the persisted state without writing."""
        assignment_id = str(document["_id"])
        logger.info(f"Assignment {assignment_id} already completed; returning original result")
        return SubmissionResult(
            success=True,
            response_id=document.get("responseId"),
            score=document.get("score"),
            assignment_id=assignment_id,
            already_completed=True,
            message="Check-in already completed",
        )

    async def _commit(
        self,
        context: AssignmentContext,
        payload: SubmissionPayload,
        now: datetime,
    ) -> Tuple[SubmissionResult, CompletedSubmission]:
        window = self._classify(context, now)
        scored = calculate_score(payload.responses)
        final_score = resolve_final_score(scored.score, payload.score, self._trust_client_score)

        # Ids are allocated up front so the response is born pointing at its final owner
        response_id = self._store.new_id()
        assignment_id = (
            self._store.new_id() if isinstance(context, VirtualAssignment) else context.assignment_id
        )
        response = {
            "assignmentId": assignment_id,
            "clientId": context.client_id,
            "coachId": context.coach_id,
            "formId": context.form_id,
            "formTitle": context.form_title,
            "recurringWeek": context.recurring_week,
            "responses": [r.to_document() for r in payload.responses],
            "score": final_score,
            "totalQuestions": scored.total_questions,
            "answeredQuestions": scored.answered_count,
            "submittedAt": now,
            "status": STATUS_COMPLETED,
            "windowStatus": window.status,
        }
        completion = {
            "status": STATUS_COMPLETED,
            "completedAt": now,
            "responseId": response_id,
            "score": final_score,
        }

        # Set before the insert: a timed-out insert may still have landed
        attempted = False
        try:
            async with self._store.transaction():
                attempted = True
                await self._store.create_response(response_id, response)
                canonical_id = await self._complete_assignment(context, assignment_id, completion)
        except (_LostRace, _SlotTaken, APIException):
            await self._discard_response(response_id, attempted)
            raise
        except ConcurrentWriteError as e:
            logger.warning(f"Write conflict while committing {self._describe(context)}: {e}")
            await self._discard_response(response_id, attempted)
            if isinstance(context, VirtualAssignment):
                raise _SlotTaken()
            raise _LostRace(assignment_id)
        except Exception as e:
            logger.error(f"Failed to commit submission for {self._describe(context)}: {e}")
            applied = await self._completion_applied(assignment_id, response_id)
            if applied is None:
                logger.error(
                    f"Outcome of assignment {assignment_id} completion is unknown;"
                    f" keeping response {response_id}"
                )
            elif not applied:
                await self._discard_response(response_id, attempted)
            if not applied:
                raise InternalServerException(
                    message="Failed to complete check-in",
                    code="SUBMISSION_FAILED",
                )
            logger.warning(
                f"Assignment {assignment_id} completion reported an error but was applied;"
                f" keeping response {response_id}"
            )
            canonical_id = assignment_id

        logger.info(
            f"Check-in completed for {self._describe(context)}: assignment {canonical_id},"
            f" response {response_id}, score {final_score}, window {window.status}"
        )

        result = SubmissionResult(
            success=True,
            response_id=response_id,
            score=final_score,
            assignment_id=canonical_id,
            message="Check-in completed successfully",
            window=window,
        )
        completed = CompletedSubmission(
            assignment_id=canonical_id,
            response_id=response_id,
            client_id=context.client_id,
            coach_id=context.coach_id,
            form_id=context.form_id,
            form_title=context.form_title,
            recurring_week=context.recurring_week,
            score=final_score,
            submitted_at=now,
            window_status=window.status,
        )
        return result, completed

    async def _complete_assignment(
        self,
        context: AssignmentContext,
        assignment_id: str,
        completion: Dict[str, Any],
    ) -> str:
        """Perform the Pending -> Completed transition; returns the canonical assignment id."""
        if isinstance(context, PersistedAssignment):
            won = await self._store.compare_and_complete(assignment_id, context.status, completion)
            if not won:
                raise _LostRace(assignment_id)
            return assignment_id

        document = {
            "id": context.reference,
            "clientId": context.client_id,
            "coachId": context.coach_id,
            "formId": context.form_id,
            "formTitle": context.form_title,
            "isRecurring": True,
            "recurringWeek": context.recurring_week,
            "totalWeeks": context.total_weeks,
            "dueDate": context.due_date,
            "checkInWindow": context.check_in_window,
            "baseAssignmentId": context.base_id,
            **completion,
        }
        try:
            return await self._store.materialize_assignment(assignment_id, document)
        except DuplicateAssignmentError:
            # Looked up after the transaction scope closes; a duplicate key aborts it
            raise _SlotTaken()

    async def _completion_applied(self, assignment_id: str, response_id: str) -> Optional[bool]:
        """
        Re-read an assignment after a failed or timed-out completion.

        Returns:
            True if it is completed by this response, False if not,
            None if the re-read failed as well
        """
        try:
            document = await self._store.get_assignment(assignment_id)
        except Exception as e:
            logger.error(f"Failed to re-read assignment {assignment_id}: {e}")
            return None
        return (
            document is not None
            and document.get("status") == STATUS_COMPLETED
            and document.get("responseId") == response_id
        )

    async def _discard_response(self, response_id: str, attempted: bool) -> None:
        if not attempted:
            return
        try:
            await self._store.delete_response(response_id)
        except Exception as e:
            logger.error(f"Failed to remove uncommitted response {response_id}: {e}")

    def _classify(self, context: AssignmentContext, now: datetime) -> WindowClassification:
        return window_classifier.classify_context(context, now, self._timezone_name)

    @staticmethod
    def _describe(context: AssignmentContext) -> str:
        return f"client {context.client_id} form {context.form_id} week {context.recurring_week}"
