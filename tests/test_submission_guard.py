"""Unit tests for exactly-once check-in submission."""

import asyncio
from datetime import datetime, timezone, timedelta

import pytest

from common.utils.exceptions import InternalServerException, NotFoundException
from checkin_engine.services.checkin.assignment_resolver import AssignmentResolver
from checkin_engine.services.checkin.assignment_store import ConcurrentWriteError
from checkin_engine.services.checkin.submission_guard import SubmissionGuard
from checkin_engine.services.checkin.types import QuestionResponse, SubmissionPayload


# Saturday inside the Friday-Monday window of the base week
SUBMITTED_AT = datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def resolver(store):
    return AssignmentResolver(store, due_time=(9, 0))


@pytest.fixture
def guard(store):
    return SubmissionGuard(store)


@pytest.fixture
def payload():
    return SubmissionPayload(responses=[
        QuestionResponse(question_id="q1", type="scale", answer=7, weight=8, score=7),
        QuestionResponse(question_id="q2", type="number", answer=80, weight=9, score=10),
        QuestionResponse(question_id="q3", type="text", answer="Felt good", weight=0, score=0),
    ])


# ─────────────────────────────────────────────────────────────────
# Persisted assignments
# ─────────────────────────────────────────────────────────────────


class TestPersistedSubmission:
    @pytest.mark.asyncio
    async def test_completes_pending_assignment(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.success is True
        assert result.already_completed is False
        assert result.score == 70
        assert result.window.status == "withinWindow"

        stored = store.assignments[str(base_assignment["_id"])]
        assert stored["status"] == "completed"
        assert stored["responseId"] == result.response_id
        assert stored["score"] == 70

        response = store.responses[result.response_id]
        assert response["assignmentId"] == str(base_assignment["_id"])
        assert response["answeredQuestions"] == 3
        assert response["totalQuestions"] == 3
        assert response["windowStatus"] == "withinWindow"

        assert completed.response_id == result.response_id
        assert completed.client_id == "client-1"

    @pytest.mark.asyncio
    async def test_resubmission_is_idempotent(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        first, _ = await guard.submit(context, payload, now=SUBMITTED_AT)

        different = SubmissionPayload(responses=[
            QuestionResponse(question_id="q1", type="scale", answer=1, weight=1, score=1),
        ])
        for _ in range(3):
            fresh = await resolver.resolve("assignment-123")
            again, completed = await guard.submit(fresh, different, now=SUBMITTED_AT)

            assert again.success is True
            assert again.already_completed is True
            assert again.response_id == first.response_id
            assert again.score == first.score
            assert completed is None

        assert len(store.responses) == 1

    @pytest.mark.asyncio
    async def test_stale_pending_context_loses_to_winner(self, guard, resolver, store, base_assignment, payload):
        stale = await resolver.resolve("assignment-123")
        first, _ = await guard.submit(stale, payload, now=SUBMITTED_AT)

        second, completed = await guard.submit(stale, payload, now=SUBMITTED_AT)

        assert second.already_completed is True
        assert second.response_id == first.response_id
        assert completed is None
        assert list(store.responses) == [first.response_id]

    @pytest.mark.asyncio
    async def test_concurrent_submissions_complete_once(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")

        results = await asyncio.gather(*[
            guard.submit(context, payload, now=SUBMITTED_AT) for _ in range(5)
        ])

        new_completions = [completed for _, completed in results if completed is not None]
        assert len(new_completions) == 1
        assert len(store.responses) == 1
        assert {result.response_id for result, _ in results} == set(store.responses)

    @pytest.mark.asyncio
    async def test_status_change_before_commit_retries(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        store.assignments[str(base_assignment["_id"])]["status"] = "overdue"

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.already_completed is False
        assert completed is not None
        assert store.assignments[str(base_assignment["_id"])]["status"] == "completed"
        assert list(store.responses) == [result.response_id]

    @pytest.mark.asyncio
    async def test_completed_assignment_that_vanished(self, guard, resolver, store, base_assignment, payload):
        store.assignments[str(base_assignment["_id"])].update({"status": "completed", "responseId": "r"})
        context = await resolver.resolve("assignment-123")
        store.assignments.clear()

        with pytest.raises(NotFoundException):
            await guard.submit(context, payload, now=SUBMITTED_AT)


# ─────────────────────────────────────────────────────────────────
# Virtual weeks
# ─────────────────────────────────────────────────────────────────


class TestVirtualSubmission:
    @pytest.mark.asyncio
    async def test_materializes_week(self, guard, resolver, store, base_assignment, base_due_date, payload):
        context = await resolver.resolve("assignment-123_week_3")

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT + timedelta(days=14))

        week_3 = store.slot("client-1", "form-1", 3)
        assert len(week_3) == 1
        materialized = week_3[0]
        assert str(materialized["_id"]) == result.assignment_id
        assert materialized["recurringWeek"] == 3
        assert materialized["dueDate"] == base_due_date + timedelta(days=14)
        assert materialized["status"] == "completed"
        assert materialized["responseId"] == result.response_id
        assert materialized["id"] == "assignment-123_week_3"
        assert materialized["baseAssignmentId"] == str(base_assignment["_id"])

        assert store.responses[result.response_id]["assignmentId"] == result.assignment_id
        assert completed.recurring_week == 3

    @pytest.mark.asyncio
    async def test_concurrent_materialization_creates_one_assignment(
        self, guard, resolver, store, base_assignment, payload
    ):
        contexts = [await resolver.resolve("assignment-123_week_3") for _ in range(5)]

        results = await asyncio.gather(*[
            guard.submit(context, payload, now=SUBMITTED_AT) for context in contexts
        ])

        assert len(store.slot("client-1", "form-1", 3)) == 1
        assert len(store.responses) == 1
        assert sum(1 for _, completed in results if completed is not None) == 1
        assert all(result.success for result, _ in results)
        assert {result.response_id for result, _ in results} == set(store.responses)

    @pytest.mark.asyncio
    async def test_falls_through_to_pending_row_created_meanwhile(
        self, guard, resolver, store, base_assignment, payload
    ):
        context = await resolver.resolve("assignment-123_week_2")
        scheduled = store.add_assignment({
            "clientId": "client-1",
            "coachId": "coach-1",
            "formId": "form-1",
            "recurringWeek": 2,
            "dueDate": datetime(2026, 3, 9, 9, 0, tzinfo=timezone.utc),
            "status": "pending",
        })

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.already_completed is False
        assert result.assignment_id == str(scheduled["_id"])
        assert store.assignments[str(scheduled["_id"])]["status"] == "completed"
        assert len(store.slot("client-1", "form-1", 2)) == 1
        assert list(store.responses) == [result.response_id]
        assert store.responses[result.response_id]["assignmentId"] == str(scheduled["_id"])


# ─────────────────────────────────────────────────────────────────
# Window and score policy
# ─────────────────────────────────────────────────────────────────


class TestSubmissionPolicy:
    @pytest.mark.asyncio
    async def test_after_window_still_succeeds(self, guard, resolver, base_assignment, payload):
        context = await resolver.resolve("assignment-123")

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT + timedelta(days=30))

        assert result.success is True
        assert result.window.status == "afterWindow"
        assert result.to_dict()["windowStatus"] == "afterWindow"
        assert completed is not None

    @pytest.mark.asyncio
    async def test_client_score_ignored_by_default(self, guard, resolver, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        payload.score = 99

        result, _ = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.score == 70

    @pytest.mark.asyncio
    async def test_client_score_used_when_trusted(self, store, resolver, base_assignment, payload):
        guard = SubmissionGuard(store, trust_client_score=True)
        context = await resolver.resolve("assignment-123")
        payload.score = 99

        result, _ = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.score == 99


# ─────────────────────────────────────────────────────────────────
# Failure compensation
# ─────────────────────────────────────────────────────────────────


class TestCompensation:
    @pytest.mark.asyncio
    async def test_failed_completion_removes_response(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        store.fail_on.add("compare_and_complete")

        with pytest.raises(InternalServerException) as exc_info:
            await guard.submit(context, payload, now=SUBMITTED_AT)

        assert exc_info.value.code == "SUBMISSION_FAILED"
        assert store.responses == {}
        assert "delete_response" in store.calls
        assert store.assignments[str(base_assignment["_id"])]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_failed_materialization_removes_response(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123_week_4")
        store.fail_on.add("materialize_assignment")

        with pytest.raises(InternalServerException):
            await guard.submit(context, payload, now=SUBMITTED_AT)

        assert store.responses == {}
        assert store.slot("client-1", "form-1", 4) == []

    @pytest.mark.asyncio
    async def test_failed_response_insert_writes_nothing(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        store.fail_on.add("create_response")

        with pytest.raises(InternalServerException):
            await guard.submit(context, payload, now=SUBMITTED_AT)

        assert "compare_and_complete" not in store.calls
        assert store.responses == {}
        assert store.assignments[str(base_assignment["_id"])]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_timed_out_response_insert_is_removed(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        store.fail_after.add("create_response")

        with pytest.raises(InternalServerException):
            await guard.submit(context, payload, now=SUBMITTED_AT)

        assert store.responses == {}
        assert store.assignments[str(base_assignment["_id"])]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_completion_applied_despite_timeout(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        store.fail_after.add("compare_and_complete")

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        stored = store.assignments[str(base_assignment["_id"])]
        assert result.success is True
        assert result.already_completed is False
        assert stored["status"] == "completed"
        assert stored["responseId"] == result.response_id
        assert result.response_id in store.responses
        assert completed is not None

    @pytest.mark.asyncio
    async def test_materialization_applied_despite_timeout(
        self, guard, resolver, store, base_assignment, payload
    ):
        context = await resolver.resolve("assignment-123_week_3")
        store.fail_after.add("materialize_assignment")

        result, _ = await guard.submit(context, payload, now=SUBMITTED_AT)

        week_3 = store.slot("client-1", "form-1", 3)
        assert len(week_3) == 1
        assert str(week_3[0]["_id"]) == result.assignment_id
        assert week_3[0]["responseId"] == result.response_id
        assert store.responses[result.response_id]["assignmentId"] == result.assignment_id

    @pytest.mark.asyncio
    async def test_unknown_outcome_keeps_response(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        store.fail_after.add("compare_and_complete")
        store.fail_on.add("get_assignment")

        with pytest.raises(InternalServerException):
            await guard.submit(context, payload, now=SUBMITTED_AT)

        stored = store.assignments[str(base_assignment["_id"])]
        assert stored["responseId"] in store.responses
        assert "delete_response" not in store.calls

    @pytest.mark.asyncio
    async def test_retry_after_failure_succeeds(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123")
        store.fail_on.add("compare_and_complete")
        with pytest.raises(InternalServerException):
            await guard.submit(context, payload, now=SUBMITTED_AT)

        store.fail_on.clear()
        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.already_completed is False
        assert completed is not None
        assert list(store.responses) == [result.response_id]


# ─────────────────────────────────────────────────────────────────
# Transaction write conflicts
# ─────────────────────────────────────────────────────────────────


class TestWriteConflicts:
    @pytest.mark.asyncio
    async def test_conflict_with_completed_winner_is_idempotent(
        self, guard, resolver, store, base_assignment, payload
    ):
        context = await resolver.resolve("assignment-123")
        key = str(base_assignment["_id"])

        async def conflicting(assignment_id, expected_status, new_state):
            store.assignments[key].update({"status": "completed", "responseId": "winner", "score": 55})
            raise ConcurrentWriteError("WriteConflict")

        store.compare_and_complete = conflicting

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.already_completed is True
        assert result.response_id == "winner"
        assert result.score == 55
        assert completed is None
        assert store.responses == {}

    @pytest.mark.asyncio
    async def test_conflict_on_materialization_returns_winner(
        self, guard, resolver, store, base_assignment, payload
    ):
        context = await resolver.resolve("assignment-123_week_3")

        async def conflicting(assignment_id, assignment):
            store.add_assignment({**assignment, "responseId": "winner", "score": 40})
            raise ConcurrentWriteError("WriteConflict")

        store.materialize_assignment = conflicting

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.already_completed is True
        assert result.response_id == "winner"
        assert completed is None
        assert store.responses == {}

    @pytest.mark.asyncio
    async def test_rolled_back_conflict_is_retried(self, guard, resolver, store, base_assignment, payload):
        context = await resolver.resolve("assignment-123_week_3")
        materialize = store.materialize_assignment
        conflicts = []

        async def conflict_once(assignment_id, assignment):
            if not conflicts:
                conflicts.append(assignment_id)
                raise ConcurrentWriteError("WriteConflict")
            return await materialize(assignment_id, assignment)

        store.materialize_assignment = conflict_once

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.already_completed is False
        assert completed is not None
        assert len(store.slot("client-1", "form-1", 3)) == 1
        assert list(store.responses) == [result.response_id]


# ─────────────────────────────────────────────────────────────────
# Stored window edge cases
# ─────────────────────────────────────────────────────────────────


class TestStoredWindows:
    @pytest.mark.asyncio
    async def test_end_of_day_window(self, guard, resolver, store, base_assignment, payload):
        store.assignments[str(base_assignment["_id"])]["checkInWindow"]["endTime"] = "24:00"
        context = await resolver.resolve("assignment-123")

        result, completed = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.success is True
        assert result.window.status == "withinWindow"
        assert completed is not None

    @pytest.mark.asyncio
    async def test_unreadable_window_counts_as_disabled(self, guard, resolver, store, base_assignment, payload):
        store.assignments[str(base_assignment["_id"])]["checkInWindow"]["startTime"] = 1000
        context = await resolver.resolve("assignment-123")

        result, _ = await guard.submit(context, payload, now=SUBMITTED_AT)

        assert result.success is True
        assert result.window.status == "disabled"
