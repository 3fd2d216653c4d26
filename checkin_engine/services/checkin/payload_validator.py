"""
Check-in payload validation.

Validates a raw submission body before any assignment is resolved.
"""

import math
from typing import Tuple, Optional, Dict, Any, List

from checkin_engine.services.checkin.score_calculator import QUESTION_TYPES
from checkin_engine.services.checkin.types import QuestionResponse, SubmissionPayload


def _is_finite(value: float) -> bool:
    # Integers beyond float range overflow instead of reporting inf
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


class PayloadValidator:
    """
    Validates check-in submission payloads.
    """

    MAX_REFERENCE_LENGTH = 200
    MAX_WEIGHT = 1000
    MAX_RESPONSE_SCORE = 1000

    @classmethod
    def validate_reference(cls, reference: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Validate an assignment reference.

        Args:
            reference: Assignment id, external id, or "{base}_week_{N}"

        Returns:
            tuple of (is_valid, error_message)
        """
        if reference is None or not isinstance(reference, str) or not reference.strip():
            return False, "Missing required field: reference"

        if len(reference) > cls.MAX_REFERENCE_LENGTH:
            return False, f"Reference cannot exceed {cls.MAX_REFERENCE_LENGTH} characters"

        return True, None

    @classmethod
    def validate_responses(cls, responses: Optional[List[Dict[str, Any]]]) -> Tuple[bool, Optional[str]]:
        """
        Validate the list of question responses.

        Args:
            responses: list of {questionId, type, answer, weight, score} dicts

        Returns:
            tuple of (is_valid, error_message)

        Rules:
            - At least one response
            - Every response has a questionId and a known type
            - Weights are finite numbers in [0, MAX_WEIGHT]
            - Scores are finite numbers no larger than MAX_RESPONSE_SCORE in magnitude
        """
        if not responses:
            return False, "At least one response is required"

        for index, response in enumerate(responses):
            if not isinstance(response, dict):
                return False, f"Response {index} must be an object"

            if not response.get("questionId"):
                return False, f"Response {index} is missing questionId"

            question_type = response.get("type")
            if question_type not in QUESTION_TYPES:
                return False, f"Response {index} has unknown question type '{question_type}'"

            weight = response.get("weight", 0)
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                return False, f"Response {index} weight must be a number"
            if not _is_finite(weight):
                return False, f"Response {index} weight must be a finite number"
            if weight < 0:
                return False, f"Response {index} weight cannot be negative"
            if weight > cls.MAX_WEIGHT:
                return False, f"Response {index} weight cannot exceed {cls.MAX_WEIGHT}"

            score = response.get("score", 0)
            if isinstance(score, bool) or not isinstance(score, (int, float)):
                return False, f"Response {index} score must be a number"
            if not _is_finite(score) or abs(score) > cls.MAX_RESPONSE_SCORE:
                return False, f"Response {index} score is out of range"

        return True, None

    @classmethod
    def validate_score(cls, score: Any) -> Tuple[bool, Optional[str]]:
        """Validate the optional client-computed overall score."""
        if score is None:
            return True, None

        if isinstance(score, bool) or not isinstance(score, (int, float)):
            return False, "Score must be a number"

        if not _is_finite(score):
            return False, "Score must be a finite number"

        return True, None

    @staticmethod
    def to_payload(responses: List[Dict[str, Any]], score: Optional[float] = None) -> SubmissionPayload:
        """Convert validated response dicts to a SubmissionPayload."""
        return SubmissionPayload(
            responses=[
                QuestionResponse(
                    question_id=r["questionId"],
                    type=r["type"],
                    answer=r.get("answer"),
                    weight=r.get("weight", 0),
                    score=r.get("score", 0),
                )
                for r in responses
            ],
            score=score,
        )
