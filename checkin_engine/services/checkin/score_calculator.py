"""
Weighted check-in scoring.

Turns a list of question responses into a 0-100 score and an answered count.
"""

import logging
import math
from typing import Any, Iterable, Optional

from checkin_engine.services.checkin.types import QuestionResponse, ScoreResult

logger = logging.getLogger(__name__)


QUESTION_TYPES = frozenset({
    "scale",
    "boolean",
    "select",
    "multiselect",
    "number",
    "text",
    "textarea",
    "date",
    "time",
})

# Free-form answers are informational only and never move the score.
SCOREABLE_TYPES = QUESTION_TYPES - {"number", "text", "textarea"}

# Raw per-question scores are on a 0-10 scale
MAX_RAW_SCORE = 10


def _round_half_up(value: float) -> int:
    # NaN and infinities carry no usable score
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def is_answered(answer: Any) -> bool:
    """
    Return True when a response carries an answer.

    Zero and False are real answers; None and blank strings are not.
    """
    if answer is None:
        return False
    if isinstance(answer, str):
        return answer.strip() != ""
    return True


def calculate_score(responses: Iterable[QuestionResponse]) -> ScoreResult:
    """
    Compute the weighted score for a submission.

    score = round(sum(raw * weight) / (sum(weight) * 10) * 100), over
    scoreable question types with a positive weight, clamped to [0, 100].

    Args:
        responses: Question responses in form order

    Returns:
        ScoreResult with score, answered count and total question count
    """
    weighted_total = 0.0
    weight_sum = 0.0
    answered = 0
    total = 0

    for response in responses:
        total += 1
        if is_answered(response.answer):
            answered += 1

        if response.type not in SCOREABLE_TYPES:
            continue
        weight = response.weight or 0
        if weight <= 0:
            continue

        weighted_total += (response.score or 0) * weight
        weight_sum += weight

    if weight_sum == 0:
        score = 0
    else:
        score = _round_half_up(weighted_total / (weight_sum * MAX_RAW_SCORE) * 100)
        score = max(0, min(100, score))

    return ScoreResult(score=score, answered_count=answered, total_questions=total)


def resolve_final_score(
    computed: int,
    client_score: Optional[float],
    trust_client_score: bool = False,
) -> int:
    """
    Pick the score that gets persisted.

    The server-side value wins unless the deployment explicitly trusts
    client-supplied scores. A disagreement is logged either way.

    Args:
        computed: Score recomputed from the responses
        client_score: Overall score sent by the client, if any
        trust_client_score: Whether to persist the client value

    Returns:
        Final score in [0, 100]
    """
    if client_score is None:
        return computed

    try:
        supplied_value = float(client_score)
    except (TypeError, ValueError, OverflowError):
        supplied_value = math.nan
    if not math.isfinite(supplied_value):
        logger.warning(f"Ignoring unusable client-supplied score {client_score!r}")
        return computed

    supplied = max(0, min(100, _round_half_up(supplied_value)))
    if supplied != computed:
        logger.warning(
            f"Client-supplied score {client_score} differs from computed score {computed}"
            f" ({'using client value' if trust_client_score else 'using computed value'})"
        )

    return supplied if trust_client_score else computed
