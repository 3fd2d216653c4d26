"""Unit tests for weighted check-in scoring."""

import logging

import pytest

from checkin_engine.services.checkin.score_calculator import (
    calculate_score,
    is_answered,
    resolve_final_score,
)
from checkin_engine.services.checkin.types import QuestionResponse


def _response(question_type="scale", answer=5, weight=1, score=5, question_id="q"):
    return QuestionResponse(
        question_id=question_id,
        type=question_type,
        answer=answer,
        weight=weight,
        score=score,
    )


# ─────────────────────────────────────────────────────────────────
# calculate_score
# ─────────────────────────────────────────────────────────────────


class TestCalculateScore:
    def test_number_question_never_contributes(self):
        result = calculate_score([
            _response("scale", answer=7, weight=8, score=7),
            _response("number", answer=42, weight=9, score=10),
        ])

        assert result.score == 70

    @pytest.mark.parametrize("free_form_type", ["number", "text", "textarea"])
    def test_free_form_types_are_excluded(self, free_form_type):
        result = calculate_score([_response(free_form_type, answer="x", weight=5, score=10)])

        assert result.score == 0
        assert result.answered_count == 1

    def test_weighted_average_across_types(self):
        result = calculate_score([
            _response("scale", weight=2, score=10),
            _response("boolean", answer=True, weight=1, score=0),
            _response("select", answer="b", weight=1, score=5),
        ])

        # (20 + 0 + 5) / (4 * 10) * 100 = 62.5
        assert result.score == 63

    def test_rounds_half_up(self):
        result = calculate_score([
            _response("scale", weight=1, score=4),
            _response("scale", weight=1, score=5),
            _response("scale", weight=2, score=0),
        ])

        # 9 / 40 * 100 = 22.5
        assert result.score == 23

    def test_zero_weight_items_are_ignored(self):
        result = calculate_score([
            _response("scale", weight=0, score=0),
            _response("scale", weight=1, score=8),
        ])

        assert result.score == 80

    def test_no_weight_scores_zero(self):
        result = calculate_score([_response("scale", weight=0, score=10)])

        assert result.score == 0

    def test_score_is_clamped(self):
        result = calculate_score([_response("scale", weight=1, score=25)])

        assert result.score == 100

    def test_overflowing_weights_score_zero(self):
        result = calculate_score([
            _response("scale", weight=1e308, score=10),
            _response("scale", weight=1e308, score=10),
        ])

        assert result.score == 0

    def test_empty_responses(self):
        result = calculate_score([])

        assert result.score == 0
        assert result.answered_count == 0
        assert result.total_questions == 0


# ─────────────────────────────────────────────────────────────────
# Answered count
# ─────────────────────────────────────────────────────────────────


class TestAnsweredCount:
    def test_zero_and_false_count_blank_and_none_do_not(self):
        answers = [0, False, "", None, "hi"]
        result = calculate_score([
            _response("text", answer=a, question_id=f"q{i}") for i, a in enumerate(answers)
        ])

        assert result.answered_count == 3
        assert result.total_questions == 5

    def test_whitespace_only_is_unanswered(self):
        assert is_answered("   ") is False

    def test_lists_count_as_answered(self):
        assert is_answered(["a", "b"]) is True


# ─────────────────────────────────────────────────────────────────
# Client-supplied score
# ─────────────────────────────────────────────────────────────────


class TestResolveFinalScore:
    def test_no_client_score_uses_computed(self):
        assert resolve_final_score(70, None) == 70

    def test_mismatch_keeps_computed_by_default(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert resolve_final_score(70, 95) == 70

        assert "differs from computed score" in caplog.text

    def test_trusted_client_score_is_clamped(self):
        assert resolve_final_score(70, 140, trust_client_score=True) == 100

    def test_trusted_client_score_is_rounded(self):
        assert resolve_final_score(70, 71.5, trust_client_score=True) == 72

    @pytest.mark.parametrize("client_score", [float("inf"), float("nan"), 10 ** 400])
    def test_unusable_client_score_falls_back_to_computed(self, client_score, caplog):
        with caplog.at_level(logging.WARNING):
            assert resolve_final_score(70, client_score, trust_client_score=True) == 70

        assert "Ignoring unusable client-supplied score" in caplog.text

    def test_matching_score_logs_nothing(self, caplog):
        with caplog.at_level(logging.WARNING):
            resolve_final_score(70, 70.2)

        assert caplog.text == ""
