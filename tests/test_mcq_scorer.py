"""Tests for deterministic MCQ and mindset scoring."""

import pytest

from evalent.tools.scoring.mcq_scorer import (
    extract_letter, mindset_item_value, percentage, round_half_up, score_mcqs,
)
from evalent.tools.scoring.models import AnswerKey, Domain, QuestionType


@pytest.fixture
def animal_key():
    return AnswerKey(
        grade=5, question_number=1, domain=Domain.ENGLISH, question_type=QuestionType.MCQ,
        label="g5_en_q1", option_a="cat", option_b="dog", option_c="bird", option_d="fish",
        correct_answer="b",
    )


@pytest.fixture
def likert_key():
    return AnswerKey(
        grade=5, question_number=20, domain=Domain.MINDSET, question_type=QuestionType.MINDSET,
        label="g5_mind_q20", option_a="Always", option_b="Often", option_c="Sometimes", option_d="Rarely",
    )


class TestRounding:
    """Test percentage and rounding rules."""

    def test_seven_of_twelve(self):
        assert percentage(7, 12) == 58.3

    def test_zero_total(self):
        assert percentage(0, 0) == 0.0

    def test_full_marks(self):
        assert percentage(4, 4) == 100.0

    @pytest.mark.parametrize("correct,total,expected", [
        (23, 80, 28.8),
        (41, 80, 51.3),
        (51, 80, 63.8),
        (46, 160, 28.8),
    ])
    def test_exact_halves_round_up(self, correct, total, expected):
        assert percentage(correct, total) == expected

    def test_half_rounds_up(self):
        # Python's round() would give 2.2 here
        assert round_half_up(2.25, 1) == 2.3
        assert round_half_up(0.25, 1) == 0.3


class TestExtractLetter:
    """Test matching raw answers to option letters."""

    def test_bare_letter(self, animal_key):
        assert extract_letter("b", animal_key) == "B"

    def test_letter_prefix(self, animal_key):
        assert extract_letter("C. bird", animal_key) == "C"
        assert extract_letter("D) fish", animal_key) == "D"

    def test_exact_option_text(self, animal_key):
        assert extract_letter("  Bird ", animal_key) == "C"

    def test_substring_option_text(self, animal_key):
        assert extract_letter("the dog", animal_key) == "B"

    def test_no_match(self, animal_key):
        assert extract_letter("zebra", animal_key) is None

    def test_empty(self, animal_key):
        assert extract_letter("", animal_key) is None
        assert extract_letter(None, animal_key) is None


class TestMindsetValues:
    """Test valuing mindset items on the 0-4 scale."""

    def test_keyed_item_correct(self, likert_key):
        keyed = likert_key.model_copy(update={"correct_answer": "A"})
        assert mindset_item_value(keyed, "Always").value == 4.0

    def test_keyed_item_wrong(self, likert_key):
        keyed = likert_key.model_copy(update={"correct_answer": "A"})
        assert mindset_item_value(keyed, "Often").value == 0.0

    def test_unkeyed_letter_mapping(self, likert_key):
        assert mindset_item_value(likert_key, "Always").value == 4.0
        assert mindset_item_value(likert_key, "Sometimes").value == 2.0
        assert mindset_item_value(likert_key, "D").value == 1.0

    def test_unkeyed_numeric_answer(self, likert_key):
        assert mindset_item_value(likert_key, "3").value == 3.0

    def test_numeric_answer_is_clamped(self, likert_key):
        assert mindset_item_value(likert_key, "7").value == 4.0
        assert mindset_item_value(likert_key, "-1").value == 0.0

    def test_unanswered(self, likert_key):
        assert mindset_item_value(likert_key, None).value == 0.0
        assert mindset_item_value(likert_key, "").value == 0.0


class TestScoreMcqs:
    """Test scoring a whole submission."""

    def test_domain_scores(self, raw_answers, answer_keys):
        result = score_mcqs(raw_answers, answer_keys)

        assert (result.english.correct, result.english.total, result.english.pct) == (3, 4, 75.0)
        assert (result.mathematics.correct, result.mathematics.total, result.mathematics.pct) == (1, 2, 50.0)
        assert (result.reasoning.correct, result.reasoning.total, result.reasoning.pct) == (2, 2, 100.0)

    def test_mindset_average(self, raw_answers, answer_keys):
        result = score_mcqs(raw_answers, answer_keys)
        assert result.mindset_score == 3.5
        assert result.mindset.total == 2

    def test_writing_keys_not_counted(self, raw_answers, answer_keys):
        result = score_mcqs(raw_answers, answer_keys)
        assert result.total_mcq_items == 10
        assert result.total_mcq_correct == 6

    def test_item_details(self, raw_answers, answer_keys):
        result = score_mcqs(raw_answers, answer_keys)
        items = {item.question_number: item for item in result.english.items}

        assert items[2].student_answer == "B) dog"
        assert items[2].student_answer_letter == "B"
        assert items[2].is_correct
        assert items[4].student_answer_letter == "A"
        assert not items[4].is_correct

    def test_matches_labels_case_insensitively(self, answer_keys):
        raw = {"1": {"name": "G7_EN_Q1", "type": "control_radio", "answer": "A"}}
        result = score_mcqs(raw, answer_keys)
        assert result.english.correct == 1

    def test_answers_found_regardless_of_order(self, raw_answers, answer_keys):
        shuffled = dict(reversed(list(raw_answers.items())))
        assert score_mcqs(shuffled, answer_keys).english.pct == 75.0

    def test_empty_answers(self, answer_keys):
        result = score_mcqs({}, answer_keys)

        assert result.english.total == 4
        assert result.english.correct == 0
        assert result.english.pct == 0.0
        assert result.mindset_score == 0.0

    def test_no_keys(self, raw_answers):
        result = score_mcqs(raw_answers, [])

        for domain in (Domain.ENGLISH, Domain.MATHEMATICS, Domain.REASONING, Domain.MINDSET):
            assert result[domain].total == 0
            assert result[domain].pct == 0.0
