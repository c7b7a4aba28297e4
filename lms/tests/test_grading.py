"""
Tests for the grading utilities shared by quizzes, exams and evaluations.
"""

import random

import pytest

from lms.assessments.grading import (
    aggregate_tag_performance, grade_exam_answer, grade_quiz_answer, parse_choice_index,
    percentage, sample_questions, score_out_of_ten, split_strengths_weaknesses
)
from lms.common.utils import round_half_up


@pytest.mark.parametrize("value,expected", [
    (2, 2),
    ("2", 2),
    ("2nd", 2),
    ("  7", 7),
    ("-1", -1),
    ("abc", None),
    (None, None),
    (True, None),
])
def test_parse_choice_index(value, expected):
    assert parse_choice_index(value) == expected


class TestQuizGrading:
    def test_true_false_accepts_string_and_number_forms(self):
        assert grade_quiz_answer("TRUE_FALSE", True, None, "true", 2) == (True, 2)
        assert grade_quiz_answer("TRUE_FALSE", "true", None, 1, 2) == (True, 2)
        assert grade_quiz_answer("TRUE_FALSE", False, None, "false", 2) == (True, 2)
        assert grade_quiz_answer("TRUE_FALSE", True, None, False, 2) == (False, 0)

    def test_mcq_compares_indices(self):
        choices = ["HTML", "CSS", "JS"]
        assert grade_quiz_answer("MCQ", 1, choices, "1", 3) == (True, 3)
        assert grade_quiz_answer("MCQ", 1, choices, 2, 3) == (False, 0)

    def test_mcq_maps_choice_text_to_index(self):
        choices = ["HTML", "CSS", "JS"]
        assert grade_quiz_answer("MCQ", 2, choices, "JS", 1) == (True, 1)

    def test_mcq_multiple_answers_need_same_set(self):
        assert grade_quiz_answer("MCQ", [0, 2], None, [2, 0], 1) == (True, 1)
        assert grade_quiz_answer("MCQ", [0, 2], None, [0], 1) == (False, 0)

    def test_short_text_is_trimmed_and_case_insensitive(self):
        assert grade_quiz_answer("SHORT_TEXT", "Flexbox", None, "  flexbox ", 4) == (True, 4)
        assert grade_quiz_answer("SHORT_TEXT", "Flexbox", None, "grid", 4) == (False, 0)


class TestExamGrading:
    def test_mcq_integer_comparison(self):
        assert grade_exam_answer("MCQ", 0, "0", 2) == (True, 2)
        assert grade_exam_answer("MCQ", 0, 1, 2) == (False, 0)

    @pytest.mark.parametrize("answer", [True, "true", "True"])
    def test_true_false_truthy_forms(self, answer):
        assert grade_exam_answer("TRUE_FALSE", True, answer, 1) == (True, 1)

    def test_true_false_false_answer(self):
        assert grade_exam_answer("TRUE_FALSE", False, "false", 1) == (True, 1)
        assert grade_exam_answer("TRUE_FALSE", False, "True", 1) == (False, 0)


def test_sample_questions_draws_distinct_items():
    bank = list(range(10))
    sample = sample_questions(bank, 4, rng=random.Random(7))
    assert len(sample) == 4
    assert len(set(sample)) == 4
    assert set(sample) <= set(bank)


def test_sample_questions_caps_at_bank_size():
    assert sorted(sample_questions([1, 2, 3], 10)) == [1, 2, 3]


def test_score_normalization():
    assert percentage(3, 4) == 75.0
    assert percentage(3, 0) == 0.0
    assert score_out_of_ten(2, 3) == 6.7
    assert score_out_of_ten(1, 0) == 0.0
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(-0.25, 1) == -0.3


def test_strengths_and_weaknesses_from_tags():
    stats = aggregate_tag_performance([
        (["html"], 2, 2),
        (["css", "layout"], 0, 2),
        (["js"], 1, 2),
        ([], 1, 1),
    ])
    assert stats["html"] == {"earned": 2, "max": 2, "count": 1}
    assert stats["layout"]["max"] == 2

    strengths, weaknesses = split_strengths_weaknesses(stats)
    assert strengths == ["html", "js", "css"]
    assert weaknesses == ["layout", "css", "js"]
