"""Shared fixtures: answer keys, a raw webhook payload and fake collaborators.

Zero network calls: the judge and mailer are in-memory fakes.
"""

import pytest

from evalent.tools.scoring.models import (
    AnswerKey, Domain, GradeConfig, QuestionType, School, Student, Submission,
)
from evalent.tools.storage.store import InMemorySubmissionStore
from tests.fakes import FakeJudge, FakeMailer, routing_judge


def _mcq(number, domain, label, correct, construct="General", options=("cat", "dog", "bird", "fish")):
    return AnswerKey(
        grade=7, question_number=number, domain=domain, question_type=QuestionType.MCQ,
        construct=construct, label=label,
        option_a=options[0], option_b=options[1], option_c=options[2], option_d=options[3],
        correct_answer=correct, question_text=f"Question {number}",
    )


@pytest.fixture
def answer_keys():
    """Grade 7 keys: 4 english, 2 maths, 2 reasoning MCQs, 2 mindset items, 3 writing prompts."""
    return [
        _mcq(1, Domain.ENGLISH, "g7_en_q1", "A", construct="Inference"),
        _mcq(2, Domain.ENGLISH, "g7_en_q2", "B", construct="Inference"),
        _mcq(3, Domain.ENGLISH, "g7_en_q3", "C", construct="Vocabulary"),
        _mcq(4, Domain.ENGLISH, "g7_en_q4", "D", construct="Vocabulary"),
        _mcq(5, Domain.MATHEMATICS, "g7_ma_q5", "A", construct="Fractions", options=("1/2", "1/3", "2/3", "3/4")),
        _mcq(6, Domain.MATHEMATICS, "g7_ma_q6", "B", construct="Algebra", options=("x=1", "x=2", "x=3", "x=4")),
        _mcq(7, Domain.REASONING, "g7_re_q7", "C", construct="Patterns"),
        _mcq(8, Domain.REASONING, "g7_re_q8", "D", construct="Logic"),
        AnswerKey(grade=7, question_number=9, domain=Domain.MINDSET, question_type=QuestionType.MINDSET,
                  label="g7_mind_q9", option_a="Always", option_b="Often", option_c="Sometimes",
                  option_d="Rarely", question_text="I enjoy a challenge"),
        AnswerKey(grade=7, question_number=10, domain=Domain.MINDSET, question_type=QuestionType.MINDSET,
                  label="g7_mind_q10", option_a="Always", option_b="Often", option_c="Sometimes",
                  option_d="Rarely", question_text="Mistakes help me learn"),
        AnswerKey(grade=7, question_number=11, domain=Domain.ENGLISH, question_type=QuestionType.WRITING,
                  construct="Extended writing", label="g7_en_long_text",
                  question_text="Write about your favourite activity."),
        AnswerKey(grade=7, question_number=12, domain=Domain.MATHEMATICS, question_type=QuestionType.WRITING,
                  construct="Mathematical explanation", label="g7_ma_long_text",
                  question_text="Explain the most difficult thing you solved."),
        AnswerKey(grade=7, question_number=13, domain=Domain.VALUES, question_type=QuestionType.WRITING,
                  construct="Values", label="g7_val_long_text",
                  question_text="Describe a time you showed kindness."),
    ]


def _field(name, answer, type_tag="control_radio", text=""):
    return {"name": name, "text": text or name, "type": type_tag, "answer": answer}


@pytest.fixture
def raw_answers():
    """A grade 7 submission: english 3/4, maths 1/2, reasoning 2/2, mindset A+B."""
    return {
        "3": _field("student_first_name", "Amira Khan", type_tag="control_textbox"),
        "4": _field("meta_programme", "IB", type_tag="control_textbox"),
        "5": _field("meta_language_locale", "en-US", type_tag="control_textbox"),
        "10": _field("g7_en_q1", "A"),
        "11": _field("g7_en_q2", "B) dog"),
        "12": _field("g7_en_q3", "Bird"),
        "13": _field("g7_en_q4", "cat"),
        "14": _field("g7_ma_q5", "1/2"),
        "15": _field("g7_ma_q6", "x=4"),
        "16": _field("g7_re_q7", "C"),
        "17": _field("g7_re_q8", "fish"),
        "18": _field("g7_mind_q9", "Always"),
        "19": _field("g7_mind_q10", "Often"),
        "30": _field("g7_en_long_text",
                     "My favourite activity is football because it teaches teamwork and patience.",
                     type_tag="control_textarea", text="Write about your favourite activity."),
        "31": _field("g7_ma_long_text",
                     "The hardest problem was long division with remainders, I solved it step by step.",
                     type_tag="control_textarea", text="Explain the most difficult thing you solved."),
        "32": _field("q32_extra_notes", "Some notes that match nothing at all here.",
                     type_tag="control_textarea", text="Anything else?"),
    }


@pytest.fixture
def sample_config():
    return {
        "anthropic": {"api_key": "test-key", "model": "claude-sonnet-4-20250514"},
        "scoring": {
            "default_thresholds": {"english": 55.0, "maths": 55.0, "reasoning": 55.0},
            "default_locale": "en-GB",
        },
        "tools": {"max_threads": 2},
        "email": {
            "resend_api_key": "re_test",
            "from_address": "Evalent <reports@example.com>",
            "app_url": "https://app.example.com",
            "decision_secret": "test-secret",
        },
    }


@pytest.fixture
def store(answer_keys, raw_answers):
    return InMemorySubmissionStore(
        answer_keys=answer_keys,
        schools=[School(id="school-1", name="Hillside Academy", locale="en-GB")],
        students=[Student(id="student-1", school_id="school-1", student_ref="HS-001",
                          first_name="Amira", last_name="Khan", grade_applied=7)],
        grade_configs=[GradeConfig(school_id="school-1", grade=7, jotform_form_id="form-7",
                                   english_threshold=60, maths_threshold=None, reasoning_threshold=50,
                                   assessor_email="assessor@example.com",
                                   assessor_first_name="Jo", assessor_last_name="Reed")],
        submissions=[Submission(id="sub-1", student_id="student-1", school_id="school-1", grade=7,
                                jotform_submission_id="js-1", jotform_form_id="form-7",
                                submitted_at="2026-03-03T10:00:00+00:00", raw_answers=raw_answers)],
    )


@pytest.fixture
def fake_judge():
    return FakeJudge(routing_judge)


@pytest.fixture
def fake_mailer():
    return FakeMailer()
