"""Tests for the scoring models and module hygiene."""

import warnings
from pathlib import Path

import pytest
from pydantic import BaseModel

import evalent
from evalent.tools.scoring.mcq_analyser import ConstructSummary
from evalent.tools.scoring.models import AnswerKey, Domain, ItemResult, QuestionType


class TestConstructField:
    """Test the construct label on keys and results."""

    @pytest.mark.parametrize("model", [AnswerKey, ItemResult, ConstructSummary])
    def test_no_field_shadows_base_model(self, model):
        assert not set(model.model_fields) & set(dir(BaseModel))

    def test_answer_key_accepts_construct(self):
        key = AnswerKey(grade=7, question_number=1, domain=Domain.ENGLISH,
                        question_type=QuestionType.WRITING, construct="Inference")
        assert key.construct_label == "Inference"

    def test_answer_key_accepts_field_name(self):
        key = AnswerKey(grade=7, question_number=1, domain=Domain.ENGLISH,
                        question_type=QuestionType.WRITING, construct_label="Vocabulary")
        assert key.construct_label == "Vocabulary"

    def test_item_result_construct(self):
        assert ItemResult(question_number=3, construct="Logic").construct_label == "Logic"


SOURCE_FILES = sorted(Path(evalent.__file__).parent.rglob("*.py"))


@pytest.mark.parametrize("path", SOURCE_FILES, ids=lambda p: p.name)
def test_source_compiles_without_warnings(path):
    """Test that no module has invalid escapes or similar compile warnings."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(path.read_text(encoding="utf-8"), str(path), "exec")
