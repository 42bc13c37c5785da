"""Pull long-form writing responses out of a submission and pair them with prompts."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel

from .domain_mapper import classify_domain, map_construct_to_domain
from .form_fields import FreeTextField, parse_raw_answers
from .models import AnswerKey, Domain, QuestionType

LOG = logging.getLogger(__name__)

MIN_RESPONSE_CHARS = 5


class ExtractedWriting(BaseModel):
    """A writing response mapped to its domain and source prompt."""
    domain: Domain
    prompt_text: str
    student_response: str
    question_number: int = 0
    field_name: str = ""


class UnmatchedWriting(BaseModel):
    """A writing response whose domain could not be inferred."""
    field_name: str
    question_text: str
    chars: int


class ExtractionReport(BaseModel):
    extracted: List[ExtractedWriting]
    unmatched: List[UnmatchedWriting]


def find_writing_key(answer_keys: Iterable[AnswerKey], domain: Domain) -> Optional[AnswerKey]:
    """First non-MCQ answer key for a domain, matched directly or via its construct."""
    for key in answer_keys:
        if key.question_type is QuestionType.MCQ:
            continue
        if key.domain is domain or map_construct_to_domain(key.construct_label or key.domain.value) is domain:
            return key
    return None


def extract_writing(raw_answers: Optional[Dict[str, Any]], answer_keys: Iterable[AnswerKey]) -> ExtractionReport:
    """
    Extract writing responses, keeping a record of the ones that were dropped.

    Args:
        raw_answers: Raw webhook answer map
        answer_keys: Answer keys for the submission's grade

    Returns:
        ExtractionReport with mapped responses in form order plus the
        responses that matched no domain
    """
    keys = list(answer_keys)
    textareas = [
        f for f in parse_raw_answers(raw_answers)
        if isinstance(f, FreeTextField) and len(f.answer.strip()) > MIN_RESPONSE_CHARS
    ]
    LOG.info(
        "Found %d textarea responses: %s",
        len(textareas), [f"{f.name} ({len(f.answer)} chars)" for f in textareas],
    )

    extracted: List[ExtractedWriting] = []
    unmatched: List[UnmatchedWriting] = []
    for field in textareas:
        domain = classify_domain(field.name, field.text)
        if domain is None:
            unmatched.append(UnmatchedWriting(
                field_name=field.name, question_text=field.text, chars=len(field.answer)
            ))
            continue

        key = find_writing_key(keys, domain)
        extracted.append(ExtractedWriting(
            domain=domain,
            prompt_text=(key.question_text if key else "") or field.text,
            student_response=field.answer,
            question_number=key.question_number if key else 0,
            field_name=field.name,
        ))
        LOG.info("Mapped %r -> %s (%d chars)", field.name, domain.value, len(field.answer))

    if unmatched:
        LOG.warning(
            "Dropped %d writing responses with no domain: %s",
            len(unmatched), [u.field_name for u in unmatched],
        )
    return ExtractionReport(extracted=extracted, unmatched=unmatched)


def extract_writing_responses(raw_answers: Optional[Dict[str, Any]], answer_keys: Iterable[AnswerKey]) -> List[ExtractedWriting]:
    """Mapped writing responses in form order; unmatched ones are dropped."""
    return extract_writing(raw_answers, answer_keys).extracted
