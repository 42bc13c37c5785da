"""Deterministic multiple-choice scoring against a grade's answer keys.

Answers are located by the answer key's ``label`` (the stable form field
name), never by position: the webhook payload is not guaranteed to list
questions in key order.

Academic domains report correct/total/percentage. Mindset is a separate
accumulator that averages a 0-4 value per item.
"""

import logging
import math
import re
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from .form_fields import AnyField, field_answer, index_by_name, parse_raw_answers
from .models import (
    OPTION_LETTERS,
    AnswerKey,
    Domain,
    DomainScoreResult,
    ItemResult,
    MCQScoringResult,
    QuestionType,
)

LOG = logging.getLogger(__name__)

LETTER_PREFIX = re.compile(r"^\s*([A-D])\s*[\)\.:]", re.IGNORECASE)

# Letter to Likert value for mindset items without a keyed answer; A is the
# most growth-oriented option.
MINDSET_LETTER_VALUES = {"A": 4.0, "B": 3.0, "C": 2.0, "D": 1.0}
MINDSET_MAX = 4.0

SCORED_DOMAINS = (Domain.ENGLISH, Domain.MATHEMATICS, Domain.REASONING, Domain.MINDSET)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round with .5 going up, the way report figures have always been rounded."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(correct: int, total: int) -> float:
    """correct/total as a percentage with one decimal; 0 when there are no items."""
    if total <= 0:
        return 0.0
    return math.floor(correct * 1000 / total + 0.5) / 10


def _normalise(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (text or "").strip().lower())


def extract_letter(answer: Optional[str], key: AnswerKey) -> Optional[str]:
    """
    Work out which option letter a raw answer value refers to.

    Tries, in order: a bare letter, a letter prefix like "B) ..." or "B. ...",
    then the option texts (exact first, then substring either way).
    """
    raw = (answer or "").strip()
    if not raw:
        return None

    if len(raw) == 1 and raw.upper() in OPTION_LETTERS:
        return raw.upper()

    prefix = LETTER_PREFIX.match(raw)
    if prefix:
        return prefix.group(1).upper()

    student_norm = _normalise(raw)
    options = {letter: _normalise(text) for letter, text in key.options().items()}
    options = {letter: text for letter, text in options.items() if text}

    for letter, text in options.items():
        if text == student_norm:
            return letter
    for letter, text in options.items():
        if text in student_norm or student_norm in text:
            return letter

    LOG.warning(
        "Could not match answer %r to any option for Q%s (%s)",
        raw, key.question_number, key.label,
    )
    return None


def _find_answer(key: AnswerKey, fields_by_name: Dict[str, AnyField]) -> Optional[str]:
    field = fields_by_name.get(key.label.strip().lower()) if key.label else None
    if field is None:
        return None
    return field_answer(field) or None


def score_item(key: AnswerKey, answer: Optional[str]) -> ItemResult:
    """Score a single MCQ item."""
    letter = extract_letter(answer, key) if answer else None
    is_correct = letter is not None and key.correct_answer is not None and letter == key.correct_answer
    return ItemResult(
        question_number=key.question_number,
        label=key.label,
        construct=key.construct_label,
        question_text=key.question_text,
        student_answer=answer,
        student_answer_letter=letter,
        correct_answer=key.correct_answer,
        is_correct=is_correct,
    )


def mindset_item_value(key: AnswerKey, answer: Optional[str]) -> ItemResult:
    """
    Value a mindset item on the 0-4 scale.

    Keyed items score 4 for the growth-oriented (keyed) option and 0 otherwise.
    Unkeyed items take a numeric Likert answer as-is (clamped) or map the
    chosen option letter through MINDSET_LETTER_VALUES. No answer is 0.
    """
    likert = None if key.correct_answer else _likert_number(answer)
    if likert is not None:
        return ItemResult(
            question_number=key.question_number,
            label=key.label,
            construct=key.construct_label,
            question_text=key.question_text,
            student_answer=answer,
            value=likert,
        )

    item = score_item(key, answer)
    if not answer:
        item.value = 0.0
    elif key.correct_answer:
        item.value = MINDSET_MAX if item.is_correct else 0.0
    else:
        item.value = MINDSET_LETTER_VALUES.get(item.student_answer_letter or "", 0.0)
    return item


def _likert_number(answer: Optional[str]) -> Optional[float]:
    try:
        value = float((answer or "").strip())
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return min(MINDSET_MAX, max(0.0, value))


def _is_mindset_key(key: AnswerKey) -> bool:
    return key.domain is Domain.MINDSET or key.question_type is QuestionType.MINDSET


def _mcq_result(domain: Domain, items: List[ItemResult]) -> DomainScoreResult:
    correct = sum(1 for item in items if item.is_correct)
    total = len(items)
    return DomainScoreResult(
        domain=domain,
        correct=correct,
        total=total,
        pct=percentage(correct, total),
        items=items,
    )


def _mindset_result(items: List[ItemResult]) -> DomainScoreResult:
    result = _mcq_result(Domain.MINDSET, items)
    values = [item.value or 0.0 for item in items]
    result.score = round_half_up(sum(values) / len(values), 1) if values else 0.0
    return result


def score_mcqs(raw_answers: Optional[Dict[str, Any]], answer_keys: Iterable[AnswerKey]) -> MCQScoringResult:
    """
    Score every MCQ and mindset item in a submission.

    Args:
        raw_answers: Raw webhook answer map
        answer_keys: Answer keys for the submission's grade

    Returns:
        MCQScoringResult with english, mathematics, reasoning and mindset
        always present (zeroed when a domain has no items)
    """
    fields_by_name = index_by_name(parse_raw_answers(raw_answers))
    keys = list(answer_keys)

    academic: Dict[Domain, List[ItemResult]] = defaultdict(list)
    mindset: List[ItemResult] = []

    for key in keys:
        if _is_mindset_key(key):
            if key.question_type is QuestionType.WRITING:
                continue
            mindset.append(mindset_item_value(key, _find_answer(key, fields_by_name)))
        elif key.question_type is QuestionType.MCQ:
            academic[key.domain].append(score_item(key, _find_answer(key, fields_by_name)))

    domains: Dict[Domain, DomainScoreResult] = {}
    for domain in SCORED_DOMAINS:
        if domain is Domain.MINDSET:
            domains[domain] = _mindset_result(mindset)
        else:
            domains[domain] = _mcq_result(domain, academic.pop(domain, []))
    # Values/creativity MCQs are rare but still scored if seeded.
    for domain, items in academic.items():
        domains[domain] = _mcq_result(domain, items)

    answered = sum(
        1 for d in domains.values() for item in d.items if item.student_answer
    )
    LOG.info(
        "Scored %d items (%d answered) across %d domains",
        sum(d.total for d in domains.values()), answered, len(domains),
    )
    return MCQScoringResult(domains=domains)
