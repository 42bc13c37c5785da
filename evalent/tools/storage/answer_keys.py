"""Load answer keys from CSV exports of the master question spreadsheet."""

import csv
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from evalent.tools.scoring.domain_mapper import map_construct_to_domain
from evalent.tools.scoring.models import AnswerKey, Domain, QuestionType

LOG = logging.getLogger(__name__)

COLUMN_ALIASES = {
    "q": "question_number",
    "question": "question_number",
    "number": "question_number",
    "type": "question_type",
    "answer": "correct_answer",
    "correct": "correct_answer",
    "text": "question_text",
    "a": "option_a",
    "b": "option_b",
    "c": "option_c",
    "d": "option_d",
}


def _normalise_row(row: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
    clean = {}
    for column, value in row.items():
        if column is None:
            continue
        name = column.strip().lower().replace(" ", "_")
        name = COLUMN_ALIASES.get(name, name)
        value = value.strip() if isinstance(value, str) else value
        clean[name] = value if value != "" else None
    return clean


def _question_type(raw: Optional[str], domain: Domain) -> QuestionType:
    text = (raw or "").strip().lower()
    if "writ" in text or "extended" in text or "essay" in text:
        return QuestionType.WRITING
    if "mindset" in text or (not text and domain is Domain.MINDSET):
        return QuestionType.MINDSET
    return QuestionType.MCQ


def row_to_answer_key(row: Dict[str, Optional[str]], default_grade: Optional[int] = None) -> AnswerKey:
    """
    Build an AnswerKey from one CSV row.

    Rows without a domain column fall back to mapping the construct, which
    defaults to english.

    Raises:
        ValueError: If the row fails validation (e.g. an MCQ without a correct answer)
    """
    data = _normalise_row(row)
    construct = data.get("construct") or ""
    domain_raw = (data.get("domain") or "").lower()
    try:
        domain = Domain(domain_raw)
    except ValueError:
        domain = map_construct_to_domain(domain_raw or construct)

    grade = data.get("grade") or default_grade
    return AnswerKey(
        grade=int(grade) if grade is not None else None,
        question_number=int(data.get("question_number") or 0),
        domain=domain,
        question_type=_question_type(data.get("question_type"), domain),
        construct=construct,
        label=data.get("label") or "",
        option_a=data.get("option_a"),
        option_b=data.get("option_b"),
        option_c=data.get("option_c"),
        option_d=data.get("option_d"),
        correct_answer=data.get("correct_answer"),
        question_text=data.get("question_text") or "",
        rationale=data.get("rationale"),
    )


def load_answer_keys_csv(path: Path, grade: Optional[int] = None) -> List[AnswerKey]:
    """
    Load every valid answer key from a CSV file, ordered by question number.

    Args:
        path: CSV file with a header row
        grade: Grade applied to rows that have no grade column

    Returns:
        Answer keys sorted by (grade, question_number); invalid rows are
        logged and skipped
    """
    keys: List[AnswerKey] = []
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            try:
                keys.append(row_to_answer_key(row, default_grade=grade))
            except (ValidationError, ValueError, TypeError) as e:
                LOG.warning("Skipping answer key row %d in %s: %s", line_no, path, e)
    keys.sort(key=lambda k: (k.grade, k.question_number))
    LOG.info("Loaded %d answer keys from %s", len(keys), path)
    return keys


def load_answer_key_dir(directory: Path) -> List[AnswerKey]:
    """Load every ``*.csv`` file in a directory."""
    keys: List[AnswerKey] = []
    for csv_path in sorted(Path(directory).glob("*.csv")):
        keys.extend(load_answer_keys_csv(csv_path))
    keys.sort(key=lambda k: (k.grade, k.question_number))
    return keys
