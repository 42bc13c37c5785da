"""Map form fields and answer-key constructs onto assessment domains.

Two lookups with deliberately different failure behaviour:

- ``classify_domain`` decides which domain a submitted free-text field
  belongs to. It returns ``None`` when nothing matches and the caller drops
  the field rather than guess.
- ``map_construct_to_domain`` maps a loose construct label on an answer key
  to a domain for reporting, and falls back to english.
"""

import logging
import re
from typing import List, Optional, Tuple

from .models import Domain

LOG = logging.getLogger(__name__)

# Field-name codes, checked against the field name only. Reasoning is
# MCQ-only so it has no writing field code.
FIELD_NAME_PATTERNS: List[Tuple[Domain, re.Pattern]] = [
    (Domain.ENGLISH, re.compile(r"_en_|english", re.IGNORECASE)),
    (Domain.MATHEMATICS, re.compile(r"_ma_|math", re.IGNORECASE)),
    (Domain.MINDSET, re.compile(r"_mind_|mindset", re.IGNORECASE)),
    (Domain.VALUES, re.compile(r"_val_|values", re.IGNORECASE)),
    (Domain.CREATIVITY, re.compile(r"_crea_|creativ", re.IGNORECASE)),
]

# Phrases checked against the field name and question text together.
TEXT_PHRASES: List[Tuple[Domain, Tuple[str, ...]]] = [
    (Domain.ENGLISH, (
        "favourite activity",
        "favorite activity",
        "write a paragraph",
        "essay",
        "well-organised paragraph",
        "well-organized paragraph",
    )),
    (Domain.MATHEMATICS, ("mathematic", "difficult thing", "math")),
    (Domain.MINDSET, ("why you would like", "our school", "mindset", "learning")),
    (Domain.VALUES, ("value", "kindness", "fairness", "community")),
    (Domain.CREATIVITY, ("creativ", "improve", "design", "idea")),
]

CONSTRUCT_KEYWORDS: List[Tuple[Domain, Tuple[str, ...]]] = [
    (Domain.ENGLISH, ("english", "language")),
    (Domain.MATHEMATICS, ("math",)),
    (Domain.REASONING, ("reason",)),
    (Domain.VALUES, ("value",)),
    (Domain.CREATIVITY, ("creativ",)),
    (Domain.MINDSET, ("mindset",)),
]


def domain_from_field_name(field_name: str) -> Optional[Domain]:
    """Match the short domain codes embedded in a field name (e.g. G7_MA_LONG_TEXT)."""
    for domain, pattern in FIELD_NAME_PATTERNS:
        if pattern.search(field_name or ""):
            return domain
    return None


def domain_from_text(field_name: str, question_text: str) -> Optional[Domain]:
    """Look for domain-indicative phrases in the field name plus question text."""
    combined = f"{field_name or ''} {question_text or ''}".lower()
    for domain, phrases in TEXT_PHRASES:
        if any(phrase in combined for phrase in phrases):
            return domain
    return None


def classify_domain(field_name: str, question_text: str = "") -> Optional[Domain]:
    """
    Classify a submitted field into a domain.

    The field name is authoritative: a match there wins even if the question
    text mentions another domain. Returns None when neither source matches.
    """
    domain = domain_from_field_name(field_name)
    if domain is not None:
        return domain
    domain = domain_from_text(field_name, question_text)
    if domain is not None:
        return domain
    LOG.warning(
        "Could not determine domain for field %r with text %r",
        field_name, (question_text or "")[:60],
    )
    return None


def map_construct_to_domain(construct: str) -> Domain:
    """Map a construct label to a domain, defaulting to english."""
    lower = (construct or "").lower()
    for domain, keywords in CONSTRUCT_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return domain
    return Domain.ENGLISH
