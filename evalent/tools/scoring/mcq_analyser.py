"""Construct-level diagnostics for the academic MCQ sections.

Groups a domain's item results by construct, works out which constructs
are strong or weak, and asks the judge for a short diagnostic narrative
aimed at admissions assessors.
"""

import logging
import math
from collections import OrderedDict
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import JudgeUnavailableError
from .judge import Judge
from .models import ACADEMIC_DOMAINS, Domain, ItemResult, MCQScoringResult
from .narratives import NarrativePrompt

LOG = logging.getLogger(__name__)

ANALYSIS_MAX_TOKENS = 400
MIN_ITEMS = 2
STRONG_PCT = 75
WEAK_PCT = 50

ANALYSIS_UNAVAILABLE = "MCQ analysis unavailable: API key not configured."
ANALYSIS_FAILED = "MCQ analysis could not be generated at this time."


class ConstructSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    construct_label: str = Field(alias="construct")
    total: int
    correct: int
    pct: int
    missed_questions: List[str] = Field(default_factory=list)


class MCQAnalysis(BaseModel):
    domain: Domain
    narrative: str = ""
    constructs_strong: List[str] = Field(default_factory=list)
    constructs_weak: List[str] = Field(default_factory=list)


def summarise_by_construct(items: List[ItemResult]) -> List[ConstructSummary]:
    """Per-construct accuracy, weakest construct first."""
    groups: "OrderedDict[str, ConstructSummary]" = OrderedDict()
    for item in items:
        name = item.construct_label or "General"
        summary = groups.setdefault(name, ConstructSummary(construct=name, total=0, correct=0, pct=0))
        summary.total += 1
        if item.is_correct:
            summary.correct += 1
        else:
            summary.missed_questions.append(f"Q{item.question_number}: {item.question_text[:80]}")

    for summary in groups.values():
        summary.pct = math.floor(summary.correct * 100 / summary.total + 0.5) if summary.total else 0
    return sorted(groups.values(), key=lambda s: s.pct)


def build_analysis_prompt(domain: Domain, items: List[ItemResult], score_pct: float,
                          student_name: str, grade: int,
                          programme: Optional[str] = None) -> NarrativePrompt:
    label = domain.label
    system = (
        "You are an expert educational assessor writing for school admissions professionals. "
        f"You are analysing a Grade {grade} student's multiple-choice performance in {label}. "
        f'Write in third person, referring to the student as "{student_name}". '
        "Be precise, diagnostic, and professional. "
        "Focus on what the pattern of correct and incorrect answers reveals about the student's "
        "underlying skills and knowledge gaps. "
        "Do NOT simply restate the numbers. Instead, interpret what the construct-level breakdown "
        "means for the student's readiness. "
        "Keep the analysis to 2-3 short paragraphs (80-120 words total). "
        "Never use bullet points. Write in flowing prose."
    )
    if programme:
        system += f" The school follows the {programme} curriculum."

    lines = []
    for cs in summarise_by_construct(items):
        line = f"- {cs.construct_label}: {cs.correct}/{cs.total} ({cs.pct}%)"
        if cs.missed_questions:
            line += "\n  Missed: " + "; ".join(cs.missed_questions)
        lines.append(line)

    user = (
        f"{label} MCQ Results for {student_name} (Grade {grade}):\n\n"
        f"Overall: {score_pct}%\n\n"
        "Performance by construct/skill area:\n" + "\n".join(lines) + "\n\n"
        f"Write a diagnostic narrative explaining what this pattern of results reveals about "
        f"{student_name}'s {label.lower()} capabilities and any areas that may need attention."
    )
    return NarrativePrompt(system, user)


async def analyse_domain(domain: Domain, items: List[ItemResult], score_pct: float,
                         student_name: str, grade: int, judge: Judge,
                         programme: Optional[str] = None,
                         max_tokens: Optional[int] = ANALYSIS_MAX_TOKENS) -> MCQAnalysis:
    """Diagnostic narrative for one domain. Never raises; skips domains with too few items."""
    if len(items) < MIN_ITEMS:
        return MCQAnalysis(domain=domain)

    summaries = summarise_by_construct(items)
    strong = [s.construct_label for s in summaries if s.pct >= STRONG_PCT]
    weak = [s.construct_label for s in summaries if s.pct < WEAK_PCT]

    system, user = build_analysis_prompt(domain, items, score_pct, student_name, grade, programme)
    try:
        narrative = (await judge(system, user, max_tokens=max_tokens)).strip()
    except JudgeUnavailableError:
        narrative = ANALYSIS_UNAVAILABLE
    except Exception as e:  # pylint: disable=broad-except
        LOG.error("MCQ analysis failed for %s: %s", domain.value, e)
        narrative = ANALYSIS_FAILED

    return MCQAnalysis(domain=domain, narrative=narrative, constructs_strong=strong, constructs_weak=weak)


async def analyse_all_domains(mcq: MCQScoringResult, student_name: str, grade: int, judge: Judge,
                              programme: Optional[str] = None,
                              max_tokens: Optional[int] = ANALYSIS_MAX_TOKENS) -> Dict[Domain, MCQAnalysis]:
    """Run analyse_domain over english, mathematics and reasoning in turn."""
    results: Dict[Domain, MCQAnalysis] = {}
    for domain in ACADEMIC_DOMAINS:
        score = mcq[domain]
        LOG.info("Generating %s MCQ analysis (%d items)", domain.value, len(score.items))
        results[domain] = await analyse_domain(
            domain, score.items, score.pct, student_name, grade, judge,
            programme=programme, max_tokens=max_tokens,
        )
    return results
