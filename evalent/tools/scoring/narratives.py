"""Narrative commentary for the MCQ-only reasoning domain and the mindset score."""

import logging
from typing import NamedTuple, Optional

from .ai_evaluator import language_style
from .errors import JudgeUnavailableError
from .judge import Judge

LOG = logging.getLogger(__name__)

NARRATIVE_MAX_TOKENS = 512

NARRATIVE_UNAVAILABLE = "Narrative generation unavailable: API key not configured."
NARRATIVE_FAILED = "Narrative generation encountered an error. Manual review recommended."

# (lower bound, label); first bound the score reaches wins
MINDSET_BANDS = [
    (3.5, "strong growth orientation"),
    (2.5, "developing growth mindset"),
    (1.5, "may need targeted support"),
    (0.0, "significant coaching needed"),
]


class NarrativePrompt(NamedTuple):
    system: str
    user: str


def mindset_band(score: float) -> str:
    for cutoff, label in MINDSET_BANDS:
        if score >= cutoff:
            return label
    return MINDSET_BANDS[-1][1]


def _student_context(student_name: Optional[str], programme: Optional[str]) -> str:
    parts = []
    if student_name:
        parts.append(f"Refer to the student as {student_name.split()[0]}.")
    if programme:
        parts.append(f"The school follows the {programme} curriculum.")
    return (" " + " ".join(parts)) if parts else ""


def reasoning_narrative_prompt(score_pct: float, threshold: float, grade: int,
                               correct: int, total: int, locale: str,
                               student_name: Optional[str] = None,
                               programme: Optional[str] = None) -> NarrativePrompt:
    system = (
        f"You are an experienced educational assessor writing a brief narrative interpretation "
        f"of a reasoning score for a Grade {grade} admissions assessment. "
        f"Write in {language_style(locale)}. Do not use bullet points. Be warm but precise. "
        f"Frame everything as a snapshot, not a fixed judgement."
        f"{_student_context(student_name, programme)}"
    )
    user = f"""A Grade {grade} student scored {correct}/{total} ({score_pct}%) on the reasoning section. The school's threshold is {threshold}%.

The reasoning section tests the student's ability to work with unfamiliar information, identify patterns, and solve multi-step problems. It uses multiple-choice questions only.

Write 3-4 sentences interpreting this score. Address:
1. Whether the score meets the threshold and what this suggests
2. What the score implies about the student's reasoning ability
3. A contextual note about what this means for their readiness

Return ONLY the narrative text, no JSON."""
    return NarrativePrompt(system, user)


def mindset_narrative_prompt(mindset_score: float, grade: int, locale: str,
                             student_name: Optional[str] = None,
                             programme: Optional[str] = None) -> NarrativePrompt:
    band = mindset_band(mindset_score)
    system = (
        f"You are an experienced educational assessor interpreting a mindset score for a "
        f"Grade {grade} admissions assessment using Carol Dweck's growth mindset framework. "
        f"Write in {language_style(locale)}. The narrative should be supportive, never labelling, "
        f"and always framed as a snapshot rather than a fixed judgement. Do not use bullet points."
        f"{_student_context(student_name, programme)}"
    )
    user = f"""A Grade {grade} student has a mindset/readiness score of {mindset_score} out of 4.0, categorised as "{band}".

Score interpretation guide:
- 3.5-4.0: Strong growth orientation: student demonstrates resilience, effort-focus, and openness to challenge
- 2.5-3.4: Developing: shows some growth mindset traits but may be inconsistent
- 1.5-2.4: May need targeted support: student may benefit from coaching on resilience and learning strategies
- 0-1.4: Significant coaching needed: student may hold fixed beliefs about ability

Write 2-3 sentences interpreting this score. Be supportive and constructive. Frame as a snapshot of current approach to learning, not a permanent label.

Return ONLY the narrative text, no JSON."""
    return NarrativePrompt(system, user)


async def generate_narrative(system: str, user: str, judge: Judge,
                             max_tokens: Optional[int] = NARRATIVE_MAX_TOKENS) -> str:
    """Ask the judge for free-text commentary. Never raises."""
    try:
        text = await judge(system, user, max_tokens=max_tokens)
    except JudgeUnavailableError:
        LOG.warning("Narrative skipped: judge not configured")
        return NARRATIVE_UNAVAILABLE
    except Exception as e:  # pylint: disable=broad-except
        LOG.error("Error generating narrative: %s", e)
        return NARRATIVE_FAILED
    return (text or "").strip()
