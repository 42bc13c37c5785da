"""Executive summary synthesising every domain into a short admissions narrative."""

import logging
from typing import Optional

from pydantic import BaseModel

from .errors import JudgeUnavailableError
from .judge import Judge
from .models import RecommendationResult, WritingBand
from .narratives import NarrativePrompt

LOG = logging.getLogger(__name__)

SUMMARY_MAX_TOKENS = 400

MINDSET_LABELS = [
    (3.5, "Strong Growth Orientation"),
    (2.5, "Developing Growth Mindset"),
    (1.5, "May Need Support"),
    (0.0, "Significant Coaching Needed"),
]


class SummaryInput(BaseModel):
    student_name: str
    grade: int
    programme: Optional[str] = None
    recommendation: RecommendationResult
    english_writing_band: Optional[WritingBand] = None
    maths_writing_band: Optional[WritingBand] = None
    values_band: Optional[WritingBand] = None
    creativity_band: Optional[WritingBand] = None

    @property
    def first_name(self) -> str:
        parts = self.student_name.split()
        return parts[0] if parts else (self.student_name or "The applicant")


def grade_label(grade: int, programme: Optional[str]) -> str:
    """UK schools count in Years, one ahead of the Grade number."""
    if programme == "UK":
        return f"Year {grade + 1}"
    return f"Grade {grade}"


def mindset_label(score: float) -> str:
    if score <= 0:
        return "not assessed"
    for cutoff, label in MINDSET_LABELS:
        if score >= cutoff:
            return f"{label} ({score:.1f}/4)"
    return f"{MINDSET_LABELS[-1][1]} ({score:.1f}/4)"


def _band_text(band: Optional[WritingBand]) -> str:
    return f", writing: {band.value}" if band else ", no writing submitted"


def build_summary_prompt(data: SummaryInput) -> NarrativePrompt:
    first = data.first_name
    rec = data.recommendation
    system = (
        "You are a senior educational assessment specialist writing an executive summary "
        "for a school admissions report. Your audience is the Head of Admissions. "
        f"Write in third person. IMPORTANT: Always use the student's first name ('{first}') "
        "as the grammatical subject of each sentence. NEVER start a sentence with "
        f"'The student' or just 'The'. For example write '{first} demonstrates...'. "
        "Be precise, evidence-based and professional. "
        "The summary must synthesise the data into a coherent 3-4 sentence narrative "
        "that explains the student's profile and concludes with a clear justification "
        "for the recommendation. End with a sentence like: "
        '"Based on this profile, the Evalent recommendation is [band]." '
        "Use British English spelling. Do NOT use bullet points or lists."
    )

    domains = [
        f"English: {rec.english.combined_pct:.1f}% combined (MCQ {rec.english.mcq_pct:.1f}%"
        f"{_band_text(data.english_writing_band)}), threshold: {rec.english.threshold}%",
        f"Mathematics: {rec.mathematics.combined_pct:.1f}% combined (MCQ {rec.mathematics.mcq_pct:.1f}%"
        f"{_band_text(data.maths_writing_band)}), threshold: {rec.mathematics.threshold}%",
        f"Reasoning: {rec.reasoning.combined_pct:.1f}% (MCQ only), threshold: {rec.reasoning.threshold}%",
    ]

    lenses = ""
    if data.values_band:
        lenses += f"Values: {data.values_band.value}. "
    if data.creativity_band:
        lenses += f"Creativity: {data.creativity_band.value}. "

    user = (
        f"Student: {first}\n"
        f"Applying for: {grade_label(data.grade, data.programme)}\n"
        f"Overall academic score: {rec.overall_academic_pct:.1f}%\n"
        f"Recommendation: {rec.recommendation_band.value}\n\n"
        "Domain scores:\n" + "\n".join(domains) + "\n\n"
        f"Mindset: {mindset_label(rec.mindset_score)}\n"
        + (f"Lenses: {lenses}\n" if lenses else "")
        + "\nWrite a 3-4 sentence executive summary for this student's admissions report. "
        f"Start the first sentence with '{first}'. "
        "Conclude by justifying the recommendation band."
    )
    return NarrativePrompt(system, user)


def fallback_summary(data: SummaryInput) -> str:
    rec = data.recommendation
    return (
        f"{data.first_name} achieved an overall academic score of {rec.overall_academic_pct:.1f}%. "
        f"Based on this profile, the Evalent recommendation is {rec.recommendation_band.value}."
    )


async def generate_executive_summary(data: SummaryInput, judge: Judge,
                                     max_tokens: Optional[int] = SUMMARY_MAX_TOKENS) -> str:
    """Ask the judge for the executive summary; falls back to a one-line summary. Never raises."""
    system, user = build_summary_prompt(data)
    try:
        text = (await judge(system, user, max_tokens=max_tokens)).strip()
    except JudgeUnavailableError:
        LOG.warning("Executive summary skipped: judge not configured")
        return fallback_summary(data)
    except Exception as e:  # pylint: disable=broad-except
        LOG.error("Executive summary generation failed: %s", e)
        return fallback_summary(data)
    return text or fallback_summary(data)
