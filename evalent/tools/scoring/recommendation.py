"""Recommendation band calculation.

Combined domain score:
    combined = mcq_pct * 0.6 + (writing_score / 4 * 100) * 0.4
    combined = mcq_pct                  when there is no writing score

Overall academic % is the unweighted mean of the english, mathematics and
reasoning combined scores. Per-grade domain weights are not applied.

Band decision, first rule that applies:
    1. All three domains meet threshold:
         mindset >= 2.0 -> Ready to admit, else Admit with academic support
    2. Exactly one domain below threshold:
         delta > -10 and English             -> Admit with language support
         delta > -10 and Maths/Reasoning     -> Admit with academic support
         delta <= -10                        -> Borderline
    3. Two or more below threshold:
         two or more with delta < -10        -> Not yet ready
         otherwise                           -> Borderline
"""

from typing import List, Optional

from pydantic import BaseModel

from .mcq_scorer import round_half_up
from .models import DomainResult, RecommendationBand, RecommendationResult

MCQ_WEIGHT = 0.6
WRITING_WEIGHT = 0.4
WRITING_MAX = 4.0
MINDSET_READY = 2.0
SEVERE_MISS = -10.0


class RecommendationInputs(BaseModel):
    english_mcq_pct: float
    english_writing_score: Optional[float] = None
    maths_mcq_pct: float
    maths_writing_score: Optional[float] = None
    reasoning_pct: float
    mindset_score: float = 0.0
    english_threshold: float = 55.0
    maths_threshold: float = 55.0
    reasoning_threshold: float = 55.0


def calculate_combined(mcq_pct: float, writing_score: Optional[float]) -> float:
    """Blend MCQ % with writing score, to one decimal."""
    if writing_score is None:
        return round_half_up(mcq_pct, 1)
    writing_pct = writing_score / WRITING_MAX * 100
    return round_half_up(mcq_pct * MCQ_WEIGHT + writing_pct * WRITING_WEIGHT, 1)


def domain_result(domain: str, mcq_pct: float, writing_score: Optional[float], threshold: float) -> DomainResult:
    combined = calculate_combined(mcq_pct, writing_score)
    delta = round_half_up(combined - threshold, 1)
    return DomainResult(
        domain=domain,
        mcq_pct=mcq_pct,
        writing_score=writing_score,
        combined_pct=combined,
        threshold=threshold,
        delta=delta,
        meets_threshold=delta >= 0,
    )


def determine_band(english: DomainResult, mathematics: DomainResult, reasoning: DomainResult,
                   mindset_score: float) -> RecommendationBand:
    domains: List[DomainResult] = [english, mathematics, reasoning]
    below = [d for d in domains if not d.meets_threshold]

    if not below:
        if mindset_score >= MINDSET_READY:
            return RecommendationBand.READY_TO_ADMIT
        return RecommendationBand.ADMIT_WITH_ACADEMIC_SUPPORT

    if len(below) == 1:
        missed = below[0]
        if missed.delta > SEVERE_MISS:
            if missed is english:
                return RecommendationBand.ADMIT_WITH_LANGUAGE_SUPPORT
            return RecommendationBand.ADMIT_WITH_ACADEMIC_SUPPORT
        return RecommendationBand.BORDERLINE

    severe = [d for d in below if d.delta < SEVERE_MISS]
    if len(severe) >= 2:
        return RecommendationBand.NOT_YET_READY
    return RecommendationBand.BORDERLINE


def calculate_recommendation(inputs: RecommendationInputs) -> RecommendationResult:
    """Combine domain scores against thresholds into a recommendation. Pure, no I/O."""
    english = domain_result("English", inputs.english_mcq_pct, inputs.english_writing_score,
                            inputs.english_threshold)
    mathematics = domain_result("Mathematics", inputs.maths_mcq_pct, inputs.maths_writing_score,
                                inputs.maths_threshold)
    reasoning = domain_result("Reasoning", inputs.reasoning_pct, None, inputs.reasoning_threshold)

    overall = round_half_up(
        (english.combined_pct + mathematics.combined_pct + reasoning.combined_pct) / 3, 1
    )

    return RecommendationResult(
        english=english,
        mathematics=mathematics,
        reasoning=reasoning,
        overall_academic_pct=overall,
        mindset_score=inputs.mindset_score,
        recommendation_band=determine_band(english, mathematics, reasoning, inputs.mindset_score),
    )
