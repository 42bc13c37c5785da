"""AI evaluation of extended writing responses.

Each evaluation returns a band, a 0-4 score and narrative commentary for the
report. Any judge failure degrades to a fixed fallback evaluation so that one
bad writing task never blocks a submission.
"""

import json
import logging
import math
import re
from typing import Any, Optional

from .errors import JudgeUnavailableError
from .judge import Judge
from .models import Domain, WritingBand, WritingEvaluation, WritingTask

LOG = logging.getLogger(__name__)

MIN_EVALUABLE_CHARS = 10
EVALUATION_MAX_TOKENS = 1024

BAND_LOOKUP = {
    "excellent": WritingBand.EXCELLENT,
    "good": WritingBand.GOOD,
    "developing": WritingBand.DEVELOPING,
    "limited": WritingBand.EMERGING,
    "emerging": WritingBand.EMERGING,
    "no response": WritingBand.INSUFFICIENT,
    "insufficient": WritingBand.INSUFFICIENT,
    "none": WritingBand.INSUFFICIENT,
}

FENCE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)

MANUAL_REVIEW = "AI evaluation encountered an error. Manual review recommended."


def language_style(locale: str) -> str:
    return "fluent American English" if locale == "en-US" else "fluent British English"


def normalise_band(raw: Any) -> WritingBand:
    """Map the judge's band string onto a WritingBand; unknown values become Developing."""
    key = str(raw or "").strip().lower()
    return BAND_LOOKUP.get(key, WritingBand.DEVELOPING)


def clamp_score(raw: Any) -> float:
    """Coerce the judge's score into [0, 4]; anything non-numeric is 0."""
    if isinstance(raw, bool):
        return 0.0
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return min(4.0, max(0.0, value))


def strip_code_fences(text: str) -> str:
    return FENCE.sub("", text or "").strip()


def _personalisation(task: WritingTask) -> str:
    lines = []
    if task.student_name:
        first_name = task.student_name.split()[0]
        lines.append(f"The student's first name is {first_name}; you may refer to them by it.")
    if task.programme:
        lines.append(f"The school follows the {task.programme} curriculum.")
    return ("\n\n" + " ".join(lines)) if lines else ""


def build_system_prompt(grade: int, locale: str) -> str:
    return f"""You are an experienced educational assessor evaluating extended writing for a Grade {grade} admissions assessment.

You evaluate both the content (relevance, depth, examples) and the quality of writing (organisation, sentence control, vocabulary, accuracy).

You are warm but precise. You never comment on handwriting, only typed responses. You do not use bullet points. You write in {language_style(locale)}.

Your evaluation must be calibrated to Grade {grade} expectations. A Grade 3 student writing "good sentences with some detail" may earn Good, while the same quality from a Grade 10 student would be Developing.

Rubric bands:
- Excellent (4): Fully addresses task, clear structure, strong vocabulary, well-supported arguments, very few errors
- Good (3): Addresses task well, organised writing, good vocabulary, some supporting detail, minor errors
- Developing (2): Partially addresses task, some structure, basic vocabulary, limited detail, noticeable errors
- Limited (1): Minimal engagement with task, weak structure, limited vocabulary, significant errors
- No response (0): Blank or unintelligible

Return ONLY valid JSON with no additional text."""


def build_user_prompt(task: WritingTask) -> str:
    return f"""Evaluate this {task.domain.value} extended writing response from a student applying to Grade {task.grade}.{_personalisation(task)}

Writing prompt given to the student:
"{task.prompt_text}"

Student's response:
\"\"\"
{task.student_response}
\"\"\"

Return JSON in this exact format:
{{
  "band": "Excellent|Good|Developing|Limited",
  "score": 0-4,
  "content_narrative": "2-3 sentences evaluating the content: relevance to prompt, depth of ideas, use of examples, strength of argument.",
  "writing_narrative": "2-3 sentences evaluating writing quality: organisation, sentence control, vocabulary range, technical accuracy.",
  "threshold_comment": "1 sentence summarising whether this response meets, exceeds, or falls below the expected standard for this grade level."
}}"""


def insufficient_evaluation(domain: Domain) -> WritingEvaluation:
    return WritingEvaluation(
        domain=domain,
        band=WritingBand.INSUFFICIENT,
        score=0,
        content_narrative="No substantive response was provided for this writing task.",
        writing_narrative="Unable to evaluate writing quality as the response was blank or insufficient.",
        threshold_comment="This response does not meet the minimum requirements for evaluation.",
    )


def fallback_evaluation(domain: Domain, reason: str) -> WritingEvaluation:
    LOG.warning("Using fallback evaluation for %s: %s", domain.value, reason)
    return WritingEvaluation(
        domain=domain,
        band=WritingBand.DEVELOPING,
        score=2,
        content_narrative=MANUAL_REVIEW,
        writing_narrative=MANUAL_REVIEW,
        threshold_comment="Score requires manual verification.",
    )


def parse_evaluation(domain: Domain, response_text: str) -> WritingEvaluation:
    """
    Parse the judge's JSON reply.

    Raises:
        ValueError: If the reply is not a JSON object
    """
    data = json.loads(strip_code_fences(response_text))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return WritingEvaluation(
        domain=domain,
        band=normalise_band(data.get("band")),
        score=clamp_score(data.get("score")),
        content_narrative=str(data.get("content_narrative") or ""),
        writing_narrative=str(data.get("writing_narrative") or ""),
        threshold_comment=str(data.get("threshold_comment") or ""),
    )


async def evaluate_writing(task: WritingTask, judge: Judge,
                           max_tokens: Optional[int] = EVALUATION_MAX_TOKENS) -> WritingEvaluation:
    """
    Evaluate one writing task. Never raises.

    Responses shorter than 10 characters are marked Insufficient without
    calling the judge.
    """
    if len((task.student_response or "").strip()) < MIN_EVALUABLE_CHARS:
        return insufficient_evaluation(task.domain)

    LOG.info("Calling judge for %s writing evaluation", task.domain.value)
    try:
        response_text = await judge(
            build_system_prompt(task.grade, task.locale),
            build_user_prompt(task),
            max_tokens=max_tokens,
        )
    except JudgeUnavailableError:
        return fallback_evaluation(task.domain, "API key not configured")
    except Exception as e:  # pylint: disable=broad-except
        LOG.error("Error evaluating %s writing: %s", task.domain.value, e)
        return fallback_evaluation(task.domain, str(e))

    LOG.debug("Judge response for %s: %s", task.domain.value, response_text[:100])
    try:
        return parse_evaluation(task.domain, response_text)
    except (ValueError, TypeError) as e:
        LOG.error("Could not parse %s evaluation: %s", task.domain.value, e)
        return fallback_evaluation(task.domain, f"Unparseable response: {e}")
