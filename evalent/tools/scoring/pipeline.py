"""End-to-end scoring of one submission.

    pending -> scoring -> ai_evaluation -> complete
                  |            |
                  +------------+--------------> error

Steps:
    1. Load the submission and the grade's answer keys (no keys is fatal)
    2. Score MCQs, persist the domain scores, move to ai_evaluation
    3. Evaluate each writing task in turn (failures fall back per task)
    4. Generate reasoning/mindset narratives and MCQ analyses
    5. Calculate the recommendation and executive summary
    6. Persist everything and move to complete
    7. Email the report to the assessor, if one is configured

Any exception in steps 1-6 is written to error_log with status ``error``.
Email failures are logged on the outcome and never change the status.
"""

import asyncio
import datetime
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from evalent.libs.config_loader import ConfigType, get_config
from evalent.tools.notify.mailer import Mailer, ResendMailer
from evalent.tools.notify.report_email import (
    ReportEmailData, email_subject, format_test_date, render_report_email,
)
from evalent.tools.notify.tokens import DecisionTokenPayload, create_decision_token
from evalent.tools.storage.store import SubmissionStore
from .ai_evaluator import EVALUATION_MAX_TOKENS, evaluate_writing
from .errors import AnswerKeysMissingError
from .executive_summary import SUMMARY_MAX_TOKENS, SummaryInput, generate_executive_summary
from .form_fields import field_answer, parse_raw_answers
from .judge import AgentJudge, Judge
from .mcq_analyser import ANALYSIS_MAX_TOKENS, MCQAnalysis, analyse_all_domains
from .mcq_scorer import score_mcqs
from .models import (
    Domain, GradeConfig, MCQScoringResult, RecommendationResult, School, Student,
    Submission, WritingEvaluation, WritingTask,
)
from .narratives import (
    NARRATIVE_MAX_TOKENS, generate_narrative, mindset_narrative_prompt, reasoning_narrative_prompt,
)
from .recommendation import RecommendationInputs, calculate_recommendation
from .status import ProcessingStatus
from .writing_extractor import ExtractedWriting, extract_writing_responses

LOG = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 55.0
DEFAULT_LOCALE = "en-GB"
DEFAULT_APP_URL = "https://app.evalent.io"

# Submission field prefixes for the domains that have writing columns
WRITING_FIELDS = {
    Domain.ENGLISH: ("english_writing_response", "english_writing_band",
                     "english_writing_score", "english_writing_narrative"),
    Domain.MATHEMATICS: ("maths_writing_response", "maths_writing_band",
                         "maths_writing_score", "maths_writing_narrative"),
    Domain.VALUES: ("values_writing_response", "values_writing_band",
                    "values_writing_score", "values_narrative"),
    Domain.CREATIVITY: ("creativity_writing_response", "creativity_writing_band",
                        "creativity_writing_score", "creativity_narrative"),
}


class SubmissionMetadata(BaseModel):
    """Details used to personalise prompts."""
    student_name: Optional[str] = None
    programme: Optional[str] = None
    locale: str = DEFAULT_LOCALE


class Assessor(BaseModel):
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None


class Thresholds(BaseModel):
    english: float = DEFAULT_THRESHOLD
    maths: float = DEFAULT_THRESHOLD
    reasoning: float = DEFAULT_THRESHOLD


def normalise_locale(value: Optional[str]) -> str:
    """Map a free-form locale to en-US when it mentions the US, otherwise en-GB."""
    return "en-US" if "US" in str(value or "").upper() else "en-GB"


def extract_submission_metadata(raw_answers: Dict[str, Any],
                                student: Optional[Student] = None,
                                school: Optional[School] = None,
                                default_locale: str = DEFAULT_LOCALE) -> SubmissionMetadata:
    """
    Read student name, programme and locale from the raw answers.

    Name falls back to the student record; locale falls back to the school's
    locale, then ``default_locale``.
    """
    student_name = None
    programme = None
    locale = None
    for form_field in parse_raw_answers(raw_answers):
        name = form_field.name.lower()
        value = field_answer(form_field).strip()
        if not value:
            continue
        if ("student_first_name" in name or "student_name" in name) and not student_name:
            student_name = value
        if "meta_programme" in name and not programme:
            programme = value
        if "meta_language_locale" in name:
            locale = normalise_locale(value)

    if not student_name and student and student.full_name:
        student_name = student.full_name
    if locale is None:
        locale = (school.locale if school and school.locale else None) or normalise_locale(default_locale)

    return SubmissionMetadata(student_name=student_name, programme=programme, locale=locale)


def resolve_thresholds(grade_config: Optional[GradeConfig], configs: ConfigType) -> Thresholds:
    """Grade config thresholds, with unset (or zero) values taking the configured default."""
    def default(domain: str) -> float:
        return float(get_config(f"scoring.default_thresholds.{domain}", configs, default=DEFAULT_THRESHOLD))

    gc = grade_config or GradeConfig(school_id="", grade=0)
    return Thresholds(
        english=gc.english_threshold or default("english"),
        maths=gc.maths_threshold or default("maths"),
        reasoning=gc.reasoning_threshold or default("reasoning"),
    )


def resolve_assessor(grade_config: Optional[GradeConfig], school: Optional[School]) -> Optional[Assessor]:
    """The grade's assessor, else the school's default assessor."""
    if grade_config and grade_config.assessor_email:
        return Assessor(email=grade_config.assessor_email,
                        first_name=grade_config.assessor_first_name,
                        last_name=grade_config.assessor_last_name)
    if school and school.default_assessor_email:
        return Assessor(email=school.default_assessor_email,
                        first_name=school.default_assessor_first_name,
                        last_name=school.default_assessor_last_name)
    return None


def mcq_fields(mcq: MCQScoringResult) -> Dict[str, Any]:
    return {
        "english_mcq_score": mcq.english.correct,
        "english_mcq_total": mcq.english.total,
        "english_mcq_pct": mcq.english.pct,
        "maths_mcq_score": mcq.mathematics.correct,
        "maths_mcq_total": mcq.mathematics.total,
        "maths_mcq_pct": mcq.mathematics.pct,
        "reasoning_score": mcq.reasoning.correct,
        "reasoning_total": mcq.reasoning.total,
        "reasoning_pct": mcq.reasoning.pct,
        "mindset_score": mcq.mindset_score,
    }


def writing_fields(extracted: List[ExtractedWriting],
                   evaluations: Dict[Domain, WritingEvaluation]) -> Dict[str, Any]:
    """Writing columns for every domain that has them; absent domains are cleared."""
    fields: Dict[str, Any] = {}
    for domain, (response_f, band_f, score_f, narrative_f) in WRITING_FIELDS.items():
        response = next((w.student_response for w in extracted if w.domain is domain), None)
        evaluation = evaluations.get(domain)
        fields[response_f] = response
        fields[band_f] = evaluation.band if evaluation else None
        fields[score_f] = evaluation.score if evaluation else None
        fields[narrative_f] = evaluation.narrative if evaluation else None
    return fields


@dataclass
class PipelineOutcome:
    """What a pipeline run did. Failures are reported here, never raised."""
    submission_id: str
    success: bool
    status: Optional[ProcessingStatus] = None
    error: Optional[str] = None
    duration_ms: int = 0
    mcq: Optional[MCQScoringResult] = None
    writing: Dict[Domain, WritingEvaluation] = field(default_factory=dict)
    recommendation: Optional[RecommendationResult] = None
    assessor_email: Optional[str] = None
    report_email_sent: bool = False
    report_email_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'submission_id': self.submission_id,
            'success': self.success,
            'status': self.status.value if self.status else None,
            'duration_ms': self.duration_ms,
        }
        if self.error:
            data['error'] = self.error
        if self.mcq and self.recommendation:
            rec = self.recommendation

            def writing(domain: Domain) -> str:
                ev = self.writing.get(domain)
                return f"{ev.band.value} ({ev.score}/4)" if ev else "N/A"

            data['scores'] = {
                'english': {
                    'mcq': f"{self.mcq.english.correct}/{self.mcq.english.total} ({self.mcq.english.pct}%)",
                    'writing': writing(Domain.ENGLISH),
                    'combined': f"{rec.english.combined_pct}%",
                },
                'mathematics': {
                    'mcq': f"{self.mcq.mathematics.correct}/{self.mcq.mathematics.total} "
                           f"({self.mcq.mathematics.pct}%)",
                    'writing': writing(Domain.MATHEMATICS),
                    'combined': f"{rec.mathematics.combined_pct}%",
                },
                'reasoning': f"{self.mcq.reasoning.correct}/{self.mcq.reasoning.total} ({self.mcq.reasoning.pct}%)",
                'mindset': self.mcq.mindset_score,
            }
            data['recommendation'] = rec.recommendation_band.value
            data['overall_academic_pct'] = rec.overall_academic_pct
        data['report_email_sent'] = self.report_email_sent
        data['report_email_error'] = self.report_email_error
        data['assessor_email'] = self.assessor_email or "none configured"
        return data


@dataclass
class _ScoredRun:
    submission: Submission
    mcq: MCQScoringResult
    evaluations: Dict[Domain, WritingEvaluation]
    recommendation: RecommendationResult
    metadata: SubmissionMetadata
    student: Optional[Student]
    school: Optional[School]
    assessor: Optional[Assessor]


class ScoringPipeline:
    """Score submissions held in a SubmissionStore."""

    def __init__(self, configs: ConfigType, store: SubmissionStore,
                 judge: Optional[Judge] = None, mailer: Optional[Mailer] = None):
        """
        Args:
            configs: Configuration dictionary (required)
            store: Where submissions, answer keys and school data live
            judge: LLM judge (defaults to an AgentJudge built from configs)
            mailer: Email sender (defaults to a ResendMailer built from configs)
        """
        self.configs = configs
        self.store = store
        self.judge = judge or AgentJudge(configs)
        self.mailer = mailer or ResendMailer(configs)

    def _max_tokens(self, kind: str, default: int) -> int:
        return get_config(f"anthropic.max_tokens.{kind}", self.configs, default=default)

    def _set_status(self, submission_id: str, status: ProcessingStatus, **fields) -> Submission:
        fields["processing_status"] = status
        return self.store.update_submission(submission_id, fields)

    async def run_async(self, submission_id: str) -> PipelineOutcome:
        """Score one submission. Never raises."""
        start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        submission = self.store.get_submission(submission_id)
        if submission is None:
            LOG.error("Submission %s not found", submission_id)
            return PipelineOutcome(submission_id=submission_id, success=False, error="Submission not found")

        try:
            run = await self._score(submission)
        except Exception as e:  # pylint: disable=broad-except
            LOG.error("Pipeline error for %s: %s", submission_id, e)
            status = self._record_failure(submission_id, e)
            return PipelineOutcome(submission_id=submission_id, success=False, status=status,
                                   error=str(e), duration_ms=elapsed())

        LOG.info("Pipeline complete for %s in %dms", submission_id, elapsed())
        outcome = PipelineOutcome(
            submission_id=submission_id,
            success=True,
            status=ProcessingStatus.COMPLETE,
            mcq=run.mcq,
            writing=run.evaluations,
            recommendation=run.recommendation,
            assessor_email=run.assessor.email if run.assessor else None,
        )

        if run.assessor:
            self._send_report(run, outcome)
        else:
            LOG.info("No assessor email configured, skipping report email")

        outcome.duration_ms = elapsed()
        return outcome

    def run(self, submission_id: str) -> PipelineOutcome:
        """Synchronous wrapper for run_async."""
        return asyncio.run(self.run_async(submission_id))

    def _record_failure(self, submission_id: str, error: Exception) -> Optional[ProcessingStatus]:
        try:
            self._set_status(submission_id, ProcessingStatus.ERROR, error_log=str(error))
        except Exception as e:  # pylint: disable=broad-except
            LOG.error("Could not record error status for %s: %s", submission_id, e)
            return None
        return ProcessingStatus.ERROR

    async def _score(self, submission: Submission) -> _ScoredRun:
        sid = submission.id
        grade = submission.grade

        # 1. scoring
        self._set_status(sid, ProcessingStatus.SCORING, error_log=None)
        LOG.info("Starting pipeline for submission %s (grade %d)", sid, grade)

        answer_keys = self.store.get_answer_keys(grade)
        if not answer_keys:
            raise AnswerKeysMissingError(f"No answer keys found for grade {grade}")
        LOG.info("Found %d answer keys for grade %d", len(answer_keys), grade)

        # 2. MCQs
        mcq = score_mcqs(submission.raw_answers, answer_keys)
        LOG.info(
            "MCQ scores: english %d/%d (%s%%), maths %d/%d (%s%%), reasoning %d/%d (%s%%), mindset %s",
            mcq.english.correct, mcq.english.total, mcq.english.pct,
            mcq.mathematics.correct, mcq.mathematics.total, mcq.mathematics.pct,
            mcq.reasoning.correct, mcq.reasoning.total, mcq.reasoning.pct,
            mcq.mindset_score,
        )

        student = self.store.get_student(submission.student_id) if submission.student_id else None
        school = self.store.get_school(submission.school_id) if submission.school_id else None
        metadata = extract_submission_metadata(
            submission.raw_answers, student, school,
            default_locale=get_config("scoring.default_locale", self.configs, default=DEFAULT_LOCALE),
        )
        LOG.info("Metadata: name=%r, programme=%r, locale=%r",
                 metadata.student_name, metadata.programme, metadata.locale)

        extracted = extract_writing_responses(submission.raw_answers, answer_keys)
        LOG.info("Found %d writing responses: %s", len(extracted), [w.domain.value for w in extracted])

        self._set_status(sid, ProcessingStatus.AI_EVALUATION, **mcq_fields(mcq))

        # 3. writing, one task at a time
        evaluations: Dict[Domain, WritingEvaluation] = {}
        max_tokens = self._max_tokens("evaluation", EVALUATION_MAX_TOKENS)
        for writing in extracted:
            if writing.domain in evaluations:
                LOG.warning("Ignoring extra %s writing response in %r", writing.domain.value, writing.field_name)
                continue
            task = WritingTask(
                domain=writing.domain,
                prompt_text=writing.prompt_text,
                student_response=writing.student_response,
                grade=grade,
                locale=metadata.locale,
                question_number=writing.question_number,
                student_name=metadata.student_name,
                programme=metadata.programme,
            )
            LOG.info("Evaluating %s writing", writing.domain.value)
            evaluation = await evaluate_writing(task, self.judge, max_tokens=max_tokens)
            evaluations[writing.domain] = evaluation
            LOG.info("%s writing: %s (%s/4)", writing.domain.value, evaluation.band.value, evaluation.score)

        # 4. narratives and analyses
        grade_config = self.store.get_grade_config(submission.school_id, grade) if submission.school_id else None
        thresholds = resolve_thresholds(grade_config, self.configs)
        assessor = resolve_assessor(grade_config, school)

        reasoning_prompt = reasoning_narrative_prompt(
            mcq.reasoning.pct, thresholds.reasoning, grade, mcq.reasoning.correct, mcq.reasoning.total,
            metadata.locale, metadata.student_name, metadata.programme,
        )
        mindset_prompt = mindset_narrative_prompt(
            mcq.mindset_score, grade, metadata.locale, metadata.student_name, metadata.programme,
        )
        narrative_tokens = self._max_tokens("narrative", NARRATIVE_MAX_TOKENS)
        jobs = [
            generate_narrative(*reasoning_prompt, self.judge, max_tokens=narrative_tokens),
            generate_narrative(*mindset_prompt, self.judge, max_tokens=narrative_tokens),
        ]
        if get_config("scoring.generate_mcq_analyses", self.configs, default=True):
            jobs.append(analyse_all_domains(
                mcq, metadata.student_name or "the student", grade, self.judge,
                programme=metadata.programme,
                max_tokens=self._max_tokens("analysis", ANALYSIS_MAX_TOKENS),
            ))
        LOG.info("Generating narratives")
        results = await asyncio.gather(*jobs)
        reasoning_narrative, mindset_narrative = results[0], results[1]
        analyses: Dict[Domain, MCQAnalysis] = results[2] if len(results) > 2 else {}

        # 5. recommendation
        recommendation = calculate_recommendation(RecommendationInputs(
            english_mcq_pct=mcq.english.pct,
            english_writing_score=evaluations[Domain.ENGLISH].score if Domain.ENGLISH in evaluations else None,
            maths_mcq_pct=mcq.mathematics.pct,
            maths_writing_score=(evaluations[Domain.MATHEMATICS].score
                                 if Domain.MATHEMATICS in evaluations else None),
            reasoning_pct=mcq.reasoning.pct,
            mindset_score=mcq.mindset_score,
            english_threshold=thresholds.english,
            maths_threshold=thresholds.maths,
            reasoning_threshold=thresholds.reasoning,
        ))
        LOG.info("Recommendation: %s (overall: %s%%)",
                 recommendation.recommendation_band.value, recommendation.overall_academic_pct)

        executive_summary = None
        if get_config("scoring.generate_executive_summary", self.configs, default=True):
            executive_summary = await generate_executive_summary(
                SummaryInput(
                    student_name=metadata.student_name or "the student",
                    grade=grade,
                    programme=metadata.programme,
                    recommendation=recommendation,
                    english_writing_band=_band(evaluations, Domain.ENGLISH),
                    maths_writing_band=_band(evaluations, Domain.MATHEMATICS),
                    values_band=_band(evaluations, Domain.VALUES),
                    creativity_band=_band(evaluations, Domain.CREATIVITY),
                ),
                self.judge,
                max_tokens=self._max_tokens("summary", SUMMARY_MAX_TOKENS),
            )

        # 6. persist
        payload = mcq_fields(mcq)
        payload.update(writing_fields(extracted, evaluations))
        payload.update({
            "english_combined": recommendation.english.combined_pct,
            "maths_combined": recommendation.mathematics.combined_pct,
            "reasoning_narrative": reasoning_narrative,
            "mindset_narrative": mindset_narrative,
            "english_mcq_narrative": _analysis_text(analyses, Domain.ENGLISH),
            "maths_mcq_narrative": _analysis_text(analyses, Domain.MATHEMATICS),
            "reasoning_mcq_narrative": _analysis_text(analyses, Domain.REASONING),
            "executive_summary": executive_summary,
            "overall_academic_pct": recommendation.overall_academic_pct,
            "recommendation_band": recommendation.recommendation_band,
        })
        saved = self._set_status(sid, ProcessingStatus.COMPLETE, **payload)

        return _ScoredRun(
            submission=saved,
            mcq=mcq,
            evaluations=evaluations,
            recommendation=recommendation,
            metadata=metadata,
            student=student,
            school=school,
            assessor=assessor,
        )

    def _send_report(self, run: _ScoredRun, outcome: PipelineOutcome):
        """Email the report; failures are recorded on the outcome only."""
        assessor = run.assessor
        submission = run.submission
        LOG.info("Sending report email to assessor: %s", assessor.email)
        try:
            student_name = (run.student.full_name if run.student else "") \
                or run.metadata.student_name or "Unknown Student"
            school_name = run.school.name if run.school else "School"
            app_url = get_config("email.app_url", self.configs, default=DEFAULT_APP_URL)

            token = create_decision_token(
                DecisionTokenPayload(
                    sub=submission.id,
                    email=assessor.email,
                    school_id=submission.school_id or "",
                    student_name=student_name,
                    grade=submission.grade,
                ),
                self.configs,
            )
            rec = run.recommendation
            html = render_report_email(
                ReportEmailData(
                    assessor_name=assessor.name,
                    student_name=student_name,
                    student_ref=run.student.student_ref if run.student else "",
                    school_name=school_name,
                    grade=submission.grade,
                    test_date=format_test_date(submission.submitted_at),
                    recommendation_band=rec.recommendation_band.value,
                    overall_academic_pct=rec.overall_academic_pct,
                    english_combined=rec.english.combined_pct,
                    maths_combined=rec.mathematics.combined_pct,
                    reasoning_pct=run.mcq.reasoning.pct,
                    mindset_score=run.mcq.mindset_score,
                    report_url=f"{app_url.rstrip('/')}/report?id={submission.id}",
                ),
                app_url,
                token,
            )
            result = self.mailer.send(assessor.email, email_subject(student_name, submission.grade, school_name), html)
        except Exception as e:  # pylint: disable=broad-except
            LOG.error("Email error: %s", e)
            outcome.report_email_error = str(e)
            return

        if not result.success:
            LOG.error("Email send failed: %s", result.error)
            outcome.report_email_error = result.error or "Unknown email error"
            return

        outcome.report_email_sent = True
        LOG.info("Report email sent to %s (id: %s)", assessor.email, result.id)
        try:
            self.store.update_submission(submission.id, {
                "report_sent_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                "report_sent_to": assessor.email,
            })
        except Exception as e:  # pylint: disable=broad-except
            LOG.error("Could not record report delivery for %s: %s", submission.id, e)


def _band(evaluations: Dict[Domain, WritingEvaluation], domain: Domain):
    evaluation = evaluations.get(domain)
    return evaluation.band if evaluation else None


def _analysis_text(analyses: Dict[Domain, MCQAnalysis], domain: Domain) -> Optional[str]:
    analysis = analyses.get(domain)
    return analysis.narrative if analysis and analysis.narrative else None
