"""Pydantic models for answer keys, scores, evaluations and submissions."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .status import ProcessingStatus

Locale = Literal["en-GB", "en-US"]

OPTION_LETTERS = ("A", "B", "C", "D")


class Domain(str, Enum):
    """The six fixed assessment domains."""
    ENGLISH = "english"
    MATHEMATICS = "mathematics"
    REASONING = "reasoning"
    MINDSET = "mindset"
    VALUES = "values"
    CREATIVITY = "creativity"

    @property
    def label(self) -> str:
        return self.value.capitalize()


ACADEMIC_DOMAINS = (Domain.ENGLISH, Domain.MATHEMATICS, Domain.REASONING)


class QuestionType(str, Enum):
    MCQ = "MCQ"
    WRITING = "Writing"
    MINDSET = "Mindset"


class WritingBand(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    DEVELOPING = "Developing"
    EMERGING = "Emerging"
    INSUFFICIENT = "Insufficient"


class RecommendationBand(str, Enum):
    READY_TO_ADMIT = "Ready to admit"
    ADMIT_WITH_ACADEMIC_SUPPORT = "Admit with academic support"
    ADMIT_WITH_LANGUAGE_SUPPORT = "Admit with language support"
    BORDERLINE = "Borderline — further review"
    NOT_YET_READY = "Not yet ready"


class AnswerKey(BaseModel):
    """One question of a grade's assessment, with its correct option."""
    model_config = ConfigDict(populate_by_name=True)

    grade: int = Field(ge=3, le=10, description="Grade the question belongs to")
    question_number: int = Field(description="Position of the question in the test")
    domain: Domain
    question_type: QuestionType
    construct_label: str = Field(default="", alias="construct", description="Sub-skill label, e.g. 'Inference'")
    label: str = Field(default="", description="Stable form field identifier")
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None
    correct_answer: Optional[str] = Field(default=None, description="A-D for MCQ items")
    question_text: str = ""
    rationale: Optional[str] = None

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _normalise_letter(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip().upper()
        return value or None

    @model_validator(mode="after")
    def _mcq_needs_answer(self) -> "AnswerKey":
        if self.question_type is QuestionType.MCQ and self.correct_answer not in OPTION_LETTERS:
            raise ValueError(
                f"MCQ question {self.question_number} (grade {self.grade}) needs a correct_answer of A-D"
            )
        return self

    def options(self) -> Dict[str, str]:
        """Map option letters to their text, skipping empty options."""
        texts = (self.option_a, self.option_b, self.option_c, self.option_d)
        return {letter: text for letter, text in zip(OPTION_LETTERS, texts) if text}


class ItemResult(BaseModel):
    """Outcome of a single scored question."""
    model_config = ConfigDict(populate_by_name=True)

    question_number: int
    label: str = ""
    construct_label: str = Field(default="", alias="construct")
    question_text: str = ""
    student_answer: Optional[str] = None
    student_answer_letter: Optional[str] = None
    correct_answer: Optional[str] = None
    is_correct: bool = False
    value: Optional[float] = Field(default=None, description="Likert value for mindset items")


class DomainScoreResult(BaseModel):
    """Aggregate MCQ performance for a domain."""
    domain: Domain
    correct: int = 0
    total: int = 0
    pct: float = 0.0
    score: Optional[float] = Field(default=None, description="0-4 mean, mindset only")
    items: List[ItemResult] = Field(default_factory=list)


class MCQScoringResult(BaseModel):
    """Per-domain MCQ scores for one submission."""
    domains: Dict[Domain, DomainScoreResult]

    def __getitem__(self, domain: Domain) -> DomainScoreResult:
        domain = Domain(domain)
        return self.domains.get(domain) or DomainScoreResult(domain=domain)

    @property
    def english(self) -> DomainScoreResult:
        return self[Domain.ENGLISH]

    @property
    def mathematics(self) -> DomainScoreResult:
        return self[Domain.MATHEMATICS]

    @property
    def reasoning(self) -> DomainScoreResult:
        return self[Domain.REASONING]

    @property
    def mindset(self) -> DomainScoreResult:
        return self[Domain.MINDSET]

    @property
    def mindset_score(self) -> float:
        return self.mindset.score or 0.0

    @property
    def total_mcq_correct(self) -> int:
        return sum(d.correct for d in self.domains.values())

    @property
    def total_mcq_items(self) -> int:
        return sum(d.total for d in self.domains.values())


class WritingTask(BaseModel):
    """A free-text response queued for the writing judge."""
    domain: Domain
    prompt_text: str
    student_response: str
    grade: int
    locale: Locale = "en-GB"
    question_number: int = 0
    student_name: Optional[str] = None
    programme: Optional[str] = None


class WritingEvaluation(BaseModel):
    """The judge's verdict on one writing task."""
    domain: Domain
    band: WritingBand
    score: float = Field(ge=0, le=4)
    content_narrative: str = ""
    writing_narrative: str = ""
    threshold_comment: str = ""

    @property
    def narrative(self) -> str:
        return f"{self.content_narrative} {self.writing_narrative}"


class DomainResult(BaseModel):
    """A domain's combined score measured against its threshold."""
    domain: str
    mcq_pct: float
    writing_score: Optional[float] = None
    combined_pct: float
    threshold: float
    delta: float
    meets_threshold: bool


class RecommendationResult(BaseModel):
    english: DomainResult
    mathematics: DomainResult
    reasoning: DomainResult
    overall_academic_pct: float
    mindset_score: float
    recommendation_band: RecommendationBand

    @property
    def domain_results(self) -> List[DomainResult]:
        return [self.english, self.mathematics, self.reasoning]


class GradeConfig(BaseModel):
    """A school's settings for one grade."""
    school_id: str
    grade: int
    jotform_form_id: Optional[str] = None
    english_threshold: Optional[float] = None
    maths_threshold: Optional[float] = None
    reasoning_threshold: Optional[float] = None
    # Stored per grade but not used: the overall score is an equal-thirds mean.
    english_weight: Optional[float] = None
    maths_weight: Optional[float] = None
    reasoning_weight: Optional[float] = None
    assessor_email: Optional[str] = None
    assessor_first_name: Optional[str] = None
    assessor_last_name: Optional[str] = None


class School(BaseModel):
    id: str
    name: str = "School"
    locale: Optional[Locale] = None
    default_assessor_email: Optional[str] = None
    default_assessor_first_name: Optional[str] = None
    default_assessor_last_name: Optional[str] = None


class Student(BaseModel):
    id: str
    school_id: Optional[str] = None
    student_ref: str = ""
    first_name: str = ""
    last_name: str = ""
    grade_applied: Optional[int] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Submission(BaseModel):
    """Persisted submission record, flattened the way reports and emails read it."""
    id: str
    student_id: Optional[str] = None
    school_id: Optional[str] = None
    grade: int
    jotform_submission_id: Optional[str] = None
    jotform_form_id: Optional[str] = None
    submitted_at: Optional[str] = None
    raw_answers: Dict[str, Any] = Field(default_factory=dict)

    english_mcq_score: Optional[int] = None
    english_mcq_total: Optional[int] = None
    english_mcq_pct: Optional[float] = None
    english_mcq_narrative: Optional[str] = None
    english_writing_response: Optional[str] = None
    english_writing_band: Optional[WritingBand] = None
    english_writing_score: Optional[float] = None
    english_writing_narrative: Optional[str] = None
    english_combined: Optional[float] = None

    maths_mcq_score: Optional[int] = None
    maths_mcq_total: Optional[int] = None
    maths_mcq_pct: Optional[float] = None
    maths_mcq_narrative: Optional[str] = None
    maths_writing_response: Optional[str] = None
    maths_writing_band: Optional[WritingBand] = None
    maths_writing_score: Optional[float] = None
    maths_writing_narrative: Optional[str] = None
    maths_combined: Optional[float] = None

    reasoning_score: Optional[int] = None
    reasoning_total: Optional[int] = None
    reasoning_pct: Optional[float] = None
    reasoning_mcq_narrative: Optional[str] = None
    reasoning_narrative: Optional[str] = None

    mindset_score: Optional[float] = None
    mindset_narrative: Optional[str] = None

    values_writing_response: Optional[str] = None
    values_writing_band: Optional[WritingBand] = None
    values_writing_score: Optional[float] = None
    values_narrative: Optional[str] = None

    creativity_writing_response: Optional[str] = None
    creativity_writing_band: Optional[WritingBand] = None
    creativity_writing_score: Optional[float] = None
    creativity_narrative: Optional[str] = None

    overall_academic_pct: Optional[float] = None
    recommendation_band: Optional[RecommendationBand] = None
    executive_summary: Optional[str] = None

    report_sent_at: Optional[str] = None
    report_sent_to: Optional[str] = None

    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    error_log: Optional[str] = None
