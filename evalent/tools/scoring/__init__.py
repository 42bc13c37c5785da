"""Admissions assessment scoring: MCQ scoring, AI writing evaluation and recommendation bands."""

from .ai_evaluator import evaluate_writing, normalise_band
from .domain_mapper import classify_domain, map_construct_to_domain
from .mcq_scorer import score_mcqs
from .models import (
    AnswerKey, Domain, DomainResult, MCQScoringResult, RecommendationBand,
    RecommendationResult, Submission, WritingBand, WritingEvaluation, WritingTask,
)
from .recommendation import RecommendationInputs, calculate_combined, calculate_recommendation
from .status import ProcessingStatus
from .writing_extractor import extract_writing_responses

__all__ = [
    'AnswerKey',
    'Domain',
    'DomainResult',
    'MCQScoringResult',
    'ProcessingStatus',
    'RecommendationBand',
    'RecommendationInputs',
    'RecommendationResult',
    'Submission',
    'WritingBand',
    'WritingEvaluation',
    'WritingTask',
    'calculate_combined',
    'calculate_recommendation',
    'classify_domain',
    'evaluate_writing',
    'extract_writing_responses',
    'map_construct_to_domain',
    'normalise_band',
    'score_mcqs',
]
