"""Exceptions raised inside the scoring pipeline."""


class ScoringError(Exception):
    """Base class for scoring pipeline failures."""


class SubmissionNotFoundError(ScoringError):
    """No submission exists for the requested id."""


class AnswerKeysMissingError(ScoringError):
    """No answer keys are seeded for the submission's grade."""


class InvalidTransitionError(ScoringError):
    """A processing status change that the state machine does not allow."""


class JudgeError(ScoringError):
    """The LLM judge call failed (HTTP error, timeout, transport failure)."""


class JudgeUnavailableError(JudgeError):
    """The LLM judge has no credential configured."""


class DuplicateSubmissionError(ScoringError):
    """A submission with the same form submission id is already stored."""


class UnknownFormError(ScoringError):
    """An incoming submission could not be tied to a school."""
