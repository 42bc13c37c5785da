"""Receive raw form submissions and store them as pending submissions.

Deliveries are at-least-once: a second delivery of the same form submission
id is reported as already processed rather than failing.
"""

import datetime
import json
import logging
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from evalent.tools.scoring.errors import DuplicateSubmissionError, UnknownFormError
from evalent.tools.scoring.form_fields import field_answer, parse_raw_answers
from evalent.tools.scoring.models import Student, Submission
from evalent.tools.scoring.status import ProcessingStatus
from evalent.tools.storage.store import SubmissionStore, new_submission_id

LOG = logging.getLogger(__name__)


class PrefilledMetadata(BaseModel):
    """Hidden fields the form is prefilled with when the student link is generated."""
    student_ref: Optional[str] = None
    student_name: Optional[str] = None
    school_id: Optional[str] = None
    grade: Optional[int] = None
    assessor_email: Optional[str] = None


class IntakeResult(BaseModel):
    message: str
    submission_id: Optional[str] = None
    student_matched: bool = False
    duplicate: bool = False
    processing_status: Optional[ProcessingStatus] = None


def extract_prefilled_metadata(raw_answers: Dict[str, Any]) -> PrefilledMetadata:
    """Best-effort read of the prefilled fields, matched on field name or label."""
    meta = PrefilledMetadata()
    for field in parse_raw_answers(raw_answers):
        name = field.name.lower()
        text = field.text.lower()
        value = field_answer(field).strip()
        if not value:
            continue

        if "student_ref" in name or "student_ref" in text or "student reference" in text:
            meta.student_ref = value
        elif name == "student_name" or "meta_student_name" in name or "student_name" in text:
            meta.student_name = value
        elif name == "school_id" or "meta_school_id" in name or "school_id" in text:
            meta.school_id = value
        elif name == "meta_grade" or "grade_applied" in name or "meta_grade" in text:
            meta.grade = int(value) if value.isdigit() else None
        elif "assessor_email" in name or "assessor_email" in text:
            meta.assessor_email = value
    return meta


def match_student(store: SubmissionStore, meta: PrefilledMetadata, school_id: str) -> Optional[Student]:
    """Match by student reference first, then by full name within the school."""
    if meta.student_ref:
        student = store.find_student_by_ref(meta.student_ref)
        if student:
            return student

    if meta.student_name:
        parts = meta.student_name.split()
        if len(parts) >= 2:
            return store.find_student_by_name(school_id, parts[0], " ".join(parts[1:]))
    return None


def receive_submission(store: SubmissionStore, form_id: str, form_submission_id: str,
                       raw_answers: Union[str, Dict[str, Any]],
                       now: Optional[datetime.datetime] = None) -> IntakeResult:
    """
    Store one webhook delivery as a pending submission.

    Args:
        store: Submission store
        form_id: Id of the form the answers came from
        form_submission_id: The form provider's id for this submission
        raw_answers: Answer map, or its JSON encoding as posted by the webhook
        now: Receipt time (defaults to the current UTC time)

    Returns:
        IntakeResult; ``duplicate`` is set when the submission was already stored

    Raises:
        ValueError: If a required field is missing or the answers are not a JSON object
        UnknownFormError: If no school can be determined for the form
    """
    if not form_id or not form_submission_id or not raw_answers:
        raise ValueError("Missing required fields")
    if isinstance(raw_answers, str):
        raw_answers = json.loads(raw_answers)
    if not isinstance(raw_answers, dict):
        raise ValueError("Answers must be a JSON object")

    meta = extract_prefilled_metadata(raw_answers)
    grade_config = store.find_grade_config_by_form(form_id)
    school_id = grade_config.school_id if grade_config else meta.school_id
    grade = grade_config.grade if grade_config else meta.grade

    LOG.info("Received submission %s for form %s (school=%s, grade=%s, source=%s)",
             form_submission_id, form_id, school_id, grade,
             "grade_config" if grade_config else "prefilled")

    if not school_id:
        raise UnknownFormError(f"Cannot determine school for form {form_id}")
    if grade is None:
        raise UnknownFormError(f"Cannot determine grade for form {form_id}")

    student = match_student(store, meta, school_id)
    if student:
        LOG.info("Matched student %s (%s)", student.full_name, student.id)
    else:
        LOG.warning("No student matched for ref=%s, name=%s", meta.student_ref, meta.student_name)

    now = now or datetime.datetime.now(datetime.timezone.utc)
    submission = Submission(
        id=new_submission_id(),
        student_id=student.id if student else None,
        school_id=school_id,
        grade=grade,
        jotform_submission_id=form_submission_id,
        jotform_form_id=form_id,
        submitted_at=now.isoformat(),
        raw_answers=raw_answers,
        processing_status=ProcessingStatus.PENDING,
    )
    try:
        store.insert_submission(submission)
    except DuplicateSubmissionError:
        LOG.info("Submission %s already received", form_submission_id)
        return IntakeResult(message="Submission already processed", duplicate=True)

    LOG.info("Submission %s created", submission.id)
    return IntakeResult(
        message="Submission received",
        submission_id=submission.id,
        student_matched=student is not None,
        processing_status=ProcessingStatus.PENDING,
    )
