"""Persistence for submissions and the school data the pipeline reads.

``SubmissionStore`` is the narrow interface the pipeline, intake and batch
scorer depend on. Two implementations are provided:

- ``InMemorySubmissionStore``: dictionaries, used by tests and embedding code
- ``YamlDirectoryStore``: a directory of YAML files plus answer-key CSVs, so
  the pipeline can run from the command line without a hosted database

Directory layout read by ``YamlDirectoryStore``::

    data/
      schools.yaml          list of School records
      students.yaml         list of Student records
      grade_configs.yaml    list of GradeConfig records
      answer_keys/*.csv     answer keys (see answer_keys.py)
      submissions/<id>.yaml one Submission per file
"""

import copy
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import yaml

from evalent.tools.scoring.errors import DuplicateSubmissionError, SubmissionNotFoundError
from evalent.tools.scoring.models import AnswerKey, GradeConfig, School, Student, Submission
from evalent.tools.scoring.status import ProcessingStatus
from .answer_keys import load_answer_key_dir

LOG = logging.getLogger(__name__)


class SubmissionStore(Protocol):
    def get_submission(self, submission_id: str) -> Optional[Submission]:
        ...

    def insert_submission(self, submission: Submission) -> Submission:
        ...

    def update_submission(self, submission_id: str, fields: Dict[str, Any]) -> Submission:
        ...

    def list_submissions(self, statuses: Optional[Iterable[ProcessingStatus]] = None) -> List[Submission]:
        ...

    def get_answer_keys(self, grade: int) -> List[AnswerKey]:
        ...

    def get_grade_config(self, school_id: str, grade: int) -> Optional[GradeConfig]:
        ...

    def find_grade_config_by_form(self, form_id: str) -> Optional[GradeConfig]:
        ...

    def get_school(self, school_id: str) -> Optional[School]:
        ...

    def get_student(self, student_id: str) -> Optional[Student]:
        ...

    def find_student_by_ref(self, student_ref: str) -> Optional[Student]:
        ...

    def find_student_by_name(self, school_id: str, first_name: str, last_name: str) -> Optional[Student]:
        ...


class InMemorySubmissionStore:
    """Dictionary-backed store."""

    def __init__(self,
                 answer_keys: Iterable[AnswerKey] = (),
                 schools: Iterable[School] = (),
                 students: Iterable[Student] = (),
                 grade_configs: Iterable[GradeConfig] = (),
                 submissions: Iterable[Submission] = ()):
        self.answer_keys: List[AnswerKey] = list(answer_keys)
        self.schools: Dict[str, School] = {s.id: s for s in schools}
        self.students: Dict[str, Student] = {s.id: s for s in students}
        self.grade_configs: List[GradeConfig] = list(grade_configs)
        self.submissions: Dict[str, Submission] = {}
        for submission in submissions:
            self.insert_submission(submission)

    # -- submissions --------------------------------------------------------

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        submission = self.submissions.get(submission_id)
        return submission.model_copy(deep=True) if submission else None

    def find_by_form_submission_id(self, jotform_submission_id: str) -> Optional[Submission]:
        for submission in self.submissions.values():
            if submission.jotform_submission_id == jotform_submission_id:
                return submission.model_copy(deep=True)
        return None

    def insert_submission(self, submission: Submission) -> Submission:
        """
        Store a new submission.

        Raises:
            DuplicateSubmissionError: If the id or the form submission id is already stored
        """
        if submission.id in self.submissions:
            raise DuplicateSubmissionError(f"Submission {submission.id} already exists")
        if submission.jotform_submission_id and self.find_by_form_submission_id(submission.jotform_submission_id):
            raise DuplicateSubmissionError(
                f"Form submission {submission.jotform_submission_id} already stored"
            )
        self.submissions[submission.id] = submission.model_copy(deep=True)
        self._persist(self.submissions[submission.id])
        return submission

    def update_submission(self, submission_id: str, fields: Dict[str, Any]) -> Submission:
        """
        Apply a partial update.

        A ``processing_status`` change must be a legal transition from the
        stored status.

        Raises:
            SubmissionNotFoundError: If the submission does not exist
            InvalidTransitionError: If the status change is not allowed
        """
        current = self.submissions.get(submission_id)
        if current is None:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")

        fields = dict(fields)
        if "processing_status" in fields:
            target = ProcessingStatus(fields["processing_status"])
            if target is not current.processing_status:
                fields["processing_status"] = current.processing_status.transition(target)

        data = current.model_dump()
        data.update(copy.deepcopy(fields))
        updated = Submission.model_validate(data)
        self.submissions[submission_id] = updated
        self._persist(updated)
        LOG.debug("Updated submission %s: %s", submission_id, sorted(fields))
        return updated.model_copy(deep=True)

    def list_submissions(self, statuses: Optional[Iterable[ProcessingStatus]] = None) -> List[Submission]:
        wanted = set(ProcessingStatus(s) for s in statuses) if statuses is not None else None
        return [
            s.model_copy(deep=True) for s in sorted(self.submissions.values(), key=lambda s: s.id)
            if wanted is None or s.processing_status in wanted
        ]

    def _persist(self, submission: Submission):
        """Hook for stores that write through to disk."""

    # -- reference data -----------------------------------------------------

    def get_answer_keys(self, grade: int) -> List[AnswerKey]:
        keys = [k for k in self.answer_keys if k.grade == grade]
        return sorted(keys, key=lambda k: k.question_number)

    def get_grade_config(self, school_id: str, grade: int) -> Optional[GradeConfig]:
        for config in self.grade_configs:
            if config.school_id == school_id and config.grade == grade:
                return config
        return None

    def find_grade_config_by_form(self, form_id: str) -> Optional[GradeConfig]:
        for config in self.grade_configs:
            if form_id and config.jotform_form_id == form_id:
                return config
        return None

    def get_school(self, school_id: str) -> Optional[School]:
        return self.schools.get(school_id)

    def get_student(self, student_id: str) -> Optional[Student]:
        return self.students.get(student_id)

    def find_student_by_ref(self, student_ref: str) -> Optional[Student]:
        for student in self.students.values():
            if student_ref and student.student_ref == student_ref:
                return student
        return None

    def find_student_by_name(self, school_id: str, first_name: str, last_name: str) -> Optional[Student]:
        for student in self.students.values():
            if (student.school_id == school_id
                    and student.first_name.lower() == first_name.lower()
                    and student.last_name.lower() == last_name.lower()):
                return student
        return None


def _read_yaml_list(path: Path) -> List[Dict[str, Any]]:
    if not path.is_file():
        LOG.warning("Skipping missing data file %s", path)
        return []
    with open(path, "r") as f:
        data = yaml.safe_load(f) or []
    if not isinstance(data, list):
        raise TypeError(f"YAML data file {path} must be a list")
    return data


class YamlDirectoryStore(InMemorySubmissionStore):
    """Store backed by a data directory; submissions are written back on every change."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.submissions_dir = self.data_dir / "submissions"
        self.submissions_dir.mkdir(parents=True, exist_ok=True)

        super().__init__(
            answer_keys=load_answer_key_dir(self.data_dir / "answer_keys"),
            schools=[School.model_validate(s) for s in _read_yaml_list(self.data_dir / "schools.yaml")],
            students=[Student.model_validate(s) for s in _read_yaml_list(self.data_dir / "students.yaml")],
            grade_configs=[GradeConfig.model_validate(c)
                           for c in _read_yaml_list(self.data_dir / "grade_configs.yaml")],
        )

        for path in sorted(self.submissions_dir.glob("*.yaml")):
            with open(path, "r") as f:
                submission = Submission.model_validate(yaml.safe_load(f))
            self.submissions[submission.id] = submission

        LOG.info("Loaded %d submissions and %d answer keys from %s",
                 len(self.submissions), len(self.answer_keys), self.data_dir)

    def _persist(self, submission: Submission):
        path = self.submissions_dir / f"{submission.id}.yaml"
        with open(path, "w") as f:
            yaml.dump(submission.model_dump(mode="json"), f, default_flow_style=False,
                      sort_keys=False, allow_unicode=True)


def new_submission_id() -> str:
    return str(uuid.uuid4())
