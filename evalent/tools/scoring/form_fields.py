"""Typed view over the raw answer map delivered by the form webhook.

The webhook stores answers keyed by question id, each carrying a control
type tag, a field name, a display label and the respondent's value. Fields
are parsed into one of three kinds so that scoring and extraction can match
on them exhaustively:

- ``single_choice``: radio buttons and dropdowns (MCQ-like answers)
- ``free_text``: textareas (long-form writing)
- ``unknown``: everything else (names, hidden metadata, scales, ...)
"""

from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

SINGLE_CHOICE_TYPES = {"control_radio", "control_dropdown"}
FREE_TEXT_TYPES = {"control_textarea"}


class _BaseField(BaseModel):
    key: str = Field(description="Key of the field in the raw answer map")
    qid: Optional[int] = Field(default=None, description="Numeric question id, if the key is one")
    type_tag: str = ""
    name: str = ""
    text: str = Field(default="", description="Display label / question text")

    @property
    def order_key(self) -> Tuple[bool, int, str]:
        return (self.qid is None, self.qid or 0, self.key)


class SingleChoiceField(_BaseField):
    kind: Literal["single_choice"] = "single_choice"
    answer: str = ""


class FreeTextField(_BaseField):
    kind: Literal["free_text"] = "free_text"
    answer: str = ""


class UnknownField(_BaseField):
    kind: Literal["unknown"] = "unknown"
    answer: Any = None

    @property
    def answer_text(self) -> str:
        return _answer_text(self.answer)


AnyField = Union[SingleChoiceField, FreeTextField, UnknownField]

# For models that embed parsed fields and need to round-trip them.
FormField = Annotated[AnyField, Field(discriminator="kind")]


def _answer_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(_answer_text(v) for v in value if v not in (None, ""))
    if isinstance(value, dict):
        return _answer_text(value.get("prettyFormat") or " ".join(str(v) for v in value.values()))
    return str(value)


def _parse_qid(key: str) -> Optional[int]:
    key = str(key).strip()
    return int(key) if key.isdigit() else None


def parse_form_field(key: str, value: Any) -> AnyField:
    """Classify one raw answer entry."""
    qid = _parse_qid(key)
    if not isinstance(value, dict):
        return UnknownField(key=str(key), qid=qid, answer=value)

    type_tag = str(value.get("type") or "")
    name = str(value.get("name") or "")
    text = str(value.get("text") or "")
    raw_answer = value.get("answer")
    if raw_answer in (None, ""):
        raw_answer = value.get("prettyFormat")

    common = dict(key=str(key), qid=qid, type_tag=type_tag, name=name, text=text)
    if type_tag in SINGLE_CHOICE_TYPES:
        return SingleChoiceField(answer=_answer_text(raw_answer), **common)
    if type_tag in FREE_TEXT_TYPES:
        return FreeTextField(answer=_answer_text(raw_answer), **common)
    return UnknownField(answer=raw_answer, **common)


def parse_raw_answers(raw_answers: Optional[Dict[str, Any]]) -> List[AnyField]:
    """Parse the whole answer map, sorted into form order."""
    fields = [parse_form_field(key, value) for key, value in (raw_answers or {}).items()]
    fields.sort(key=lambda f: f.order_key)
    return fields


def field_answer(field: AnyField) -> str:
    """The field's answer as text, whatever its kind."""
    if isinstance(field, UnknownField):
        return field.answer_text
    return field.answer


def index_by_name(fields: Iterable[AnyField]) -> Dict[str, AnyField]:
    """Map lower-cased field names to fields; the first field wins on a clash."""
    index: Dict[str, AnyField] = {}
    for field in fields:
        name = field.name.strip().lower()
        if name and name not in index:
            index[name] = field
    return index
