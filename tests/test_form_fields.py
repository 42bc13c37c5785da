"""Tests for parsing the raw webhook answer map."""

from evalent.tools.scoring.form_fields import (
    FreeTextField, SingleChoiceField, UnknownField, field_answer, index_by_name,
    parse_form_field, parse_raw_answers,
)


class TestParseFormField:
    """Test classifying single answer entries."""

    def test_radio(self):
        field = parse_form_field("10", {"name": "g7_en_q1", "type": "control_radio", "answer": "A"})

        assert isinstance(field, SingleChoiceField)
        assert field.qid == 10
        assert field.answer == "A"

    def test_dropdown(self):
        field = parse_form_field("11", {"name": "g7_en_q2", "type": "control_dropdown", "answer": "dog"})
        assert isinstance(field, SingleChoiceField)

    def test_textarea(self):
        field = parse_form_field("30", {"name": "g7_en_long_text", "type": "control_textarea",
                                        "text": "Write about...", "answer": "My essay"})

        assert isinstance(field, FreeTextField)
        assert field.text == "Write about..."
        assert field.answer == "My essay"

    def test_other_type(self):
        field = parse_form_field("3", {"name": "student_name", "type": "control_fullname",
                                       "answer": {"first": "Amira", "last": "Khan"}})

        assert isinstance(field, UnknownField)
        assert field_answer(field) == "Amira Khan"

    def test_pretty_format_preferred_for_dicts(self):
        field = parse_form_field("3", {"name": "student_name", "type": "control_fullname",
                                       "answer": {"first": "Amira", "last": "Khan",
                                                  "prettyFormat": "Amira K."}})
        assert field_answer(field) == "Amira K."

    def test_list_answer(self):
        field = parse_form_field("8", {"name": "interests", "type": "control_checkbox",
                                       "answer": ["Art", "", "Music"]})
        assert field_answer(field) == "Art, Music"

    def test_non_dict_value(self):
        field = parse_form_field("slug", "submit/123")

        assert isinstance(field, UnknownField)
        assert field.qid is None
        assert field_answer(field) == "submit/123"

    def test_missing_answer(self):
        field = parse_form_field("12", {"name": "g7_en_q3", "type": "control_radio"})
        assert field.answer == ""


class TestParseRawAnswers:
    """Test parsing a whole answer map."""

    def test_sorted_by_qid(self):
        fields = parse_raw_answers({
            "31": {"name": "b", "type": "control_textarea", "answer": "x"},
            "4": {"name": "a", "type": "control_radio", "answer": "A"},
            "slug": "value",
        })
        assert [f.key for f in fields] == ["4", "31", "slug"]

    def test_none(self):
        assert parse_raw_answers(None) == []

    def test_index_by_name_first_wins(self):
        fields = parse_raw_answers({
            "1": {"name": "Dup", "type": "control_radio", "answer": "A"},
            "2": {"name": "dup", "type": "control_radio", "answer": "B"},
            "3": {"name": "", "type": "control_radio", "answer": "C"},
        })
        index = index_by_name(fields)

        assert list(index) == ["dup"]
        assert index["dup"].answer == "A"
