"""Unit tests for the answer validation service.

Tests per-type rules and whole-survey validation.
"""

import pytest

from survey_studio.schemas.question import Question
from survey_studio.services.validation import (
    QuestionRule,
    build_survey_schema,
    parse_number,
)


def _rule(**fields) -> QuestionRule:
    fields.setdefault("id", "q1")
    fields.setdefault("label", "Question")
    return QuestionRule(Question(**fields))


class TestNumberRule:
    """Tests for number questions."""

    @pytest.fixture
    def age_rule(self):
        return _rule(type="number", required=True, min=18, max=65)

    def test_below_minimum(self, age_rule):
        """Test that values below min fail with the bound in the message."""
        result = age_rule.validate("17")
        assert not result.is_valid
        assert result.error_message == "Minimum is 18"

    def test_above_maximum(self, age_rule):
        result = age_rule.validate("66")
        assert result.error_message == "Maximum is 65"

    def test_not_a_number(self, age_rule):
        """Test that non-numeric input is rejected."""
        result = age_rule.validate("abc")
        assert result.error_message == "Enter a valid number"

    def test_in_range(self, age_rule):
        assert age_rule.validate("25").is_valid
        assert age_rule.validate("18").is_valid
        assert age_rule.validate("65.0").is_valid

    def test_required_missing(self, age_rule):
        """Test that a missing required number fails as Required."""
        assert age_rule.validate(None).error_message == "Required"
        assert age_rule.validate("").error_message == "Required"

    def test_optional_missing_accepted(self):
        """Test that an omitted optional value is accepted."""
        rule = _rule(type="number", min=18, max=65)
        assert rule.validate(None).is_valid
        assert rule.validate("").is_valid

    def test_list_answer_rejected(self, age_rule):
        assert age_rule.validate(["25"]).error_message == "Expected a single answer"

    def test_fractional_bound_message(self):
        rule = _rule(type="number", min=0.5)
        assert rule.validate("0.25").error_message == "Minimum is 0.5"


class TestParseNumber:
    """Tests for parse_number."""

    @pytest.mark.parametrize("value,expected", [
        ("42", 42.0),
        (" 3.5 ", 3.5),
        ("-7", -7.0),
        ("1e3", 1000.0),
        ("   ", 0.0),
    ])
    def test_valid_numbers(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", ["abc", "inf", "-Infinity", "NaN", "1_000", "12abc"])
    def test_invalid_numbers(self, value):
        assert parse_number(value) is None


class TestMultipleChoiceRule:
    """Tests for multiple choice questions."""

    def test_required_needs_one_selection(self):
        rule = _rule(type="multiple_choice", required=True, options=["A", "B"])
        assert rule.validate([]).error_message == "Select at least one option"
        assert rule.validate(None).error_message == "Select at least one option"
        assert rule.validate(["A"]).is_valid

    def test_optional_accepts_empty(self):
        rule = _rule(type="multiple_choice", options=["A", "B"])
        assert rule.validate(None).is_valid

    def test_scalar_answer_rejected(self):
        """Test that a plain string is not a valid multiple choice answer."""
        rule = _rule(type="multiple_choice", options=["A", "B"])
        assert rule.validate("A").error_message == "Expected a list of options"


class TestPatternRules:
    """Tests for email and phone questions."""

    def test_email(self):
        rule = _rule(type="email", required=True)
        assert rule.validate("ada@example.org").is_valid
        assert rule.validate("not-an-email").error_message == "Enter a valid email"
        assert rule.validate("").error_message == "Required"

    def test_optional_email_empty_is_exempt(self):
        assert _rule(type="email").validate("").is_valid

    def test_phone(self):
        rule = _rule(type="phone")
        assert rule.validate("+1 (555) 123-4567").is_valid
        assert rule.validate("12345").error_message == "Enter a valid phone number"
        assert rule.validate("call me maybe").error_message == "Enter a valid phone number"


class TestTextRule:
    """Tests for text-like and unknown question types."""

    def test_required(self):
        assert _rule(type="short_text", required=True).validate("").error_message == "Required"

    def test_max_length(self):
        rule = _rule(type="short_text", max_length=5)
        assert rule.validate("hello").is_valid
        assert rule.validate("hello!").error_message == "Maximum characters is 5"

    def test_absolute_ceiling(self):
        """Test the 5000 character ceiling applies without max_length."""
        rule = _rule(type="long_text")
        assert rule.validate("x" * 5000).is_valid
        assert rule.validate("x" * 5001).error_message == "Maximum characters is 5000"

    def test_regex_search_semantics(self):
        """Test that the pattern may match anywhere unless anchored."""
        assert _rule(type="short_text", regex=r"\d{3}").validate("abc123def").is_valid
        assert _rule(type="short_text", regex=r"^\d{3}$").validate("abc123").error_message == "Invalid format"

    def test_regex_skipped_for_empty_optional(self):
        assert _rule(type="short_text", regex=r"^\d+$").validate("").is_valid

    def test_invalid_regex_reports_invalid_format(self):
        """Test that a broken pattern fails closed instead of raising."""
        result = _rule(type="short_text", regex="[unclosed").validate("anything")
        assert result.error_message == "Invalid format"

    def test_unknown_type_uses_text_rule(self):
        rule = _rule(type="signature", required=True)
        assert rule.validate("").error_message == "Required"
        assert rule.validate("Ada").is_valid

    def test_unknown_type_applies_regex_and_max_length(self):
        """Test that unrecognized types honour the text rule's pattern and length."""
        question = Question.model_validate({
            "id": "q1",
            "label": "Employee number",
            "type": "textarea",
            "regex": r"^\d+$",
            "maxLength": 4,
        })
        rule = QuestionRule(question)

        assert rule.validate("abc").error_message == "Invalid format"
        assert rule.validate("12345").error_message == "Maximum characters is 4"
        assert rule.validate("1234").is_valid

    def test_date_required(self):
        rule = _rule(type="date", required=True)
        assert rule.validate("").error_message == "Required"
        assert rule.validate("2024-05-01").is_valid


class TestSurveySchema:
    """Tests for whole-survey validation."""

    @pytest.fixture
    def schema(self):
        return build_survey_schema([
            Question(id="name", label="Name", type="short_text", required=True),
            Question(id="age", label="Age", type="number", required=True, min=18),
            Question(id="email", label="Email", type="email"),
        ])

    def test_collects_every_error(self, schema):
        """Test that all failing fields are reported at once."""
        report = schema.validate({"age": "12", "email": "nope"})

        assert not report.is_valid
        assert report.errors == {
            "name": "Required",
            "age": "Minimum is 18",
            "email": "Enter a valid email",
        }

    def test_valid_answers(self, schema):
        report = schema.validate({"name": "Ada", "age": "30"})
        assert report.is_valid
        assert report.errors == {}

    def test_only_restricts_validated_questions(self, schema):
        """Test that questions outside `only` are not validated."""
        report = schema.validate({}, only=["email"])
        assert report.is_valid

    def test_answers_not_mutated(self, schema):
        answers = {"name": "Ada"}
        schema.validate(answers)
        assert answers == {"name": "Ada"}
