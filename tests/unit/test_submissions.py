"""
Unit tests for validating public form responses.
"""

import pytest

from coachdesk.core.coaching.errors import InvalidRecordError, InvalidSubmissionError
from coachdesk.core.coaching.models import FieldType, Form, FormField
from coachdesk.core.coaching.submissions import validate_responses


@pytest.fixture
def intake_form():
    return Form(
        coach_id="coach-a",
        title="Intake",
        fields=[
            FormField(id="name", type=FieldType.TEXT, label="Name", required=True),
            FormField(id="about", type=FieldType.TEXTAREA, label="About you"),
            FormField(
                id="goal",
                type=FieldType.SELECT,
                label="Main goal",
                required=True,
                options=["fat loss", "muscle gain", "performance"],
            ),
            FormField(
                id="days",
                type=FieldType.CHECKBOX,
                label="Available days",
                options=["mon", "wed", "fri"],
            ),
            FormField(
                id="experience",
                type=FieldType.RADIO,
                label="Experience",
                options=["none", "some", "lots"],
            ),
        ],
    )


class TestValidateResponses:

    def test_valid_responses_pass(self, intake_form):
        cleaned = validate_responses(intake_form, {
            "name": "Sam",
            "goal": "muscle gain",
            "days": "mon, fri",
            "experience": "some",
        })

        assert cleaned == {
            "name": "Sam",
            "goal": "muscle gain",
            "days": "mon, fri",
            "experience": "some",
        }

    def test_values_are_stripped(self, intake_form):
        cleaned = validate_responses(intake_form, {"name": "  Sam ", "goal": "performance"})
        assert cleaned["name"] == "Sam"

    def test_blank_optional_answers_are_dropped(self, intake_form):
        cleaned = validate_responses(intake_form, {
            "name": "Sam",
            "goal": "fat loss",
            "about": "   ",
        })
        assert "about" not in cleaned

    def test_missing_required_field(self, intake_form):
        with pytest.raises(InvalidSubmissionError) as exc_info:
            validate_responses(intake_form, {"goal": "fat loss"})

        assert exc_info.value.problems == ["'Name' is required"]

    def test_blank_required_field_counts_as_missing(self, intake_form):
        with pytest.raises(InvalidSubmissionError, match="'Name' is required"):
            validate_responses(intake_form, {"name": " ", "goal": "fat loss"})

    def test_unknown_field_rejected(self, intake_form):
        with pytest.raises(InvalidSubmissionError, match="Unknown field 'shoe_size'"):
            validate_responses(intake_form, {
                "name": "Sam",
                "goal": "fat loss",
                "shoe_size": "44",
            })

    def test_select_must_be_an_option(self, intake_form):
        with pytest.raises(InvalidSubmissionError, match="not an option for 'Main goal'"):
            validate_responses(intake_form, {"name": "Sam", "goal": "get rich"})

    def test_radio_must_be_an_option(self, intake_form):
        with pytest.raises(InvalidSubmissionError, match="Experience"):
            validate_responses(intake_form, {
                "name": "Sam",
                "goal": "fat loss",
                "experience": "expert",
            })

    def test_checkbox_values_must_all_be_options(self, intake_form):
        with pytest.raises(InvalidSubmissionError, match="'sun'"):
            validate_responses(intake_form, {
                "name": "Sam",
                "goal": "fat loss",
                "days": "mon,sun",
            })

    def test_all_problems_reported_together(self, intake_form):
        """A visitor sees everything wrong with the form at once."""
        with pytest.raises(InvalidSubmissionError) as exc_info:
            validate_responses(intake_form, {"goal": "get rich", "extra": "x"})

        assert len(exc_info.value.problems) == 3

    def test_submission_error_is_a_value_error(self, intake_form):
        with pytest.raises(ValueError):
            validate_responses(intake_form, {})


class TestChoiceOptionsWithCommas:

    def test_checkbox_option_with_comma_rejected(self):
        """A checkbox answer could never select an option that contains the separator."""
        with pytest.raises(InvalidRecordError, match="cannot contain commas"):
            FormField(
                id="goals",
                type=FieldType.CHECKBOX,
                label="Goals",
                options=["Lose weight, fast", "Build muscle"],
            )

    def test_select_option_with_comma_is_accepted(self):
        form = Form(
            coach_id="coach-a",
            title="Intake",
            fields=[
                FormField(
                    id="goal",
                    type=FieldType.SELECT,
                    label="Goal",
                    required=True,
                    options=["Lose weight, fast", "Build muscle"],
                ),
            ],
        )

        assert validate_responses(form, {"goal": "Lose weight, fast"}) == {
            "goal": "Lose weight, fast",
        }

    def test_invalid_record_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            FormField(id=" ", type=FieldType.TEXT, label="Blank")
