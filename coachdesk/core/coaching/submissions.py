"""
Validation of public form responses.

Responses arrive from anonymous visitors as a flat map of field id to
string. They are checked against the parent form before anything is stored:
unknown keys and missing required answers are rejected, and choice fields
must pick from the declared options. Checkbox answers are a comma-separated
list of options.
"""

from typing import Mapping

from .errors import InvalidSubmissionError
from .models import FieldType, Form, FormField


def _checkbox_values(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _check_field(form_field: FormField, value: str) -> list[str]:
    problems = []
    options = form_field.options or []

    if form_field.type in (FieldType.SELECT, FieldType.RADIO):
        if value not in options:
            problems.append(f"'{value}' is not an option for '{form_field.label}'")

    elif form_field.type == FieldType.CHECKBOX:
        invalid = [v for v in _checkbox_values(value) if v not in options]
        if invalid:
            problems.append(
                f"{', '.join(repr(v) for v in invalid)} not options for '{form_field.label}'"
            )

    return problems


def validate_responses(form: Form, responses: Mapping[str, str]) -> dict[str, str]:
    """
    Check responses against the form's fields.

    Returns the cleaned responses (values stripped, blank optional answers
    dropped). Raises InvalidSubmissionError listing every problem found.
    """
    problems = []
    cleaned: dict[str, str] = {}

    for key in responses:
        if form.field_by_id(key) is None:
            problems.append(f"Unknown field '{key}'")

    for form_field in form.fields:
        value = (responses.get(form_field.id) or "").strip()

        if not value:
            if form_field.required:
                problems.append(f"'{form_field.label}' is required")
            continue

        problems.extend(_check_field(form_field, value))
        cleaned[form_field.id] = value

    if problems:
        raise InvalidSubmissionError(problems)

    return cleaned
