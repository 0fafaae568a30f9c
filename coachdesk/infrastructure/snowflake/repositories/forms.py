"""
Snowflake repositories for intake forms and their submissions.

Forms are coach-owned but publicly readable by id so anyone with the link
can fill them in. Submissions are written anonymously and belong to the
coach through their form: reading them or changing their status requires
owning the parent form.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from coachdesk.core.coaching.errors import (
    FormNotFoundOrInactiveError,
    InvalidRecordError,
    NotFoundOrAccessDeniedError,
)
from coachdesk.core.coaching.models import (
    FieldType,
    Form,
    FormField,
    FormSubmission,
    SubmissionStatus,
)
from coachdesk.core.coaching.ownership import ensure_owned, is_owned_by, require_caller
from coachdesk.core.coaching.submissions import validate_responses

from .base import DocumentRepository, OwnedRepository, SnowflakeConnection, enum_value

logger = logging.getLogger(__name__)


class FormRepository(OwnedRepository[Form]):
    """Repository for a coach's forms. New forms are always active."""

    table = "forms"
    kind = "Form"
    model = Form
    updatable_fields = frozenset({"title", "description", "fields", "is_active"})

    def _creation_defaults(self) -> dict[str, Any]:
        return {"is_active": True}

    def get_public(self, form_id: str) -> Optional[Form]:
        """Fetch a form for the public submission page. No identity needed."""
        return self._fetch_record(form_id)

    def _to_document(self, record: Form) -> dict:
        return {
            "coach_id": record.coach_id,
            "title": record.title,
            "description": record.description,
            "fields": [
                {
                    "id": f.id,
                    "type": enum_value(f.type),
                    "label": f.label,
                    "required": f.required,
                    "options": list(f.options) if f.options is not None else None,
                    "placeholder": f.placeholder,
                }
                for f in record.fields
            ],
            "is_active": record.is_active,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> Form:
        return Form(
            id=record_id,
            coach_id=document["coach_id"],
            title=document["title"],
            description=document.get("description"),
            fields=[
                FormField(
                    id=f["id"],
                    type=FieldType(f["type"]),
                    label=f["label"],
                    required=f.get("required", False),
                    options=f.get("options"),
                    placeholder=f.get("placeholder"),
                )
                for f in document.get("fields") or []
            ],
            is_active=document.get("is_active", True),
            created_at=created_at,
        )


class FormSubmissionRepository(DocumentRepository[FormSubmission]):
    """
    Repository for form submissions.

    `submit` is the only unauthenticated write in the system.
    """

    table = "form_submissions"
    index_columns = ("form_id",)
    kind = "Submission"

    def __init__(self, connection: SnowflakeConnection) -> None:
        super().__init__(connection)
        self._forms = FormRepository(connection)

    def submit(
        self,
        form_id: str,
        responses: Mapping[str, str],
        submitter_email: Optional[str] = None,
        submitter_name: Optional[str] = None,
    ) -> str:
        """
        Record a public submission.

        The form must exist and be active, and the responses must match its
        fields. Nothing is stored when either check fails.
        """
        form = self._forms.get_public(form_id)
        if form is None or not form.is_active:
            logger.warning(
                "Submission to missing or inactive form",
                extra={"form_id": str(form_id)}
            )
            raise FormNotFoundOrInactiveError("Form not found or inactive")

        submission = FormSubmission(
            form_id=form.id,
            responses=validate_responses(form, responses),
            submitter_email=submitter_email,
            submitter_name=submitter_name,
            status=SubmissionStatus.NEW,
        )

        submission_id = self._insert(submission)
        logger.info(
            "Form submission received",
            extra={"form_id": form.id, "submission_id": submission_id}
        )
        return submission_id

    def list_for_form(self, caller_id: str, form_id: str) -> list[FormSubmission]:
        """Submissions newest first. Empty if the caller doesn't own the form."""
        caller_id = require_caller(caller_id)
        if not is_owned_by(self._forms._fetch_record(form_id), caller_id):
            return []
        return [
            submission for submission, _ in
            self._select_where("form_id", str(form_id), newest_first=True)
        ]

    def update_status(
        self,
        caller_id: str,
        submission_id: str,
        changes: Mapping[str, Any],
    ) -> None:
        """
        Move a submission through the pipeline and/or annotate it.

        `changes` may hold `status` and `notes`; absent keys are left as they
        are. Ownership is checked on the parent form.
        """
        caller_id = require_caller(caller_id)
        found = self._fetch(submission_id)
        if found is None:
            raise NotFoundOrAccessDeniedError("Submission not found or access denied")
        submission, version = found

        ensure_owned(self._forms._fetch_record(submission.form_id), caller_id, "Submission")

        unknown = set(changes) - {"status", "notes"}
        if unknown:
            raise InvalidRecordError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        if not changes:
            return

        if "status" in changes:
            submission.status = changes["status"]
        if "notes" in changes:
            submission.notes = changes["notes"]

        self._write(submission_id, submission, version)

    def _to_document(self, record: FormSubmission) -> dict:
        return {
            "form_id": record.form_id,
            "responses": dict(record.responses),
            "submitter_email": record.submitter_email,
            "submitter_name": record.submitter_name,
            "status": enum_value(record.status),
            "notes": record.notes,
        }

    def _from_document(
        self,
        record_id: str,
        created_at: datetime,
        document: dict,
    ) -> FormSubmission:
        return FormSubmission(
            id=record_id,
            form_id=document["form_id"],
            responses=document.get("responses") or {},
            submitter_email=document.get("submitter_email"),
            submitter_name=document.get("submitter_name"),
            status=SubmissionStatus(document.get("status", "new")),
            notes=document.get("notes"),
            created_at=created_at,
        )
