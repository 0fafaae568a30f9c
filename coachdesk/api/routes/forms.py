"""
Intake form API endpoints.

Coaches build forms and review what comes in. Prospects open a form by
link and submit it without signing in, so the public endpoints only need
the frontend's API key.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from ...core.coaching.models import FieldType, FormField, SubmissionStatus
from ..dependencies import ApiKey, CurrentCoach, FormRepositoryDep, SubmissionRepositoryDep
from ..schemas import CreatedResponse, DomainResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class FormFieldModel(DomainResponse):
    id: str = Field(min_length=1)
    type: FieldType
    label: str = Field(min_length=1)
    required: bool = False
    options: Optional[list[str]] = Field(
        None,
        description="Required for select, radio and checkbox fields"
    )
    placeholder: Optional[str] = None

    def to_domain(self) -> FormField:
        return FormField(**self.model_dump())


class FormCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    fields: list[FormFieldModel] = Field(default_factory=list)


class FormUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    fields: Optional[list[FormFieldModel]] = None
    is_active: Optional[bool] = None


class FormResponse(DomainResponse):
    id: str
    title: str
    description: Optional[str] = None
    fields: list[FormFieldModel]
    is_active: bool
    created_at: datetime


class PublicFormResponse(DomainResponse):
    """What a prospect sees. Owner details are left out."""
    id: str
    title: str
    description: Optional[str] = None
    fields: list[FormFieldModel]


class SubmissionCreateRequest(BaseModel):
    responses: dict[str, str] = Field(
        default_factory=dict,
        description="Answers keyed by field id. Checkbox answers are comma-separated."
    )
    submitter_email: Optional[str] = None
    submitter_name: Optional[str] = None


class SubmissionUpdateRequest(BaseModel):
    status: Optional[SubmissionStatus] = None
    notes: Optional[str] = None


class SubmissionResponse(DomainResponse):
    id: str
    form_id: str
    responses: dict[str, str]
    submitter_email: Optional[str] = None
    submitter_name: Optional[str] = None
    status: SubmissionStatus
    notes: Optional[str] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Coach endpoints
# ---------------------------------------------------------------------------

@router.get("/forms", response_model=list[FormResponse], summary="List my forms")
async def list_forms(
    coach_id: CurrentCoach,
    repository: FormRepositoryDep,
) -> list[FormResponse]:
    return [
        FormResponse.model_validate(f, from_attributes=True)
        for f in repository.list_mine(coach_id)
    ]


@router.post(
    "/forms",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a form",
    description="New forms are active immediately.",
)
async def create_form(
    request: FormCreateRequest,
    coach_id: CurrentCoach,
    repository: FormRepositoryDep,
) -> CreatedResponse:
    form_id = repository.create(
        coach_id,
        title=request.title,
        description=request.description,
        fields=[f.to_domain() for f in request.fields],
    )

    logger.info(
        "Form created",
        extra={"coach_id": coach_id, "form_id": form_id, "field_count": len(request.fields)}
    )

    return CreatedResponse(id=form_id)


@router.patch(
    "/forms/{form_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update a form",
    description="Deactivating a form stops new submissions; existing ones are kept.",
)
async def update_form(
    form_id: str,
    request: FormUpdateRequest,
    coach_id: CurrentCoach,
    repository: FormRepositoryDep,
) -> Response:
    changes = request.model_dump(exclude_unset=True, exclude={"fields"})
    changes = {k: v for k, v in changes.items() if v is not None or k == "description"}
    if request.fields is not None:
        changes["fields"] = [f.to_domain() for f in request.fields]

    repository.update(coach_id, form_id, changes)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/forms/{form_id}/submissions",
    response_model=list[SubmissionResponse],
    summary="List submissions for a form",
    description="Newest first. Empty for forms the caller doesn't own.",
)
async def list_submissions(
    form_id: str,
    coach_id: CurrentCoach,
    repository: SubmissionRepositoryDep,
) -> list[SubmissionResponse]:
    return [
        SubmissionResponse.model_validate(s, from_attributes=True)
        for s in repository.list_for_form(coach_id, form_id)
    ]


@router.patch(
    "/submissions/{submission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update a submission's status or notes",
)
async def update_submission(
    submission_id: str,
    request: SubmissionUpdateRequest,
    coach_id: CurrentCoach,
    repository: SubmissionRepositoryDep,
) -> Response:
    changes = request.model_dump(exclude_unset=True)
    if changes.get("status") is None:
        changes.pop("status", None)

    repository.update_status(coach_id, submission_id, changes)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/forms/{form_id}/public",
    response_model=PublicFormResponse,
    summary="Open a form by link",
    responses={404: {"description": "Form not found or inactive"}},
)
async def get_public_form(
    form_id: str,
    api_key: ApiKey,
    repository: FormRepositoryDep,
) -> PublicFormResponse:
    form = repository.get_public(form_id)
    if form is None or not form.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Form not found or inactive"
        )
    return PublicFormResponse.model_validate(form, from_attributes=True)


@router.post(
    "/forms/{form_id}/submissions",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a form",
    responses={
        400: {"description": "Form not found or inactive"},
        422: {"description": "Responses don't match the form's fields"},
    },
)
async def submit_form(
    form_id: str,
    request: SubmissionCreateRequest,
    api_key: ApiKey,
    repository: SubmissionRepositoryDep,
) -> CreatedResponse:
    submission_id = repository.submit(
        form_id,
        request.responses,
        submitter_email=request.submitter_email,
        submitter_name=request.submitter_name,
    )
    return CreatedResponse(id=submission_id)
