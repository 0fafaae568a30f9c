"""
Client management API endpoints.

Coaches create clients, update their status, payment state and plan
assignments, and log progress check-ins. Every endpoint works on the
calling coach's clients only; another coach's client id behaves exactly
like an id that doesn't exist.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from ...core.coaching.aggregation import latest_progress
from ...core.coaching.models import ClientStatus, Measurements, PaymentStatus
from ..dependencies import ClientRepositoryDep, CurrentCoach, ProgressRepositoryDep
from ..schemas import CreatedResponse, DomainResponse

logger = logging.getLogger(__name__)

router = APIRouter()

# Fields a PATCH may reset to null; null is ignored for the rest
_CLEARABLE_FIELDS = {
    "phone",
    "notes",
    "monthly_rate",
    "current_workout_split",
    "current_meal_plan",
    "current_pricing_plan",
}


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ClientCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    phone: Optional[str] = None
    goals: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    monthly_rate: Optional[float] = Field(None, ge=0)


class ClientUpdateRequest(BaseModel):
    """Partial update. Only fields present in the body are changed."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    goals: Optional[list[str]] = None
    status: Optional[ClientStatus] = None
    payment_status: Optional[PaymentStatus] = None
    current_workout_split: Optional[str] = None
    current_meal_plan: Optional[str] = None
    current_pricing_plan: Optional[str] = None
    monthly_rate: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class ClientResponse(DomainResponse):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    status: ClientStatus
    payment_status: PaymentStatus
    start_date: datetime
    goals: list[str]
    notes: Optional[str] = None
    monthly_rate: Optional[float] = None
    current_workout_split: Optional[str] = None
    current_meal_plan: Optional[str] = None
    current_pricing_plan: Optional[str] = None


class MeasurementsModel(DomainResponse):
    chest: Optional[float] = None
    waist: Optional[float] = None
    hips: Optional[float] = None
    arms: Optional[float] = None
    thighs: Optional[float] = None


class ProgressCreateRequest(BaseModel):
    weight: Optional[float] = Field(None, gt=0)
    body_fat: Optional[float] = Field(None, ge=0, le=100)
    measurements: Optional[MeasurementsModel] = None
    photos: list[str] = Field(
        default_factory=list,
        description="Storage keys returned by POST /uploads"
    )
    notes: Optional[str] = None
    mood: Optional[int] = Field(None, ge=1, le=10)
    energy: Optional[int] = Field(None, ge=1, le=10)


class ProgressResponse(DomainResponse):
    id: str
    client_id: str
    date: datetime
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    measurements: Optional[MeasurementsModel] = None
    photos: list[str]
    notes: Optional[str] = None
    mood: Optional[int] = None
    energy: Optional[int] = None


class ClientDetailResponse(ClientResponse):
    latest_progress: Optional[ProgressResponse] = Field(
        None,
        description="Most recent check-in, if any"
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[ClientResponse],
    summary="List my clients",
)
async def list_clients(
    coach_id: CurrentCoach,
    repository: ClientRepositoryDep,
) -> list[ClientResponse]:
    clients = repository.list_mine(coach_id)
    return [ClientResponse.model_validate(c, from_attributes=True) for c in clients]


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a client",
    description="New clients start active, with payment pending, starting today.",
)
async def create_client(
    request: ClientCreateRequest,
    coach_id: CurrentCoach,
    repository: ClientRepositoryDep,
) -> CreatedResponse:
    client_id = repository.create(coach_id, **request.model_dump())

    logger.info("Client created", extra={"coach_id": coach_id, "client_id": client_id})

    return CreatedResponse(id=client_id)


@router.get(
    "/{client_id}",
    response_model=ClientDetailResponse,
    summary="Get a client",
    responses={404: {"description": "Client not found"}},
)
async def get_client(
    client_id: str,
    coach_id: CurrentCoach,
    repository: ClientRepositoryDep,
    progress: ProgressRepositoryDep,
) -> ClientDetailResponse:
    client = repository.get(coach_id, client_id)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )

    latest = latest_progress(progress.list_for_client(coach_id, client_id))

    response = ClientDetailResponse.model_validate(client, from_attributes=True)
    if latest is not None:
        response.latest_progress = ProgressResponse.model_validate(latest, from_attributes=True)
    return response


@router.patch(
    "/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update a client",
    description=(
        "Change status, payment state, assignments, rate or notes. "
        "Assigned plans must belong to the same coach."
    ),
)
async def update_client(
    client_id: str,
    request: ClientUpdateRequest,
    coach_id: CurrentCoach,
    repository: ClientRepositoryDep,
) -> Response:
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key in _CLEARABLE_FIELDS
    }
    repository.update(coach_id, client_id, changes)

    logger.info(
        "Client updated",
        extra={"client_id": client_id, "fields": sorted(changes)}
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{client_id}/progress",
    response_model=list[ProgressResponse],
    summary="List progress check-ins",
    description="Newest first. Empty for clients the caller doesn't coach.",
)
async def list_progress(
    client_id: str,
    coach_id: CurrentCoach,
    repository: ProgressRepositoryDep,
) -> list[ProgressResponse]:
    entries = repository.list_for_client(coach_id, client_id)
    return [ProgressResponse.model_validate(e, from_attributes=True) for e in entries]


@router.post(
    "/{client_id}/progress",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a progress check-in",
)
async def add_progress(
    client_id: str,
    request: ProgressCreateRequest,
    coach_id: CurrentCoach,
    repository: ProgressRepositoryDep,
) -> CreatedResponse:
    fields = request.model_dump(exclude={"measurements"})
    if request.measurements is not None:
        fields["measurements"] = Measurements(**request.measurements.model_dump())

    entry_id = repository.add(coach_id, client_id, **fields)
    return CreatedResponse(id=entry_id)
