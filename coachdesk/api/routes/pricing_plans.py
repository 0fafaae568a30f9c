"""Pricing plan API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from ...core.coaching.models import BillingPeriod
from ..dependencies import CurrentCoach, PricingPlanRepositoryDep
from ..schemas import CreatedResponse, DomainResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class PricingPlanCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(ge=0)
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    features: list[str] = Field(default_factory=list)
    is_active: bool = True


class PricingPlanUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    billing_period: Optional[BillingPeriod] = None
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None


class PricingPlanResponse(DomainResponse):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    billing_period: BillingPeriod
    features: list[str]
    is_active: bool


@router.get("", response_model=list[PricingPlanResponse], summary="List my pricing plans")
async def list_pricing_plans(
    coach_id: CurrentCoach,
    repository: PricingPlanRepositoryDep,
) -> list[PricingPlanResponse]:
    return [
        PricingPlanResponse.model_validate(p, from_attributes=True)
        for p in repository.list_mine(coach_id)
    ]


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a pricing plan",
)
async def create_pricing_plan(
    request: PricingPlanCreateRequest,
    coach_id: CurrentCoach,
    repository: PricingPlanRepositoryDep,
) -> CreatedResponse:
    return CreatedResponse(id=repository.create(coach_id, **request.model_dump()))


@router.patch(
    "/{plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update a pricing plan",
)
async def update_pricing_plan(
    plan_id: str,
    request: PricingPlanUpdateRequest,
    coach_id: CurrentCoach,
    repository: PricingPlanRepositoryDep,
) -> Response:
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key == "description"
    }
    repository.update(coach_id, plan_id, changes)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
