"""Coach dashboard endpoint."""

import logging
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from ...core.coaching.aggregation import dashboard_summary
from ...core.coaching.models import ClientStatus, PaymentStatus
from ..dependencies import (
    ClientRepositoryDep,
    CurrentCoach,
    ExerciseRepositoryDep,
    FormRepositoryDep,
    MealRepositoryDep,
    SettingsDep,
)
from ..schemas import DomainResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class RecentClientModel(DomainResponse):
    id: str
    name: str
    status: ClientStatus
    payment_status: PaymentStatus
    start_date: datetime


class DashboardResponse(DomainResponse):
    total_clients: int
    active_clients: int
    monthly_revenue: float
    forms_created: int
    exercise_count: int
    meal_count: int
    recent_clients: list[RecentClientModel]


@router.get(
    "",
    response_model=DashboardResponse,
    summary="Dashboard summary",
    description="Client counts, monthly revenue from paid clients and the newest clients.",
)
async def get_dashboard(
    coach_id: CurrentCoach,
    settings: SettingsDep,
    clients: ClientRepositoryDep,
    forms: FormRepositoryDep,
    exercises: ExerciseRepositoryDep,
    meals: MealRepositoryDep,
) -> DashboardResponse:
    summary = dashboard_summary(
        clients.list_mine(coach_id),
        forms.list_mine(coach_id),
        exercises.list_mine(coach_id),
        meals.list_mine(coach_id),
        recent_limit=settings.recent_clients_limit,
    )
    return DashboardResponse.model_validate(summary, from_attributes=True)
