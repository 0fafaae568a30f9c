"""
Nutrition API endpoints: meals, meal plans and the live totals preview.

Meal plan totals are always computed on the server from the coach's own
meals; the builder calls /meal-plans/preview while editing and the same
computation is stored when the plan is saved.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from ...core.coaching.models import Ingredient, MealType, PlannedMeal
from ..dependencies import CurrentCoach, MealPlanRepositoryDep, MealRepositoryDep
from ..schemas import CreatedResponse, DomainResponse, MacrosModel, require_own_media

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class IngredientModel(DomainResponse):
    name: str = Field(min_length=1)
    amount: str
    unit: str

    def to_domain(self) -> Ingredient:
        return Ingredient(**self.model_dump())


class MealCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    ingredients: list[IngredientModel] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    macros: MacrosModel = Field(default_factory=MacrosModel, description="Per serving")
    servings: float = Field(1, gt=0)
    prep_time: Optional[int] = Field(None, ge=0, description="Minutes")
    cook_time: Optional[int] = Field(None, ge=0, description="Minutes")


class MealUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    ingredients: Optional[list[IngredientModel]] = None
    instructions: Optional[list[str]] = None
    macros: Optional[MacrosModel] = Field(None, description="Per serving")
    servings: Optional[float] = Field(None, gt=0)
    images: Optional[list[str]] = Field(None, description="Storage keys from /uploads, in display order")
    prep_time: Optional[int] = Field(None, ge=0, description="Minutes")
    cook_time: Optional[int] = Field(None, ge=0, description="Minutes")


class MealResponse(DomainResponse):
    id: str
    name: str
    description: Optional[str] = None
    ingredients: list[IngredientModel]
    instructions: list[str]
    macros: MacrosModel
    servings: float
    images: list[str]
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None


class PlannedMealModel(DomainResponse):
    meal_id: str
    meal_type: MealType
    servings: float = Field(1, gt=0)

    def to_domain(self) -> PlannedMeal:
        return PlannedMeal(**self.model_dump())


class MealPlanCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    meals: list[PlannedMealModel] = Field(default_factory=list)
    is_template: bool = False


class MealPlanPreviewRequest(BaseModel):
    meals: list[PlannedMealModel] = Field(default_factory=list)


class MealPlanResponse(DomainResponse):
    id: str
    name: str
    description: Optional[str] = None
    meals: list[PlannedMealModel]
    total_macros: MacrosModel
    is_template: bool
    created_at: datetime


class MacrosPreviewResponse(BaseModel):
    total_macros: MacrosModel = Field(description="Exact totals")
    rounded: MacrosModel = Field(description="Totals rounded to whole units for display")


# ---------------------------------------------------------------------------
# Meals
# ---------------------------------------------------------------------------

@router.get("/meals", response_model=list[MealResponse], summary="List my meals")
async def list_meals(
    coach_id: CurrentCoach,
    repository: MealRepositoryDep,
) -> list[MealResponse]:
    return [
        MealResponse.model_validate(m, from_attributes=True)
        for m in repository.list_mine(coach_id)
    ]


@router.post(
    "/meals",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a meal to my library",
)
async def create_meal(
    request: MealCreateRequest,
    coach_id: CurrentCoach,
    repository: MealRepositoryDep,
) -> CreatedResponse:
    fields = request.model_dump(exclude={"ingredients", "macros"})
    fields["ingredients"] = [i.to_domain() for i in request.ingredients]
    fields["macros"] = request.macros.to_domain()

    return CreatedResponse(id=repository.create(coach_id, **fields))


# Meal fields a PATCH may clear by sending null
_CLEARABLE_FIELDS = frozenset({"description", "prep_time", "cook_time"})


@router.get(
    "/meals/{meal_id}",
    response_model=MealResponse,
    summary="Get a meal",
    responses={404: {"description": "Meal not found"}},
)
async def get_meal(
    meal_id: str,
    coach_id: CurrentCoach,
    repository: MealRepositoryDep,
) -> MealResponse:
    meal = repository.get(coach_id, meal_id)
    if meal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meal not found")
    return MealResponse.model_validate(meal, from_attributes=True)


@router.patch(
    "/meals/{meal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update a meal",
    description=(
        "Attach uploaded photos or edit the recipe. Meal plans keep the "
        "totals they were saved with."
    ),
)
async def update_meal(
    meal_id: str,
    request: MealUpdateRequest,
    coach_id: CurrentCoach,
    repository: MealRepositoryDep,
) -> Response:
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key in _CLEARABLE_FIELDS
    }
    if request.ingredients is not None:
        changes["ingredients"] = [i.to_domain() for i in request.ingredients]
    if request.macros is not None:
        changes["macros"] = request.macros.to_domain()
    require_own_media(coach_id, changes.get("images") or [])

    repository.update(coach_id, meal_id, changes)
    logger.info("Meal updated", extra={"meal_id": meal_id, "fields": sorted(changes)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Meal Plans
# ---------------------------------------------------------------------------

@router.get("/meal-plans", response_model=list[MealPlanResponse], summary="List my meal plans")
async def list_meal_plans(
    coach_id: CurrentCoach,
    repository: MealPlanRepositoryDep,
) -> list[MealPlanResponse]:
    return [
        MealPlanResponse.model_validate(p, from_attributes=True)
        for p in repository.list_mine(coach_id)
    ]


@router.post(
    "/meal-plans/preview",
    response_model=MacrosPreviewResponse,
    summary="Preview meal plan totals",
    description="Compute nutrition totals for a plan being edited. Nothing is saved.",
)
async def preview_meal_plan(
    request: MealPlanPreviewRequest,
    coach_id: CurrentCoach,
    repository: MealPlanRepositoryDep,
) -> MacrosPreviewResponse:
    totals = repository.preview(coach_id, [m.to_domain() for m in request.meals])
    return MacrosPreviewResponse(
        total_macros=MacrosModel.model_validate(totals, from_attributes=True),
        rounded=MacrosModel.model_validate(totals.rounded(), from_attributes=True),
    )


@router.post(
    "/meal-plans",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a meal plan",
    description="Nutrition totals are computed from my meals and stored with the plan.",
)
async def create_meal_plan(
    request: MealPlanCreateRequest,
    coach_id: CurrentCoach,
    repository: MealPlanRepositoryDep,
) -> CreatedResponse:
    fields = request.model_dump(exclude={"meals"})
    fields["meals"] = [m.to_domain() for m in request.meals]

    return CreatedResponse(id=repository.create(coach_id, **fields))


@router.get(
    "/meal-plans/{plan_id}",
    response_model=MealPlanResponse,
    summary="Get a meal plan",
    responses={404: {"description": "Meal plan not found"}},
)
async def get_meal_plan(
    plan_id: str,
    coach_id: CurrentCoach,
    repository: MealPlanRepositoryDep,
) -> MealPlanResponse:
    plan = repository.get(coach_id, plan_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meal plan not found")
    return MealPlanResponse.model_validate(plan, from_attributes=True)
