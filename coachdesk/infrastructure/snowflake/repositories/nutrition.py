"""
Snowflake repositories for meals and meal plans.

A meal plan's nutrition totals are computed here, from the caller's own
meals, at the moment the plan is created. Totals are not recomputed when a
meal changes later.
"""

import logging
from datetime import datetime
from typing import Any, Iterable

from coachdesk.core.coaching.aggregation import nutrition_totals
from coachdesk.core.coaching.models import (
    Ingredient,
    Macros,
    Meal,
    MealPlan,
    MealType,
    PlannedMeal,
)
from coachdesk.core.coaching.ownership import ensure_owned, require_caller

from .base import OwnedRepository, SnowflakeConnection, enum_value

logger = logging.getLogger(__name__)


def _macros_document(macros: Macros) -> dict:
    return {
        "calories": macros.calories,
        "protein": macros.protein,
        "carbs": macros.carbs,
        "fat": macros.fat,
    }


def _macros_from_document(document) -> Macros:
    return Macros(**document) if document else Macros()


class MealRepository(OwnedRepository[Meal]):
    table = "meals"
    kind = "Meal"
    model = Meal
    updatable_fields = frozenset({
        "name", "description", "ingredients", "instructions", "macros",
        "servings", "images", "prep_time", "cook_time",
    })

    def _creation_defaults(self) -> dict[str, Any]:
        return {"images": []}

    def catalogue(self, caller_id: str) -> dict[str, Meal]:
        """The caller's meals keyed by id."""
        return {meal.id: meal for meal in self.list_mine(caller_id)}

    def _to_document(self, record: Meal) -> dict:
        return {
            "coach_id": record.coach_id,
            "name": record.name,
            "description": record.description,
            "ingredients": [
                {"name": i.name, "amount": i.amount, "unit": i.unit}
                for i in record.ingredients
            ],
            "instructions": list(record.instructions),
            "macros": _macros_document(record.macros),
            "servings": record.servings,
            "images": list(record.images),
            "prep_time": record.prep_time,
            "cook_time": record.cook_time,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> Meal:
        return Meal(
            id=record_id,
            coach_id=document["coach_id"],
            name=document["name"],
            description=document.get("description"),
            ingredients=[Ingredient(**i) for i in document.get("ingredients") or []],
            instructions=document.get("instructions") or [],
            macros=_macros_from_document(document.get("macros")),
            servings=document.get("servings", 1),
            images=document.get("images") or [],
            prep_time=document.get("prep_time"),
            cook_time=document.get("cook_time"),
            created_at=created_at,
        )


class MealPlanRepository(OwnedRepository[MealPlan]):
    """
    Repository for meal plans.

    `create` ignores any totals passed in and stores the snapshot computed
    from the caller's meal catalogue.
    """

    table = "meal_plans"
    kind = "Meal plan"
    model = MealPlan
    updatable_fields = frozenset({"name", "description", "is_template"})

    def __init__(self, connection: SnowflakeConnection) -> None:
        super().__init__(connection)
        self._meals = MealRepository(connection)

    def preview(self, caller_id: str, planned_meals: Iterable[PlannedMeal]) -> Macros:
        """Live totals for a plan being built. Nothing is stored."""
        caller_id = require_caller(caller_id)
        planned_meals = list(planned_meals)
        catalogue = self._meals.catalogue(caller_id)
        self._check_planned(catalogue, planned_meals, caller_id)
        return nutrition_totals(planned_meals, catalogue)

    def create(self, caller_id: str, **fields: Any) -> str:
        caller_id = require_caller(caller_id)
        planned_meals = list(fields.get("meals") or [])
        fields["total_macros"] = self.preview(caller_id, planned_meals)

        plan_id = super().create(caller_id, **fields)
        logger.info(
            "Created meal plan",
            extra={
                "plan_id": plan_id,
                "meal_count": len(planned_meals),
                "calories": fields["total_macros"].calories,
            }
        )
        return plan_id

    def _check_planned(
        self,
        catalogue: dict[str, Meal],
        planned_meals: list[PlannedMeal],
        caller_id: str,
    ) -> None:
        for planned in planned_meals:
            ensure_owned(catalogue.get(planned.meal_id), caller_id, "Meal")

    def _to_document(self, record: MealPlan) -> dict:
        return {
            "coach_id": record.coach_id,
            "name": record.name,
            "description": record.description,
            "meals": [
                {
                    "meal_id": planned.meal_id,
                    "meal_type": enum_value(planned.meal_type),
                    "servings": planned.servings,
                }
                for planned in record.meals
            ],
            "total_macros": _macros_document(record.total_macros),
            "is_template": record.is_template,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> MealPlan:
        return MealPlan(
            id=record_id,
            coach_id=document["coach_id"],
            name=document["name"],
            description=document.get("description"),
            meals=[
                PlannedMeal(
                    meal_id=planned["meal_id"],
                    meal_type=MealType(planned["meal_type"]),
                    servings=planned.get("servings", 1),
                )
                for planned in document.get("meals") or []
            ],
            total_macros=_macros_from_document(document.get("total_macros")),
            is_template=document.get("is_template", False),
            created_at=created_at,
        )
