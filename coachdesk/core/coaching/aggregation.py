"""
Derived figures computed from a coach's records.

Pure functions only: they take records the repositories already returned
and never touch storage. The same nutrition function backs both the live
meal-plan preview and the snapshot stored on a new plan.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from .models import Client, ClientProgress, Form, Exercise, Macros, Meal, PlannedMeal


def nutrition_totals(
    planned_meals: Iterable[PlannedMeal],
    meal_catalogue: Mapping[str, Meal],
) -> Macros:
    """
    Sum macros over a plan: each meal's macros times its planned servings.

    Meals missing from the catalogue contribute nothing. Order does not
    matter, so permuting the plan gives the same totals.
    """
    total = Macros()
    for planned in planned_meals:
        meal = meal_catalogue.get(planned.meal_id)
        if meal is None:
            continue
        total = total + meal.macros.scaled(planned.servings)
    return total


def revenue_total(clients: Iterable[Client]) -> float:
    """Monthly revenue: rates of paid clients. A missing rate counts as zero."""
    return sum(c.monthly_rate or 0 for c in clients if c.is_paid)


def most_recent_clients(clients: Iterable[Client], limit: int) -> list[Client]:
    """The `limit` clients with the latest start dates, newest first."""
    return sorted(clients, key=lambda c: c.start_date, reverse=True)[:limit]


def latest_progress(entries: Sequence[ClientProgress]) -> Optional[ClientProgress]:
    """First entry of a newest-first progress list, if any."""
    return entries[0] if entries else None


@dataclass
class DashboardSummary:
    """Headline numbers for the coach dashboard."""
    total_clients: int = 0
    active_clients: int = 0
    monthly_revenue: float = 0.0
    forms_created: int = 0
    exercise_count: int = 0
    meal_count: int = 0
    recent_clients: list[Client] = field(default_factory=list)


def dashboard_summary(
    clients: Sequence[Client],
    forms: Sequence[Form],
    exercises: Sequence[Exercise],
    meals: Sequence[Meal],
    recent_limit: int = 5,
) -> DashboardSummary:
    return DashboardSummary(
        total_clients=len(clients),
        active_clients=sum(1 for c in clients if c.is_active),
        monthly_revenue=revenue_total(clients),
        forms_created=len(forms),
        exercise_count=len(exercises),
        meal_count=len(meals),
        recent_clients=most_recent_clients(clients, recent_limit),
    )
