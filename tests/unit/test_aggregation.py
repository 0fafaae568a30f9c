"""
Unit tests for the aggregation helpers behind plans and the dashboard.
"""

import itertools
from datetime import timedelta

import pytest

from coachdesk.core.coaching.aggregation import (
    dashboard_summary,
    latest_progress,
    most_recent_clients,
    nutrition_totals,
    revenue_total,
)
from coachdesk.core.coaching.models import (
    Client,
    ClientProgress,
    ClientStatus,
    Exercise,
    Form,
    Macros,
    Meal,
    MealType,
    PaymentStatus,
    PlannedMeal,
    utc_now,
)


def make_client(name="Sam", payment=PaymentStatus.PENDING, rate=None, days_ago=0, **kwargs):
    return Client(
        coach_id="coach-a",
        name=name,
        email=f"{name.lower()}@example.com",
        payment_status=payment,
        monthly_rate=rate,
        start_date=utc_now() - timedelta(days=days_ago),
        **kwargs,
    )


@pytest.fixture
def catalogue():
    return {
        "oats": Meal(
            coach_id="coach-a",
            id="oats",
            name="Oats",
            macros=Macros(calories=300, protein=10, carbs=50, fat=6),
        ),
        "chicken": Meal(
            coach_id="coach-a",
            id="chicken",
            name="Chicken and rice",
            macros=Macros(calories=550, protein=45, carbs=60, fat=12),
        ),
        "shake": Meal(
            coach_id="coach-a",
            id="shake",
            name="Protein shake",
            macros=Macros(calories=120, protein=24, carbs=3, fat=1.5),
        ),
    }


# ---------------------------------------------------------------------------
# Nutrition Totals
# ---------------------------------------------------------------------------

class TestNutritionTotals:

    def test_sums_macros_times_servings(self, catalogue):
        plan = [
            PlannedMeal(meal_id="oats", meal_type=MealType.BREAKFAST),
            PlannedMeal(meal_id="chicken", meal_type=MealType.LUNCH, servings=2),
        ]

        totals = nutrition_totals(plan, catalogue)

        assert totals == Macros(calories=1400, protein=100, carbs=170, fat=30)

    def test_order_does_not_matter(self, catalogue):
        """Every permutation of a plan gives the same totals."""
        plan = [
            PlannedMeal(meal_id="oats", meal_type=MealType.BREAKFAST, servings=1.5),
            PlannedMeal(meal_id="chicken", meal_type=MealType.LUNCH),
            PlannedMeal(meal_id="shake", meal_type=MealType.SNACK, servings=0.5),
        ]
        expected = nutrition_totals(plan, catalogue)

        for permutation in itertools.permutations(plan):
            totals = nutrition_totals(permutation, catalogue)
            assert totals.calories == pytest.approx(expected.calories)
            assert totals.protein == pytest.approx(expected.protein)
            assert totals.carbs == pytest.approx(expected.carbs)
            assert totals.fat == pytest.approx(expected.fat)

    def test_unknown_meals_contribute_nothing(self, catalogue):
        plan = [
            PlannedMeal(meal_id="shake", meal_type=MealType.SNACK),
            PlannedMeal(meal_id="deleted-meal", meal_type=MealType.DINNER, servings=3),
        ]

        assert nutrition_totals(plan, catalogue) == catalogue["shake"].macros

    def test_empty_plan_is_zero(self, catalogue):
        assert nutrition_totals([], catalogue) == Macros()

    def test_totals_are_not_rounded(self, catalogue):
        plan = [PlannedMeal(meal_id="shake", meal_type=MealType.SNACK, servings=1)]
        assert nutrition_totals(plan, catalogue).fat == 1.5


# ---------------------------------------------------------------------------
# Revenue and Recency
# ---------------------------------------------------------------------------

class TestRevenue:

    def test_only_paid_clients_count(self):
        clients = [
            make_client("A", PaymentStatus.PAID, 100),
            make_client("B", PaymentStatus.PENDING, 50),
            make_client("C", PaymentStatus.PAID, 200),
        ]
        assert revenue_total(clients) == 300

    def test_missing_rate_counts_as_zero(self):
        clients = [
            make_client("A", PaymentStatus.PAID, None),
            make_client("B", PaymentStatus.PAID, 80),
        ]
        assert revenue_total(clients) == 80

    def test_no_clients_no_revenue(self):
        assert revenue_total([]) == 0


class TestRecency:

    def test_most_recent_clients_newest_first(self):
        clients = [
            make_client("Old", days_ago=30),
            make_client("New", days_ago=1),
            make_client("Mid", days_ago=10),
        ]

        recent = most_recent_clients(clients, 2)

        assert [c.name for c in recent] == ["New", "Mid"]

    def test_limit_larger_than_list(self):
        clients = [make_client("Only")]
        assert len(most_recent_clients(clients, 5)) == 1

    def test_latest_progress_is_first_of_newest_first_list(self):
        newest = ClientProgress(client_id="c-1", weight=79)
        older = ClientProgress(client_id="c-1", weight=81)

        assert latest_progress([newest, older]) is newest

    def test_latest_progress_of_nothing(self):
        assert latest_progress([]) is None


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class TestDashboardSummary:

    def test_summary_counts(self, catalogue):
        clients = [
            make_client("A", PaymentStatus.PAID, 120, days_ago=3),
            make_client("B", PaymentStatus.OVERDUE, 90, days_ago=2, status=ClientStatus.INACTIVE),
            make_client("C", PaymentStatus.PAID, 60, days_ago=1),
        ]
        forms = [Form(coach_id="coach-a", title="Intake")]
        exercises = [
            Exercise(coach_id="coach-a", name="Squat"),
            Exercise(coach_id="coach-a", name="Row"),
        ]

        summary = dashboard_summary(clients, forms, exercises, list(catalogue.values()))

        assert summary.total_clients == 3
        assert summary.active_clients == 2
        assert summary.monthly_revenue == 180
        assert summary.forms_created == 1
        assert summary.exercise_count == 2
        assert summary.meal_count == 3
        assert [c.name for c in summary.recent_clients] == ["C", "B", "A"]

    def test_recent_clients_respects_limit(self):
        clients = [make_client(f"C{i}", days_ago=i) for i in range(8)]

        summary = dashboard_summary(clients, [], [], [], recent_limit=5)

        assert len(summary.recent_clients) == 5
        assert summary.recent_clients[0].name == "C0"

    def test_empty_dashboard(self):
        summary = dashboard_summary([], [], [], [])

        assert summary.total_clients == 0
        assert summary.monthly_revenue == 0
        assert summary.recent_clients == []
