"""
Coaching business logic.

Contains the domain models, the ownership rules every repository applies,
form response validation and the derived dashboard/nutrition figures.
"""

from .aggregation import (
    DashboardSummary,
    dashboard_summary,
    latest_progress,
    most_recent_clients,
    nutrition_totals,
    revenue_total,
)
from .errors import (
    CoachingError,
    ConflictError,
    FormNotFoundOrInactiveError,
    InvalidRecordError,
    InvalidStateError,
    InvalidSubmissionError,
    NotFoundOrAccessDeniedError,
    SlugTakenError,
    StaleRecordError,
    UnauthenticatedError,
)
from .models import (
    BillingPeriod,
    Client,
    ClientProgress,
    ClientStatus,
    Difficulty,
    Exercise,
    FieldType,
    Form,
    FormField,
    FormSubmission,
    Ingredient,
    Macros,
    Meal,
    MealPlan,
    MealType,
    Measurements,
    PaymentStatus,
    PlannedMeal,
    PricingPlan,
    PublicPage,
    ScheduleDay,
    SubmissionStatus,
    Testimonial,
    Workout,
    WorkoutExercise,
    WorkoutSplit,
    normalize_slug,
)
from .ownership import Owned, ensure_owned, require_caller, visible_to
from .submissions import validate_responses

__all__ = [
    "DashboardSummary",
    "dashboard_summary",
    "latest_progress",
    "most_recent_clients",
    "nutrition_totals",
    "revenue_total",
    "CoachingError",
    "ConflictError",
    "FormNotFoundOrInactiveError",
    "InvalidRecordError",
    "InvalidStateError",
    "InvalidSubmissionError",
    "NotFoundOrAccessDeniedError",
    "SlugTakenError",
    "StaleRecordError",
    "UnauthenticatedError",
    "BillingPeriod",
    "Client",
    "ClientProgress",
    "ClientStatus",
    "Difficulty",
    "Exercise",
    "FieldType",
    "Form",
    "FormField",
    "FormSubmission",
    "Ingredient",
    "Macros",
    "Meal",
    "MealPlan",
    "MealType",
    "Measurements",
    "PaymentStatus",
    "PlannedMeal",
    "PricingPlan",
    "PublicPage",
    "ScheduleDay",
    "SubmissionStatus",
    "Testimonial",
    "Workout",
    "WorkoutExercise",
    "WorkoutSplit",
    "normalize_slug",
    "Owned",
    "ensure_owned",
    "require_caller",
    "visible_to",
    "validate_responses",
]
