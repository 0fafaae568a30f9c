"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .base import DocumentRepository, OwnedRepository, SnowflakeConfig
from .clients import ClientProgressRepository, ClientRepository
from .forms import FormRepository, FormSubmissionRepository
from .nutrition import MealPlanRepository, MealRepository
from .pricing import PricingPlanRepository
from .public_pages import PublicPageRepository
from .training import ExerciseRepository, WorkoutRepository, WorkoutSplitRepository

__all__ = [
    "DocumentRepository",
    "OwnedRepository",
    "SnowflakeConfig",
    "ClientProgressRepository",
    "ClientRepository",
    "FormRepository",
    "FormSubmissionRepository",
    "MealPlanRepository",
    "MealRepository",
    "PricingPlanRepository",
    "PublicPageRepository",
    "ExerciseRepository",
    "WorkoutRepository",
    "WorkoutSplitRepository",
]
