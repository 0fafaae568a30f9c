"""
Domain models for the coaching business.

These models represent what a coach manages: clients and their progress,
the training and nutrition catalogue, pricing, intake forms and the public
marketing page. They have no dependencies on FastAPI or Snowflake; the
repositories translate them to and from stored documents.

Every coach-owned record carries `coach_id`. Records owned through a parent
(progress entries through a client, submissions through a form) carry the
parent's id instead.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .errors import InvalidRecordError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClientStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PAUSED = "paused"


class PaymentStatus(Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class Difficulty(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class MealType(Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class BillingPeriod(Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class FieldType(Enum):
    """Input types a coach can put on an intake form."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    FILE = "file"

    @property
    def has_options(self) -> bool:
        return self in (FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX)


class SubmissionStatus(Enum):
    """Lead pipeline stage of a form submission."""
    NEW = "new"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Macros:
    """
    Macronutrient amounts.

    Frozen because macros are values: two meals with the same numbers have
    the same macros.
    """
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    def __post_init__(self) -> None:
        for name in ("calories", "protein", "carbs", "fat"):
            if getattr(self, name) < 0:
                raise InvalidRecordError(f"Macro '{name}' cannot be negative")

    def scaled(self, factor: float) -> "Macros":
        return Macros(
            calories=self.calories * factor,
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fat=self.fat * factor,
        )

    def __add__(self, other: "Macros") -> "Macros":
        return Macros(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )

    def rounded(self) -> "Macros":
        """Whole-unit macros for display. Stored totals are never rounded."""
        return Macros(
            calories=round(self.calories),
            protein=round(self.protein),
            carbs=round(self.carbs),
            fat=round(self.fat),
        )


@dataclass(frozen=True)
class Measurements:
    """Body measurements taken at a check-in. Any subset may be recorded."""
    chest: Optional[float] = None
    waist: Optional[float] = None
    hips: Optional[float] = None
    arms: Optional[float] = None
    thighs: Optional[float] = None


@dataclass(frozen=True)
class Ingredient:
    name: str
    amount: str
    unit: str


@dataclass(frozen=True)
class WorkoutExercise:
    """
    One exercise slot in a workout.

    Reps, weight and rest are free text because coaches write things
    like "8-12", "AMRAP" or "bodyweight".
    """
    exercise_id: str
    sets: int
    reps: Optional[str] = None
    weight: Optional[str] = None
    rest_time: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.sets < 1:
            raise InvalidRecordError("A workout exercise needs at least one set")


@dataclass(frozen=True)
class ScheduleDay:
    """A day in a weekly split. Day 0 is Sunday, day 6 is Saturday."""
    day: int
    is_rest_day: bool = False
    workout_id: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0 <= self.day <= 6:
            raise InvalidRecordError("Schedule day must be between 0 (Sunday) and 6 (Saturday)")


@dataclass(frozen=True)
class PlannedMeal:
    meal_id: str
    meal_type: MealType
    servings: float = 1.0

    def __post_init__(self) -> None:
        if self.servings <= 0:
            raise InvalidRecordError("Servings must be positive")


@dataclass(frozen=True)
class FormField:
    id: str
    type: FieldType
    label: str
    required: bool = False
    options: Optional[list[str]] = None
    placeholder: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise InvalidRecordError("Form field id cannot be empty")
        if self.type.has_options and not self.options:
            raise InvalidRecordError(f"Field '{self.id}' of type {self.type.value} needs options")
        if self.type == FieldType.CHECKBOX and any("," in option for option in self.options):
            # checkbox answers are stored comma-joined
            raise InvalidRecordError(f"Checkbox options of '{self.id}' cannot contain commas")


@dataclass(frozen=True)
class Testimonial:
    name: str
    text: str
    image: Optional[str] = None


# ---------------------------------------------------------------------------
# Coach-owned Records
# ---------------------------------------------------------------------------

@dataclass
class Client:
    """
    A coach's customer.

    Distinct from any login identity: clients never authenticate, the coach
    manages the record on their behalf.
    """
    coach_id: str
    name: str
    email: str
    id: Optional[str] = None
    phone: Optional[str] = None
    status: ClientStatus = ClientStatus.ACTIVE
    payment_status: PaymentStatus = PaymentStatus.PENDING
    start_date: datetime = field(default_factory=utc_now)
    goals: list[str] = field(default_factory=list)
    notes: Optional[str] = None
    monthly_rate: Optional[float] = None
    current_workout_split: Optional[str] = None
    current_meal_plan: Optional[str] = None
    current_pricing_plan: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise InvalidRecordError("Client name cannot be empty")
        if self.monthly_rate is not None and self.monthly_rate < 0:
            raise InvalidRecordError("Monthly rate cannot be negative")

    @property
    def is_active(self) -> bool:
        return self.status == ClientStatus.ACTIVE

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


@dataclass
class ClientProgress:
    """An append-only check-in entry for a client."""
    client_id: str
    id: Optional[str] = None
    date: datetime = field(default_factory=utc_now)
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    measurements: Optional[Measurements] = None
    photos: list[str] = field(default_factory=list)
    notes: Optional[str] = None
    mood: Optional[int] = None
    energy: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("mood", "energy"):
            value = getattr(self, name)
            if value is not None and not 1 <= value <= 10:
                raise InvalidRecordError(f"{name.capitalize()} must be on a 1-10 scale")


@dataclass
class Exercise:
    coach_id: str
    name: str
    description: str = ""
    id: Optional[str] = None
    muscle_groups: list[str] = field(default_factory=list)
    equipment: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    cues: list[str] = field(default_factory=list)
    difficulty: Difficulty = Difficulty.BEGINNER
    images: list[str] = field(default_factory=list)
    video: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise InvalidRecordError("Exercise name cannot be empty")


@dataclass
class Workout:
    coach_id: str
    name: str
    id: Optional[str] = None
    description: Optional[str] = None
    exercises: list[WorkoutExercise] = field(default_factory=list)
    estimated_duration: Optional[int] = None  # minutes
    is_template: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise InvalidRecordError("Workout name cannot be empty")


@dataclass
class WorkoutSplit:
    coach_id: str
    name: str
    id: Optional[str] = None
    description: Optional[str] = None
    schedule: list[ScheduleDay] = field(default_factory=list)
    is_template: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise InvalidRecordError("Workout split name cannot be empty")

    @property
    def training_days(self) -> list[ScheduleDay]:
        return [d for d in self.schedule if not d.is_rest_day]


@dataclass
class Meal:
    coach_id: str
    name: str
    macros: Macros = field(default_factory=Macros)
    servings: float = 1.0
    id: Optional[str] = None
    description: Optional[str] = None
    ingredients: list[Ingredient] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    prep_time: Optional[int] = None  # minutes
    cook_time: Optional[int] = None  # minutes
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise InvalidRecordError("Meal name cannot be empty")
        if self.servings <= 0:
            raise InvalidRecordError("Servings must be positive")


@dataclass
class MealPlan:
    """
    A set of meals with a nutrition snapshot.

    `total_macros` is computed when the plan is created. Editing a meal
    later does not change the totals of plans that already use it.
    """
    coach_id: str
    name: str
    id: Optional[str] = None
    description: Optional[str] = None
    meals: list[PlannedMeal] = field(default_factory=list)
    total_macros: Macros = field(default_factory=Macros)
    is_template: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise InvalidRecordError("Meal plan name cannot be empty")


@dataclass
class PricingPlan:
    coach_id: str
    name: str
    price: float
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    id: Optional[str] = None
    description: Optional[str] = None
    features: list[str] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise InvalidRecordError("Pricing plan name cannot be empty")
        if self.price < 0:
            raise InvalidRecordError("Price cannot be negative")


@dataclass
class Form:
    coach_id: str
    title: str
    id: Optional[str] = None
    description: Optional[str] = None
    fields: list[FormField] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise InvalidRecordError("Form title cannot be empty")
        field_ids = [f.id for f in self.fields]
        if len(field_ids) != len(set(field_ids)):
            raise InvalidRecordError("Form field ids must be unique")

    def field_by_id(self, field_id: str) -> Optional[FormField]:
        for form_field in self.fields:
            if form_field.id == field_id:
                return form_field
        return None


@dataclass
class FormSubmission:
    """
    A public response to a coach's form.

    Created without authentication; only the form's owner can read it or
    move it through the status pipeline.
    """
    form_id: str
    responses: dict[str, str] = field(default_factory=dict)
    id: Optional[str] = None
    submitter_email: Optional[str] = None
    submitter_name: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.NEW
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)


_SLUG_INVALID_CHARS = re.compile(r"[^a-z0-9-]")


def normalize_slug(raw: str) -> str:
    """
    Turn user input into a URL-safe slug.

    Lower-cases the input and replaces every character outside [a-z0-9-]
    with a hyphen, so "Jane Doe!" becomes "jane-doe-".
    """
    slug = _SLUG_INVALID_CHARS.sub("-", raw.strip().lower())
    if not slug.strip("-"):
        raise InvalidRecordError("Slug must contain at least one letter or digit")
    return slug


@dataclass
class PublicPage:
    """A coach's marketing page. Each coach has at most one."""
    coach_id: str
    slug: str
    title: str
    contact_email: str
    id: Optional[str] = None
    theme: str = "default"
    primary_color: str = "#3b82f6"
    hero_title: str = ""
    hero_subtitle: Optional[str] = None
    about_text: Optional[str] = None
    testimonials: list[Testimonial] = field(default_factory=list)
    logo: Optional[str] = None
    client_images: list[str] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.slug = normalize_slug(self.slug)
        if not self.title.strip():
            raise InvalidRecordError("Page title cannot be empty")
