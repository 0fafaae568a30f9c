"""
Snowflake repositories for clients and their progress log.

Progress entries are owned through their client: every operation on them
first loads the client and checks that the caller coaches it.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from coachdesk.core.coaching.models import (
    Client,
    ClientProgress,
    ClientStatus,
    Measurements,
    PaymentStatus,
    utc_now,
)
from coachdesk.core.coaching.ownership import ensure_owned, is_owned_by, require_caller

from .base import (
    DocumentRepository,
    OwnedRepository,
    SnowflakeConnection,
    enum_value,
    iso,
    parse_datetime,
)
from .nutrition import MealPlanRepository
from .pricing import PricingPlanRepository
from .training import WorkoutSplitRepository

logger = logging.getLogger(__name__)


class ClientRepository(OwnedRepository[Client]):
    """
    Repository for a coach's clients.

    New clients start active, with payment pending and today's start date.
    Assigning a workout split, meal plan or pricing plan requires the
    assigned record to belong to the same coach.
    """

    table = "clients"
    kind = "Client"
    model = Client
    updatable_fields = frozenset({
        "name",
        "email",
        "phone",
        "goals",
        "status",
        "payment_status",
        "current_workout_split",
        "current_meal_plan",
        "current_pricing_plan",
        "monthly_rate",
        "notes",
    })

    def __init__(self, connection: SnowflakeConnection) -> None:
        super().__init__(connection)
        self._splits = WorkoutSplitRepository(connection)
        self._meal_plans = MealPlanRepository(connection)
        self._pricing_plans = PricingPlanRepository(connection)

    def _creation_defaults(self) -> dict[str, Any]:
        return {
            "status": ClientStatus.ACTIVE,
            "payment_status": PaymentStatus.PENDING,
            "start_date": utc_now(),
            "current_workout_split": None,
            "current_meal_plan": None,
            "current_pricing_plan": None,
        }

    def _check_references(self, caller_id: str, record: Client) -> None:
        self._require_owned(self._splits, caller_id, record.current_workout_split)
        self._require_owned(self._meal_plans, caller_id, record.current_meal_plan)
        self._require_owned(self._pricing_plans, caller_id, record.current_pricing_plan)

    def _to_document(self, record: Client) -> dict:
        return {
            "coach_id": record.coach_id,
            "name": record.name,
            "email": record.email,
            "phone": record.phone,
            "status": enum_value(record.status),
            "payment_status": enum_value(record.payment_status),
            "start_date": iso(record.start_date),
            "goals": list(record.goals),
            "notes": record.notes,
            "monthly_rate": record.monthly_rate,
            "current_workout_split": record.current_workout_split,
            "current_meal_plan": record.current_meal_plan,
            "current_pricing_plan": record.current_pricing_plan,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> Client:
        return Client(
            id=record_id,
            coach_id=document["coach_id"],
            name=document["name"],
            email=document.get("email", ""),
            phone=document.get("phone"),
            status=ClientStatus(document.get("status", "active")),
            payment_status=PaymentStatus(document.get("payment_status", "pending")),
            start_date=parse_datetime(document.get("start_date")) or created_at,
            goals=document.get("goals") or [],
            notes=document.get("notes"),
            monthly_rate=document.get("monthly_rate"),
            current_workout_split=document.get("current_workout_split"),
            current_meal_plan=document.get("current_meal_plan"),
            current_pricing_plan=document.get("current_pricing_plan"),
            created_at=created_at,
        )


class ClientProgressRepository(DocumentRepository[ClientProgress]):
    """
    Append-only check-in log per client.

    There is no update: a correction is a new entry. Entries come back
    newest first.
    """

    table = "client_progress"
    index_columns = ("client_id",)
    kind = "Progress entry"

    def __init__(self, connection: SnowflakeConnection) -> None:
        super().__init__(connection)
        self._clients = ClientRepository(connection)

    def list_for_client(self, caller_id: str, client_id: str) -> list[ClientProgress]:
        """Entries for a client, newest first. Empty if the caller doesn't coach the client."""
        caller_id = require_caller(caller_id)
        if not is_owned_by(self._clients._fetch_record(client_id), caller_id):
            return []
        return [
            entry for entry, _ in
            self._select_where("client_id", str(client_id), newest_first=True)
        ]

    def add(self, caller_id: str, client_id: str, **fields: Any) -> str:
        caller_id = require_caller(caller_id)
        ensure_owned(self._clients._fetch_record(client_id), caller_id, "Client")

        fields.pop("id", None)
        fields["date"] = utc_now()
        entry = ClientProgress(client_id=str(client_id), **fields)

        entry_id = self._insert(entry)
        logger.info(
            "Recorded client progress",
            extra={"client_id": str(client_id), "entry_id": entry_id}
        )
        return entry_id

    def _created_at(self, record: ClientProgress) -> datetime:
        return record.date

    def _to_document(self, record: ClientProgress) -> dict:
        measurements: Optional[dict] = None
        if record.measurements is not None:
            m = record.measurements
            measurements = {
                "chest": m.chest,
                "waist": m.waist,
                "hips": m.hips,
                "arms": m.arms,
                "thighs": m.thighs,
            }

        return {
            "client_id": record.client_id,
            "date": iso(record.date),
            "weight": record.weight,
            "body_fat": record.body_fat,
            "measurements": measurements,
            "photos": list(record.photos),
            "notes": record.notes,
            "mood": record.mood,
            "energy": record.energy,
        }

    def _from_document(
        self,
        record_id: str,
        created_at: datetime,
        document: dict,
    ) -> ClientProgress:
        measurements = document.get("measurements")
        return ClientProgress(
            id=record_id,
            client_id=document["client_id"],
            date=parse_datetime(document.get("date")) or created_at,
            weight=document.get("weight"),
            body_fat=document.get("body_fat"),
            measurements=Measurements(**measurements) if measurements else None,
            photos=document.get("photos") or [],
            notes=document.get("notes"),
            mood=document.get("mood"),
            energy=document.get("energy"),
        )
