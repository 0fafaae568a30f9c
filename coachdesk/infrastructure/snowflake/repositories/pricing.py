"""Snowflake repository for a coach's pricing plans."""

from datetime import datetime

from coachdesk.core.coaching.models import BillingPeriod, PricingPlan

from .base import OwnedRepository, enum_value


class PricingPlanRepository(OwnedRepository[PricingPlan]):
    table = "pricing_plans"
    kind = "Pricing plan"
    model = PricingPlan
    updatable_fields = frozenset({
        "name", "description", "price", "billing_period", "features", "is_active",
    })

    def _to_document(self, record: PricingPlan) -> dict:
        return {
            "coach_id": record.coach_id,
            "name": record.name,
            "description": record.description,
            "price": record.price,
            "billing_period": enum_value(record.billing_period),
            "features": list(record.features),
            "is_active": record.is_active,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> PricingPlan:
        return PricingPlan(
            id=record_id,
            coach_id=document["coach_id"],
            name=document["name"],
            description=document.get("description"),
            price=document.get("price", 0),
            billing_period=BillingPeriod(document.get("billing_period", "monthly")),
            features=document.get("features") or [],
            is_active=document.get("is_active", True),
            created_at=created_at,
        )
