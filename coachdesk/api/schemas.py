"""
Request/response models shared by several route modules.

Route-specific models live next to their routes; only the pieces that more
than one resource uses are here.
"""

from typing import Iterable

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ..core.coaching.models import Macros
from ..infrastructure.storage import storage_key_owner


class DomainResponse(BaseModel):
    """Base for responses built straight from domain dataclasses."""
    model_config = ConfigDict(from_attributes=True)


class CreatedResponse(BaseModel):
    """Returned by every create endpoint."""
    id: str = Field(description="Identifier of the new record")


class MacrosModel(DomainResponse):
    calories: float = Field(0, ge=0)
    protein: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)

    def to_domain(self) -> Macros:
        return Macros(**self.model_dump())


def require_own_media(coach_id: str, storage_keys: Iterable[str]) -> None:
    """Reject storage keys that /uploads did not issue to this coach."""
    foreign = [key for key in storage_keys if storage_key_owner(key) != coach_id]
    if foreign:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Not uploaded by you: {', '.join(foreign)}",
        )
