"""
Ownership checks shared by every coach-scoped repository.

All business data belongs to a coach. Instead of each repository comparing
ids by hand, records expose `coach_id` (the Owned protocol) and the checks
below implement the comparison once.
"""

import logging
from typing import Optional, Protocol, TypeVar

from .errors import NotFoundOrAccessDeniedError, UnauthenticatedError

logger = logging.getLogger(__name__)


class Owned(Protocol):
    """Anything that belongs to a single coach."""
    coach_id: str


T = TypeVar("T", bound=Owned)


def require_caller(caller_id: Optional[str]) -> str:
    """Return the caller id, or fail if the request carried no identity."""
    if not caller_id or not caller_id.strip():
        raise UnauthenticatedError("Not authenticated")
    return caller_id


def is_owned_by(record: Optional[Owned], caller_id: str) -> bool:
    return record is not None and record.coach_id == caller_id


def visible_to(record: Optional[T], caller_id: str) -> Optional[T]:
    """
    Filter a fetched record for a read.

    Reads never distinguish "missing" from "someone else's": both are None.
    """
    if is_owned_by(record, caller_id):
        return record
    return None


def ensure_owned(record: Optional[T], caller_id: str, kind: str = "Record") -> T:
    """
    Return the record if the caller owns it, otherwise raise.

    Used on the write path, where a hidden record has to stop the operation.
    """
    if not is_owned_by(record, caller_id):
        logger.warning(
            "Ownership check failed",
            extra={"kind": kind, "caller_id": caller_id},
        )
        raise NotFoundOrAccessDeniedError(f"{kind} not found or access denied")
    return record
