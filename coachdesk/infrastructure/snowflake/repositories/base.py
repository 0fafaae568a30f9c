"""
Shared document storage for coaching repositories.

Every entity lives in its own table with the same layout:

    id          VARCHAR      primary key (UUID string)
    <index>     VARCHAR      owner / lookup columns (coach_id, form_id, ...)
    created_at  TIMESTAMP    insertion time, used for newest-first ordering
    version     INTEGER      bumped on every write (optimistic concurrency)
    data        VARIANT      the record as a JSON document

Keeping one layout means the SQL here is the only SQL the repositories
run, and the ownership-scoped list/get/create/update contract is written
once in OwnedRepository.
"""

import dataclasses
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Iterator, Mapping, Optional, Protocol, TypeVar
from uuid import uuid4

from coachdesk.core.coaching.errors import InvalidRecordError, StaleRecordError
from coachdesk.core.coaching.models import utc_now
from coachdesk.core.coaching.ownership import (
    ensure_owned,
    require_caller,
    visible_to,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Tests provide MockSnowflakeConnection without importing
    snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "COACHDESK"
    schema: str = "COACHING"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------

def enum_value(value: Optional[Enum]) -> Optional[str]:
    return value.value if value is not None else None


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def parse_variant_json(variant_data) -> dict:
    """
    Parse a VARIANT column that might be a string or already parsed.

    snowflake-connector-python returns VARIANT as a JSON string; other
    drivers (and the mock) may hand back a dict.
    """
    if not variant_data:
        return {}
    if isinstance(variant_data, str):
        return json.loads(variant_data)
    return variant_data


class DocumentRepository(Generic[R]):
    """
    Base class for repositories storing one entity type as JSON documents.

    Subclasses set `table`, `index_columns` and `kind`, and translate
    between the domain record and its document.
    """

    table: str = ""
    index_columns: tuple[str, ...] = ("coach_id",)
    unique_columns: tuple[str, ...] = ()
    kind: str = "Record"

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection
        self._in_transaction = False

    # -----------------------------------------------------------------------
    # Translation (implemented per entity)
    # -----------------------------------------------------------------------

    def _to_document(self, record: R) -> dict:
        raise NotImplementedError

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> R:
        raise NotImplementedError

    def _index_values(self, record: R) -> tuple:
        return tuple(getattr(record, column) for column in self.index_columns)

    def _created_at(self, record: R) -> datetime:
        return getattr(record, "created_at", None) or utc_now()

    # -----------------------------------------------------------------------
    # SQL
    # -----------------------------------------------------------------------

    def _select_where(
        self,
        column: str,
        value: str,
        newest_first: bool = False,
    ) -> list[tuple[R, int]]:
        """Load every record whose `column` equals `value`, with its version."""
        order = " ORDER BY created_at DESC" if newest_first else ""
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"SELECT id, created_at, version, data FROM {self.table} "
                f"WHERE {column} = %s{order}",
                (value,),
            )
            rows = cursor.fetchall()
        finally:
            cursor.close()

        return [self._build(row) for row in rows]

    def _fetch(self, record_id: str) -> Optional[tuple[R, int]]:
        found = self._select_where("id", str(record_id))
        return found[0] if found else None

    def _fetch_record(self, record_id: str) -> Optional[R]:
        found = self._fetch(record_id)
        return found[0] if found else None

    def _insert(self, record: R) -> str:
        record_id = str(uuid4())
        columns = ", ".join(("id",) + self.index_columns + ("created_at", "version", "data"))
        placeholders = ", ".join(["%s"] * (len(self.index_columns) + 3) + ["PARSE_JSON(%s)"])

        cursor = self._conn.cursor()
        try:
            cursor.execute(
                f"INSERT INTO {self.table} ({columns}) SELECT {placeholders}",
                (
                    record_id,
                    *self._index_values(record),
                    self._created_at(record),
                    1,
                    json.dumps(self._to_document(record)),
                ),
            )
            self._commit()
        except Exception as e:
            logger.error(
                "Failed to insert record",
                extra={"table": self.table, "error": str(e)},
            )
            raise
        finally:
            cursor.close()

        logger.info("Inserted record", extra={"table": self.table, "record_id": record_id})
        return record_id

    def _write(self, record_id: str, record: R, expected_version: int) -> None:
        """
        Overwrite a record if it is still at `expected_version`.

        A concurrent writer bumps the version first, which leaves this
        UPDATE matching no rows.
        """
        assignments = ", ".join(f"{column} = %s" for column in self.index_columns)

        cursor = self._conn.cursor()
        try:
            cursor.execute(
                f"UPDATE {self.table} SET {assignments}, data = PARSE_JSON(%s), "
                f"version = version + 1 WHERE id = %s AND version = %s",
                (
                    *self._index_values(record),
                    json.dumps(self._to_document(record)),
                    str(record_id),
                    expected_version,
                ),
            )
            updated = cursor.rowcount
            self._commit()
        finally:
            cursor.close()

        if not updated:
            logger.warning(
                "Stale write rejected",
                extra={"table": self.table, "record_id": str(record_id)},
            )
            raise StaleRecordError(f"{self.kind} was modified concurrently, reload and retry")

        logger.info("Updated record", extra={"table": self.table, "record_id": str(record_id)})

    def _commit(self) -> None:
        if not self._in_transaction:
            self._conn.commit()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Run the enclosed reads and writes as one Snowflake transaction."""
        cursor = self._conn.cursor()
        try:
            cursor.execute("BEGIN TRANSACTION")
        finally:
            cursor.close()

        self._in_transaction = True
        try:
            yield
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            self._in_transaction = False

    def _build(self, row) -> tuple[R, int]:
        record_id, created_at, version, data = row
        record = self._from_document(str(record_id), created_at, parse_variant_json(data))
        return record, version


class OwnedRepository(DocumentRepository[R]):
    """
    List/get/create/update for records a coach owns directly.

    Every operation takes the caller's id explicitly. Reads hide records the
    caller doesn't own; writes refuse them with NotFoundOrAccessDeniedError.
    """

    model: type = object
    updatable_fields: Optional[frozenset[str]] = None

    def list_mine(self, caller_id: str) -> list[R]:
        caller_id = require_caller(caller_id)
        return [record for record, _ in self._select_where("coach_id", caller_id)]

    def get(self, caller_id: str, record_id: str) -> Optional[R]:
        caller_id = require_caller(caller_id)
        return visible_to(self._fetch_record(record_id), caller_id)

    def create(self, caller_id: str, **fields: Any) -> str:
        caller_id = require_caller(caller_id)
        fields.update(self._creation_defaults())
        fields.pop("id", None)
        fields.pop("coach_id", None)
        fields.pop("created_at", None)

        record = self.model(coach_id=caller_id, **fields)
        self._check_references(caller_id, record)
        return self._insert(record)

    def update(self, caller_id: str, record_id: str, changes: Mapping[str, Any]) -> None:
        """
        Apply a partial update.

        Only the keys present in `changes` are written; everything else keeps
        its stored value. An empty mapping still checks ownership but writes
        nothing.
        """
        caller_id = require_caller(caller_id)
        found = self._fetch(record_id)
        record = ensure_owned(found[0] if found else None, caller_id, self.kind)
        version = found[1]

        self._check_updatable(changes)
        if not changes:
            return

        updated = dataclasses.replace(record, **changes)
        self._check_references(caller_id, updated)
        self._write(record_id, updated, version)

    # -----------------------------------------------------------------------
    # Hooks
    # -----------------------------------------------------------------------

    def _creation_defaults(self) -> dict[str, Any]:
        """Values stamped on every new record regardless of input."""
        return {}

    def _check_references(self, caller_id: str, record: R) -> None:
        """Verify that ids the record points at belong to the caller."""
        pass

    def _check_updatable(self, changes: Mapping[str, Any]) -> None:
        protected = {"id", "coach_id", "created_at"}
        allowed = self.updatable_fields
        rejected = [
            key for key in changes
            if key in protected or (allowed is not None and key not in allowed)
        ]
        if rejected:
            raise InvalidRecordError(f"Fields cannot be updated: {', '.join(sorted(rejected))}")

    def _require_owned(
        self,
        other: "OwnedRepository",
        caller_id: str,
        record_id: Optional[str],
    ) -> None:
        """Fail unless `record_id` (when set) is a record of `other` owned by the caller."""
        if record_id is None:
            return
        ensure_owned(other._fetch_record(record_id), caller_id, other.kind)
