"""
Snowflake connections, real and in-memory.

`get_snowflake_connection` opens a real connection per request.
`MockSnowflakeConnection` understands exactly the statements the document
repositories issue, keeps rows in dicts, and honours BEGIN/ROLLBACK, which
is enough to run the whole API and its tests without an account.
"""

import base64
import copy
import json
import logging
import re
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.base import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_path: Optional[str] = None, key_base64: Optional[str] = None):
    """
    Load private key for key-pair authentication.

    Snowflake requires the private key as DER bytes, not a file path.
    The key comes from a PEM file or, for deployments without a
    filesystem, from a base64-encoded PEM in the environment.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    if key_path:
        with open(key_path, 'rb') as key_file:
            pem = key_file.read()
    else:
        pem = base64.b64decode(key_base64)

    private_key = serialization.load_pem_private_key(
        pem,
        password=None,  # No password on the key
        backend=default_backend()
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _connect_params(config: SnowflakeConfig) -> dict:
    params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
        'client_session_keep_alive': True,
    }
    if config.private_key_path or config.private_key_base64:
        logger.info("Connecting to Snowflake with a key pair")
        params['private_key'] = _load_private_key(
            config.private_key_path, config.private_key_base64
        )
    elif config.password:
        logger.info("Connecting to Snowflake with a password")
        params['password'] = config.password
    else:
        raise SnowflakeConnectionError(
            "Snowflake credentials missing: set a password or a private key"
        )
    return params


@contextmanager
def get_snowflake_connection(
    config: SnowflakeConfig,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Open a Snowflake connection for the duration of a `with` block.

    A private key (file or base64) takes precedence over a password. The
    connection is closed on exit; committing is left to the repositories.
    """
    import snowflake.connector

    params = _connect_params(config)
    try:
        conn = snowflake.connector.connect(**params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Could not connect to Snowflake",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    logger.debug(
        "Snowflake connection open",
        extra={"database": config.database, "schema": config.schema}
    )
    try:
        yield conn
    finally:
        try:
            conn.close()
        except Exception as e:
            logger.warning("Failed to close Snowflake connection", extra={"error": str(e)})


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

_SELECT = re.compile(
    r"^SELECT (?P<columns>.+?) FROM (?P<table>\w+) WHERE (?P<column>\w+) = %s"
    r"(?P<order> ORDER BY created_at DESC)?$",
    re.IGNORECASE,
)
_INSERT = re.compile(
    r"^INSERT INTO (?P<table>\w+) \((?P<columns>[^)]+)\) SELECT (?P<values>.+)$",
    re.IGNORECASE,
)
_UPDATE = re.compile(
    r"^UPDATE (?P<table>\w+) SET (?P<assignments>.+) WHERE (?P<conditions>.+)$",
    re.IGNORECASE,
)
_MERGE = re.compile(
    r"^MERGE INTO (?P<table>\w+) AS t USING \(SELECT (?P<source>.+?)\) AS s "
    r"ON (?P<on>.+?) WHEN MATCHED AND (?P<guard>.+?) THEN UPDATE SET (?P<assignments>.+?) "
    r"WHEN NOT MATCHED THEN INSERT \((?P<columns>[^)]+)\) VALUES \((?P<values>[^)]+)\)$",
    re.IGNORECASE,
)


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface for the repositories:
    the single-column equality SELECT, INSERT ... SELECT, the versioned
    UPDATE, the single-row MERGE and transaction statements. Rows live in
    the connection's in-memory storage as {column: value} dicts.
    """

    def __init__(self, connection: "MockSnowflakeConnection") -> None:
        self._connection = connection
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        """
        Execute a query against mock storage.

        Queries are matched by shape; anything unrecognized is treated as
        DDL or session statements and ignored.
        """
        statement = " ".join(query.split())
        params = tuple(params or ())

        logger.debug(
            "Mock cursor execute",
            extra={"query": statement[:100], "params": params}
        )

        self._results = []
        self._rowcount = 0

        keyword = statement.split(" ", 1)[0].upper()
        if keyword == "SELECT":
            self._handle_select(statement, params)
        elif keyword == "INSERT":
            self._handle_insert(statement, params)
        elif keyword == "UPDATE":
            self._handle_update(statement, params)
        elif keyword == "MERGE":
            self._handle_merge(statement, params)
        elif keyword in ("BEGIN", "START"):
            self._connection._begin()

        return self

    def _table(self, name: str) -> list[dict]:
        return self._connection._storage.setdefault(name.lower(), [])

    def _handle_select(self, statement: str, params: tuple) -> None:
        match = _SELECT.match(statement)
        if not match:
            if " FROM " not in statement.upper():
                self._results = [(1,)]  # connectivity check
            return

        columns = [c.strip().lower() for c in match.group("columns").split(",")]
        column = match.group("column").lower()
        rows = [row for row in self._table(match.group("table")) if row.get(column) == params[0]]

        if match.group("order"):
            # Stable sort over reversed insertion order: later inserts win ties
            rows = sorted(reversed(rows), key=lambda row: row["created_at"], reverse=True)

        self._results = [tuple(row.get(c) for c in columns) for row in rows]

    def _handle_insert(self, statement: str, params: tuple) -> None:
        match = _INSERT.match(statement)
        if not match:
            return

        columns = [c.strip().lower() for c in match.group("columns").split(",")]
        if len(columns) != len(params):
            raise ValueError("Mock insert: column and parameter counts differ")

        row = dict(zip(columns, params))
        if "data" in row and isinstance(row["data"], str):
            json.loads(row["data"])  # PARSE_JSON rejects malformed documents
        self._table(match.group("table")).append(row)
        self._rowcount = 1

    def _handle_update(self, statement: str, params: tuple) -> None:
        match = _UPDATE.match(statement)
        if not match:
            return

        remaining = list(params)
        changes = {}
        increments = []
        for assignment in match.group("assignments").split(","):
            column, expression = (part.strip() for part in assignment.split("=", 1))
            column = column.lower()
            if "%s" in expression:
                changes[column] = remaining.pop(0)
            elif expression.lower() == f"{column} + 1":
                increments.append(column)

        conditions = {}
        for condition in re.split(r" AND ", match.group("conditions"), flags=re.IGNORECASE):
            column = condition.split("=", 1)[0].strip().lower()
            conditions[column] = remaining.pop(0)

        for row in self._table(match.group("table")):
            if all(row.get(c) == v for c, v in conditions.items()):
                row.update(changes)
                for column in increments:
                    row[column] = row.get(column, 0) + 1
                self._rowcount += 1

    def _handle_merge(self, statement: str, params: tuple) -> None:
        """
        Single-row MERGE: match target rows on any of the ON pairs, update
        the ones passing the guard, insert the source row if none matched.
        """
        match = _MERGE.match(statement)
        if not match:
            return

        remaining = list(params)
        source = {}
        for item in match.group("source").split(","):
            expression, alias = re.split(r" AS ", item.strip(), flags=re.IGNORECASE)
            value = remaining.pop(0)
            if expression.upper().startswith("PARSE_JSON"):
                json.loads(value)
            source[alias.strip().lower()] = value

        def column_of(reference: str) -> str:
            return reference.strip().split(".", 1)[1].lower()

        keys = [
            column_of(pair.split("=", 1)[0])
            for pair in re.split(r" OR ", match.group("on"), flags=re.IGNORECASE)
        ]
        guard = {}
        for condition in re.split(r" AND ", match.group("guard"), flags=re.IGNORECASE):
            left, right = (part.strip() for part in condition.split("=", 1))
            guard[column_of(left)] = remaining.pop(0) if right == "%s" else source[column_of(right)]

        table = self._table(match.group("table"))
        matched = [row for row in table if any(row.get(key) == source[key] for key in keys)]

        if not matched:
            columns = [c.strip().lower() for c in match.group("columns").split(",")]
            values = [v.strip() for v in match.group("values").split(",")]
            table.append({
                column: source[column_of(value)] if value.lower().startswith("s.") else int(value)
                for column, value in zip(columns, values)
            })
            self._rowcount = 1
            return

        for row in matched:
            if not all(row.get(c) == v for c, v in guard.items()):
                continue
            for assignment in match.group("assignments").split(","):
                column, expression = (part.strip() for part in assignment.split("=", 1))
                column = column.lower()
                if expression.lower().startswith("s."):
                    row[column] = source[column_of(expression)]
                else:  # t.<column> + 1
                    row[column] = row.get(column, 0) + 1
            self._rowcount += 1

    def fetchone(self):
        """Fetch one row from results."""
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        """Return number of rows affected."""
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores rows in memory: {table_name: [row_dict, ...]}. BEGIN takes a
    snapshot that rollback restores, so transactional code paths behave
    like they would against Snowflake.

    Not suitable for production, but enough for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        self._storage: dict[str, list[dict]] = {}
        self._snapshot: Optional[dict[str, list[dict]]] = None

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        """Create a mock cursor."""
        return MockSnowflakeCursor(self)

    def _begin(self) -> None:
        self._snapshot = copy.deepcopy(self._storage)

    def commit(self) -> None:
        """Commit transaction (drops the rollback snapshot)."""
        self._snapshot = None
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        """Restore storage to the state at BEGIN."""
        if self._snapshot is not None:
            self._storage = self._snapshot
            self._snapshot = None
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _rows(self, table: str) -> list[dict]:
        """Get raw rows from mock storage (for test assertions)."""
        return self._storage.get(table, [])

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        self._storage.clear()
        self._snapshot = None
