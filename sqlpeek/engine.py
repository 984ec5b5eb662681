"""
Query execution through DuckDB.

DuckDB presets open the database file directly. MySQL, PostgreSQL and SQLite
presets are attached to an in-memory DuckDB through the matching scanner
extension. For MySQL and PostgreSQL the query text is, by default, sent
verbatim to the server (``mysql_query`` / ``postgres_query``) so that
server-specific SQL keeps working.
"""

from __future__ import annotations

import logging
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple

import duckdb

from .errors import AllocationFailure, ConnectionFailure, QueryFailure
from .profiles import (
    AnyProfile,
    DuckDBProfile,
    MySQLProfile,
    PostgresProfile,
    SQLiteProfile,
)

logger = logging.getLogger(__name__)

ATTACH_ALIAS = "preset"

# db_type -> DuckDB extension
EXTENSIONS = {
    "mysql": "mysql",
    "postgres": "postgres",
    "sqlite": "sqlite",
}

# db_type -> table function that runs raw SQL on the attached server
PASSTHROUGH_FUNCTIONS = {
    "mysql": "mysql_query",
    "postgres": "postgres_query",
}


class QueryResponse(NamedTuple):
    """Raw result: ``(name, wire type)`` per column and every fetched row."""

    columns: List[Tuple[str, Any]]
    rows: List[Sequence[Any]]


def escape_identifier(name: str) -> str:
    """Escape a SQL identifier by quoting it."""
    return '"' + name.replace('"', '""') + '"'


def escape_string(s: str) -> str:
    """Escape a string literal for SQL."""
    return "'" + s.replace("'", "''") + "'"


def attach_sql(profile: AnyProfile) -> str:
    """Generate the ATTACH statement for a server or file preset."""
    alias = escape_identifier(ATTACH_ALIAS)

    if isinstance(profile, MySQLProfile):
        conn_str = (
            f"host={profile.host} port={profile.port} "
            f"user={profile.user} password={profile.password} "
            f"database={profile.database}"
        )
        return f"ATTACH {escape_string(conn_str)} AS {alias} (TYPE mysql)"

    elif isinstance(profile, PostgresProfile):
        # Build libpq connection string
        conn_str = (
            f"host={profile.host} port={profile.port} "
            f"user={profile.user} password={profile.password} "
            f"dbname={profile.database}"
        )
        return (
            f"ATTACH {escape_string(conn_str)} AS {alias} "
            f"(TYPE postgres, SCHEMA {escape_string(profile.schema_)})"
        )

    elif isinstance(profile, SQLiteProfile):
        return f"ATTACH {escape_string(profile.path)} AS {alias} (TYPE sqlite)"

    else:
        raise ValueError(f"Preset type cannot be attached: {profile.db_type}")


def connect(profile: AnyProfile) -> duckdb.DuckDBPyConnection:
    """
    Open a DuckDB connection ready to query the preset's database.

    Raises:
        ConnectionFailure: If the database cannot be opened or attached
    """
    if isinstance(profile, DuckDBProfile):
        try:
            return duckdb.connect(database=profile.path, read_only=profile.read_only)
        except duckdb.Error as e:
            raise ConnectionFailure(f"Could not open {profile.path}: {e}") from e

    extension = EXTENSIONS[profile.db_type]
    con = duckdb.connect(database=":memory:")
    try:
        logger.debug("Loading DuckDB extension %s", extension)
        con.execute(f"INSTALL {extension}; LOAD {extension};")
        con.execute(attach_sql(profile))
        con.execute(f"USE {escape_identifier(ATTACH_ALIAS)}")
    except duckdb.Error as e:
        con.close()
        raise ConnectionFailure(
            f"Could not attach {profile.db_type} preset {profile.name!r}: {e}"
        ) from e
    return con


def passthrough_function(profile: AnyProfile) -> Optional[str]:
    if getattr(profile, "passthrough", False):
        return PASSTHROUGH_FUNCTIONS.get(profile.db_type)
    return None


def fetch_result(
    con: duckdb.DuckDBPyConnection, profile: AnyProfile, query: str
) -> QueryResponse:
    """
    Run one query and fetch every row.

    Statements that produce no relation (DDL, DML through DuckDB) yield an
    empty response.

    Raises:
        QueryFailure: If the engine rejects or fails to execute the query
        AllocationFailure: If the rows do not fit in memory
    """
    function = passthrough_function(profile)
    try:
        if function:
            logger.debug("Sending query to the server through %s", function)
            rel = con.sql(
                f"SELECT * FROM {function}({escape_string(ATTACH_ALIAS)}, {escape_string(query)})"
            )
        else:
            logger.debug("Running query through DuckDB")
            rel = con.sql(query)

        if rel is None:
            return QueryResponse(columns=[], rows=[])

        columns = [(name, dtype) for name, dtype in zip(rel.columns, rel.types)]
        rows = rel.fetchall()
    except (MemoryError, duckdb.OutOfMemoryException) as e:
        raise AllocationFailure("Out of memory while fetching the result") from e
    except duckdb.Error as e:
        raise QueryFailure(str(e)) from e

    return QueryResponse(columns=columns, rows=rows)


def execute_query(profile: AnyProfile, query: str) -> QueryResponse:
    """Connect, run ``query`` and close the connection on every path."""
    with connect(profile) as con:
        return fetch_result(con, profile, query)
