"""
Base Repository - DJ Rank
djrank/repositories/base.py

Performer repository contract, record normalization, and the Snowflake
base class with connection management and common utilities.
"""

import json
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

import snowflake.connector
from snowflake.connector import DictCursor
from snowflake.connector.errors import DatabaseError, InterfaceError, ProgrammingError

from djrank.core.exceptions import (
    DatabaseConnectionException,
    DuplicateEntityException,
    RepositoryException,
)
from djrank.models.enumerations import Bonus, Penalty, Tier
from djrank.services.snowflake import get_snowflake_connection

FLAG_COLUMNS = [b.value for b in Bonus] + [p.value for p in Penalty]
JSON_COLUMNS = ["criteria", "photos", "videos"]

PERFORMER_COLUMNS = [
    "id",
    "name",
    "bio",
    "image",
    "soundcloud_url",
    "spotify_url",
    "apple_music_url",
    "tier",
    "criteria",
    "notes",
    "photos",
    "videos",
    *FLAG_COLUMNS,
    "event_venue",
    "event_city",
    "event_date",
    "event_type",
    "event_slot",
    "set_duration",
    "created_at",
    "updated_at",
]

# Columns a caller may write; id and timestamps belong to the store
WRITABLE_COLUMNS = [c for c in PERFORMER_COLUMNS if c not in ("id", "created_at", "updated_at")]


def generate_performer_id() -> str:
    """Millisecond timestamp id, the format existing records use."""
    return str(int(time.time() * 1000))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _load_json(value: Any, default: Any) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def normalize_record(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bring a stored row into the canonical performer shape.

    JSON columns are parsed, flags become bools, the tier is validated
    (unknown labels fall back to the queue), and the id is a string.
    """
    record = {column: row.get(column) for column in PERFORMER_COLUMNS}
    record["id"] = str(row["id"]) if row.get("id") is not None else None
    record["criteria"] = _load_json(row.get("criteria"), {})
    record["photos"] = list(_load_json(row.get("photos"), []))
    record["videos"] = list(_load_json(row.get("videos"), []))
    for column in FLAG_COLUMNS:
        record[column] = bool(row.get(column) or False)

    tier = row.get("tier")
    record["tier"] = tier if tier in Tier.__members__ else None
    return record


def filter_writable(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys that are not writable performer columns."""
    return {k: v for k, v in fields.items() if k in WRITABLE_COLUMNS}


class PerformerRepository(ABC):
    """Synchronous CRUD over performer records keyed by opaque string id."""

    @abstractmethod
    def list_all(self) -> List[Dict[str, Any]]:
        """All performers, newest first."""

    @abstractmethod
    def get_by_id(self, performer_id: str) -> Optional[Dict[str, Any]]:
        """A single performer or None."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a performer; the store assigns id (if absent) and timestamps."""

    @abstractmethod
    def update(self, performer_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update; None when the id is unknown."""

    @abstractmethod
    def delete(self, performer_id: str) -> bool:
        """Delete a performer; False when the id is unknown."""

    def ping(self) -> bool:
        return True


class BaseRepository:
    """Base repository with Snowflake connection management."""

    @contextmanager
    def get_connection(self) -> Generator[snowflake.connector.SnowflakeConnection, None, None]:
        """Context manager for Snowflake connections."""
        conn = None
        try:
            conn = get_snowflake_connection()
            yield conn
        except InterfaceError as e:
            raise DatabaseConnectionException(f"Failed to connect to Snowflake: {e}")
        finally:
            if conn:
                conn.close()

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True) -> Generator[Any, None, None]:
        """Context manager for Snowflake cursors with automatic connection cleanup."""
        with self.get_connection() as conn:
            cursor = conn.cursor(DictCursor) if dict_cursor else conn.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(
        self,
        sql: str,
        params: Optional[tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
    ) -> Optional[Any]:
        """
        Execute a SQL query with error handling.

        Args:
            sql: SQL query string
            params: Query parameters
            fetch_one: Return single row
            fetch_all: Return all rows
            commit: Commit transaction after execution

        Returns:
            Query results, or the affected row count
        """
        with self.get_cursor() as cursor:
            try:
                cursor.execute(sql, params or ())

                if commit:
                    cursor.connection.commit()

                if fetch_one:
                    return cursor.fetchone()
                elif fetch_all:
                    return cursor.fetchall()

                return cursor.rowcount

            except ProgrammingError as e:
                error_msg = str(e).upper()
                if "UNIQUE" in error_msg or "DUPLICATE" in error_msg:
                    raise DuplicateEntityException(str(e))
                raise RepositoryException(f"Query error: {e}")
            except DatabaseError as e:
                raise RepositoryException(f"Database error: {e}")

    def normalize_timestamp(self, dt: Optional[datetime]) -> Optional[datetime]:
        """Ensure timestamp is UTC-aware."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    def row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Snowflake row (uppercase keys) to lowercase dict."""
        if row is None:
            return {}
        return {k.lower(): v for k, v in row.items()}

    def build_update_query(
        self,
        table_name: str,
        update_data: Dict[str, Any],
        where_column: str,
        where_value: Any,
        additional_set: Optional[Dict[str, Any]] = None,
    ) -> tuple[str, List[Any]]:
        """
        Build a dynamic UPDATE query.

        Args:
            table_name: Name of the table
            update_data: Dictionary of column -> value to update
            where_column: Column name for WHERE clause
            where_value: Value for WHERE clause
            additional_set: Additional SET clauses (e.g., UPDATED_AT)

        Returns:
            Tuple of (sql_string, params_list)
        """
        set_clauses = []
        params = []

        for column, value in update_data.items():
            set_clauses.append(f"{column.upper()} = %s")
            params.append(value)

        if additional_set:
            for column, value in additional_set.items():
                set_clauses.append(f"{column.upper()} = %s")
                params.append(value)

        params.append(where_value)

        sql = f"""
            UPDATE {table_name}
            SET {', '.join(set_clauses)}
            WHERE {where_column} = %s
        """

        return sql, params
