"""
Performer Repository - DJ Rank
djrank/repositories/performer_repository.py

Snowflake-backed performer storage. Criteria, photos and videos are
stored as JSON text.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from djrank.config import get_settings
from djrank.core.exceptions import DuplicateEntityException
from djrank.repositories.base import (
    JSON_COLUMNS,
    PERFORMER_COLUMNS,
    BaseRepository,
    PerformerRepository,
    filter_writable,
    generate_performer_id,
    normalize_record,
    utc_now,
)

logger = logging.getLogger(__name__)


class SnowflakePerformerRepository(BaseRepository, PerformerRepository):
    """
    Repository for performers stored in Snowflake.
    """

    def __init__(self, table_name: Optional[str] = None):
        self.table_name = table_name or get_settings().PERFORMERS_TABLE

    def _select(self) -> str:
        return f"SELECT {', '.join(PERFORMER_COLUMNS)} FROM {self.table_name}"

    def _to_record(self, row: Dict[str, Any]) -> Dict[str, Any]:
        record = normalize_record(self.row_to_dict(row))
        record["created_at"] = self.normalize_timestamp(record["created_at"])
        record["updated_at"] = self.normalize_timestamp(record["updated_at"])
        return record

    def _serialize(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(fields)
        for column in JSON_COLUMNS:
            if column in data and data[column] is not None:
                data[column] = json.dumps(data[column])
        return data

    def list_all(self) -> List[Dict[str, Any]]:
        """
        Return all performers, newest first.
        """
        sql = f"{self._select()} ORDER BY created_at DESC"
        rows = self.execute_query(sql, fetch_all=True) or []
        return [self._to_record(row) for row in rows]

    def get_by_id(self, performer_id: str) -> Optional[Dict[str, Any]]:
        sql = f"{self._select()} WHERE id = %s"
        row = self.execute_query(sql, (str(performer_id),), fetch_one=True)
        if not row:
            return None
        return self._to_record(row)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a performer and return the stored record.

        Snowflake does not enforce PRIMARY KEY, so the insert is a MERGE that
        only fires when no row has the id.

        Raises:
            DuplicateEntityException: a performer with this id already exists.
        """
        performer_id = str(data.get("id") or generate_performer_id())
        now = utc_now()

        fields = filter_writable(data)
        fields.setdefault("criteria", {})
        fields.setdefault("photos", [])
        fields.setdefault("videos", [])
        fields = self._serialize(fields)

        columns = ["id", *fields.keys(), "created_at", "updated_at"]
        params = [performer_id, performer_id, *fields.values(), now, now]
        placeholders = ", ".join(["%s"] * len(columns))

        sql = f"""
            MERGE INTO {self.table_name} t
            USING (SELECT %s AS id) s ON t.id = s.id
            WHEN NOT MATCHED THEN
                INSERT ({', '.join(columns)})
                VALUES ({placeholders})
        """
        inserted = self.execute_query(sql, tuple(params), commit=True)
        if not inserted:
            raise DuplicateEntityException(f"Performer {performer_id} already exists")
        logger.info(f"Created performer {performer_id}")

        return self.get_by_id(performer_id)

    def update(self, performer_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Write only the given columns; returns None when no row matched.
        """
        fields = filter_writable(fields)
        if not fields:
            return self.get_by_id(performer_id)

        sql, params = self.build_update_query(
            self.table_name,
            self._serialize(fields),
            "id",
            str(performer_id),
            additional_set={"updated_at": utc_now()},
        )
        rowcount = self.execute_query(sql, tuple(params), commit=True)
        if not rowcount:
            return None

        logger.info(f"Updated performer {performer_id}: {sorted(fields)}")
        return self.get_by_id(performer_id)

    def delete(self, performer_id: str) -> bool:
        sql = f"DELETE FROM {self.table_name} WHERE id = %s"
        rowcount = self.execute_query(sql, (str(performer_id),), commit=True)
        if rowcount:
            logger.info(f"Deleted performer {performer_id}")
        return bool(rowcount)

    def ping(self) -> bool:
        return self.execute_query("SELECT 1 AS ok", fetch_one=True) is not None
