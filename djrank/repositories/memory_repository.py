"""
In-Memory Repository - DJ Rank
djrank/repositories/memory_repository.py

Process-local performer storage for development and tests.
"""

import copy
import itertools
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from djrank.core.exceptions import DuplicateEntityException
from djrank.repositories.base import (
    PerformerRepository,
    filter_writable,
    generate_performer_id,
    normalize_record,
    utc_now,
)

logger = logging.getLogger(__name__)


class InMemoryPerformerRepository(PerformerRepository):
    """Thread-safe dict store; returns copies so callers never alias stored rows."""

    def __init__(self, records: Optional[Iterable[Dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._order: Dict[str, int] = {}
        self._sequence = itertools.count()
        for record in records or []:
            self.create(record)

    def _next_id(self) -> str:
        performer_id = generate_performer_id()
        while performer_id in self._rows:
            performer_id = str(int(performer_id) + 1)
        return performer_id

    def list_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            rows = sorted(
                self._rows.values(),
                key=lambda r: (r["created_at"], self._order[r["id"]]),
                reverse=True,
            )
            return [copy.deepcopy(r) for r in rows]

    def get_by_id(self, performer_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(str(performer_id))
            return copy.deepcopy(row) if row else None

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            performer_id = str(data.get("id") or self._next_id())
            if performer_id in self._rows:
                raise DuplicateEntityException(f"Performer {performer_id} already exists")

            now = utc_now()
            row = normalize_record({
                **copy.deepcopy(filter_writable(data)),
                "id": performer_id,
                "created_at": now,
                "updated_at": now,
            })
            self._rows[performer_id] = row
            self._order[performer_id] = next(self._sequence)
            logger.debug(f"Created performer {performer_id}")
            return copy.deepcopy(row)

    def update(self, performer_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(str(performer_id))
            if row is None:
                return None
            fields = filter_writable(fields)
            if fields:
                merged = {**row, **copy.deepcopy(fields), "updated_at": utc_now()}
                row = normalize_record(merged)
                self._rows[row["id"]] = row
            return copy.deepcopy(row)

    def delete(self, performer_id: str) -> bool:
        with self._lock:
            removed = self._rows.pop(str(performer_id), None)
            self._order.pop(str(performer_id), None)
            return removed is not None

    def clear(self) -> None:
        with self._lock:
            self._rows.clear()
            self._order.clear()
