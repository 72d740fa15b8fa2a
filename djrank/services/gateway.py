"""
Performer Gateway - DJ Rank
djrank/services/gateway.py

Asynchronous CRUD interface the placement engine and API talk to, and the
local implementation that runs a synchronous repository in worker threads.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from djrank.core.exceptions import DuplicateEntityException, GatewayError
from djrank.repositories.base import PerformerRepository

logger = logging.getLogger(__name__)


class PerformerGateway(ABC):
    """
    Durable performer storage as seen by the core.

    Every method raises GatewayError when the backing store or transport
    fails; a failed call has not mutated anything the caller can rely on.
    """

    @abstractmethod
    async def list(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def get(self, performer_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def create(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def update(self, performer_id: str, partial: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete(self, performer_id: str) -> bool:
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class LocalGateway(PerformerGateway):
    """Gateway over an in-process repository (Snowflake or in-memory)."""

    def __init__(self, repository: PerformerRepository):
        self.repository = repository

    async def _call(self, operation: str, func: Callable, *args) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except DuplicateEntityException:
            raise
        except Exception as e:
            logger.error(f"Gateway {operation} failed: {e}")
            raise GatewayError(operation, str(e)) from e

    async def list(self) -> List[Dict[str, Any]]:
        return await self._call("list", self.repository.list_all)

    async def get(self, performer_id: str) -> Optional[Dict[str, Any]]:
        return await self._call("get", self.repository.get_by_id, performer_id)

    async def create(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("create", self.repository.create, partial)

    async def update(self, performer_id: str, partial: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._call("update", self.repository.update, performer_id, partial)

    async def delete(self, performer_id: str) -> bool:
        return await self._call("delete", self.repository.delete, performer_id)

    async def ping(self) -> bool:
        return await self._call("ping", self.repository.ping)
