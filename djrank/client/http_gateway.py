"""
HTTP Performer Gateway - DJ Rank
djrank/client/http_gateway.py

Gateway over the REST API, for sessions that run outside the API process.
Mutations send the X-Admin-Token header.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from djrank.core.exceptions import DuplicateEntityException, GatewayError
from djrank.services.gateway import PerformerGateway

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = "X-Admin-Token"


class HttpPerformerGateway(PerformerGateway):
    """
    Args:
        base_url: API root including the version prefix,
            e.g. "http://localhost:8000/api/v1".
        admin_token: sent on every request when given.
        timeout: per-request timeout in seconds.
        transport: optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        admin_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {ADMIN_TOKEN_HEADER: admin_token} if admin_token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpPerformerGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _path(performer_id: str, suffix: str = "") -> str:
        return f"/performers/{quote(str(performer_id), safe='')}{suffix}"

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            detail = body.get("detail", body)
            if isinstance(detail, dict):
                return detail.get("message") or str(detail)
            return str(detail)
        return str(body)

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Optional[httpx.Response]:
        """Send a request; None on 404, DuplicateEntityException on 409, GatewayError otherwise."""
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"Gateway {operation} transport error: {e}")
            raise GatewayError(operation, str(e)) from e

        if response.status_code == 404:
            return None
        if response.is_error:
            message = self._error_message(response)
            if response.status_code == 409:
                raise DuplicateEntityException(message)
            logger.warning(f"Gateway {operation} returned {response.status_code}: {message}")
            raise GatewayError(operation, f"HTTP {response.status_code}: {message}")
        return response

    async def list(self) -> List[Dict[str, Any]]:
        response = await self._request("list", "GET", "/performers")
        if response is None:
            raise GatewayError("list", "Performer collection not found")
        return response.json()["items"]

    async def get(self, performer_id: str) -> Optional[Dict[str, Any]]:
        response = await self._request("get", "GET", self._path(performer_id))
        return response.json() if response is not None else None

    async def create(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request("create", "POST", "/performers", json=partial)
        if response is None:
            raise GatewayError("create", "Performer collection not found")
        return response.json()

    async def update(self, performer_id: str, partial: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = await self._request("update", "PUT", self._path(performer_id), json=partial)
        return response.json() if response is not None else None

    async def delete(self, performer_id: str) -> bool:
        response = await self._request("delete", "DELETE", self._path(performer_id))
        return response is not None

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/performers")
        except httpx.HTTPError:
            return False
        return response.status_code == 200
