"""
Admin Authentication - DJ Rank
djrank/core/security.py

Shared-secret admin check for mutating endpoints, with per-client
lockout after repeated failures.
"""

import hmac
import logging
import math
import threading
import time
from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

from fastapi import Depends, Header, HTTPException, Request, status

from djrank.config import get_settings
from djrank.core.exceptions import AdminRequiredException, RateLimitExceededException
from djrank.models.performer import ErrorResponse

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class AdminAuthenticator:
    """
    Compares tokens against the admin secret in constant time.

    Failures are counted per client in a fixed window that opens on the
    first failure. Once max_attempts is reached every attempt from that
    client is refused until the window closes. A success clears the count.
    """

    def __init__(
        self,
        secret: Optional[str],
        max_attempts: int = 5,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._secret = secret
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._failures: Dict[str, Tuple[int, float]] = {}  # ip -> (count, window end)
        self._lock = threading.Lock()

    def _expire(self, now: float) -> None:
        expired = [ip for ip, (_, reset_at) in self._failures.items() if now > reset_at]
        for ip in expired:
            del self._failures[ip]

    def _is_valid(self, token: Optional[str]) -> bool:
        if not token or not self._secret:
            return False
        return hmac.compare_digest(token.encode("utf-8"), self._secret.encode("utf-8"))

    def verify(self, token: Optional[str], ip: str) -> None:
        """
        Raises:
            RateLimitExceededException: client is locked out.
            AdminRequiredException: token missing or wrong, or no secret configured.
        """
        with self._lock:
            now = self._clock()
            self._expire(now)

            count, reset_at = self._failures.get(ip, (0, now + self.window_seconds))
            if count >= self.max_attempts:
                retry_after = max(1, math.ceil(reset_at - now))
                raise RateLimitExceededException(retry_after)

            if not self._is_valid(token):
                self._failures[ip] = (count + 1, reset_at)
                logger.warning(f"Failed admin authentication from {ip} ({count + 1}/{self.max_attempts})")
                raise AdminRequiredException("modify performers")

            self._failures.pop(ip, None)

    def failed_attempts(self, ip: str) -> int:
        with self._lock:
            return self._failures.get(ip, (0, 0.0))[0]

    def reset(self) -> None:
        with self._lock:
            self._failures.clear()


@lru_cache()
def get_admin_authenticator() -> AdminAuthenticator:
    """Process-wide authenticator built from settings."""
    settings = get_settings()
    return AdminAuthenticator(
        secret=settings.admin_secret,
        max_attempts=settings.AUTH_MAX_FAILED_ATTEMPTS,
        window_seconds=settings.AUTH_WINDOW_SECONDS,
    )


def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(default=None),
    authenticator: AdminAuthenticator = Depends(get_admin_authenticator),
) -> bool:
    """FastAPI dependency guarding every mutating route."""
    try:
        authenticator.verify(x_admin_token, client_ip(request))
    except RateLimitExceededException as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=ErrorResponse(
                error_code="TOO_MANY_ATTEMPTS",
                message=str(e),
                details={"retry_after": e.retry_after},
            ).model_dump(mode="json"),
            headers={"Retry-After": str(e.retry_after)},
        )
    except AdminRequiredException:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=ErrorResponse(error_code="UNAUTHORIZED", message="Unauthorized").model_dump(mode="json"),
        )
    return True
