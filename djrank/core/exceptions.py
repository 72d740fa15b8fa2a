"""
Custom Exceptions - DJ Rank
djrank/core/exceptions.py

Exception classes for storage, placement and admin operations.
"""

from typing import Optional


class RepositoryException(Exception):
    """Base exception for repository operations."""

    pass


class EntityNotFoundException(RepositoryException):
    """Entity not found in storage."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class DuplicateEntityException(RepositoryException):
    """Duplicate entity violation."""

    def __init__(self, message: str = "Entity already exists"):
        self.message = message
        super().__init__(message)


class DatabaseConnectionException(RepositoryException):
    """Database connection failure."""

    def __init__(self, message: str = "Database connection failed"):
        self.message = message
        super().__init__(message)


class GatewayError(RepositoryException):
    """A gateway call failed; the mutation did not happen."""

    def __init__(self, operation: str, message: str = "Storage unavailable"):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class PlacementInvariantError(Exception):
    """Placement buckets do not cover the performer set exactly once."""

    def __init__(self, missing: Optional[set] = None, extra: Optional[set] = None, duplicates: Optional[set] = None):
        self.missing = missing or set()
        self.extra = extra or set()
        self.duplicates = duplicates or set()
        super().__init__(
            f"Placement index out of sync (missing={sorted(self.missing)}, "
            f"extra={sorted(self.extra)}, duplicates={sorted(self.duplicates)})"
        )


class AdminRequiredException(Exception):
    """Mutation attempted without the admin capability."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Admin access required to {action}")


class RateLimitExceededException(Exception):
    """Too many failed admin authentication attempts."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        minutes = max(1, -(-retry_after // 60))
        super().__init__(f"Too many failed attempts. Try again in {minutes} minutes.")
