"""
Dependencies - DJ Rank
djrank/core/dependencies.py

FastAPI dependency injection for storage, scoring and placement.
"""

from functools import lru_cache

from fastapi import Depends

from djrank.config import get_settings
from djrank.core.security import require_admin
from djrank.repositories.base import PerformerRepository
from djrank.repositories.memory_repository import InMemoryPerformerRepository
from djrank.repositories.performer_repository import SnowflakePerformerRepository
from djrank.scoring.tier_calculator import TierCalculator
from djrank.services.gateway import LocalGateway, PerformerGateway
from djrank.services.placement import PlacementStateMachine


@lru_cache()
def get_performer_repository() -> PerformerRepository:
    """Get cached repository for the configured storage backend."""
    if get_settings().STORAGE_BACKEND == "snowflake":
        return SnowflakePerformerRepository()
    return InMemoryPerformerRepository()


@lru_cache()
def get_performer_gateway() -> PerformerGateway:
    """Get cached gateway over the configured repository."""
    return LocalGateway(get_performer_repository())


@lru_cache()
def get_tier_calculator() -> TierCalculator:
    """Get cached TierCalculator for the configured scoring scheme."""
    return TierCalculator(get_settings().SCORING_SCHEME)


def get_placement_machine(
    is_admin: bool = Depends(require_admin),
    gateway: PerformerGateway = Depends(get_performer_gateway),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PlacementStateMachine:
    """Per-request placement session with the admin capability granted."""
    return PlacementStateMachine(gateway, can_edit=is_admin, scheme=calculator.scheme)
