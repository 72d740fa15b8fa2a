"""
Placement Router - DJ Rank
djrank/routers/placements.py

Reads the placement index and moves performers between the queue and tiers.
"""

from fastapi import APIRouter, Depends

from djrank.config import settings
from djrank.core.dependencies import get_performer_gateway, get_placement_machine, get_tier_calculator
from djrank.models.enumerations import QUEUE, TIER_ORDER
from djrank.models.performer import PerformerResponse, PlacementIndexResponse, TierPlacementRequest
from djrank.routers.performers import invalidate_performer_cache, record_to_response
from djrank.scoring.tier_calculator import TierCalculator
from djrank.services.gateway import PerformerGateway
from djrank.services.placement import PlacementIndex, PlacementStateMachine

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/placements", tags=["Placements"])


@router.get(
    "",
    response_model=PlacementIndexResponse,
    summary="Placement index",
    description="Performer ids per bucket: the unranked queue and each tier, newest first.",
)
async def get_placements(
    gateway: PerformerGateway = Depends(get_performer_gateway),
) -> PlacementIndexResponse:
    records = await gateway.list()
    buckets = PlacementIndex.from_records(records).to_dict()
    return PlacementIndexResponse(
        queue=buckets[QUEUE],
        tiers={tier.value: buckets[tier.value] for tier in TIER_ORDER},
        total=sum(len(ids) for ids in buckets.values()),
    )


@router.put(
    "/{performer_id}",
    response_model=PerformerResponse,
    summary="Place a performer",
    description='Moves a performer into a tier. {"tier": null} moves it back to the queue.',
)
async def place_performer(
    performer_id: str,
    placement: TierPlacementRequest,
    machine: PlacementStateMachine = Depends(get_placement_machine),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerResponse:
    record = await machine.place_in_tier(performer_id, placement.tier)
    invalidate_performer_cache()
    return record_to_response(record, calculator)


@router.delete(
    "/{performer_id}",
    response_model=PerformerResponse,
    summary="Remove a performer from its tier",
)
async def remove_performer_from_tier(
    performer_id: str,
    machine: PlacementStateMachine = Depends(get_placement_machine),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerResponse:
    record = await machine.remove_from_tier(performer_id)
    invalidate_performer_cache()
    return record_to_response(record, calculator)


@router.post(
    "/{performer_id}/apply-calculated",
    response_model=PerformerResponse,
    summary="Apply the calculated tier",
    description="Places the performer into the tier its rubric earns.",
)
async def apply_calculated_tier(
    performer_id: str,
    machine: PlacementStateMachine = Depends(get_placement_machine),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerResponse:
    record = await machine.apply_calculated_tier(performer_id)
    invalidate_performer_cache()
    return record_to_response(record, calculator)
