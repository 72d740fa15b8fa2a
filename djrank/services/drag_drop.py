"""
Drag and Drop - DJ Rank
djrank/services/drag_drop.py

Headless drag state for moving performer cards between buckets.
"""

import logging
from typing import Any, Dict, Optional, Union

from djrank.models.enumerations import QUEUE, Tier
from djrank.services.placement import PlacementStateMachine

logger = logging.getLogger(__name__)

_TIER_LABELS = {tier.value for tier in Tier}


def is_drop_target(target: Union[str, Tier, None]) -> bool:
    """Only the queue and the tier buckets accept drops."""
    if isinstance(target, Tier):
        return True
    return target == QUEUE or target in _TIER_LABELS


class DragController:
    """
    start() picks a card up, drop() places it, cancel() lets go.

    Drops on anything that is not a bucket, or with nothing picked up, do
    nothing. The dragging state is cleared either way.
    """

    def __init__(self, machine: PlacementStateMachine):
        self.machine = machine
        self.dragging_id: Optional[str] = None

    @property
    def is_dragging(self) -> bool:
        return self.dragging_id is not None

    def start(self, performer_id: str) -> None:
        self.dragging_id = str(performer_id) if performer_id else None

    def cancel(self) -> None:
        self.dragging_id = None

    async def drop(self, target: Union[str, Tier, None]) -> Optional[Dict[str, Any]]:
        performer_id, self.dragging_id = self.dragging_id, None
        if performer_id is None or not is_drop_target(target):
            logger.debug(f"Ignored drop of {performer_id} on {target!r}")
            return None

        tier = None if target == QUEUE else Tier(target)
        return await self.machine.place_in_tier(performer_id, tier)
