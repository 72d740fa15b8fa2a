"""
Placement State Machine - DJ Rank
djrank/services/placement.py

Tracks which bucket (the unranked queue or one of the tiers) each performer
sits in and persists every move through the gateway.

Transition protocol, for every mutation:
    1. admin capability check        (AdminRequiredException, nothing attempted)
    2. per-id lock acquired
    3. unknown id -> reload (a single get before the first load),
       then EntityNotFoundException if still unknown
    4. gateway call                  (GatewayError -> cache and index untouched)
    5. cache <- record returned by the gateway
    6. index moved, invariant checked (violation -> full reload)
    7. listeners notified with the affected buckets
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

from djrank.core.exceptions import (
    AdminRequiredException,
    EntityNotFoundException,
    PlacementInvariantError,
)
from djrank.models.enumerations import QUEUE, MediaKind, Tier, TIER_ORDER
from djrank.scoring.tier_calculator import TierCalculator, TierResult
from djrank.services.gateway import PerformerGateway

logger = logging.getLogger(__name__)

BUCKETS: Tuple[str, ...] = (QUEUE, *(tier.value for tier in TIER_ORDER))

MEDIA_FIELDS = {MediaKind.PHOTO: "photos", MediaKind.VIDEO: "videos"}


def resolve_tier(label: Union[str, Tier, None]) -> Optional[Tier]:
    """
    Resolve a placement target. None, "" and "queue" mean the queue.

    Raises:
        ValueError: label is not a tier.
    """
    if label is None or isinstance(label, Tier):
        return label
    text = str(label).strip()
    if text == "" or text.lower() == QUEUE:
        return None
    try:
        return Tier(text.upper())
    except ValueError:
        raise ValueError(f"Unknown tier label '{label}'") from None


def bucket_for(tier: Union[str, Tier, None]) -> str:
    """Bucket key for a stored tier value; invalid or empty tiers land in the queue."""
    try:
        resolved = resolve_tier(tier)
    except ValueError:
        return QUEUE
    return resolved.value if resolved else QUEUE


@dataclass(frozen=True)
class PlacementIndex:
    """Bucket key -> ordered performer ids. Transitions return new indexes."""

    buckets: Dict[str, Tuple[str, ...]] = field(
        default_factory=lambda: {bucket: () for bucket in BUCKETS}
    )

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "PlacementIndex":
        """Build from performer records, keeping their order within each bucket."""
        lists: Dict[str, List[str]] = {bucket: [] for bucket in BUCKETS}
        seen = set()
        for record in records:
            performer_id = str(record["id"])
            if performer_id in seen:
                continue
            seen.add(performer_id)
            lists[bucket_for(record.get("tier"))].append(performer_id)
        return cls({bucket: tuple(ids) for bucket, ids in lists.items()})

    def locate(self, performer_id: str) -> Optional[str]:
        for bucket, ids in self.buckets.items():
            if performer_id in ids:
                return bucket
        return None

    def ids(self) -> List[str]:
        return [pid for ids in self.buckets.values() for pid in ids]

    def moved(self, performer_id: str, target: str) -> "PlacementIndex":
        """Remove the id from whichever bucket holds it and append it to target."""
        if target not in BUCKETS:
            raise ValueError(f"Unknown bucket '{target}'")
        buckets = {
            bucket: tuple(pid for pid in ids if pid != performer_id)
            for bucket, ids in self.buckets.items()
        }
        buckets[target] = buckets[target] + (performer_id,)
        return PlacementIndex(buckets)

    def without(self, performer_id: str) -> "PlacementIndex":
        return PlacementIndex({
            bucket: tuple(pid for pid in ids if pid != performer_id)
            for bucket, ids in self.buckets.items()
        })

    def validate(self, performer_ids: Iterable[str]) -> None:
        """
        Check the union of buckets equals performer_ids, each exactly once.

        Raises:
            PlacementInvariantError: on any missing, extra or duplicated id.
        """
        expected = set(performer_ids)
        listed = self.ids()
        seen, duplicates = set(), set()
        for pid in listed:
            if pid in seen:
                duplicates.add(pid)
            seen.add(pid)
        missing = expected - seen
        extra = seen - expected
        if missing or extra or duplicates:
            raise PlacementInvariantError(missing=missing, extra=extra, duplicates=duplicates)

    def to_dict(self) -> Dict[str, List[str]]:
        return {bucket: list(ids) for bucket, ids in self.buckets.items()}


@dataclass(frozen=True)
class PlacementChange:
    """Notification sent to listeners after a committed transition."""
    operation: str
    performer_id: Optional[str]
    source: Optional[str]
    target: Optional[str]

    @property
    def affected(self) -> Tuple[str, ...]:
        """Buckets to re-render: the queue plus source and target."""
        if self.operation == "reload":
            return BUCKETS
        buckets = [QUEUE]
        for bucket in (self.source, self.target):
            if bucket and bucket not in buckets:
                buckets.append(bucket)
        return tuple(buckets)


Listener = Callable[[PlacementChange], Union[None, Awaitable[None]]]


class PlacementStateMachine:
    """
    Client session over the gateway: a performer cache plus the placement index.

    Args:
        gateway: durable storage.
        can_edit: admin capability; without it every mutation is refused.
        scheme: scoring ladder used by apply_calculated_tier.
    """

    def __init__(self, gateway: PerformerGateway, can_edit: bool = False, scheme: str = "extended"):
        self.gateway = gateway
        self.can_edit = can_edit
        self.calculator = TierCalculator(scheme)
        self._performers: Dict[str, Dict[str, Any]] = {}
        self._index = PlacementIndex()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._listeners: List[Listener] = []
        self.loaded = False

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def index(self) -> PlacementIndex:
        return self._index

    @property
    def performers(self) -> List[Dict[str, Any]]:
        return [dict(record) for record in self._performers.values()]

    def get(self, performer_id: str) -> Optional[Dict[str, Any]]:
        record = self._performers.get(str(performer_id))
        return dict(record) if record else None

    def bucket_of(self, performer_id: str) -> Optional[str]:
        return self._index.locate(str(performer_id))

    def suggested_tier(self, performer_id: str) -> TierResult:
        record = self._performers.get(str(performer_id))
        if record is None:
            raise EntityNotFoundException("Performer", performer_id)
        return self.calculator.calculate_for(record)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_admin(self, action: str) -> None:
        if not self.can_edit:
            raise AdminRequiredException(action)

    def _lock_for(self, performer_id: str) -> asyncio.Lock:
        return self._locks.setdefault(performer_id, asyncio.Lock())

    async def _notify(self, change: PlacementChange) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Placement listener failed on {change.operation}")

    async def _ensure_known(self, performer_id: str) -> Dict[str, Any]:
        if performer_id not in self._performers:
            if self.loaded:
                logger.info(f"Performer {performer_id} not in session, reloading")
                await self.reload()
            else:
                await self._fetch_one(performer_id)
        record = self._performers.get(performer_id)
        if record is None:
            raise EntityNotFoundException("Performer", performer_id)
        return record

    async def _fetch_one(self, performer_id: str) -> None:
        # Session never listed: track just this performer
        record = await self.gateway.get(performer_id)
        if record is None:
            return
        self._performers[performer_id] = record
        self._index = self._index.moved(performer_id, bucket_for(record.get("tier")))

    async def _resync(self, performer_id: str) -> None:
        """The gateway no longer has performer_id: drop it from the session."""
        if self.loaded:
            await self.reload()
            return
        self._performers.pop(performer_id, None)
        self._index = self._index.without(performer_id)

    async def _check_invariant(self) -> None:
        try:
            self._index.validate(self._performers.keys())
        except PlacementInvariantError as e:
            logger.warning(f"{e}; reloading from gateway")
            await self.reload()

    async def _commit_update(self, operation: str, performer_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        # Caller holds the id's lock
        await self._ensure_known(performer_id)
        source = self._index.locate(performer_id)

        record = await self.gateway.update(performer_id, fields)
        if record is None:
            # Deleted by someone else since the last load
            await self._resync(performer_id)
            raise EntityNotFoundException("Performer", performer_id)

        self._performers[performer_id] = record
        target = bucket_for(record.get("tier"))
        if target != source:
            self._index = self._index.moved(performer_id, target)
        await self._check_invariant()

        logger.info(f"{operation}: performer {performer_id} {source} -> {target}")
        await self._notify(PlacementChange(operation, performer_id, source, target))
        return dict(record)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def reload(self) -> None:
        """Re-fetch every performer and rebuild the index."""
        records = await self.gateway.list()
        performers: Dict[str, Dict[str, Any]] = {}
        for record in records:
            performers.setdefault(str(record["id"]), record)

        index = PlacementIndex.from_records(performers.values())
        index.validate(performers.keys())

        self._performers = performers
        self._index = index
        self.loaded = True
        logger.debug(f"Reloaded {len(performers)} performers")
        await self._notify(PlacementChange("reload", None, None, None))

    async def place_in_tier(self, performer_id: str, label: Union[str, Tier, None]) -> Dict[str, Any]:
        """Move a performer into a tier; None or "queue" moves it to the queue."""
        self._require_admin("place performers in tiers")
        tier = resolve_tier(label)
        performer_id = str(performer_id)
        async with self._lock_for(performer_id):
            return await self._commit_update(
                "place_in_tier", performer_id, {"tier": tier.value if tier else None}
            )

    async def remove_from_tier(self, performer_id: str) -> Dict[str, Any]:
        return await self.place_in_tier(performer_id, None)

    async def apply_calculated_tier(self, performer_id: str) -> Dict[str, Any]:
        """Place a performer into the tier its rubric earns."""
        self._require_admin("apply calculated tiers")
        performer_id = str(performer_id)
        async with self._lock_for(performer_id):
            record = await self._ensure_known(performer_id)
            result = self.calculator.calculate_for(record)
            return await self._commit_update(
                "apply_calculated_tier", performer_id, {"tier": result.tier.value}
            )

    async def update_details(self, performer_id: str, fields: Any) -> Dict[str, Any]:
        """
        Write rubric, notes, links or event context. A "tier" field moves the
        performer too.
        """
        self._require_admin("edit performers")
        if hasattr(fields, "to_fields"):
            fields = fields.to_fields()
        fields = dict(fields or {})
        if not fields:
            raise ValueError("No fields to update")
        if "tier" in fields:
            tier = resolve_tier(fields["tier"])
            fields["tier"] = tier.value if tier else None

        performer_id = str(performer_id)
        async with self._lock_for(performer_id):
            return await self._commit_update("update_details", performer_id, fields)

    async def attach_media(self, performer_id: str, kind: Union[str, MediaKind], reference: str) -> Dict[str, Any]:
        """Append a photo or video reference to a performer."""
        self._require_admin("attach media")
        media_field = MEDIA_FIELDS[MediaKind(kind)]
        if not reference:
            raise ValueError("Media reference is required")

        performer_id = str(performer_id)
        async with self._lock_for(performer_id):
            record = await self._ensure_known(performer_id)
            references = list(record.get(media_field) or []) + [reference]
            return await self._commit_update("attach_media", performer_id, {media_field: references})

    async def add(self, performer: Any, tier: Union[str, Tier, None] = None) -> Dict[str, Any]:
        """Create a performer; it lands in the queue unless a tier is given."""
        self._require_admin("add performers")
        if hasattr(performer, "model_dump"):
            data = performer.model_dump(mode="json")
        else:
            data = dict(performer)
        if tier is not None:
            resolved = resolve_tier(tier)
            data["tier"] = resolved.value if resolved else None

        record = await self.gateway.create(data)
        performer_id = str(record["id"])
        async with self._lock_for(performer_id):
            self._performers[performer_id] = record
            target = bucket_for(record.get("tier"))
            self._index = self._index.moved(performer_id, target)
            await self._check_invariant()

        logger.info(f"add: performer {performer_id} -> {target}")
        await self._notify(PlacementChange("add", performer_id, None, target))
        return dict(record)

    async def delete(self, performer_id: str) -> bool:
        """Delete a performer; it leaves its bucket and the performer set together."""
        self._require_admin("delete performers")
        performer_id = str(performer_id)
        async with self._lock_for(performer_id):
            await self._ensure_known(performer_id)
            source = self._index.locate(performer_id)

            deleted = await self.gateway.delete(performer_id)
            if not deleted:
                await self._resync(performer_id)
                raise EntityNotFoundException("Performer", performer_id)

            self._performers.pop(performer_id, None)
            self._index = self._index.without(performer_id)
            await self._check_invariant()

        self._locks.pop(performer_id, None)
        logger.info(f"delete: performer {performer_id} removed from {source}")
        await self._notify(PlacementChange("delete", performer_id, source, None))
        return True
