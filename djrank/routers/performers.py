"""
Performer Router - DJ Rank
djrank/routers/performers.py

Handles performer CRUD, media attachment and per-performer scores.
Reads are public; mutations need the admin token. The list is cached in Redis.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse

from djrank.config import settings
from djrank.core.dependencies import get_performer_gateway, get_placement_machine, get_tier_calculator
from djrank.core.exceptions import (
    AdminRequiredException,
    DuplicateEntityException,
    EntityNotFoundException,
    GatewayError,
)
from djrank.core.security import require_admin
from djrank.models.performer import (
    CacheInfo,
    ErrorResponse,
    MediaAttachRequest,
    PerformerCreate,
    PerformerListResponse,
    PerformerResponse,
    PerformerUpdate,
    ScoreBreakdownResponse,
)
from djrank.scoring.tier_calculator import TierCalculator, TierResult
from djrank.services.cache import TTL_PERFORMERS, get_cache
from djrank.services.gateway import PerformerGateway
from djrank.services.placement import PlacementStateMachine

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["Performers"])



#  Validation Error Messages


FIELD_MESSAGES = {
    "name": {
        "missing": "Performer name is required",
        "string_too_short": "Performer name cannot be empty",
        "string_too_long": "Performer name must not exceed 255 characters",
        "string_type": "Performer name must be a string",
    },
    "tier": {
        "enum": "Tier must be one of S, A, B, C, D, E, F or null",
    },
    "kind": {
        "missing": "Media kind is required",
        "enum": "Media kind must be 'photo' or 'video'",
    },
    "reference": {
        "missing": "Media reference is required",
        "string_too_short": "Media reference cannot be empty",
    },
    "event_date": {
        "date": "Event date must be a valid date (YYYY-MM-DD)",
    },
}

DEFAULT_MESSAGES = {
    "missing": "Field '{field}' is required",
    "string_too_short": "Field '{field}' is too short",
    "string_too_long": "Field '{field}' is too long",
    "string_type": "Field '{field}' must be a string",
    "list_type": "Field '{field}' must be a list",
    "bool_type": "Field '{field}' must be a boolean",
    "enum": "Field '{field}' has an invalid value",
    "json_invalid": "Malformed JSON request body",
}


def get_validation_message(field: str, error_type: str) -> str:
    if field in FIELD_MESSAGES:
        for key in FIELD_MESSAGES[field]:
            if key in error_type:
                return FIELD_MESSAGES[field][key]
    for key, template in DEFAULT_MESSAGES.items():
        if key in error_type:
            return template.format(field=field)
    return f"Invalid value for field '{field}'"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error_code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
    err = errors[0]
    error_type = err.get("type", "")
    loc = err.get("loc", [])
    if "json_invalid" in error_type:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error_code": "INVALID_REQUEST",
                "message": "Malformed JSON request body",
                "details": None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
    field = ".".join(str(l) for l in loc if l != "body")
    message = get_validation_message(field, error_type)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": message,
            "details": {"field": field, "type": error_type} if field else None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def _error_body(error_code: str, message: str, details: Optional[dict] = None) -> Dict[str, Any]:
    return {"detail": ErrorResponse(error_code=error_code, message=message, details=details).model_dump(mode="json")}


async def gateway_exception_handler(request: Request, exc: GatewayError):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body("STORAGE_UNAVAILABLE", "Storage is unavailable, try again later",
                            {"operation": exc.operation}),
    )


async def not_found_exception_handler(request: Request, exc: EntityNotFoundException):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=_error_body("PERFORMER_NOT_FOUND", "Performer not found", {"id": exc.entity_id}),
    )


async def admin_required_exception_handler(request: Request, exc: AdminRequiredException):
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=_error_body("UNAUTHORIZED", "Unauthorized"),
    )



#  Exception Helpers


def raise_error(status_code: int, error_code: str, message: str):
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error_code=error_code, message=message).model_dump(mode="json"),
    )

def raise_performer_not_found():
    raise_error(status.HTTP_404_NOT_FOUND, "PERFORMER_NOT_FOUND", "Performer not found")

def raise_duplicate_performer():
    raise_error(status.HTTP_409_CONFLICT, "DUPLICATE_PERFORMER", "A performer with this id already exists")

def raise_no_fields():
    raise_error(status.HTTP_400_BAD_REQUEST, "NO_FIELDS", "No fields to update")



#  Cache Helpers


CACHE_KEY_PERFORMERS_PREFIX = "performers:"
CACHE_KEY_PERFORMERS_ALL = "performers:all"


def create_cache_info(hit: bool, key: str, latency_ms: float, ttl: int) -> CacheInfo:
    return CacheInfo(
        hit=hit,
        source="redis" if hit else "database",
        key=key,
        latency_ms=round(latency_ms, 3),
        ttl_seconds=ttl,
    )


def invalidate_performer_cache() -> None:
    """Invalidate performer cache entries in Redis."""
    cache = get_cache()
    if cache:
        try:
            cache.delete_pattern(f"{CACHE_KEY_PERFORMERS_PREFIX}*")
        except Exception as e:
            logger.warning(f"Performer cache invalidation failed: {e}")



#  Helper Functions


def score_to_response(result: TierResult) -> ScoreBreakdownResponse:
    breakdown = result.breakdown.as_dict()
    return ScoreBreakdownResponse(**breakdown, suggested_tier=result.tier, scheme=result.scheme)


def record_to_response(record: Dict[str, Any], calculator: TierCalculator) -> PerformerResponse:
    fields = {k: v for k, v in record.items() if k in PerformerResponse.model_fields and k != "score"}
    return PerformerResponse(**fields, score=score_to_response(calculator.calculate_for(record)))



#  Routes


@router.get(
    "/performers",
    response_model=PerformerListResponse,
    summary="List performers",
    description="Returns all performers, newest first. Cached in Redis.",
)
async def list_performers(
    gateway: PerformerGateway = Depends(get_performer_gateway),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerListResponse:
    cache_key = CACHE_KEY_PERFORMERS_ALL
    cache = get_cache()
    start_time = time.time()

    # 1. Try cache first
    if cache:
        try:
            cached = cache.get(cache_key, PerformerListResponse)
            if cached:
                latency = (time.time() - start_time) * 1000
                cached.cache = create_cache_info(True, cache_key, latency, TTL_PERFORMERS)
                return cached
        except Exception as e:
            logger.warning(f"Cache read failed for {cache_key}: {e}")

    # 2. Cache miss - fetch through the gateway
    records = await gateway.list()

    latency = (time.time() - start_time) * 1000
    response = PerformerListResponse(
        items=[record_to_response(r, calculator) for r in records],
        total=len(records),
        cache=create_cache_info(False, cache_key, latency, TTL_PERFORMERS),
    )

    # 3. Store in cache
    if cache:
        try:
            cache.set(cache_key, response, TTL_PERFORMERS)
        except Exception as e:
            logger.warning(f"Cache write failed for {cache_key}: {e}")

    return response


@router.get(
    "/performers/{performer_id}",
    response_model=PerformerResponse,
    summary="Get performer by ID",
)
async def get_performer(
    performer_id: str,
    gateway: PerformerGateway = Depends(get_performer_gateway),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerResponse:
    record = await gateway.get(performer_id)
    if record is None:
        raise_performer_not_found()
    return record_to_response(record, calculator)


@router.post(
    "/performers",
    response_model=PerformerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a performer",
    description="Creates a performer. New performers are queued unless a tier is given.",
    dependencies=[Depends(require_admin)],
)
async def create_performer(
    performer: PerformerCreate,
    gateway: PerformerGateway = Depends(get_performer_gateway),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerResponse:
    data = performer.model_dump(mode="json")
    if data.get("id") is None:
        data.pop("id", None)

    try:
        record = await gateway.create(data)
    except DuplicateEntityException:
        raise_duplicate_performer()

    invalidate_performer_cache()
    return record_to_response(record, calculator)


@router.put(
    "/performers/{performer_id}",
    response_model=PerformerResponse,
    summary="Update a performer",
    description="Partial update: only the fields sent are written. A tier field moves the performer.",
)
async def update_performer(
    performer_id: str,
    update: PerformerUpdate,
    machine: PlacementStateMachine = Depends(get_placement_machine),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerResponse:
    fields = update.to_fields()
    if not fields:
        raise_no_fields()

    record = await machine.update_details(performer_id, fields)

    invalidate_performer_cache()
    return record_to_response(record, calculator)


@router.delete(
    "/performers/{performer_id}",
    summary="Delete a performer",
    dependencies=[Depends(require_admin)],
)
async def delete_performer(
    performer_id: str,
    gateway: PerformerGateway = Depends(get_performer_gateway),
) -> dict:
    if not await gateway.delete(performer_id):
        raise_performer_not_found()

    invalidate_performer_cache()
    return {"success": True}


@router.post(
    "/performers/{performer_id}/media",
    response_model=PerformerResponse,
    summary="Attach a media reference",
    description="Appends a photo or video reference to the performer.",
)
async def attach_media(
    performer_id: str,
    media: MediaAttachRequest,
    machine: PlacementStateMachine = Depends(get_placement_machine),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> PerformerResponse:
    record = await machine.attach_media(performer_id, media.kind, media.reference)

    invalidate_performer_cache()
    return record_to_response(record, calculator)


@router.get(
    "/performers/{performer_id}/score",
    response_model=ScoreBreakdownResponse,
    summary="Score a performer",
    description="Score breakdown and the tier the rubric earns.",
)
async def get_performer_score(
    performer_id: str,
    gateway: PerformerGateway = Depends(get_performer_gateway),
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> ScoreBreakdownResponse:
    record = await gateway.get(performer_id)
    if record is None:
        raise_performer_not_found()
    return score_to_response(calculator.calculate_for(record))
