"""
Scoring Router - DJ Rank
djrank/routers/scoring.py

Scores ad hoc rubrics and exposes the active tier ladder.
"""

from fastapi import APIRouter, Depends

from djrank.config import settings
from djrank.core.dependencies import get_tier_calculator
from djrank.models.performer import (
    RubricScoreRequest,
    ScoreBreakdownResponse,
    TierLadderResponse,
    TierThreshold,
)
from djrank.routers.performers import score_to_response
from djrank.scoring.tier_calculator import TierCalculator

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/scoring", tags=["Scoring"])


@router.post(
    "/calculate",
    response_model=ScoreBreakdownResponse,
    summary="Score a rubric",
    description="Scores criteria, bonuses and penalties without storing anything. "
                "Out-of-range ratings are clamped, unknown flags ignored.",
)
async def calculate_score(
    request: RubricScoreRequest,
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> ScoreBreakdownResponse:
    result = calculator.calculate(
        request.criteria.model_dump(),
        bonuses=request.bonuses,
        penalties=request.penalties,
    )
    return score_to_response(result)


@router.get(
    "/tiers",
    response_model=TierLadderResponse,
    summary="Active tier ladder",
)
async def get_tier_ladder(
    calculator: TierCalculator = Depends(get_tier_calculator),
) -> TierLadderResponse:
    return TierLadderResponse(
        scheme=calculator.scheme,
        thresholds=[
            TierThreshold(tier=tier, min_score=float(threshold))
            for threshold, tier in calculator.ladder()
        ],
    )
