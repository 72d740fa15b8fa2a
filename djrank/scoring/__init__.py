"""
scoring/ - Performer Scoring Engine

Modules:
    utils.py            - Rating and flag coercion
    tier_calculator.py  - Rubric score and tier ladder
"""

from djrank.scoring.tier_calculator import (
    EXTENDED_LADDER,
    LADDERS,
    LEGACY_LADDER,
    ScoreBreakdown,
    TierCalculator,
    TierResult,
    compute_score,
    score_performer,
    tier_for_score,
)

__all__ = [
    "EXTENDED_LADDER",
    "LADDERS",
    "LEGACY_LADDER",
    "ScoreBreakdown",
    "TierCalculator",
    "TierResult",
    "compute_score",
    "score_performer",
    "tier_for_score",
]
