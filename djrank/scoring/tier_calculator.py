"""
scoring/tier_calculator.py

Maps a performer rubric to a score and a tier label.

Formula:
    core    = flow + vibes + visuals + creativity     (each clamped to [0, 3])
    bonus   = 0.5 × number of bonus flags set         [0, 1.5]
    penalty = -0.5 × number of penalty flags set      [-1.5, 0]
    total   = core + bonus + penalty

Tier ladder, first match wins:
    extended:  ≥13 S, ≥11 A, ≥9 B, ≥7 C, ≥5 D, ≥3 E, else F
    legacy:    ≥11 S, ≥9 A, ≥7 B, ≥5 C, ≥3 D, ≥1 E, else F   (0-12 core only)

The legacy ladder belongs to the four-criterion scheme without bonuses and
penalties. It is only used when configured explicitly.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

from djrank.models.enumerations import Bonus, Criterion, Penalty, Tier
from djrank.scoring.utils import coerce_criterion, coerce_flag

logger = structlog.get_logger(__name__)

CRITERIA_KEYS: Tuple[str, ...] = tuple(c.value for c in Criterion)
BONUS_KEYS: Tuple[str, ...] = tuple(b.value for b in Bonus)
PENALTY_KEYS: Tuple[str, ...] = tuple(p.value for p in Penalty)

# Pre-v2 records rated "guests" where v2 rates "creativity"
LEGACY_CRITERION_ALIASES: Dict[str, str] = {"creativity": "guests"}

FLAG_WEIGHT = Decimal("0.5")

EXTENDED_LADDER: Tuple[Tuple[Decimal, Tier], ...] = (
    (Decimal("13.0"), Tier.S),
    (Decimal("11.0"), Tier.A),
    (Decimal("9.0"), Tier.B),
    (Decimal("7.0"), Tier.C),
    (Decimal("5.0"), Tier.D),
    (Decimal("3.0"), Tier.E),
)

LEGACY_LADDER: Tuple[Tuple[Decimal, Tier], ...] = (
    (Decimal("11"), Tier.S),
    (Decimal("9"), Tier.A),
    (Decimal("7"), Tier.B),
    (Decimal("5"), Tier.C),
    (Decimal("3"), Tier.D),
    (Decimal("1"), Tier.E),
)

LADDERS: Dict[str, Tuple[Tuple[Decimal, Tier], ...]] = {
    "extended": EXTENDED_LADDER,
    "legacy": LEGACY_LADDER,
}


@dataclass(frozen=True)
class ScoreBreakdown:
    """Output of compute_score()."""
    core: Decimal      # [0, 12]
    bonus: Decimal     # [0, 1.5]
    penalty: Decimal   # [-1.5, 0]
    total: Decimal

    def as_dict(self) -> Dict[str, float]:
        return {name: float(value) for name, value in asdict(self).items()}


@dataclass(frozen=True)
class TierResult:
    """Score breakdown plus the tier it earns."""
    breakdown: ScoreBreakdown
    tier: Tier
    scheme: str


def _flag_value(flags: Mapping[str, Any], key: str) -> Any:
    # Accept both "bonus_bold_risks" and "bold_risks"
    if key in flags:
        return flags[key]
    short_key = key.split("_", 1)[1]
    return flags.get(short_key)


def _count_flags(flags: Optional[Mapping[str, Any]], keys: Tuple[str, ...]) -> int:
    if not isinstance(flags, Mapping):
        return 0
    return sum(1 for key in keys if coerce_flag(_flag_value(flags, key)))


def _criterion_value(criteria: Mapping[str, Any], key: str) -> int:
    value = criteria.get(key)
    if value is None and key in LEGACY_CRITERION_ALIASES:
        value = criteria.get(LEGACY_CRITERION_ALIASES[key])
    return coerce_criterion(value)


def compute_score(
    criteria: Optional[Mapping[str, Any]],
    bonuses: Optional[Mapping[str, Any]] = None,
    penalties: Optional[Mapping[str, Any]] = None,
) -> ScoreBreakdown:
    """
    Score a rubric. Never raises: malformed input is clamped or defaulted.

    Args:
        criteria: flow/vibes/visuals/creativity ratings (0-3).
        bonuses: bonus flag name → bool. Unknown keys are ignored.
        penalties: penalty flag name → bool. Unknown keys are ignored.

    Examples:
        >>> compute_score({"flow": 3, "vibes": 3, "visuals": 3, "creativity": 3}).total
        Decimal('12.0')
        >>> compute_score({"flow": 5, "vibes": -1}).core
        Decimal('3')
    """
    if not isinstance(criteria, Mapping):
        criteria = {}

    core = Decimal(sum(_criterion_value(criteria, key) for key in CRITERIA_KEYS))
    bonus = FLAG_WEIGHT * _count_flags(bonuses, BONUS_KEYS)
    penalty = Decimal("0") - FLAG_WEIGHT * _count_flags(penalties, PENALTY_KEYS)

    return ScoreBreakdown(
        core=core,
        bonus=bonus,
        penalty=penalty,
        total=core + bonus + penalty,
    )


def tier_for_score(total: Any, scheme: str = "extended") -> Tier:
    """
    Map a total score to a tier label.

    Defined for any input: anything below the lowest threshold, NaN, or
    unparseable input yields F.
    """
    ladder = LADDERS.get(scheme, EXTENDED_LADDER)
    try:
        score = Decimal(str(total))
    except (InvalidOperation, ValueError, TypeError):
        return Tier.F
    if score.is_nan():
        return Tier.F

    for threshold, tier in ladder:
        if score >= threshold:
            return tier
    return Tier.F


def extract_rubric(record: Any) -> Tuple[Mapping[str, Any], Dict[str, Any], Dict[str, Any]]:
    """Pull criteria, bonus flags and penalty flags out of a performer record or model."""
    if hasattr(record, "model_dump"):
        record = record.model_dump()
    if not isinstance(record, Mapping):
        return {}, {}, {}

    criteria = record.get("criteria") or {}
    if hasattr(criteria, "model_dump"):
        criteria = criteria.model_dump()
    bonuses = {key: record.get(key) for key in BONUS_KEYS}
    penalties = {key: record.get(key) for key in PENALTY_KEYS}
    return criteria, bonuses, penalties


def score_performer(record: Any, scheme: str = "extended") -> Tuple[ScoreBreakdown, Tier]:
    """Score a stored performer record and suggest its tier."""
    criteria, bonuses, penalties = extract_rubric(record)
    if scheme == "legacy":
        # The legacy scheme predates bonuses and penalties
        bonuses, penalties = {}, {}
    breakdown = compute_score(criteria, bonuses, penalties)
    return breakdown, tier_for_score(breakdown.total, scheme)


class TierCalculator:
    """Scores rubrics against the configured ladder."""

    def __init__(self, scheme: str = "extended"):
        if scheme not in LADDERS:
            raise ValueError(f"Unknown scoring scheme '{scheme}'")
        self.scheme = scheme

    def calculate(
        self,
        criteria: Optional[Mapping[str, Any]],
        bonuses: Optional[Mapping[str, Any]] = None,
        penalties: Optional[Mapping[str, Any]] = None,
    ) -> TierResult:
        if self.scheme == "legacy":
            bonuses, penalties = None, None
        breakdown = compute_score(criteria, bonuses, penalties)
        tier = tier_for_score(breakdown.total, self.scheme)

        logger.debug(
            "rubric_scored",
            scheme=self.scheme,
            core=float(breakdown.core),
            bonus=float(breakdown.bonus),
            penalty=float(breakdown.penalty),
            total=float(breakdown.total),
            tier=tier.value,
        )
        return TierResult(breakdown=breakdown, tier=tier, scheme=self.scheme)

    def calculate_for(self, record: Any) -> TierResult:
        breakdown, tier = score_performer(record, self.scheme)
        return TierResult(breakdown=breakdown, tier=tier, scheme=self.scheme)

    def ladder(self) -> Tuple[Tuple[Decimal, Tier], ...]:
        return LADDERS[self.scheme]
