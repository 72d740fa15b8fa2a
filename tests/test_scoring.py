# tests/test_scoring.py

"""
Scoring Engine Tests - rubric score, tier ladder boundaries and coercion
"""

import math
from decimal import Decimal

import pytest

from djrank.models.enumerations import Tier
from djrank.models.performer import PerformerResponse
from djrank.scoring.tier_calculator import (
    EXTENDED_LADDER,
    LEGACY_LADDER,
    TierCalculator,
    compute_score,
    score_performer,
    tier_for_score,
)
from djrank.scoring.utils import clamp, coerce_criterion, coerce_flag


ALL_THREES = {"flow": 3, "vibes": 3, "visuals": 3, "creativity": 3}
ALL_BONUSES = {
    "bonus_crowd_control": True,
    "bonus_signature_moment": True,
    "bonus_bold_risks": True,
}
ALL_PENALTIES = {
    "penalty_cliche_tracks": True,
    "penalty_overreliance": True,
    "penalty_poor_energy": True,
}


class TestTierLadderBoundaries:
    """Literal thresholds of the extended ladder."""

    @pytest.mark.parametrize(
        "total, expected",
        [
            (13.0, Tier.S),
            (12.99, Tier.A),
            (11.0, Tier.A),
            (10.99, Tier.B),
            (9.0, Tier.B),
            (8.99, Tier.C),
            (7.0, Tier.C),
            (5.0, Tier.D),
            (4.99, Tier.E),
            (3.0, Tier.E),
            (2.99, Tier.F),
            (0, Tier.F),
            (-1.5, Tier.F),
            (13.5, Tier.S),
        ],
    )
    def test_threshold(self, total, expected):
        assert tier_for_score(total) == expected

    def test_decimal_input(self):
        assert tier_for_score(Decimal("11.0")) == Tier.A

    @pytest.mark.parametrize("garbage", [float("nan"), "garbage", None, "", object(), [1, 2]])
    def test_unparseable_input_is_f(self, garbage):
        assert tier_for_score(garbage) == Tier.F

    def test_infinities(self):
        assert tier_for_score(math.inf) == Tier.S
        assert tier_for_score(-math.inf) == Tier.F

    def test_numeric_string(self):
        assert tier_for_score("9.5") == Tier.B

    def test_ladders_are_distinct(self):
        assert EXTENDED_LADDER != LEGACY_LADDER
        assert EXTENDED_LADDER[0] == (Decimal("13.0"), Tier.S)
        assert LEGACY_LADDER[0] == (Decimal("11"), Tier.S)


class TestComputeScore:
    """Core, bonus and penalty arithmetic."""

    def test_perfect_core_no_flags_is_a(self):
        breakdown = compute_score(ALL_THREES)
        assert breakdown.core == Decimal("12")
        assert breakdown.bonus == 0
        assert breakdown.penalty == 0
        assert breakdown.total == Decimal("12.0")
        assert tier_for_score(breakdown.total) == Tier.A

    def test_perfect_core_one_bonus_is_a(self):
        breakdown = compute_score(ALL_THREES, {"bonus_crowd_control": True})
        assert breakdown.total == Decimal("12.5")
        assert tier_for_score(breakdown.total) == Tier.A

    def test_two_bonuses_one_penalty_is_a(self):
        breakdown = compute_score(
            ALL_THREES,
            {"bonus_crowd_control": True, "bonus_signature_moment": True},
            {"penalty_cliche_tracks": True},
        )
        assert breakdown.bonus == Decimal("1.0")
        assert breakdown.penalty == Decimal("-0.5")
        assert breakdown.total == Decimal("12.5")
        assert tier_for_score(breakdown.total) == Tier.A

    def test_perfect_core_all_bonuses_is_s(self):
        breakdown = compute_score(ALL_THREES, ALL_BONUSES)
        assert breakdown.bonus == Decimal("1.5")
        assert breakdown.total == Decimal("13.5")
        assert tier_for_score(breakdown.total) == Tier.S

    def test_penalties_subtract(self):
        breakdown = compute_score(ALL_THREES, ALL_BONUSES, ALL_PENALTIES)
        assert breakdown.penalty == Decimal("-1.5")
        assert breakdown.total == Decimal("12.0")

    def test_penalties_alone(self):
        breakdown = compute_score(ALL_THREES, penalties=ALL_PENALTIES)
        assert breakdown.total == Decimal("10.5")
        assert tier_for_score(breakdown.total) == Tier.B

    def test_zero_penalty_is_not_negative_zero(self):
        breakdown = compute_score(ALL_THREES)
        assert math.copysign(1.0, breakdown.as_dict()["penalty"]) == 1.0

    def test_short_flag_names_are_accepted(self):
        breakdown = compute_score(ALL_THREES, {"crowd_control": True}, {"poor_energy": "true"})
        assert breakdown.bonus == Decimal("0.5")
        assert breakdown.penalty == Decimal("-0.5")

    def test_unknown_flags_ignored(self):
        breakdown = compute_score(ALL_THREES, {"bonus_costume": True})
        assert breakdown.bonus == 0

    def test_as_dict(self):
        assert compute_score(ALL_THREES, ALL_BONUSES).as_dict() == {
            "core": 12.0,
            "bonus": 1.5,
            "penalty": 0.0,
            "total": 13.5,
        }


class TestCoercion:
    """Malformed input is clamped or defaulted, never rejected."""

    def test_out_of_range_criteria_clamped(self):
        breakdown = compute_score({"flow": 5, "vibes": -1})
        assert breakdown.core == Decimal("3")

    def test_missing_and_garbage_criteria_are_zero(self):
        breakdown = compute_score({"flow": "abc", "vibes": None, "visuals": float("nan")})
        assert breakdown.core == 0

    @pytest.mark.parametrize("criteria", [None, "flow=3", 42, ["flow"]])
    def test_non_mapping_criteria(self, criteria):
        assert compute_score(criteria).total == 0

    def test_non_mapping_flags(self):
        assert compute_score(ALL_THREES, "all", ["bonus_bold_risks"]).total == Decimal("12.0")

    def test_legacy_guests_read_as_creativity(self):
        breakdown = compute_score({"flow": 1, "vibes": 1, "visuals": 1, "guests": 2})
        assert breakdown.core == Decimal("5")

    def test_creativity_wins_over_guests(self):
        breakdown = compute_score({"creativity": 1, "guests": 3})
        assert breakdown.core == Decimal("1")

    @pytest.mark.parametrize(
        "value, expected",
        [(None, 0), ("2", 2), (2.9, 2), (3.5, 3), (-0.1, 0), ("x", 0), (True, 1), (math.inf, 3),
         (-math.inf, 0), (10**400, 3), (-(10**400), 0), ("1" + "0" * 400, 3), (Decimal("2.5"), 2)],
    )
    def test_coerce_criterion(self, value, expected):
        assert coerce_criterion(value) == expected

    def test_huge_integer_ratings_clamp(self):
        breakdown = compute_score({"flow": 10**400, "vibes": 3, "visuals": -(10**400)})
        assert breakdown.core == Decimal("6")

    @pytest.mark.parametrize(
        "value, expected",
        [(True, True), (False, False), (None, False), ("true", True), ("FALSE", False),
         ("1", True), ("0", False), (1, True), (0, False), (float("nan"), False)],
    )
    def test_coerce_flag(self, value, expected):
        assert coerce_flag(value) is expected

    def test_clamp(self):
        assert clamp(Decimal("4")) == Decimal("3")
        assert clamp(Decimal("-2")) == Decimal("0")
        assert clamp(Decimal("1.5")) == Decimal("1.5")


class TestScorePerformer:
    """Scoring stored records and models."""

    def test_record_dict(self):
        record = {"id": "1", "name": "DJ", "criteria": ALL_THREES, **ALL_BONUSES}
        breakdown, tier = score_performer(record)
        assert breakdown.total == Decimal("13.5")
        assert tier == Tier.S

    def test_pydantic_model(self):
        model = PerformerResponse(id="1", name="DJ", criteria=ALL_THREES, bonus_bold_risks=True)
        breakdown, tier = score_performer(model)
        assert breakdown.total == Decimal("12.5")
        assert tier == Tier.A

    def test_record_without_rubric(self):
        breakdown, tier = score_performer({"id": "1", "name": "DJ", "criteria": None})
        assert breakdown.total == 0
        assert tier == Tier.F

    def test_not_a_record(self):
        assert score_performer(None)[1] == Tier.F


class TestLegacyScheme:
    """Four-criterion 0-12 ladder, only when selected."""

    @pytest.mark.parametrize(
        "total, expected",
        [(12, Tier.S), (11, Tier.S), (10, Tier.A), (9, Tier.A), (8, Tier.B), (7, Tier.B),
         (5, Tier.C), (3, Tier.D), (1, Tier.E), (0, Tier.F)],
    )
    def test_legacy_thresholds(self, total, expected):
        assert tier_for_score(total, "legacy") == expected

    def test_legacy_ignores_flags(self):
        result = TierCalculator("legacy").calculate(ALL_THREES, ALL_BONUSES, ALL_PENALTIES)
        assert result.breakdown.total == Decimal("12")
        assert result.tier == Tier.S

    def test_default_scheme_is_extended(self):
        result = TierCalculator().calculate(ALL_THREES)
        assert result.scheme == "extended"
        assert result.tier == Tier.A

    def test_unknown_scheme_rejected(self):
        with pytest.raises(ValueError):
            TierCalculator("weighted")

    def test_calculate_for_record(self):
        record = {"criteria": {"flow": 2, "vibes": 2, "visuals": 2, "creativity": 2}}
        assert TierCalculator("legacy").calculate_for(record).tier == Tier.B
        assert TierCalculator("extended").calculate_for(record).tier == Tier.C
