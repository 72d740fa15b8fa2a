from enum import Enum


class Tier(str, Enum):
    """Rank buckets, most to least exclusive."""
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)


TIER_ORDER = list(Tier)

# Placement bucket for performers without a tier
QUEUE = "queue"


class Criterion(str, Enum):
    FLOW = "flow"
    VIBES = "vibes"
    VISUALS = "visuals"
    CREATIVITY = "creativity"


class Bonus(str, Enum):
    CROWD_CONTROL = "bonus_crowd_control"          # Reads and steers the room
    SIGNATURE_MOMENT = "bonus_signature_moment"    # A moment people talk about after
    BOLD_RISKS = "bonus_bold_risks"                # Takes risks that land


class Penalty(str, Enum):
    CLICHE_TRACKS = "penalty_cliche_tracks"
    OVERRELIANCE = "penalty_overreliance"
    POOR_ENERGY = "penalty_poor_energy"


class MediaKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
