from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from djrank.models.enumerations import QUEUE, Bonus, Criterion, MediaKind, Penalty, Tier
from djrank.scoring.utils import coerce_criterion, coerce_flag

CRITERIA_FIELDS = [c.value for c in Criterion]
FLAG_FIELDS = [b.value for b in Bonus] + [p.value for p in Penalty]


class Rubric(BaseModel):
    """
    The four 0-3 criteria ratings of a performer.

    Input is coerced rather than rejected: missing and non-numeric ratings
    become 0 and out-of-range ratings are clamped.
    """

    flow: int = Field(default=0, ge=0, le=3, description="Mixing and track flow")
    vibes: int = Field(default=0, ge=0, le=3, description="Energy and mood")
    visuals: int = Field(default=0, ge=0, le=3, description="Stage presence and visuals")
    creativity: int = Field(default=0, ge=0, le=3, description="Selection and creativity")

    @model_validator(mode="before")
    @classmethod
    def coerce_ratings(cls, values: Any) -> Dict[str, int]:
        if isinstance(values, BaseModel):
            values = values.model_dump()
        if not isinstance(values, dict):
            values = {}
        data = dict(values)
        # Records older than criteria v2 rate "guests" instead of "creativity"
        if data.get("creativity") is None and "guests" in data:
            data["creativity"] = data["guests"]
        return {name: coerce_criterion(data.get(name)) for name in CRITERIA_FIELDS}


def _coerce_optional_flag(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return coerce_flag(value)


def _queue_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip().lower() == QUEUE:
        return None
    return value


class PerformerBase(BaseModel):
    """
    Fields shared by performer create payloads and responses.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Performer name")
    bio: Optional[str] = None
    image: Optional[str] = Field(default=None, description="Image reference (URL)")

    soundcloud_url: Optional[str] = None
    spotify_url: Optional[str] = None
    apple_music_url: Optional[str] = None

    tier: Optional[Tier] = Field(default=None, description="Tier label, null while queued")
    criteria: Rubric = Field(default_factory=Rubric)
    notes: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)

    bonus_crowd_control: bool = False
    bonus_signature_moment: bool = False
    bonus_bold_risks: bool = False
    penalty_cliche_tracks: bool = False
    penalty_overreliance: bool = False
    penalty_poor_energy: bool = False

    event_venue: Optional[str] = None
    event_city: Optional[str] = None
    event_date: Optional[date] = None
    event_type: Optional[str] = None
    event_slot: Optional[str] = None
    set_duration: Optional[str] = None

    @field_validator(*FLAG_FIELDS, mode="before")
    @classmethod
    def coerce_flags(cls, value: Any) -> bool:
        return coerce_flag(value)

    @field_validator("criteria", mode="before")
    @classmethod
    def default_criteria(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("photos", "videos", mode="before")
    @classmethod
    def default_media(cls, value: Any) -> Any:
        return [] if value is None else value


class PerformerCreate(PerformerBase):
    """
    Payload for creating a performer. The id is optional; the store assigns one.
    """

    id: Optional[str] = Field(default=None, min_length=1, max_length=64)

    @classmethod
    def from_search_result(cls, artist: Dict[str, Any]) -> "PerformerCreate":
        """
        Build a queued performer from an external artist search hit.

        The hit carries name, image, bio, url and source ("soundcloud" or
        "spotify"); the url lands in the matching profile link.
        """
        source = (artist.get("source") or "").lower()
        url = artist.get("url")
        return cls(
            name=artist.get("name") or "Unknown artist",
            bio=artist.get("bio") or None,
            image=artist.get("image") or None,
            soundcloud_url=url if source == "soundcloud" else None,
            spotify_url=url if source == "spotify" else None,
            tier=None,
            criteria=Rubric(),
        )


class PerformerUpdate(BaseModel):
    """
    Partial update. Only fields present in the payload are written.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    bio: Optional[str] = None
    image: Optional[str] = None
    soundcloud_url: Optional[str] = None
    spotify_url: Optional[str] = None
    apple_music_url: Optional[str] = None
    tier: Optional[Tier] = None
    criteria: Optional[Rubric] = None
    notes: Optional[str] = None
    photos: Optional[List[str]] = None
    videos: Optional[List[str]] = None

    bonus_crowd_control: Optional[bool] = None
    bonus_signature_moment: Optional[bool] = None
    bonus_bold_risks: Optional[bool] = None
    penalty_cliche_tracks: Optional[bool] = None
    penalty_overreliance: Optional[bool] = None
    penalty_poor_energy: Optional[bool] = None

    event_venue: Optional[str] = None
    event_city: Optional[str] = None
    event_date: Optional[date] = None
    event_type: Optional[str] = None
    event_slot: Optional[str] = None
    set_duration: Optional[str] = None

    @field_validator(*FLAG_FIELDS, mode="before")
    @classmethod
    def coerce_flags(cls, value: Any) -> Optional[bool]:
        return _coerce_optional_flag(value)

    @field_validator("tier", mode="before")
    @classmethod
    def queue_means_none(cls, value: Any) -> Any:
        return _queue_to_none(value)

    def to_fields(self) -> Dict[str, Any]:
        """Fields explicitly sent by the caller, JSON-ready."""
        return self.model_dump(mode="json", exclude_unset=True)


class ScoreBreakdownResponse(BaseModel):
    core: float
    bonus: float
    penalty: float
    total: float
    suggested_tier: Tier
    scheme: str = "extended"


class PerformerResponse(PerformerBase):
    """
    Performer as returned by the API, with its computed score.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    score: Optional[ScoreBreakdownResponse] = None


class CacheInfo(BaseModel):
    """Cache metadata for debugging - shows if Redis is working."""
    hit: bool
    source: str
    key: str
    latency_ms: float
    ttl_seconds: int


class PerformerListResponse(BaseModel):
    """Response for listing performers, newest first."""
    items: List[PerformerResponse]
    total: int
    cache: Optional[CacheInfo] = None


class MediaAttachRequest(BaseModel):
    kind: MediaKind
    reference: str = Field(..., min_length=1, max_length=2048)


class TierPlacementRequest(BaseModel):
    tier: Optional[Tier] = Field(default=None, description="Target tier; null moves to the queue")

    @field_validator("tier", mode="before")
    @classmethod
    def queue_means_none(cls, value: Any) -> Any:
        return _queue_to_none(value)


class RubricScoreRequest(BaseModel):
    """Ad hoc rubric for the scoring endpoint."""
    criteria: Rubric = Field(default_factory=Rubric)
    bonuses: Dict[str, Any] = Field(default_factory=dict)
    penalties: Dict[str, Any] = Field(default_factory=dict)


class TierThreshold(BaseModel):
    tier: Tier
    min_score: float


class TierLadderResponse(BaseModel):
    scheme: str
    thresholds: List[TierThreshold]
    fallback: Tier = Tier.F


class PlacementIndexResponse(BaseModel):
    queue: List[str]
    tiers: Dict[str, List[str]]
    total: int


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
