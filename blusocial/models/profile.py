"""Profile models shared by discovery, scoring and the Firestore adapters.

Stored documents use camelCase keys (``lookingFor``, ``discoveryRadius``);
the models expose snake_case attributes and accept either spelling.
"""

from __future__ import annotations

from enum import Enum
from math import isfinite
from numbers import Real
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

RELATIONSHIP_FIELDS = (
    "friends",
    "friend_requests_sent",
    "friend_requests_received",
    "suggested_matches",
)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    return _is_number(value) and isfinite(value)


class PresenceStatus(str, Enum):
    """Presence written by the client heartbeat; read-only here."""

    ONLINE = "online"
    OFFLINE = "offline"


class Location(BaseModel):
    """A point in decimal degrees. Range checks happen in utils.geo."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class Profile(BaseModel):
    """The subset of a user document the matching engine reads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    name: str = ""
    location: Optional[Location] = None
    interests: list[str] = Field(default_factory=list)
    looking_for: list[str] = Field(default_factory=list)
    age: Optional[int] = None
    discovery_radius: Optional[float] = None
    friends: list[str] = Field(default_factory=list)
    friend_requests_sent: list[str] = Field(default_factory=list)
    friend_requests_received: list[str] = Field(default_factory=list)
    suggested_matches: list[str] = Field(default_factory=list)
    status: PresenceStatus = PresenceStatus.OFFLINE
    fcm_tokens: list[str] = Field(default_factory=list)

    @field_validator("location", mode="before")
    @classmethod
    def _coerce_location(cls, value: Any) -> Any:
        # Half-written or non-numeric locations count as "no location".
        if not isinstance(value, dict):
            return value if isinstance(value, Location) else None
        lat, lng = value.get("lat"), value.get("lng")
        if not (_is_number(lat) and _is_number(lng)):
            return None
        return {"lat": lat, "lng": lng}

    @field_validator("age", mode="before")
    @classmethod
    def _coerce_age(cls, value: Any) -> Any:
        if not _is_finite_number(value):
            return None
        return int(value)

    @field_validator("discovery_radius", mode="before")
    @classmethod
    def _coerce_radius(cls, value: Any) -> Any:
        if not _is_finite_number(value):
            return None
        return float(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if value == PresenceStatus.ONLINE:
            return PresenceStatus.ONLINE
        return PresenceStatus.OFFLINE

    @field_validator(
        "interests",
        "looking_for",
        "friends",
        "friend_requests_sent",
        "friend_requests_received",
        "suggested_matches",
        "fcm_tokens",
        mode="before",
    )
    @classmethod
    def _string_list(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, str)]

    @model_validator(mode="after")
    def _normalize_relationship_sets(self) -> "Profile":
        for field in RELATIONSHIP_FIELDS:
            ids = [i for i in dict.fromkeys(getattr(self, field)) if i != self.id]
            setattr(self, field, ids)
        return self

    @classmethod
    def from_document(cls, doc_id: str, data: dict | None) -> "Profile":
        """Build a profile from a Firestore document id and payload."""

        return cls.model_validate({**(data or {}), "id": doc_id})

    def to_state(self, *, include_tokens: bool = False) -> dict[str, Any]:
        """JSON-safe dict for graph state. Push tokens are omitted by default."""

        exclude = None if include_tokens else {"fcm_tokens"}
        return self.model_dump(mode="json", exclude=exclude)

    @property
    def is_online(self) -> bool:
        return self.status is PresenceStatus.ONLINE


class ScoredCandidate(BaseModel):
    """A nearby profile with its distance and compatibility score."""

    model_config = ConfigDict(frozen=True)

    profile: Profile
    distance_km: float = Field(ge=0)
    score: float

    @property
    def id(self) -> str:
        return self.profile.id
