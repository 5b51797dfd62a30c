"""Profile and chat filter value types shared by the matchmaking services."""

from dataclasses import dataclass, field
from enum import Enum

from core.geo import GeoPoint


class GenderFilter(str, Enum):
    MALE = "male"
    FEMALE = "female"
    ALL = "all"


class DistanceClass(str, Enum):
    SAME_REGION = "same_region"
    NOT_SAME_REGION = "not_same_region"
    WITHIN_100KM = "within_100km"
    WITHIN_10KM = "within_10km"
    ALL = "all"


RADIUS_KM: dict[DistanceClass, float] = {
    DistanceClass.WITHIN_100KM: 100.0,
    DistanceClass.WITHIN_10KM: 10.0,
}


@dataclass(frozen=True)
class ChatFilter:
    """Receiver-owned rules for who may send them a chat request. None means unset."""

    gender: GenderFilter | None = None
    distance: DistanceClass | None = None
    min_age: int | None = None
    max_age: int | None = None
    visible: bool = False

    def __post_init__(self) -> None:
        # Accept raw strings from FSM data and request bodies
        if self.gender is not None:
            object.__setattr__(self, "gender", GenderFilter(self.gender))
        if self.distance is not None:
            object.__setattr__(self, "distance", DistanceClass(self.distance))

    @property
    def is_unset(self) -> bool:
        return self.gender is None and self.distance is None and self.min_age is None and self.max_age is None

    @property
    def has_age_band(self) -> bool:
        return self.min_age is not None and self.max_age is not None


@dataclass(frozen=True)
class Profile:
    """What the matchmaking core needs to know about a user."""

    user_id: int
    gender: str | None
    age: int | None
    region: str | None
    location: GeoPoint | None = None
    chat_filter: ChatFilter = field(default_factory=ChatFilter)
