"""Step-by-step builder for a user's chat request filter.

The draft lives in the caller's session (aiogram FSM data for the bot) and is
only written to the user record by :meth:`FilterConfigurator.confirm`.
"""

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from core.exceptions import FilterStepInvalid, LocationRequired
from core.metrics import chat_filters_saved_total
from services.profiles import RADIUS_KM, ChatFilter, DistanceClass, GenderFilter
from services.stores import FilterRepository, ProfileLookup

logger = logging.getLogger(__name__)

MIN_SELECTABLE_AGE = 13
MAX_SELECTABLE_AGE = 99
ANY_AGE = "all"


class FilterStep(str, Enum):
    GENDER = "gender"
    DISTANCE = "distance"
    AGE_MIN = "age_min"
    AGE_MAX = "age_max"
    CONFIRMATION = "confirmation"


_PREVIOUS_STEP = {
    FilterStep.GENDER: FilterStep.GENDER,
    FilterStep.DISTANCE: FilterStep.GENDER,
    FilterStep.AGE_MIN: FilterStep.DISTANCE,
    FilterStep.AGE_MAX: FilterStep.AGE_MIN,
    FilterStep.CONFIRMATION: FilterStep.AGE_MIN,
}


@dataclass(frozen=True)
class FilterDraft:
    """Wizard progress. Every step returns a new draft; failed steps leave it untouched."""

    step: FilterStep = FilterStep.GENDER
    gender: GenderFilter | None = None
    distance: DistanceClass | None = None
    min_age: int | None = None
    max_age: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["step"] = self.step.value
        data["gender"] = self.gender.value if self.gender else None
        data["distance"] = self.distance.value if self.distance else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "FilterDraft":
        if not data:
            return cls()
        return cls(
            step=FilterStep(data.get("step", FilterStep.GENDER.value)),
            gender=GenderFilter(data["gender"]) if data.get("gender") else None,
            distance=DistanceClass(data["distance"]) if data.get("distance") else None,
            min_age=data.get("min_age"),
            max_age=data.get("max_age"),
        )

    def to_filter(self, visible: bool) -> ChatFilter:
        return ChatFilter(
            gender=self.gender,
            distance=self.distance,
            min_age=self.min_age,
            max_age=self.max_age,
            visible=visible,
        )


def _expect(draft: FilterDraft, *steps: FilterStep) -> None:
    if draft.step not in steps:
        raise FilterStepInvalid(f"Unexpected input at step {draft.step.value}")


def _parse_age(value: int | str) -> int:
    try:
        age = int(value)
    except (TypeError, ValueError):
        raise FilterStepInvalid(f"Invalid age: {value!r}") from None
    if not MIN_SELECTABLE_AGE <= age <= MAX_SELECTABLE_AGE:
        raise FilterStepInvalid(f"Age must be between {MIN_SELECTABLE_AGE} and {MAX_SELECTABLE_AGE}")
    return age


class FilterConfigurator:
    """Gender -> distance -> age band -> confirmation."""

    def __init__(self, profiles: ProfileLookup, filters: FilterRepository) -> None:
        self.profiles = profiles
        self.filters = filters

    def start(self) -> FilterDraft:
        return FilterDraft()

    def select_gender(self, draft: FilterDraft, choice: str) -> FilterDraft:
        _expect(draft, FilterStep.GENDER)
        try:
            gender = GenderFilter(choice)
        except ValueError:
            raise FilterStepInvalid(f"Invalid gender filter: {choice!r}") from None
        return replace(draft, gender=gender, step=FilterStep.DISTANCE)

    async def select_distance(self, draft: FilterDraft, user_id: int, choice: str) -> FilterDraft:
        _expect(draft, FilterStep.DISTANCE)
        try:
            distance = DistanceClass(choice)
        except ValueError:
            raise FilterStepInvalid(f"Invalid distance filter: {choice!r}") from None

        if distance in RADIUS_KM:
            profile = await self.profiles.get_profile(user_id)
            if profile is None or profile.location is None:
                raise LocationRequired("Set your location in your profile to use a distance filter.")

        return replace(draft, distance=distance, step=FilterStep.AGE_MIN)

    def select_age(self, draft: FilterDraft, value: int | str) -> FilterDraft:
        """
        Record one bound of the age band.

        The first call sets the minimum, the second the maximum. ``"all"`` at
        either call clears both bounds and moves straight to confirmation.
        """
        _expect(draft, FilterStep.AGE_MIN, FilterStep.AGE_MAX)

        if value == ANY_AGE:
            return replace(draft, min_age=None, max_age=None, step=FilterStep.CONFIRMATION)

        age = _parse_age(value)
        if draft.step is FilterStep.AGE_MIN:
            return replace(draft, min_age=age, max_age=None, step=FilterStep.AGE_MAX)

        if draft.min_age is not None and age < draft.min_age:
            raise FilterStepInvalid("Maximum age must not be lower than minimum age.")
        return replace(draft, max_age=age, step=FilterStep.CONFIRMATION)

    def back(self, draft: FilterDraft) -> FilterDraft:
        return replace(draft, step=_PREVIOUS_STEP[draft.step])

    async def confirm(self, draft: FilterDraft, user_id: int, visible: bool) -> ChatFilter:
        _expect(draft, FilterStep.CONFIRMATION)
        chat_filter = draft.to_filter(visible)
        await self.filters.save_filter(user_id, chat_filter)

        chat_filters_saved_total.labels(visible=str(visible).lower()).inc()
        logger.info(f"Chat filter saved for user {user_id}: {chat_filter}")
        return chat_filter

    async def reset(self, user_id: int) -> None:
        """Clear every filter field; the user accepts everyone again."""
        await self.filters.save_filter(user_id, ChatFilter())
        logger.info(f"Chat filter cleared for user {user_id}")


_GENDER_TEXT = {
    GenderFilter.MALE: "Only men",
    GenderFilter.FEMALE: "Only women",
}

_DISTANCE_TEXT = {
    DistanceClass.SAME_REGION: "from the same region",
    DistanceClass.NOT_SAME_REGION: "from other regions",
    DistanceClass.WITHIN_100KM: "within 100 km",
    DistanceClass.WITHIN_10KM: "within 10 km",
}


def describe_filter(chat_filter: ChatFilter) -> str:
    """One-line summary shown on the confirmation step and on visible profiles."""
    gender_text = _GENDER_TEXT.get(chat_filter.gender, "Everyone")
    distance_text = _DISTANCE_TEXT.get(chat_filter.distance, "at any distance")
    if chat_filter.has_age_band:
        age_text = f"aged {chat_filter.min_age} to {chat_filter.max_age}"
    else:
        age_text = "of any age"
    return f"📋 {gender_text} {distance_text} {age_text} can send this user a chat request."
