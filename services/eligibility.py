"""Receiver-side eligibility rules for incoming chat requests."""

import logging
from dataclasses import dataclass

from core.exceptions import NotFound
from core.geo import distance_km
from core.metrics import eligibility_fail_open_total
from services.profiles import RADIUS_KM, DistanceClass, GenderFilter, Profile
from services.stores import ProfileLookup

logger = logging.getLogger(__name__)

REASON_GENDER = "⚠️ This user only accepts chat requests from a specific gender."
REASON_SAME_REGION = "⚠️ This user only accepts chat requests from people in their region."
REASON_NOT_SAME_REGION = "⚠️ This user does not accept chat requests from people in their region."
REASON_LOCATION_REQUIRED = "⚠️ This user limits requests by distance. Set your location in your profile first."
REASON_DISTANCE = "⚠️ This user only accepts chat requests from within {radius:g} km."
REASON_AGE = "⚠️ This user only accepts chat requests from ages {min_age} to {max_age}."


@dataclass(frozen=True)
class Eligibility:
    """Outcome of an eligibility check. ``code`` identifies the failing rule."""

    allowed: bool
    reason: str | None = None
    code: str | None = None


ALLOWED = Eligibility(allowed=True)


def _deny(code: str, reason: str) -> Eligibility:
    return Eligibility(allowed=False, reason=reason, code=code)


def _check_distance(sender: Profile, receiver: Profile, distance: DistanceClass) -> Eligibility:
    if distance is DistanceClass.SAME_REGION:
        if sender.region is None or sender.region != receiver.region:
            return _deny("region", REASON_SAME_REGION)
    elif distance is DistanceClass.NOT_SAME_REGION:
        if sender.region is not None and sender.region == receiver.region:
            return _deny("region", REASON_NOT_SAME_REGION)
    elif distance in RADIUS_KM:
        if sender.location is None:
            return _deny("location_required", REASON_LOCATION_REQUIRED)
        if receiver.location is None:
            # Filter cannot be enforced without the receiver's own location
            return ALLOWED
        radius = RADIUS_KM[distance]
        km = distance_km(
            sender.location.latitude,
            sender.location.longitude,
            receiver.location.latitude,
            receiver.location.longitude,
        )
        if km > radius:
            return _deny("distance", REASON_DISTANCE.format(radius=radius))
    return ALLOWED


def evaluate(sender: Profile, receiver: Profile) -> Eligibility:
    """
    Apply the receiver's chat filter to the sender.

    Checks run in order gender, distance, age and stop at the first failure.
    A receiver with no filter set accepts everyone.
    """
    chat_filter = receiver.chat_filter
    if chat_filter.is_unset:
        return ALLOWED

    if chat_filter.gender is not None and chat_filter.gender is not GenderFilter.ALL:
        if sender.gender != chat_filter.gender.value:
            return _deny("gender", REASON_GENDER)

    if chat_filter.distance is not None:
        result = _check_distance(sender, receiver, chat_filter.distance)
        if not result.allowed:
            return result

    if chat_filter.has_age_band:
        if sender.age is None or not chat_filter.min_age <= sender.age <= chat_filter.max_age:
            return _deny(
                "age", REASON_AGE.format(min_age=chat_filter.min_age, max_age=chat_filter.max_age)
            )

    return ALLOWED


class EligibilityEvaluator:
    """Loads both profiles and evaluates the receiver's filter.

    Lookup failures allow the request: matchmaking stays available even when
    the profile store is not.
    """

    def __init__(self, profiles: ProfileLookup) -> None:
        self.profiles = profiles

    async def can_request(self, sender_id: int, receiver_id: int) -> Eligibility:
        try:
            receiver = await self.profiles.get_profile(receiver_id)
            sender = await self.profiles.get_profile(sender_id)
        except Exception:
            logger.exception(f"Eligibility lookup failed for {sender_id} -> {receiver_id}, allowing request")
            eligibility_fail_open_total.inc()
            return ALLOWED

        if receiver is None:
            raise NotFound(f"User {receiver_id} not found")
        if sender is None:
            raise NotFound(f"User {sender_id} not found")

        return evaluate(sender, receiver)
