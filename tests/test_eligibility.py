import pytest

from conftest import BUSAN, INCHEON, SEOUL, make_profile
from core.exceptions import NotFound
from services import eligibility
from services.eligibility import EligibilityEvaluator, evaluate
from services.memory_store import InMemoryStore
from services.profiles import ChatFilter, DistanceClass, GenderFilter


def receiver_with(chat_filter: ChatFilter, **kwargs):
    kwargs.setdefault("location", SEOUL)
    return make_profile(2, chat_filter=chat_filter, **kwargs)


@pytest.mark.parametrize(
    "sender",
    [
        make_profile(1),
        make_profile(1, gender=None, age=None, region=None),
        make_profile(1, gender="female", age=99, region="Busan", location=BUSAN),
    ],
)
def test_unset_filter_allows_everyone(sender):
    assert evaluate(sender, make_profile(2)).allowed


def test_gender_mismatch_denied():
    receiver = receiver_with(ChatFilter(gender=GenderFilter.FEMALE))

    result = evaluate(make_profile(1, gender="male"), receiver)

    assert not result.allowed
    assert result.code == "gender"


def test_gender_all_allows_any_gender():
    receiver = receiver_with(ChatFilter(gender=GenderFilter.ALL))

    assert evaluate(make_profile(1, gender=None), receiver).allowed


def test_same_region():
    receiver = receiver_with(ChatFilter(distance=DistanceClass.SAME_REGION), region="Seoul")

    assert evaluate(make_profile(1, region="Seoul"), receiver).allowed
    assert evaluate(make_profile(1, region="Busan"), receiver).code == "region"
    assert evaluate(make_profile(1, region=None), receiver).code == "region"


def test_not_same_region():
    receiver = receiver_with(ChatFilter(distance=DistanceClass.NOT_SAME_REGION), region="Seoul")

    assert evaluate(make_profile(1, region="Busan"), receiver).allowed
    assert evaluate(make_profile(1, region=None), receiver).allowed
    assert evaluate(make_profile(1, region="Seoul"), receiver).code == "region"


@pytest.mark.parametrize("distance", [DistanceClass.WITHIN_10KM, DistanceClass.WITHIN_100KM])
def test_radius_without_sender_location_requires_location(distance):
    receiver = receiver_with(ChatFilter(distance=distance))

    result = evaluate(make_profile(1, location=None), receiver)

    assert not result.allowed
    assert result.code == "location_required"


def test_radius_without_receiver_location_allows():
    receiver = receiver_with(ChatFilter(distance=DistanceClass.WITHIN_10KM), location=None)

    assert evaluate(make_profile(1, location=BUSAN), receiver).allowed


@pytest.mark.parametrize(
    "distance,km,allowed",
    [
        (DistanceClass.WITHIN_10KM, 9.99, True),
        (DistanceClass.WITHIN_10KM, 10.0, True),
        (DistanceClass.WITHIN_10KM, 10.01, False),
        (DistanceClass.WITHIN_100KM, 100.0, True),
        (DistanceClass.WITHIN_100KM, 100.5, False),
    ],
)
def test_radius_boundary_is_inclusive(monkeypatch, distance, km, allowed):
    monkeypatch.setattr(eligibility, "distance_km", lambda *args: km)
    receiver = receiver_with(ChatFilter(distance=distance))

    result = evaluate(make_profile(1, location=INCHEON), receiver)

    assert result.allowed is allowed
    if not allowed:
        assert result.code == "distance"


def test_real_distances():
    near = receiver_with(ChatFilter(distance=DistanceClass.WITHIN_100KM))
    close = receiver_with(ChatFilter(distance=DistanceClass.WITHIN_10KM))

    # Seoul to Incheon is about 27 km
    assert evaluate(make_profile(1, location=INCHEON), near).allowed
    assert not evaluate(make_profile(1, location=INCHEON), close).allowed
    assert not evaluate(make_profile(1, location=BUSAN), near).allowed


@pytest.mark.parametrize(
    "age,allowed",
    [(19, False), (20, True), (25, True), (30, True), (31, False), (None, False)],
)
def test_age_band_inclusive(age, allowed):
    receiver = receiver_with(ChatFilter(min_age=20, max_age=30))

    result = evaluate(make_profile(1, age=age), receiver)

    assert result.allowed is allowed
    if not allowed:
        assert result.code == "age"


def test_half_set_age_band_is_ignored():
    receiver = receiver_with(ChatFilter(gender=GenderFilter.ALL, min_age=20))

    assert evaluate(make_profile(1, age=15), receiver).allowed


def test_gender_checked_before_age():
    receiver = receiver_with(ChatFilter(gender=GenderFilter.FEMALE, min_age=20, max_age=30))

    assert evaluate(make_profile(1, gender="male", age=50), receiver).code == "gender"


class BrokenProfiles:
    async def get_profile(self, user_id):
        raise ConnectionError("profile store unavailable")


async def test_lookup_failure_fails_open():
    result = await EligibilityEvaluator(BrokenProfiles()).can_request(1, 2)

    assert result.allowed


async def test_unknown_users_raise_not_found():
    store = InMemoryStore()
    store.add_profile(make_profile(1))
    evaluator = EligibilityEvaluator(store)

    with pytest.raises(NotFound):
        await evaluator.can_request(1, 99)
    with pytest.raises(NotFound):
        await evaluator.can_request(99, 1)
