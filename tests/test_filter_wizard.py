import pytest

from conftest import SEOUL, make_profile
from core.exceptions import FilterStepInvalid, LocationRequired
from services.filter_wizard import FilterConfigurator, FilterDraft, FilterStep, describe_filter
from services.memory_store import InMemoryStore
from services.profiles import ChatFilter, DistanceClass, GenderFilter


@pytest.fixture
def wizard_store() -> InMemoryStore:
    store = InMemoryStore()
    store.add_profile(make_profile(1, location=SEOUL))
    store.add_profile(make_profile(2, location=None))
    return store


@pytest.fixture
def configurator(wizard_store: InMemoryStore) -> FilterConfigurator:
    return FilterConfigurator(profiles=wizard_store, filters=wizard_store)


async def test_full_wizard_saves_filter(configurator, wizard_store):
    draft = configurator.start()
    draft = configurator.select_gender(draft, "female")
    draft = await configurator.select_distance(draft, 1, "within_10km")
    draft = configurator.select_age(draft, 20)
    assert draft.step is FilterStep.AGE_MAX
    draft = configurator.select_age(draft, "30")
    assert draft.step is FilterStep.CONFIRMATION

    saved = await configurator.confirm(draft, 1, visible=True)

    assert saved == ChatFilter(
        gender=GenderFilter.FEMALE, distance=DistanceClass.WITHIN_10KM, min_age=20, max_age=30, visible=True
    )
    assert wizard_store.profiles[1].chat_filter == saved


async def test_radius_without_location_is_rejected_and_step_repeats(configurator):
    draft = configurator.select_gender(configurator.start(), "all")

    with pytest.raises(LocationRequired):
        await configurator.select_distance(draft, 2, "within_100km")

    assert draft.step is FilterStep.DISTANCE
    region_draft = await configurator.select_distance(draft, 2, "same_region")
    assert region_draft.distance is DistanceClass.SAME_REGION


async def test_any_age_skips_to_confirmation(configurator):
    draft = configurator.select_gender(configurator.start(), "male")
    draft = await configurator.select_distance(draft, 1, "all")

    draft = configurator.select_age(draft, "all")

    assert draft.step is FilterStep.CONFIRMATION
    assert draft.min_age is None and draft.max_age is None


async def test_any_age_at_max_step_clears_min(configurator):
    draft = configurator.select_gender(configurator.start(), "male")
    draft = await configurator.select_distance(draft, 1, "all")
    draft = configurator.select_age(draft, 25)

    draft = configurator.select_age(draft, "all")

    assert draft.min_age is None and draft.max_age is None


async def test_max_below_min_is_rejected(configurator):
    draft = configurator.select_gender(configurator.start(), "male")
    draft = await configurator.select_distance(draft, 1, "all")
    draft = configurator.select_age(draft, 40)

    with pytest.raises(FilterStepInvalid):
        configurator.select_age(draft, 30)

    assert configurator.select_age(draft, 40).max_age == 40


@pytest.mark.parametrize("value", [12, 100, "abc"])
def test_out_of_range_age_is_rejected(configurator, value):
    draft = FilterDraft(step=FilterStep.AGE_MIN)

    with pytest.raises(FilterStepInvalid):
        configurator.select_age(draft, value)


def test_out_of_order_input_is_rejected(configurator):
    with pytest.raises(FilterStepInvalid):
        configurator.select_age(configurator.start(), 20)


def test_invalid_gender_is_rejected(configurator):
    with pytest.raises(FilterStepInvalid):
        configurator.select_gender(configurator.start(), "robot")


async def test_back_keeps_choices(configurator):
    draft = configurator.select_gender(configurator.start(), "female")
    draft = await configurator.select_distance(draft, 1, "same_region")

    draft = configurator.back(draft)

    assert draft.step is FilterStep.DISTANCE
    assert draft.gender is GenderFilter.FEMALE
    assert configurator.back(configurator.back(draft)).step is FilterStep.GENDER


async def test_confirm_before_last_step_is_rejected(configurator):
    with pytest.raises(FilterStepInvalid):
        await configurator.confirm(configurator.start(), 1, visible=False)


async def test_reset_clears_filter(configurator, wizard_store):
    draft = FilterDraft(step=FilterStep.CONFIRMATION, gender=GenderFilter.MALE, min_age=20, max_age=30)
    await configurator.confirm(draft, 1, visible=True)

    await configurator.reset(1)

    assert wizard_store.profiles[1].chat_filter.is_unset


def test_draft_survives_dict_round_trip():
    draft = FilterDraft(step=FilterStep.AGE_MAX, gender=GenderFilter.ALL, distance=DistanceClass.ALL, min_age=18)

    assert FilterDraft.from_dict(draft.to_dict()) == draft
    assert FilterDraft.from_dict(None) == FilterDraft()


def test_describe_filter():
    assert describe_filter(ChatFilter()) == "📋 Everyone at any distance of any age can send this user a chat request."
    text = describe_filter(
        ChatFilter(gender=GenderFilter.FEMALE, distance=DistanceClass.WITHIN_10KM, min_age=20, max_age=30)
    )
    assert text == "📋 Only women within 10 km aged 20 to 30 can send this user a chat request."
