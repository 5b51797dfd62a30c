"""Chat filter wizard handlers."""

import logging

from aiogram import F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message
from sqlalchemy.ext.asyncio import AsyncSession

from apps.bot.deps import get_filter_configurator, get_user_by_tg
from apps.bot.keyboards.inline import (
    get_filter_age_keyboard,
    get_filter_confirm_keyboard,
    get_filter_distance_keyboard,
    get_filter_gender_keyboard,
)
from apps.bot.states.chat_filter import ChatFilterForm
from core.exceptions import FilterStepInvalid, NotFound
from services.filter_wizard import FilterDraft, FilterStep, describe_filter

router = Router()
logger = logging.getLogger(__name__)

INTRO = "🎛 With the chat filter you choose which gender, distance and age range can send you chat requests."

NO_PROFILE = "❌ You need a profile before setting up a chat filter."

STEP_STATES: dict[FilterStep, State] = {
    FilterStep.GENDER: ChatFilterForm.gender,
    FilterStep.DISTANCE: ChatFilterForm.distance,
    FilterStep.AGE_MIN: ChatFilterForm.age_min,
    FilterStep.AGE_MAX: ChatFilterForm.age_max,
    FilterStep.CONFIRMATION: ChatFilterForm.confirmation,
}


def render_step(draft: FilterDraft) -> tuple[str, InlineKeyboardMarkup]:
    """Text and keyboard for the draft's current step."""
    if draft.step is FilterStep.GENDER:
        return f"{INTRO}\n\nStep 1 (gender):\nWho can send you chat requests?", get_filter_gender_keyboard()

    if draft.step is FilterStep.DISTANCE:
        return (
            f"{INTRO}\n\nStep 2 (distance):\nHow far away can people be to send you chat requests?",
            get_filter_distance_keyboard(),
        )

    if draft.step is FilterStep.AGE_MIN:
        return (
            f"{INTRO}\n\nStep 3 (age):\nWhat ages can send you chat requests?\n\n⚠️ Choose the minimum age first:",
            get_filter_age_keyboard(),
        )

    if draft.step is FilterStep.AGE_MAX:
        return (
            f"{INTRO}\n\nStep 3 (age):\n✅ Minimum age: {draft.min_age}\n⚠️ Now choose the maximum age:",
            get_filter_age_keyboard(),
        )

    preview = describe_filter(draft.to_filter(visible=False))
    return (
        f"{INTRO}\n\nFinal step:\nShould this text be shown under your profile?\n\n{preview}",
        get_filter_confirm_keyboard(),
    )


async def load_draft(state: FSMContext) -> FilterDraft:
    data = await state.get_data()
    return FilterDraft.from_dict(data.get("chat_filter"))


async def save_draft(state: FSMContext, draft: FilterDraft) -> None:
    await state.set_state(STEP_STATES[draft.step])
    await state.update_data(chat_filter=draft.to_dict())


async def show_step(callback: CallbackQuery, state: FSMContext, draft: FilterDraft) -> None:
    await save_draft(state, draft)
    text, keyboard = render_step(draft)
    await callback.message.edit_text(text, reply_markup=keyboard)


@router.message(Command("filter"))  # type: ignore[misc]
async def cmd_filter(message: Message, state: FSMContext, db: AsyncSession) -> None:
    """Handle /filter command - start the chat filter wizard."""
    user = await get_user_by_tg(db, message.from_user.id)
    if not user:
        await message.answer(NO_PROFILE)
        return

    if not user.chat_filter.is_unset:
        await message.answer(f"Current filter:\n{describe_filter(user.chat_filter)}")

    draft = get_filter_configurator().start()
    await save_draft(state, draft)

    text, keyboard = render_step(draft)
    await message.answer(text, reply_markup=keyboard)


@router.message(Command("filter_reset"))  # type: ignore[misc]
async def cmd_filter_reset(message: Message, state: FSMContext, db: AsyncSession) -> None:
    """Handle /filter_reset command - accept chat requests from everyone again."""
    user = await get_user_by_tg(db, message.from_user.id)
    if not user:
        await message.answer(NO_PROFILE)
        return

    await get_filter_configurator().reset(user.id)
    await state.clear()
    await message.answer("✅ Chat filter removed. Anyone can send you chat requests now.")


@router.callback_query(F.data.startswith("cf_gender_"), ChatFilterForm.gender)  # type: ignore[misc]
async def process_gender(callback: CallbackQuery, state: FSMContext) -> None:
    """Process gender selection."""
    choice = callback.data.split("_", 2)[2]
    try:
        draft = get_filter_configurator().select_gender(await load_draft(state), choice)
    except FilterStepInvalid as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_step(callback, state, draft)
    await callback.answer()


@router.callback_query(F.data.startswith("cf_distance_"), ChatFilterForm.distance)  # type: ignore[misc]
async def process_distance(callback: CallbackQuery, state: FSMContext, db: AsyncSession) -> None:
    """Process distance selection. Distance radii need a location on the profile."""
    choice = callback.data.split("_", 2)[2]

    user = await get_user_by_tg(db, callback.from_user.id)
    if not user:
        await callback.answer(NO_PROFILE, show_alert=True)
        return

    try:
        draft = await get_filter_configurator().select_distance(await load_draft(state), user.id, choice)
    except FilterStepInvalid as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_step(callback, state, draft)
    await callback.answer()


@router.callback_query(
    F.data.startswith("cf_age_"), StateFilter(ChatFilterForm.age_min, ChatFilterForm.age_max)
)  # type: ignore[misc]
async def process_age(callback: CallbackQuery, state: FSMContext) -> None:
    """Process one bound of the age band."""
    value = callback.data.split("_", 2)[2]
    try:
        draft = get_filter_configurator().select_age(await load_draft(state), value)
    except FilterStepInvalid as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_step(callback, state, draft)
    await callback.answer()


@router.callback_query(F.data == "cf_back", StateFilter(ChatFilterForm))  # type: ignore[misc]
async def process_back(callback: CallbackQuery, state: FSMContext) -> None:
    """Go back one step, keeping everything chosen so far."""
    draft = get_filter_configurator().back(await load_draft(state))
    await show_step(callback, state, draft)
    await callback.answer()


@router.callback_query(F.data.startswith("cf_confirm_"), ChatFilterForm.confirmation)  # type: ignore[misc]
async def process_confirm(callback: CallbackQuery, state: FSMContext, db: AsyncSession) -> None:
    """Save the filter after the visibility choice."""
    visible = callback.data == "cf_confirm_visible"

    user = await get_user_by_tg(db, callback.from_user.id)
    if not user:
        await callback.answer(NO_PROFILE, show_alert=True)
        return

    try:
        await get_filter_configurator().confirm(await load_draft(state), user.id, visible)
    except (FilterStepInvalid, NotFound) as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return
    except Exception as e:
        logger.error(f"Failed to save chat filter for user {user.id}: {e}")
        await callback.answer("⚠️ Could not save the filter. Try again later.", show_alert=True)
        return

    await state.clear()
    await callback.message.edit_text(
        "✅ Your chat filter has been saved!\n\n"
        + ("👁 It is shown on your profile." if visible else "🔒 It is hidden from your profile.")
    )
    await callback.answer("✅ Filter saved")
