"""Inline keyboard builders."""

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from services.filter_wizard import MAX_SELECTABLE_AGE, MIN_SELECTABLE_AGE

AGES_PER_ROW = 7


def get_filter_gender_keyboard() -> InlineKeyboardMarkup:
    """Build keyboard for the gender step of the chat filter."""
    buttons = [
        [
            InlineKeyboardButton(text="🙍‍♂️ Men only", callback_data="cf_gender_male"),
            InlineKeyboardButton(text="🙍‍♀️ Women only", callback_data="cf_gender_female"),
        ],
        [InlineKeyboardButton(text="👥 Everyone", callback_data="cf_gender_all")],
    ]

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_filter_distance_keyboard() -> InlineKeyboardMarkup:
    """Build keyboard for the distance step of the chat filter."""
    options = [
        ("🏠 Same region", "same_region"),
        ("🌍 Other regions", "not_same_region"),
        ("📍 Within 100 km", "within_100km"),
        ("📍 Within 10 km", "within_10km"),
        ("🌐 Any distance", "all"),
    ]

    buttons = [[InlineKeyboardButton(text=text, callback_data=f"cf_distance_{value}")] for text, value in options]
    buttons.append([InlineKeyboardButton(text="🔙 Back", callback_data="cf_back")])

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_filter_age_keyboard() -> InlineKeyboardMarkup:
    """Build keyboard for the age steps of the chat filter."""
    ages = list(range(MIN_SELECTABLE_AGE, MAX_SELECTABLE_AGE + 1))

    buttons = [
        [InlineKeyboardButton(text=str(age), callback_data=f"cf_age_{age}") for age in ages[i : i + AGES_PER_ROW]]
        for i in range(0, len(ages), AGES_PER_ROW)
    ]
    buttons.append([InlineKeyboardButton(text="👥 Any age", callback_data="cf_age_all")])
    buttons.append([InlineKeyboardButton(text="🔙 Back", callback_data="cf_back")])

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_filter_confirm_keyboard() -> InlineKeyboardMarkup:
    """Build keyboard for the final step of the chat filter."""
    buttons = [
        [InlineKeyboardButton(text="✅ Show this on my profile", callback_data="cf_confirm_visible")],
        [InlineKeyboardButton(text="🔒 Keep it hidden", callback_data="cf_confirm_hidden")],
        [InlineKeyboardButton(text="🔙 Back", callback_data="cf_back")],
    ]

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_chat_request_keyboard(request_id: int) -> InlineKeyboardMarkup:
    """Build keyboard attached to a new chat request notification."""
    buttons = [[InlineKeyboardButton(text="👀 Open request", callback_data=f"cr_view_{request_id}")]]

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_chat_request_actions_keyboard(request_id: int) -> InlineKeyboardMarkup:
    """Build keyboard for responding to a chat request."""
    buttons = [
        [
            InlineKeyboardButton(text="✅ Accept", callback_data=f"cr_accept_{request_id}"),
            InlineKeyboardButton(text="❌ Reject", callback_data=f"cr_reject_{request_id}"),
        ],
        [InlineKeyboardButton(text="🚫 Block", callback_data=f"cr_block_{request_id}")],
    ]

    return InlineKeyboardMarkup(inline_keyboard=buttons)
