"""FSM states for the chat filter wizard."""

from aiogram.fsm.state import State, StatesGroup


class ChatFilterForm(StatesGroup):
    """States for building a chat request filter."""

    gender = State()
    distance = State()
    age_min = State()
    age_max = State()
    confirmation = State()
