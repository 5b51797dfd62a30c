"""End chat session handler."""

import logging

import httpx
from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from apps.bot.api_client import api_client

router = Router()
logger = logging.getLogger(__name__)


@router.message(Command("end"))  # type: ignore[misc]
async def cmd_end(message: Message) -> None:
    """
    Handle /end command - end active chat session.

    Shows confirmation button before actually ending.
    """
    if not message.from_user:
        return

    keyboard = InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="✅ Yes, end the chat", callback_data=f"end_confirm:{message.from_user.id}"),
                InlineKeyboardButton(text="❌ Cancel", callback_data="end_cancel"),
            ]
        ]
    )

    await message.answer(
        "❓ Are you sure you want to end the chat?\n\nMessages will stop being relayed between you and your partner.",
        reply_markup=keyboard,
    )


@router.callback_query(F.data.startswith("end_confirm:"))  # type: ignore[misc]
async def handle_end_confirm(callback: CallbackQuery) -> None:
    """Handle end confirmation callback."""
    if not callback.from_user or not callback.message:
        return

    _, user_id_str = callback.data.split(":")  # type: ignore[union-attr]

    # Users can only end their own chats
    if callback.from_user.id != int(user_id_str):
        await callback.answer("❌ Authorization error", show_alert=True)
        return

    try:
        response = await api_client.post("/chat/end", auth_bot=True, caller_tg_id=callback.from_user.id)
    except httpx.HTTPError as e:
        logger.error(f"Failed to end chat: {e}")
        await callback.answer("❌ No active chat", show_alert=True)
        return

    await callback.message.edit_text(
        "✅ Chat ended. Thanks for talking!\n\n💌 You can receive and send chat requests again."
    )

    peer_tg_id = response.get("peer_tg_id")
    if peer_tg_id:
        # Lazy import to avoid circular dependency
        from apps.bot.bot import bot

        await bot.send_message(
            chat_id=peer_tg_id,
            text="📞 Your partner ended the chat.\n\nThanks for talking! 💌 You can receive and send chat requests again.",
        )

    await callback.answer()


@router.callback_query(F.data == "end_cancel")  # type: ignore[misc]
async def handle_end_cancel(callback: CallbackQuery) -> None:
    """Handle end cancellation callback."""
    if not callback.message:
        return

    await callback.message.edit_text("↩️ Cancelled. The chat continues.")
    await callback.answer()
