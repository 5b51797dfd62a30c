"""Chat request handlers: send, list, view, accept, reject, block."""

import logging

import httpx
from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from apps.bot.api_client import api_client
from apps.bot.keyboards.inline import get_chat_request_actions_keyboard, get_chat_request_keyboard

router = Router()
logger = logging.getLogger(__name__)

GENDER_LABELS = {"male": "👨 Male", "female": "👩 Female"}
SERVICE_UNAVAILABLE = "⚠️ Service unavailable. Try again later."

FALLBACK_ERRORS = {
    403: "❌ You can't do that.",
    404: "❌ Not found.",
    409: "⚠️ This request is no longer available.",
    429: "⏳ Please wait before sending another request to this user.",
    503: "⚠️ Service is busy right now. Try again in a moment.",
}


def error_text(error: httpx.HTTPStatusError) -> str:
    """User-facing text for an API error, preferring the API's own detail."""
    try:
        detail = error.response.json().get("detail")
    except ValueError:
        detail = None

    if isinstance(detail, str) and detail:
        prefix = "⏳ " if error.response.status_code == 429 else "⚠️ "
        return prefix + detail

    return FALLBACK_ERRORS.get(error.response.status_code, "❌ Something went wrong. Try again later.")


def parse_request_id(data: str) -> int:
    """Extract the request id from ``cr_<action>_<id>``."""
    return int(data.rsplit("_", 1)[1])


def format_request(detail: dict) -> str:
    sender = detail.get("sender") or {}
    lines = [f"💌 Chat request from {sender.get('nickname', 'someone')}"]

    if sender.get("gender"):
        lines.append(GENDER_LABELS.get(sender["gender"], sender["gender"]))
    if sender.get("age"):
        lines.append(f"🎂 {sender['age']}")
    if sender.get("region"):
        lines.append(f"📍 {sender['region']}")
    if sender.get("filter_summary"):
        lines.append(sender["filter_summary"])

    return "\n".join(lines)


@router.message(Command("request"))  # type: ignore[misc]
async def cmd_request(message: Message, command: CommandObject) -> None:
    """Handle /request <user_id> - send a chat request."""
    if not command.args or not command.args.strip().isdigit():
        await message.answer("Usage: /request <user_id>")
        return

    receiver_id = int(command.args.strip())

    try:
        await api_client.post(
            "/chat-requests",
            json_data={"receiver_id": receiver_id},
            auth_bot=True,
            caller_tg_id=message.from_user.id,
        )
    except httpx.HTTPStatusError as e:
        await message.answer(error_text(e))
        return
    except httpx.HTTPError:
        await message.answer(SERVICE_UNAVAILABLE)
        return

    await message.answer("✅ Chat request sent! You'll get a message when they answer.")


@router.message(Command("requests"))  # type: ignore[misc]
async def cmd_requests(message: Message) -> None:
    """Handle /requests - list requests waiting for an answer."""
    try:
        pending = await api_client.get("/chat-requests/pending", auth_bot=True, caller_tg_id=message.from_user.id)
    except httpx.HTTPStatusError as e:
        await message.answer(error_text(e))
        return
    except httpx.HTTPError:
        await message.answer(SERVICE_UNAVAILABLE)
        return

    if not pending:
        await message.answer("📭 No chat requests right now.")
        return

    await message.answer(f"📬 You have {len(pending)} chat request(s):")
    for request in pending:
        status = "🆕" if request["status"] == "pending" else "👀"
        await message.answer(f"{status} Request #{request['id']}", reply_markup=get_chat_request_keyboard(request["id"]))


@router.callback_query(F.data.startswith("cr_view_"))  # type: ignore[misc]
async def handle_view(callback: CallbackQuery) -> None:
    """Open a request and show the answer buttons."""
    request_id = parse_request_id(callback.data)

    try:
        detail = await api_client.post(
            f"/chat-requests/{request_id}/view", auth_bot=True, caller_tg_id=callback.from_user.id
        )
    except httpx.HTTPStatusError as e:
        await callback.answer(error_text(e), show_alert=True)
        return
    except httpx.HTTPError as e:
        logger.error(f"Chat request API unreachable for callback {callback.data}: {e}")
        await callback.answer(SERVICE_UNAVAILABLE, show_alert=True)
        return

    if detail["request"]["status"] not in ("pending", "viewed"):
        await callback.message.edit_text(f"{format_request(detail)}\n\nStatus: {detail['request']['status']}")
        await callback.answer()
        return

    await callback.message.edit_text(format_request(detail), reply_markup=get_chat_request_actions_keyboard(request_id))
    await callback.answer()


@router.callback_query(F.data.startswith("cr_accept_"))  # type: ignore[misc]
async def handle_accept(callback: CallbackQuery) -> None:
    """Accept a request. Both users get the chat intro from the notifier."""
    request_id = parse_request_id(callback.data)

    try:
        await api_client.post(f"/chat-requests/{request_id}/accept", auth_bot=True, caller_tg_id=callback.from_user.id)
    except httpx.HTTPStatusError as e:
        text = error_text(e)
        await callback.message.edit_text(text)
        await callback.answer(text, show_alert=True)
        return
    except httpx.HTTPError as e:
        logger.error(f"Chat request API unreachable for callback {callback.data}: {e}")
        await callback.answer(SERVICE_UNAVAILABLE, show_alert=True)
        return

    await callback.message.edit_text("✅ Request accepted. Your chat has started!")
    await callback.answer()


@router.callback_query(F.data.startswith("cr_reject_"))  # type: ignore[misc]
async def handle_reject(callback: CallbackQuery) -> None:
    request_id = parse_request_id(callback.data)

    try:
        await api_client.post(f"/chat-requests/{request_id}/reject", auth_bot=True, caller_tg_id=callback.from_user.id)
    except httpx.HTTPStatusError as e:
        await callback.answer(error_text(e), show_alert=True)
        return
    except httpx.HTTPError as e:
        logger.error(f"Chat request API unreachable for callback {callback.data}: {e}")
        await callback.answer(SERVICE_UNAVAILABLE, show_alert=True)
        return

    await callback.message.edit_text("❌ Request declined.")
    await callback.answer()


@router.callback_query(F.data.startswith("cr_block_"))  # type: ignore[misc]
async def handle_block(callback: CallbackQuery) -> None:
    """Block the sender. They won't be able to send requests again."""
    request_id = parse_request_id(callback.data)

    try:
        await api_client.post(f"/chat-requests/{request_id}/block", auth_bot=True, caller_tg_id=callback.from_user.id)
    except httpx.HTTPStatusError as e:
        await callback.answer(error_text(e), show_alert=True)
        return
    except httpx.HTTPError as e:
        logger.error(f"Chat request API unreachable for callback {callback.data}: {e}")
        await callback.answer(SERVICE_UNAVAILABLE, show_alert=True)
        return

    logger.info(f"User {callback.from_user.id} blocked sender of chat request {request_id}")
    await callback.message.edit_text("🚫 User blocked. They can't send you chat requests anymore.")
    await callback.answer()
