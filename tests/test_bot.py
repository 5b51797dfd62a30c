import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from apps.bot.api_client import ApiClient
from apps.bot.handlers.chat_filter import render_step
from apps.bot.handlers import chat_request
from apps.bot.handlers.chat_request import SERVICE_UNAVAILABLE, error_text, format_request, parse_request_id
from apps.bot.keyboards.inline import get_chat_request_actions_keyboard, get_filter_age_keyboard
from core.auth import verify_bot_signature
from services.filter_wizard import FilterDraft, FilterStep
from services.profiles import GenderFilter


def callbacks(keyboard) -> list[str]:
    return [button.callback_data for row in keyboard.inline_keyboard for button in row]


async def test_api_client_signs_exact_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["valid"] = verify_bot_signature(request.content, request.headers["X-Bot-Signature"])
        seen["tg"] = request.headers["X-Tg-User-Id"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": 1, "status": "pending"})

    client = ApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler))
    try:
        data = await client.post("/chat-requests", json_data={"receiver_id": 2}, auth_bot=True, caller_tg_id=1001)
    finally:
        await client.close()

    assert data == {"id": 1, "status": "pending"}
    assert seen == {"valid": True, "tg": "1001", "body": {"receiver_id": 2}}


async def test_api_client_raises_on_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"detail": "Your partner is no longer available.", "code": "busy"})

    client = ApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(httpx.HTTPStatusError) as exc:
            await client.post("/chat-requests/1/accept", auth_bot=True, caller_tg_id=1002)
    finally:
        await client.close()

    assert error_text(exc.value) == "⚠️ Your partner is no longer available."


async def test_signed_get_requires_caller():
    client = ApiClient(base_url="http://api.test", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    try:
        with pytest.raises(ValueError):
            await client.get("/chat-requests/pending", auth_bot=True)
    finally:
        await client.close()


def test_error_text_falls_back_by_status():
    request = httpx.Request("POST", "http://api.test/chat-requests")
    response = httpx.Response(503, text="upstream error", request=request)
    error = httpx.HTTPStatusError("503", request=request, response=response)

    assert error_text(error) == "⚠️ Service is busy right now. Try again in a moment."


def test_parse_request_id():
    assert parse_request_id("cr_accept_42") == 42
    assert parse_request_id("cr_view_7") == 7


def test_format_request_includes_visible_filter():
    detail = {
        "request": {"id": 5, "status": "viewed"},
        "sender": {"nickname": "carol", "gender": None, "age": 22, "region": None, "filter_summary": "📋 Everyone"},
    }

    assert format_request(detail) == "💌 Chat request from carol\n🎂 22\n📋 Everyone"


def test_action_keyboard_callbacks():
    assert callbacks(get_chat_request_actions_keyboard(5)) == ["cr_accept_5", "cr_reject_5", "cr_block_5"]


def test_age_keyboard_covers_selectable_range():
    data = callbacks(get_filter_age_keyboard())

    assert data[0] == "cf_age_13"
    assert "cf_age_99" in data
    assert data[-2:] == ["cf_age_all", "cf_back"]


@pytest.mark.parametrize("step", list(FilterStep))
def test_every_step_renders(step):
    draft = FilterDraft(step=step, gender=GenderFilter.FEMALE, min_age=20)

    text, keyboard = render_step(draft)

    assert text
    assert keyboard.inline_keyboard


def test_max_age_step_shows_chosen_minimum():
    text, _ = render_step(FilterDraft(step=FilterStep.AGE_MAX, min_age=21))

    assert "Minimum age: 21" in text


@pytest.mark.parametrize(
    "handler,action",
    [
        (chat_request.handle_view, "view"),
        (chat_request.handle_accept, "accept"),
        (chat_request.handle_reject, "reject"),
        (chat_request.handle_block, "block"),
    ],
)
async def test_callbacks_answer_when_api_is_unreachable(monkeypatch, handler, action):
    async def unreachable(*args, **kwargs):
        raise httpx.ConnectError("api down")

    monkeypatch.setattr(chat_request.api_client, "post", unreachable)
    callback = SimpleNamespace(
        data=f"cr_{action}_5",
        from_user=SimpleNamespace(id=1002),
        message=SimpleNamespace(edit_text=AsyncMock()),
        answer=AsyncMock(),
    )

    await handler(callback)

    callback.answer.assert_awaited_once_with(SERVICE_UNAVAILABLE, show_alert=True)
    callback.message.edit_text.assert_not_awaited()
