"""Chat request endpoints: send, view, accept, reject, block."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_caller, get_db, get_lifecycle
from models import ChatRequest, User
from services.chat_requests import ChatRequestLifecycle
from services.filter_wizard import describe_filter

router = APIRouter(prefix="/chat-requests", tags=["chat-requests"])


class CreateChatRequestIn(BaseModel):  # type: ignore[misc]
    """Request to send a chat request."""

    receiver_id: int  # Internal user ID of the receiver


class ChatRequestOut(BaseModel):  # type: ignore[misc]
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    status: str
    connected: bool
    created_at: datetime
    viewed_at: datetime | None = None
    responded_at: datetime | None = None


class SenderOut(BaseModel):  # type: ignore[misc]
    model_config = ConfigDict(from_attributes=True)

    id: int
    nickname: str
    gender: str | None = None
    age: int | None = None
    region: str | None = None
    filter_summary: str | None = None  # Only when the sender made their chat filter visible


class ChatRequestDetailOut(BaseModel):  # type: ignore[misc]
    request: ChatRequestOut
    sender: SenderOut | None = None


class AcceptOut(BaseModel):  # type: ignore[misc]
    request: ChatRequestOut
    chat_id: int


async def load_as_receiver(request_id: int, caller: User, lifecycle: ChatRequestLifecycle) -> ChatRequest:
    """Load a request the caller received; anyone else gets 403."""
    request = await lifecycle.get_request(request_id)
    if request.receiver_id != caller.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the receiver of this request")
    return request


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ChatRequestOut)  # type: ignore[misc]
async def create_chat_request(
    body: CreateChatRequestIn,
    caller: User = Depends(get_caller),
    lifecycle: ChatRequestLifecycle = Depends(get_lifecycle),
) -> ChatRequest:
    """
    Send a chat request from the caller to another user.

    Denied by the receiver's filter or block list (403), cooldown (429) or
    either party being in a chat (409).
    """
    return await lifecycle.create_request(caller.id, body.receiver_id)


@router.get("/pending", response_model=list[ChatRequestOut])  # type: ignore[misc]
async def list_pending(
    caller: User = Depends(get_caller), lifecycle: ChatRequestLifecycle = Depends(get_lifecycle)
) -> list[ChatRequest]:
    """Requests waiting for the caller's answer, newest first."""
    return await lifecycle.list_pending(caller.id)


@router.get("/pending/count")  # type: ignore[misc]
async def count_pending(
    caller: User = Depends(get_caller), lifecycle: ChatRequestLifecycle = Depends(get_lifecycle)
) -> dict[str, int]:
    return {"count": await lifecycle.count_pending(caller.id)}


@router.post("/{request_id}/view", response_model=ChatRequestDetailOut)  # type: ignore[misc]
async def view_chat_request(
    request_id: int,
    caller: User = Depends(get_caller),
    lifecycle: ChatRequestLifecycle = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db),
) -> ChatRequestDetailOut:
    """Open a request. The first view moves it from pending to viewed."""
    await load_as_receiver(request_id, caller, lifecycle)
    request = await lifecycle.mark_viewed(request_id)

    sender = await db.get(User, request.sender_id)
    sender_out = None
    if sender:
        sender_out = SenderOut.model_validate(sender)
        if sender.filter_visible:
            sender_out.filter_summary = describe_filter(sender.chat_filter)

    return ChatRequestDetailOut(request=ChatRequestOut.model_validate(request), sender=sender_out)


@router.post("/{request_id}/accept", response_model=AcceptOut)  # type: ignore[misc]
async def accept_chat_request(
    request_id: int,
    caller: User = Depends(get_caller),
    lifecycle: ChatRequestLifecycle = Depends(get_lifecycle),
) -> AcceptOut:
    await load_as_receiver(request_id, caller, lifecycle)
    result = await lifecycle.accept(request_id)
    return AcceptOut(request=ChatRequestOut.model_validate(result.request), chat_id=result.chat_id)


@router.post("/{request_id}/reject", response_model=ChatRequestOut)  # type: ignore[misc]
async def reject_chat_request(
    request_id: int,
    caller: User = Depends(get_caller),
    lifecycle: ChatRequestLifecycle = Depends(get_lifecycle),
) -> ChatRequest:
    await load_as_receiver(request_id, caller, lifecycle)
    return await lifecycle.reject(request_id)


@router.post("/{request_id}/block", response_model=ChatRequestOut)  # type: ignore[misc]
async def block_chat_request(
    request_id: int,
    caller: User = Depends(get_caller),
    lifecycle: ChatRequestLifecycle = Depends(get_lifecycle),
) -> ChatRequest:
    """Close the request and stop the sender from requesting the caller again."""
    await load_as_receiver(request_id, caller, lifecycle)
    return await lifecycle.block(request_id)
