"""Chat endpoints for ending dialogs."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_caller, get_chat_sessions, get_db
from models import User
from services.chat_sessions import ChatSessionOpener

router = APIRouter()


@router.post("/end")  # type: ignore[misc]
async def end_chat(
    caller: User = Depends(get_caller),
    sessions: ChatSessionOpener = Depends(get_chat_sessions),
    db: AsyncSession = Depends(get_db),
) -> dict[str, int | str]:
    """
    End the caller's active chat session.

    Both participants can receive chat requests again afterwards.
    Returns peer's telegram ID for notification.
    """
    chat = await sessions.end_chat(caller.id)

    if not chat:
        raise HTTPException(status_code=404, detail="No active chat session found")

    peer = await db.get(User, chat.peer_of(caller.id))

    if not peer:
        raise HTTPException(status_code=404, detail="Peer user not found")

    return {"peer_tg_id": peer.tg_id, "status": "ended", "chat_session_id": chat.id}
