"""Opening and ending chat sessions after the request lifecycle has claimed them."""

import logging

from redis.exceptions import RedisError
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.db import AsyncSessionLocal, utcnow
from core.exceptions import NotFound
from core.redis import clear_active_session, set_active_session
from models.chat import CHAT_ACTIVE, CHAT_ENDED, ChatSession
from models.user import User
from services.sql_store import translate_errors

logger = logging.getLogger(__name__)


class ChatSessionOpener:
    """Starts relaying for a chat the accept transaction already marked active."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal) -> None:
        self.session_factory = session_factory

    async def open_chat(self, user_a_id: int, user_b_id: int) -> int:
        """
        Resolve the active chat for the pair and cache relay routing for both users.

        Returns:
            Chat session ID

        Raises:
            NotFound: No active chat exists for the pair
        """
        with translate_errors():
            async with self.session_factory() as db:
                result = await db.execute(
                    select(ChatSession)
                    .where(
                        ChatSession.status == CHAT_ACTIVE,
                        or_(
                            and_(ChatSession.user_a == user_a_id, ChatSession.user_b == user_b_id),
                            and_(ChatSession.user_a == user_b_id, ChatSession.user_b == user_a_id),
                        ),
                    )
                    .order_by(ChatSession.started_at.desc())
                )
                chat = result.scalars().first()
                if chat is None:
                    raise NotFound(f"No active chat for users {user_a_id} and {user_b_id}")

                users = await self._tg_ids(db, user_a_id, user_b_id)

        try:
            await set_active_session(users[user_a_id], chat.id, users[user_b_id])
            await set_active_session(users[user_b_id], chat.id, users[user_a_id])
        except RedisError as e:
            logger.error(f"Failed to cache routing for chat {chat.id}: {e}")

        return chat.id

    async def end_chat(self, user_id: int) -> ChatSession | None:
        """
        End the user's active chat, freeing both participants for new requests.

        Returns:
            The ended session, or None if the user had no active chat
        """
        with translate_errors():
            async with self.session_factory() as db:
                result = await db.execute(
                    select(ChatSession)
                    .where(
                        ChatSession.status == CHAT_ACTIVE,
                        or_(ChatSession.user_a == user_id, ChatSession.user_b == user_id),
                    )
                    .with_for_update()
                )
                chat = result.scalars().first()
                if chat is None:
                    return None

                chat.status = CHAT_ENDED
                chat.ended_at = utcnow()
                users = await self._tg_ids(db, chat.user_a, chat.user_b)
                await db.commit()

        try:
            for tg_id in users.values():
                await clear_active_session(tg_id)
        except RedisError as e:
            logger.error(f"Failed to clear routing for chat {chat.id}: {e}")

        logger.info(f"Chat session {chat.id} ended by user {user_id}")
        return chat

    async def _tg_ids(self, db: AsyncSession, *user_ids: int) -> dict[int, int]:
        result = await db.execute(select(User.id, User.tg_id).where(User.id.in_(user_ids)))
        return {row.id: row.tg_id for row in result.all()}
