"""Notification service for chat request events via Telegram bot."""

import logging

from aiogram import Bot
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apps.bot.keyboards.inline import get_chat_request_keyboard
from core.config import settings
from core.db import AsyncSessionLocal
from models import ChatRequest, User

logger = logging.getLogger(__name__)


class Notifier:
    """Sends chat request notifications to users. Never raises."""

    def __init__(
        self, bot: Bot | None = None, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal
    ) -> None:
        self.bot = bot or Bot(token=settings.telegram_bot_token)
        self.session_factory = session_factory

    async def _get_users(self, *user_ids: int) -> dict[int, User]:
        async with self.session_factory() as db:
            result = await db.execute(select(User).where(User.id.in_(user_ids)))
            return {user.id: user for user in result.scalars().all()}

    async def request_received(self, request: ChatRequest) -> int | None:
        """
        Tell the receiver about a new chat request.

        Args:
            request: The pending request

        Returns:
            Telegram message ID of the notification, or None if not sent
        """
        try:
            users = await self._get_users(request.sender_id, request.receiver_id)
            sender = users.get(request.sender_id)
            receiver = users.get(request.receiver_id)

            if not sender or not receiver:
                logger.error(f"User not found: sender={request.sender_id}, receiver={request.receiver_id}")
                return None

            text = f"""
💌 New chat request!

👤 From: {sender.nickname}

Open the request to see it, then accept, reject or block.
            """.strip()

            message = await self.bot.send_message(
                chat_id=receiver.tg_id, text=text, reply_markup=get_chat_request_keyboard(request.id)
            )
            return message.message_id

        except Exception as e:
            logger.error(f"Failed to send chat request {request.id} to user {request.receiver_id}: {e}")
            return None

    async def request_accepted(self, request: ChatRequest, chat_id: int) -> bool:
        """
        Tell both users the chat is open.

        Returns:
            True if both messages were sent
        """
        try:
            users = await self._get_users(request.sender_id, request.receiver_id)
            sender = users.get(request.sender_id)
            receiver = users.get(request.receiver_id)

            if not sender or not receiver:
                logger.error(f"User not found: sender={request.sender_id}, receiver={request.receiver_id}")
                return False

            intro = "✅ Chat started with {nickname}!\n\nSay hello. Use /end to finish the conversation."
            await self.bot.send_message(chat_id=sender.tg_id, text=intro.format(nickname=receiver.nickname))
            await self.bot.send_message(chat_id=receiver.tg_id, text=intro.format(nickname=sender.nickname))

            return True

        except Exception as e:
            logger.error(f"Failed to send chat {chat_id} accepted notifications: {e}")
            return False

    async def request_rejected(self, request: ChatRequest) -> bool:
        """Tell the sender their request was rejected."""
        try:
            users = await self._get_users(request.sender_id)
            sender = users.get(request.sender_id)

            if not sender:
                logger.error(f"User not found: {request.sender_id}")
                return False

            await self.bot.send_message(chat_id=sender.tg_id, text="😔 Your chat request was declined.")

            return True

        except Exception as e:
            logger.error(f"Failed to send rejection for chat request {request.id}: {e}")
            return False

    async def close(self) -> None:
        """Close bot session."""
        await self.bot.session.close()
