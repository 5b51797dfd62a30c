"""SQLAlchemy implementations of the store interfaces."""

import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.db import AsyncSessionLocal
from core.exceptions import NotFound, TransientStoreError
from models.block import UserBlock
from models.chat import CHAT_ACTIVE, ChatSession
from models.chat_request import OPEN_STATUSES, ChatRequest, RequestStatus
from models.user import User
from services.profiles import ChatFilter, Profile

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Surface database failures as TransientStoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store operation failed: {e}")
        raise TransientStoreError(str(e)) from e


async def user_in_active_chat(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(
        select(ChatSession.id)
        .where(
            ChatSession.status == CHAT_ACTIVE,
            or_(ChatSession.user_a == user_id, ChatSession.user_b == user_id),
        )
        .limit(1)
    )
    return result.first() is not None


class SqlProfileStore:
    """Profile lookup and filter persistence on the users table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal) -> None:
        self.session_factory = session_factory

    async def get_profile(self, user_id: int) -> Profile | None:
        with translate_errors():
            async with self.session_factory() as db:
                user = await db.get(User, user_id)
                return user.to_profile() if user else None

    async def save_filter(self, user_id: int, chat_filter: ChatFilter) -> None:
        with translate_errors():
            async with self.session_factory() as db:
                user = await db.get(User, user_id)
                if user is None:
                    raise NotFound(f"User {user_id} not found")
                user.apply_filter(chat_filter)
                await db.commit()


class _SqlTransaction:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_request(self, request_id: int, *, for_update: bool = False) -> ChatRequest | None:
        stmt = select(ChatRequest).where(ChatRequest.id == request_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_users(self, *user_ids: int) -> None:
        # Ascending id order so concurrent accepts cannot deadlock
        await self.db.execute(
            select(User.id).where(User.id.in_(sorted(set(user_ids)))).order_by(User.id).with_for_update()
        )

    async def is_user_in_active_chat(self, user_id: int) -> bool:
        return await user_in_active_chat(self.db, user_id)

    async def insert_request(self, sender_id: int, receiver_id: int, created_at: datetime) -> ChatRequest:
        request = ChatRequest(
            sender_id=sender_id,
            receiver_id=receiver_id,
            status=RequestStatus.PENDING.value,
            notification_ref=None,
            created_at=created_at,
            viewed_at=None,
            responded_at=None,
            connected=False,
        )
        self.db.add(request)
        await self.db.flush()
        return request

    async def update_request(self, request: ChatRequest, **values: Any) -> None:
        for key, value in values.items():
            setattr(request, key, value)
        await self.db.flush()

    async def claim_active_chat(self, user_a: int, user_b: int, request_id: int, started_at: datetime) -> int:
        chat = ChatSession(
            user_a=user_a,
            user_b=user_b,
            request_id=request_id,
            status=CHAT_ACTIVE,
            started_at=started_at,
            ended_at=None,
        )
        self.db.add(chat)
        await self.db.flush()
        return chat.id


class SqlRequestStore:
    """Chat requests and the active-chat predicate on PostgreSQL.

    Each transaction is a database transaction; ``for_update`` reads and
    ``lock_users`` take row locks that are held until commit.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_SqlTransaction]:
        with translate_errors():
            async with self.session_factory() as db, db.begin():
                yield _SqlTransaction(db)

    async def get_request(self, request_id: int) -> ChatRequest | None:
        with translate_errors():
            async with self.session_factory() as db:
                return await db.get(ChatRequest, request_id)

    async def last_request_between(self, sender_id: int, receiver_id: int) -> ChatRequest | None:
        with translate_errors():
            async with self.session_factory() as db:
                result = await db.execute(
                    select(ChatRequest)
                    .where(ChatRequest.sender_id == sender_id, ChatRequest.receiver_id == receiver_id)
                    .order_by(ChatRequest.created_at.desc(), ChatRequest.id.desc())
                    .limit(1)
                )
                return result.scalar_one_or_none()

    async def list_pending(self, receiver_id: int) -> list[ChatRequest]:
        with translate_errors():
            async with self.session_factory() as db:
                result = await db.execute(
                    select(ChatRequest)
                    .where(ChatRequest.receiver_id == receiver_id, ChatRequest.status.in_(OPEN_STATUSES))
                    .order_by(ChatRequest.created_at.desc(), ChatRequest.id.desc())
                )
                return list(result.scalars().all())

    async def count_pending(self, receiver_id: int) -> int:
        with translate_errors():
            async with self.session_factory() as db:
                result = await db.execute(
                    select(func.count(ChatRequest.id)).where(
                        ChatRequest.receiver_id == receiver_id, ChatRequest.status.in_(OPEN_STATUSES)
                    )
                )
                return int(result.scalar() or 0)

    async def is_user_in_active_chat(self, user_id: int) -> bool:
        with translate_errors():
            async with self.session_factory() as db:
                return await user_in_active_chat(db, user_id)


class SqlBlockRegistry:
    """Block relationships in the user_blocks table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal) -> None:
        self.session_factory = session_factory

    async def register_block(self, blocker_id: int, blocked_id: int) -> None:
        with translate_errors():
            async with self.session_factory() as db:
                if await db.get(UserBlock, (blocker_id, blocked_id)) is not None:
                    return
                db.add(UserBlock(blocker_id=blocker_id, blocked_id=blocked_id))
                try:
                    await db.commit()
                except IntegrityError:
                    # Registered concurrently
                    await db.rollback()
        logger.info(f"User {blocker_id} blocked user {blocked_id}")

    async def is_blocked(self, blocker_id: int, blocked_id: int) -> bool:
        with translate_errors():
            async with self.session_factory() as db:
                return await db.get(UserBlock, (blocker_id, blocked_id)) is not None
