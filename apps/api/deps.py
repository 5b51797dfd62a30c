"""FastAPI dependencies."""

from collections.abc import AsyncGenerator
from functools import lru_cache

import redis.asyncio as redis
from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.workers.notifier import Notifier
from core.auth import bot_auth
from core.db import get_db as _get_db
from core.redis import get_redis as _get_redis
from models import User
from services.chat_requests import ChatRequestLifecycle
from services.chat_sessions import ChatSessionOpener
from services.eligibility import EligibilityEvaluator
from services.sql_store import SqlBlockRegistry, SqlProfileStore, SqlRequestStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in _get_db():
        yield session


async def get_redis_client() -> redis.Redis:
    """Get Redis client dependency."""
    return await _get_redis()


@lru_cache
def get_chat_sessions() -> ChatSessionOpener:
    return ChatSessionOpener()


@lru_cache
def get_lifecycle() -> ChatRequestLifecycle:
    """Build the chat request lifecycle over the SQL stores."""
    requests = SqlRequestStore()
    return ChatRequestLifecycle(
        store=requests,
        active_chats=requests,
        evaluator=EligibilityEvaluator(SqlProfileStore()),
        chat_opener=get_chat_sessions(),
        blocks=SqlBlockRegistry(),
        notifier=Notifier(),
    )


async def get_caller(caller_tg: int = Depends(bot_auth), db: AsyncSession = Depends(get_db)) -> User:
    """Resolve the authenticated Telegram user to a registered user."""
    result = await db.execute(select(User).where(User.tg_id == caller_tg))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return user
