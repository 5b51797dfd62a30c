from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis

from core.config import settings

_redis_client: redis.Redis[Any] | None = None


async def get_redis() -> redis.Redis[Any]:
    """Get Redis client instance."""
    global _redis_client
    if _redis_client is None:
        _redis_client = await redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def _session_key(tg_id: int) -> str:
    return f"active_session:{tg_id}"


async def set_active_session(tg_id: int, chat_session_id: int, peer_tg_id: int) -> None:
    """
    Store active chat session routing for a user.

    Args:
        tg_id: Telegram user ID
        chat_session_id: Database chat_session ID
        peer_tg_id: Peer's Telegram user ID
    """
    client = await get_redis()
    value = json.dumps({"chat_session_id": chat_session_id, "peer_tg_id": peer_tg_id})
    await client.setex(_session_key(tg_id), settings.active_session_ttl_seconds, value)


async def get_active_session(tg_id: int) -> dict[str, Any] | None:
    """Get active chat session routing for a user, or None."""
    client = await get_redis()
    data = await client.get(_session_key(tg_id))
    if not data:
        return None
    return json.loads(data)


async def clear_active_session(tg_id: int) -> None:
    """Clear active session routing for a user (on /end)."""
    client = await get_redis()
    await client.delete(_session_key(tg_id))
