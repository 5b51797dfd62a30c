"""Bot dependencies for dependency injection."""

from functools import lru_cache

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import User
from services.filter_wizard import FilterConfigurator
from services.sql_store import SqlProfileStore


@lru_cache
def get_filter_configurator() -> FilterConfigurator:
    """Get the chat filter wizard backed by the users table."""
    profiles = SqlProfileStore()
    return FilterConfigurator(profiles=profiles, filters=profiles)


async def get_user_by_tg(db: AsyncSession, tg_id: int) -> User | None:
    """Look up a user by Telegram ID."""
    result = await db.execute(select(User).where(User.tg_id == tg_id))
    return result.scalar_one_or_none()
