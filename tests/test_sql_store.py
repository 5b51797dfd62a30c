"""SQL stores against a temporary SQLite database."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import models  # noqa: F401
from conftest import FakeNotifier
from core.db import Base, utcnow
from core.exceptions import ConflictBusy, NotFound, RequestStateConflict, TransientStoreError
from models import ChatRequest, ChatSession, User, UserBlock
from services import chat_sessions
from services.chat_requests import ChatRequestLifecycle
from services.chat_sessions import ChatSessionOpener
from services.eligibility import EligibilityEvaluator
from services.profiles import ChatFilter, DistanceClass, GenderFilter
from services.sql_store import SqlBlockRegistry, SqlProfileStore, SqlRequestStore, translate_errors


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chat_requests.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        db.add_all(
            [
                User(
                    id=1,
                    tg_id=1001,
                    nickname="alice",
                    gender="female",
                    age=27,
                    region="Seoul",
                    latitude=37.5665,
                    longitude=126.9780,
                ),
                User(id=2, tg_id=1002, nickname="bob", gender="male", age=31, region="Seoul"),
                User(id=3, tg_id=1003, nickname="carol", gender="female", age=22, region="Busan"),
            ]
        )
        await db.commit()

    yield factory
    await engine.dispose()


@pytest.fixture
def routing(monkeypatch):
    """Replace Redis routing calls with an in-process dict."""
    cache: dict[int, dict] = {}

    async def fake_set(tg_id, chat_session_id, peer_tg_id):
        cache[tg_id] = {"chat_session_id": chat_session_id, "peer_tg_id": peer_tg_id}

    async def fake_clear(tg_id):
        cache.pop(tg_id, None)

    monkeypatch.setattr(chat_sessions, "set_active_session", fake_set)
    monkeypatch.setattr(chat_sessions, "clear_active_session", fake_clear)
    return cache


@pytest.fixture
def sql_lifecycle(session_factory, routing):
    requests = SqlRequestStore(session_factory)
    return ChatRequestLifecycle(
        store=requests,
        active_chats=requests,
        evaluator=EligibilityEvaluator(SqlProfileStore(session_factory)),
        chat_opener=ChatSessionOpener(session_factory),
        blocks=SqlBlockRegistry(session_factory),
        notifier=FakeNotifier(),
    )


async def test_profile_lookup(session_factory):
    profiles = SqlProfileStore(session_factory)

    alice = await profiles.get_profile(1)
    bob = await profiles.get_profile(2)

    assert alice.location is not None and alice.location.latitude == pytest.approx(37.5665)
    assert bob.location is None
    assert alice.chat_filter.is_unset
    assert await profiles.get_profile(99) is None


async def test_save_and_clear_filter(session_factory):
    profiles = SqlProfileStore(session_factory)
    chat_filter = ChatFilter(
        gender=GenderFilter.MALE, distance=DistanceClass.WITHIN_10KM, min_age=25, max_age=35, visible=True
    )

    await profiles.save_filter(1, chat_filter)
    assert (await profiles.get_profile(1)).chat_filter == chat_filter

    await profiles.save_filter(1, ChatFilter())
    assert (await profiles.get_profile(1)).chat_filter.is_unset

    with pytest.raises(NotFound):
        await profiles.save_filter(99, chat_filter)


async def test_request_lifecycle_over_sql(sql_lifecycle, session_factory, routing):
    request = await sql_lifecycle.create_request(2, 1)
    assert request.notification_ref == 1000 + request.id

    viewed = await sql_lifecycle.mark_viewed(request.id)
    assert viewed.status == "viewed"
    assert viewed.viewed_at is not None

    result = await sql_lifecycle.accept(request.id)

    async with session_factory() as db:
        stored = await db.get(ChatRequest, request.id)
        chat = await db.get(ChatSession, result.chat_id)
    assert stored.status == "accepted"
    assert stored.connected is True
    assert chat.status == "active"
    assert chat.request_id == request.id
    assert routing[1001] == {"chat_session_id": chat.id, "peer_tg_id": 1002}
    assert routing[1002] == {"chat_session_id": chat.id, "peer_tg_id": 1001}


async def test_busy_at_accept_commits_expired(sql_lifecycle, session_factory):
    first = await sql_lifecycle.create_request(2, 1)
    second = await sql_lifecycle.create_request(3, 1)
    await sql_lifecycle.accept(first.id)

    with pytest.raises(ConflictBusy):
        await sql_lifecycle.accept(second.id)

    async with session_factory() as db:
        stored = await db.get(ChatRequest, second.id)
        active = await db.execute(select(ChatSession).where(ChatSession.status == "active"))
    assert stored.status == "expired"
    assert stored.responded_at is not None
    assert len(active.scalars().all()) == 1


async def test_terminal_request_conflict(sql_lifecycle):
    request = await sql_lifecycle.create_request(2, 1)
    await sql_lifecycle.reject(request.id)

    with pytest.raises(RequestStateConflict):
        await sql_lifecycle.accept(request.id)
    assert (await sql_lifecycle.get_request(request.id)).status == "rejected"


async def test_end_chat_frees_both_users(sql_lifecycle, session_factory, routing):
    request = await sql_lifecycle.create_request(2, 1)
    await sql_lifecycle.accept(request.id)
    opener = ChatSessionOpener(session_factory)
    requests = SqlRequestStore(session_factory)

    ended = await opener.end_chat(1)

    assert ended.status == "ended"
    assert ended.ended_at is not None and ended.ended_at.tzinfo is None
    assert ended.peer_of(1) == 2
    assert not await requests.is_user_in_active_chat(1)
    assert not await requests.is_user_in_active_chat(2)
    assert routing == {}
    assert await opener.end_chat(1) is None


async def test_open_chat_without_active_session(session_factory, routing):
    with pytest.raises(NotFound):
        await ChatSessionOpener(session_factory).open_chat(1, 2)


async def test_block_registry(sql_lifecycle, session_factory):
    request = await sql_lifecycle.create_request(2, 1)
    await sql_lifecycle.block(request.id)
    registry = SqlBlockRegistry(session_factory)

    await registry.register_block(1, 2)

    assert await registry.is_blocked(1, 2)
    assert not await registry.is_blocked(2, 1)
    async with session_factory() as db:
        rows = await db.execute(select(UserBlock))
    assert len(rows.scalars().all()) == 1


async def test_pending_queries(sql_lifecycle, session_factory):
    requests = SqlRequestStore(session_factory)
    first = await sql_lifecycle.create_request(2, 1)
    second = await sql_lifecycle.create_request(3, 1)

    pending = await requests.list_pending(1)

    assert {r.id for r in pending} == {first.id, second.id}
    assert await requests.count_pending(1) == 2
    assert (await requests.last_request_between(2, 1)).id == first.id
    assert await requests.last_request_between(1, 2) is None


def test_database_errors_become_transient():
    with pytest.raises(TransientStoreError):
        with translate_errors():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def test_utcnow_is_naive_utc():
    now = utcnow()

    assert now.tzinfo is None
    assert abs(datetime.now(UTC).replace(tzinfo=None) - now) < timedelta(seconds=5)
