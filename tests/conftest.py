"""Shared fixtures. Settings env vars are set before any project import."""

import os

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST-token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("PUBLIC_BASE_URL", "https://bot.example.test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("INTERNAL_BOT_SECRET", "test-bot-secret")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402

from core.geo import GeoPoint  # noqa: E402
from services.chat_requests import ChatRequestLifecycle  # noqa: E402
from services.eligibility import EligibilityEvaluator  # noqa: E402
from services.memory_store import InMemoryStore  # noqa: E402
from services.profiles import ChatFilter, Profile  # noqa: E402

SEOUL = GeoPoint(37.5665, 126.9780)
INCHEON = GeoPoint(37.4563, 126.7052)
BUSAN = GeoPoint(35.1796, 129.0756)


def make_profile(
    user_id: int,
    gender: str | None = "male",
    age: int | None = 30,
    region: str | None = "Seoul",
    location: GeoPoint | None = None,
    chat_filter: ChatFilter | None = None,
) -> Profile:
    return Profile(
        user_id=user_id,
        gender=gender,
        age=age,
        region=region,
        location=location,
        chat_filter=chat_filter or ChatFilter(),
    )


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeNotifier:
    """Records every notification; ``fail`` makes each call raise."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.received: list[int] = []
        self.accepted: list[tuple[int, int]] = []
        self.rejected: list[int] = []

    async def request_received(self, request) -> int | None:
        if self.fail:
            raise RuntimeError("telegram down")
        self.received.append(request.id)
        return 1000 + request.id

    async def request_accepted(self, request, chat_id: int) -> bool:
        if self.fail:
            raise RuntimeError("telegram down")
        self.accepted.append((request.id, chat_id))
        return True

    async def request_rejected(self, request) -> bool:
        if self.fail:
            raise RuntimeError("telegram down")
        self.rejected.append(request.id)
        return True


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    for user_id in (1, 2, 3, 4):
        store.add_profile(make_profile(user_id))
    return store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def lifecycle(store: InMemoryStore, notifier: FakeNotifier, clock: FakeClock) -> ChatRequestLifecycle:
    return ChatRequestLifecycle(
        store=store,
        active_chats=store,
        evaluator=EligibilityEvaluator(store),
        chat_opener=store,
        blocks=store,
        notifier=notifier,
        cooldown=timedelta(minutes=5),
        clock=clock,
    )
