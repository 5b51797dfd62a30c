"""Process-local implementation of every store interface.

There is no transactional isolation here, so transactions take per-key
``asyncio.Lock`` objects (one per request and one per user) and stage their
writes until the transaction body finishes without an exception.
"""

import asyncio
import itertools
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any

from core.exceptions import NotFound
from models.chat_request import OPEN_STATUSES, ChatRequest, RequestStatus
from services.profiles import ChatFilter, Profile


class _MemoryTransaction:
    def __init__(self, store: "InMemoryStore") -> None:
        self.store = store
        self._staged: list[Callable[[], None]] = []
        self._held: dict[tuple[str, int], asyncio.Lock] = {}

    async def _acquire(self, key: tuple[str, int]) -> None:
        if key in self._held:
            return
        lock = self.store._locks[key]
        self.store._lock_refs[key] += 1
        try:
            await lock.acquire()
        except asyncio.CancelledError:
            self._drop_ref(key)
            raise
        self._held[key] = lock

    def _drop_ref(self, key: tuple[str, int]) -> None:
        self.store._lock_refs[key] -= 1
        # No holder and no waiter left for the key
        if not self.store._lock_refs[key]:
            del self.store._lock_refs[key]
            del self.store._locks[key]

    async def get_request(self, request_id: int, *, for_update: bool = False) -> ChatRequest | None:
        if for_update:
            await self._acquire(("request", request_id))
        await asyncio.sleep(0)
        return self.store.requests.get(request_id)

    async def lock_users(self, *user_ids: int) -> None:
        for user_id in sorted(set(user_ids)):
            await self._acquire(("user", user_id))

    async def is_user_in_active_chat(self, user_id: int) -> bool:
        await asyncio.sleep(0)
        return await self.store.is_user_in_active_chat(user_id)

    async def insert_request(self, sender_id: int, receiver_id: int, created_at: datetime) -> ChatRequest:
        request = ChatRequest(
            id=next(self.store._request_ids),
            sender_id=sender_id,
            receiver_id=receiver_id,
            status=RequestStatus.PENDING.value,
            notification_ref=None,
            created_at=created_at,
            viewed_at=None,
            responded_at=None,
            connected=False,
        )
        self._staged.append(lambda: self.store.requests.__setitem__(request.id, request))
        return request

    async def update_request(self, request: ChatRequest, **values: Any) -> None:
        def apply() -> None:
            for key, value in values.items():
                setattr(request, key, value)

        self._staged.append(apply)

    async def claim_active_chat(self, user_a: int, user_b: int, request_id: int, started_at: datetime) -> int:
        chat_id = next(self.store._chat_ids)
        self._staged.append(lambda: self.store.active_chats.__setitem__(chat_id, (user_a, user_b)))
        return chat_id

    def commit(self) -> None:
        for apply in self._staged:
            apply()
        self._staged.clear()

    def release(self) -> None:
        for key, lock in self._held.items():
            lock.release()
            self._drop_ref(key)
        self._held.clear()


class InMemoryStore:
    """Profiles, filters, requests, active chats and blocks held in dicts."""

    def __init__(self) -> None:
        self.profiles: dict[int, Profile] = {}
        self.requests: dict[int, ChatRequest] = {}
        self.active_chats: dict[int, tuple[int, int]] = {}
        self.blocks: set[tuple[int, int]] = set()
        self.opened_chats: list[tuple[int, int]] = []
        self._request_ids = itertools.count(1)
        self._chat_ids = itertools.count(1)
        self._locks: defaultdict[tuple[str, int], asyncio.Lock] = defaultdict(asyncio.Lock)
        self._lock_refs: defaultdict[tuple[str, int], int] = defaultdict(int)

    def add_profile(self, profile: Profile) -> None:
        self.profiles[profile.user_id] = profile

    # Profiles and filters

    async def get_profile(self, user_id: int) -> Profile | None:
        await asyncio.sleep(0)
        return self.profiles.get(user_id)

    async def save_filter(self, user_id: int, chat_filter: ChatFilter) -> None:
        profile = self.profiles.get(user_id)
        if profile is None:
            raise NotFound(f"User {user_id} not found")
        self.profiles[user_id] = replace(profile, chat_filter=chat_filter)

    # Requests

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_MemoryTransaction]:
        tx = _MemoryTransaction(self)
        try:
            yield tx
            tx.commit()
        finally:
            tx.release()

    async def get_request(self, request_id: int) -> ChatRequest | None:
        return self.requests.get(request_id)

    async def last_request_between(self, sender_id: int, receiver_id: int) -> ChatRequest | None:
        pair = [r for r in self.requests.values() if r.sender_id == sender_id and r.receiver_id == receiver_id]
        if not pair:
            return None
        return max(pair, key=lambda r: (r.created_at, r.id))

    async def list_pending(self, receiver_id: int) -> list[ChatRequest]:
        pending = [r for r in self.requests.values() if r.receiver_id == receiver_id and r.status in OPEN_STATUSES]
        return sorted(pending, key=lambda r: (r.created_at, r.id), reverse=True)

    async def count_pending(self, receiver_id: int) -> int:
        return len(await self.list_pending(receiver_id))

    # Active chats

    async def is_user_in_active_chat(self, user_id: int) -> bool:
        return any(user_id in pair for pair in self.active_chats.values())

    async def open_chat(self, user_a_id: int, user_b_id: int) -> int:
        for chat_id, pair in self.active_chats.items():
            if set(pair) == {user_a_id, user_b_id}:
                self.opened_chats.append((user_a_id, user_b_id))
                return chat_id
        raise NotFound(f"No active chat for users {user_a_id} and {user_b_id}")

    async def end_chat(self, user_id: int) -> int | None:
        for chat_id, pair in list(self.active_chats.items()):
            if user_id in pair:
                del self.active_chats[chat_id]
                return chat_id
        return None

    # Blocks

    async def register_block(self, blocker_id: int, blocked_id: int) -> None:
        self.blocks.add((blocker_id, blocked_id))

    async def is_blocked(self, blocker_id: int, blocked_id: int) -> bool:
        return (blocker_id, blocked_id) in self.blocks
