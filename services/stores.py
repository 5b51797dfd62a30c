"""Interfaces the chat request lifecycle depends on.

Two implementations ship with the project: ``services.sql_store`` (PostgreSQL in
production, row locks inside a database transaction) and ``services.memory_store``
(a per-key lock table, used by tests and local runs).
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol

from models.chat_request import ChatRequest
from services.profiles import ChatFilter, Profile


class ProfileLookup(Protocol):
    async def get_profile(self, user_id: int) -> Profile | None: ...


class FilterRepository(Protocol):
    async def save_filter(self, user_id: int, chat_filter: ChatFilter) -> None: ...


class ActiveChatStore(Protocol):
    async def is_user_in_active_chat(self, user_id: int) -> bool: ...


class RequestTransaction(Protocol):
    """One atomic unit of work against the request and active-chat tables.

    Everything staged through it is committed when the owning context manager
    exits normally and discarded when it exits with an exception.
    """

    async def get_request(self, request_id: int, *, for_update: bool = False) -> ChatRequest | None: ...

    async def lock_users(self, *user_ids: int) -> None: ...

    async def is_user_in_active_chat(self, user_id: int) -> bool: ...

    async def insert_request(self, sender_id: int, receiver_id: int, created_at: datetime) -> ChatRequest: ...

    async def update_request(self, request: ChatRequest, **values: Any) -> None: ...

    async def claim_active_chat(self, user_a: int, user_b: int, request_id: int, started_at: datetime) -> int: ...


class RequestStore(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[RequestTransaction]: ...

    async def get_request(self, request_id: int) -> ChatRequest | None: ...

    async def last_request_between(self, sender_id: int, receiver_id: int) -> ChatRequest | None: ...

    async def list_pending(self, receiver_id: int) -> list[ChatRequest]: ...

    async def count_pending(self, receiver_id: int) -> int: ...


class ChatOpener(Protocol):
    async def open_chat(self, user_a_id: int, user_b_id: int) -> int: ...


class BlockRegistry(Protocol):
    async def register_block(self, blocker_id: int, blocked_id: int) -> None: ...

    async def is_blocked(self, blocker_id: int, blocked_id: int) -> bool: ...


class Notifier(Protocol):
    async def request_received(self, request: ChatRequest) -> int | None: ...

    async def request_accepted(self, request: ChatRequest, chat_id: int) -> bool: ...

    async def request_rejected(self, request: ChatRequest) -> bool: ...
