"""Chat request lifecycle: create, view, accept, reject, block.

Status flow::

    pending -> viewed -> accepted | rejected | blocked | expired

Terminal statuses never change again. ``accept`` is the only operation with a
cross-request guarantee: the busy check for both users and the status flip
happen inside one store transaction, so a user never ends up in two active
chats even when accepts race.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from core.config import settings
from core.db import utcnow
from core.exceptions import ConflictBusy, CooldownActive, IneligibleRequest, NotFound, RequestStateConflict
from core.metrics import (
    chat_request_accept_seconds,
    chat_requests_created_total,
    chat_requests_denied_total,
    chat_requests_resolved_total,
)
from models.chat_request import ChatRequest, RequestStatus
from services.eligibility import EligibilityEvaluator
from services.stores import ActiveChatStore, BlockRegistry, ChatOpener, Notifier, RequestStore, RequestTransaction

logger = logging.getLogger(__name__)

REASON_SELF = "You cannot send a chat request to yourself."
REASON_BLOCKED = "⚠️ This user does not accept chat requests from you."
SENDER_BUSY = "You are already in a chat. End it before sending a new request."
RECEIVER_BUSY = "This user is in another chat right now."
NO_LONGER_AVAILABLE = "Your partner is no longer available."


@dataclass(frozen=True)
class AcceptResult:
    request: ChatRequest
    chat_id: int


class ChatRequestLifecycle:
    """Orchestrates chat requests over the injected stores and collaborators."""

    def __init__(
        self,
        store: RequestStore,
        active_chats: ActiveChatStore,
        evaluator: EligibilityEvaluator,
        chat_opener: ChatOpener,
        blocks: BlockRegistry,
        notifier: Notifier | None = None,
        cooldown: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.active_chats = active_chats
        self.evaluator = evaluator
        self.chat_opener = chat_opener
        self.blocks = blocks
        self.notifier = notifier
        if cooldown is None:
            cooldown = timedelta(minutes=settings.chat_request_cooldown_minutes)
        self.cooldown = cooldown
        self.clock = clock

    async def create_request(self, sender_id: int, receiver_id: int) -> ChatRequest:
        """
        Create a pending request from sender to receiver.

        Args:
            sender_id: User sending the request
            receiver_id: User receiving the request

        Returns:
            The new request in status pending

        Raises:
            NotFound: Receiver or sender does not exist
            IneligibleRequest: Receiver's filter or block list denies the sender
            CooldownActive: Sender requested this receiver too recently
            ConflictBusy: Either party is already in an active chat
        """
        if sender_id == receiver_id:
            chat_requests_denied_total.labels(reason="self").inc()
            raise IneligibleRequest(REASON_SELF, code="self")

        eligibility = await self.evaluator.can_request(sender_id, receiver_id)
        if not eligibility.allowed:
            chat_requests_denied_total.labels(reason=eligibility.code).inc()
            logger.info(f"Chat request {sender_id} -> {receiver_id} denied: {eligibility.code}")
            raise IneligibleRequest(eligibility.reason or "", code=eligibility.code or "filter")

        if await self.blocks.is_blocked(receiver_id, sender_id):
            chat_requests_denied_total.labels(reason="blocked").inc()
            raise IneligibleRequest(REASON_BLOCKED, code="blocked")

        now = self.clock()
        last = await self.store.last_request_between(sender_id, receiver_id)
        if last is not None:
            elapsed = now - last.created_at
            if elapsed < self.cooldown:
                chat_requests_denied_total.labels(reason="cooldown").inc()
                raise CooldownActive(self.cooldown - elapsed)

        # Early rejection only; accept() re-checks inside its transaction
        if await self.active_chats.is_user_in_active_chat(sender_id):
            chat_requests_denied_total.labels(reason="busy").inc()
            raise ConflictBusy(SENDER_BUSY)
        if await self.active_chats.is_user_in_active_chat(receiver_id):
            chat_requests_denied_total.labels(reason="busy").inc()
            raise ConflictBusy(RECEIVER_BUSY)

        async with self.store.transaction() as tx:
            request = await tx.insert_request(sender_id, receiver_id, now)

        chat_requests_created_total.inc()
        logger.info(f"Chat request created: {sender_id} -> {receiver_id} (id={request.id})")

        return await self._attach_notification(request)

    async def mark_viewed(self, request_id: int) -> ChatRequest:
        """Move a pending request to viewed. Any other status is left as is."""
        async with self.store.transaction() as tx:
            request = await self._load(tx, request_id)
            if request.status == RequestStatus.PENDING.value:
                await tx.update_request(request, status=RequestStatus.VIEWED.value, viewed_at=self.clock())
                logger.info(f"Chat request {request_id} marked as viewed")
        return request

    async def accept(self, request_id: int) -> AcceptResult:
        """
        Accept a request and open the chat.

        Both users are re-checked for an active chat inside the transaction.
        If either is busy the request is committed as expired and
        ConflictBusy is raised; the request is never left open.

        Raises:
            NotFound: Request does not exist
            RequestStateConflict: Request already has a terminal status
            ConflictBusy: Either party joined another chat meanwhile
        """
        started = time.perf_counter()
        try:
            async with self.store.transaction() as tx:
                request = await self._load_open(tx, request_id)
                await tx.lock_users(request.sender_id, request.receiver_id)

                busy = await tx.is_user_in_active_chat(request.sender_id) or await tx.is_user_in_active_chat(
                    request.receiver_id
                )
                now = self.clock()
                if busy:
                    await tx.update_request(request, status=RequestStatus.EXPIRED.value, responded_at=now)
                else:
                    await tx.update_request(
                        request, status=RequestStatus.ACCEPTED.value, responded_at=now, connected=True
                    )
                    await tx.claim_active_chat(request.sender_id, request.receiver_id, request.id, now)
        finally:
            chat_request_accept_seconds.observe(time.perf_counter() - started)

        if busy:
            chat_requests_resolved_total.labels(status=RequestStatus.EXPIRED.value).inc()
            logger.info(f"Chat request {request_id} expired: a party is already in a chat")
            raise ConflictBusy(NO_LONGER_AVAILABLE, request=request)

        chat_id = await self.chat_opener.open_chat(request.sender_id, request.receiver_id)

        chat_requests_resolved_total.labels(status=RequestStatus.ACCEPTED.value).inc()
        logger.info(f"Chat request {request_id} accepted, chat {chat_id} opened")

        await self._notify("request_accepted", request, chat_id)
        return AcceptResult(request=request, chat_id=chat_id)

    async def reject(self, request_id: int) -> ChatRequest:
        request = await self._resolve(request_id, RequestStatus.REJECTED)
        await self._notify("request_rejected", request)
        return request

    async def block(self, request_id: int) -> ChatRequest:
        """Mark the request blocked and register the receiver's block of the sender."""
        request = await self._resolve(request_id, RequestStatus.BLOCKED)
        await self.blocks.register_block(request.receiver_id, request.sender_id)
        return request

    async def get_request(self, request_id: int) -> ChatRequest:
        request = await self.store.get_request(request_id)
        if request is None:
            raise NotFound(f"Chat request {request_id} not found")
        return request

    async def list_pending(self, user_id: int) -> list[ChatRequest]:
        """Pending and viewed requests addressed to the user, newest first."""
        return await self.store.list_pending(user_id)

    async def count_pending(self, user_id: int) -> int:
        return await self.store.count_pending(user_id)

    async def _resolve(self, request_id: int, status: RequestStatus) -> ChatRequest:
        async with self.store.transaction() as tx:
            request = await self._load_open(tx, request_id)
            await tx.update_request(request, status=status.value, responded_at=self.clock())

        chat_requests_resolved_total.labels(status=status.value).inc()
        logger.info(f"Chat request {request_id} {status.value}")
        return request

    async def _load(self, tx: RequestTransaction, request_id: int) -> ChatRequest:
        request = await tx.get_request(request_id, for_update=True)
        if request is None:
            raise NotFound(f"Chat request {request_id} not found")
        return request

    async def _load_open(self, tx: RequestTransaction, request_id: int) -> ChatRequest:
        request = await self._load(tx, request_id)
        if request.is_terminal:
            raise RequestStateConflict(request)
        return request

    async def _attach_notification(self, request: ChatRequest) -> ChatRequest:
        message_id = await self._notify("request_received", request)
        if message_id is None:
            return request

        try:
            async with self.store.transaction() as tx:
                stored = await self._load(tx, request.id)
                await tx.update_request(stored, notification_ref=message_id)
        except Exception:
            logger.exception(f"Failed to store notification ref for chat request {request.id}")
            return request
        return stored

    async def _notify(self, event: str, *args: Any) -> Any:
        """Deliver a notification; failures are logged and never propagate."""
        if self.notifier is None:
            return None
        try:
            return await getattr(self.notifier, event)(*args)
        except Exception:
            logger.exception(f"Notification {event} failed")
            return None
