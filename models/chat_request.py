"""Chat request model and its status values."""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, BigIntId, utcnow


class RequestStatus(str, Enum):
    PENDING = "pending"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"
    EXPIRED = "expired"


OPEN_STATUSES = frozenset({RequestStatus.PENDING.value, RequestStatus.VIEWED.value})
TERMINAL_STATUSES = frozenset(
    {
        RequestStatus.ACCEPTED.value,
        RequestStatus.REJECTED.value,
        RequestStatus.BLOCKED.value,
        RequestStatus.EXPIRED.value,
    }
)


class ChatRequest(Base):
    """Request from one user to start a chat with another. Never deleted."""

    __tablename__ = "chat_requests"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RequestStatus.PENDING.value)
    notification_ref: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # Telegram message id
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    connected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="chk_chat_request_no_self"),
        CheckConstraint(
            "status IN ('pending','viewed','accepted','rejected','blocked','expired')",
            name="chk_chat_request_status",
        ),
        # Pending lookups for the receiver
        Index("idx_chat_requests_receiver_status", "receiver_id", "status"),
        # Cooldown lookups for the ordered pair
        Index("idx_chat_requests_pair_created", "sender_id", "receiver_id", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return (
            f"<ChatRequest(id={self.id}, sender_id={self.sender_id}, "
            f"receiver_id={self.receiver_id}, status={self.status})>"
        )
