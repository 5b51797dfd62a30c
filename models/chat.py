from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, BigIntId, utcnow

CHAT_ACTIVE = "active"
CHAT_ENDED = "ended"


class ChatSession(Base):
    """Chat session between two users. A user has at most one row in state 'active'."""

    __tablename__ = "chat_sessions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_a: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_b: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    request_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("chat_requests.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CHAT_ACTIVE)  # active, ended
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("user_a <> user_b", name="chk_chat_no_self"),
        Index("idx_chat_sessions_user_a_status", "user_a", "status"),
        Index("idx_chat_sessions_user_b_status", "user_b", "status"),
    )

    def peer_of(self, user_id: int) -> int:
        return self.user_b if self.user_a == user_id else self.user_a

    def __repr__(self) -> str:
        return f"<ChatSession(id={self.id}, user_a={self.user_a}, user_b={self.user_b}, status={self.status})>"
