from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, BigIntId, utcnow
from core.geo import GeoPoint
from services.profiles import ChatFilter, DistanceClass, GenderFilter, Profile


class User(Base):
    """User with the profile fields and chat filter the matchmaking core reads."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    tg_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    nickname: Mapped[str] = mapped_column(String(64), nullable=False)
    gender: Mapped[str | None] = mapped_column(String(8), nullable=True)  # male, female
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    region: Mapped[str | None] = mapped_column(String(64), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Chat request filter, cleared (never deleted) to remove it
    filter_gender: Mapped[str | None] = mapped_column(String(8), nullable=True)
    filter_distance: Mapped[str | None] = mapped_column(String(16), nullable=True)
    filter_min_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    filter_max_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    filter_visible: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    @property
    def location(self) -> GeoPoint | None:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(self.latitude, self.longitude)

    @property
    def chat_filter(self) -> ChatFilter:
        return ChatFilter(
            gender=GenderFilter(self.filter_gender) if self.filter_gender else None,
            distance=DistanceClass(self.filter_distance) if self.filter_distance else None,
            min_age=self.filter_min_age,
            max_age=self.filter_max_age,
            visible=bool(self.filter_visible),
        )

    def apply_filter(self, chat_filter: ChatFilter) -> None:
        """Overwrite all filter columns in one go."""
        self.filter_gender = chat_filter.gender.value if chat_filter.gender else None
        self.filter_distance = chat_filter.distance.value if chat_filter.distance else None
        self.filter_min_age = chat_filter.min_age
        self.filter_max_age = chat_filter.max_age
        self.filter_visible = chat_filter.visible

    def to_profile(self) -> Profile:
        return Profile(
            user_id=self.id,
            gender=self.gender,
            age=self.age,
            region=self.region,
            location=self.location,
            chat_filter=self.chat_filter,
        )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, nickname={self.nickname})>"
