"""
Calendar Feed Model

숙소별 외부 iCal 피드 구독 (Airbnb, VRBO, Booking.com 리스팅 하나당 한 개)
- 마지막 동기화 결과와 조건부 요청용 ETag / Last-Modified 저장
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import String, Text, DateTime, Boolean, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class FeedSyncStatus(str, Enum):
    SUCCEEDED = "succeeded"
    NOT_MODIFIED = "not_modified"
    FAILED = "failed"


class CalendarFeed(Base):
    """
    iCal 피드 구독

    - property_code: 숙소 코드
    - platform: 예약 플랫폼 (airbnb, vrbo, booking ...)
    - ical_url: 공개 iCal export URL
    """

    __tablename__ = "calendar_feeds"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
    )

    property_code: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )

    platform: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="airbnb",
    )

    ical_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    # 조건부 요청 (304 Not Modified)
    etag: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_modified: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # 마지막 동기화 결과
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_sync_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    last_sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_event_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
    )

    __table_args__ = (
        Index("idx_calendar_feeds_property_url", "property_code", "ical_url", unique=True),
    )

    def __repr__(self) -> str:
        return f"<CalendarFeed {self.id} {self.property_code} {self.platform}>"
