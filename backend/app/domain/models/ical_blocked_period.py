"""
iCal Blocked Period Model

피드 하나를 파싱/병합한 결과를 저장
- 날짜는 YYYY-MM-DD 문자열 (타임존 변환 없음)
- 피드 단위로 통째로 교체됨 (부분 수정 없음)
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class IcalBlockedPeriod(Base):
    """
    동기화된 차단 기간 [start_date, end_date)

    - end_date 는 차단 후 첫 예약 가능일 (iCal DTEND 와 동일하게 exclusive)
    - 같은 피드의 행끼리는 겹치지도 맞닿지도 않음 (병합 후 저장)
    """

    __tablename__ = "ical_blocked_periods"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    feed_id: Mapped[int] = mapped_column(
        ForeignKey("calendar_feeds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # 조회용 비정규화
    property_code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    start_date: Mapped[str] = mapped_column(String(10), nullable=False)
    end_date: Mapped[str] = mapped_column(String(10), nullable=False)

    # 병합된 VEVENT 들 중 대표 SUMMARY ("Reserved" 우선) / 첫 UID
    summary: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uid: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
    )

    __table_args__ = (
        Index("idx_blocked_periods_property_start", "property_code", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<IcalBlockedPeriod feed={self.feed_id} {self.start_date}~{self.end_date}>"
