from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ManualBlock(Base):
    """
    호스트가 직접 막은 날짜 [start_date, end_date)

    iCal 동기화와 무관하게 유지되며, 조회 시점에만 iCal 차단과 병합된다.
    호스트가 개별 삭제할 수 있도록 저장 시점에는 병합하지 않는다.
    """

    __tablename__ = "manual_blocks"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
    )

    property_code: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )

    # YYYY-MM-DD
    start_date: Mapped[str] = mapped_column(String(10), nullable=False)
    end_date: Mapped[str] = mapped_column(String(10), nullable=False)

    # 차단 사유 (예: "가족 방문", "리모델링")
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
    )

    __table_args__ = (
        Index("idx_manual_blocks_property_start", "property_code", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<ManualBlock {self.id} {self.property_code} {self.start_date}~{self.end_date}>"
