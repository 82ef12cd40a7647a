"""
Property Model

달력 엔진의 기준 단위. 차단 기간은 모두 property_code 로 묶인다.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class PropertyProfile(Base):
    """
    숙소

    - property_code: 숙소 고유 코드 (피드/수동 차단이 이 값으로 연결됨)
    - host_id: 숙소를 관리하는 호스트 (수동 차단 권한 확인용, 없으면 공용)
    - is_active=False 이면 달력 API 에서 404
    """

    __tablename__ = "property_profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    property_code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    host_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<PropertyProfile {self.property_code} host={self.host_id} active={self.is_active}>"
