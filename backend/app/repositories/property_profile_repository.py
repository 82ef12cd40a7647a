# backend/app/repositories/property_profile_repository.py
"""
PropertyProfile Repository

달력 API 의 숙소 조회 (비활성 숙소는 기본적으로 제외)
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.models.property_profile import PropertyProfile


class PropertyProfileRepository:
    """숙소 조회/등록/비활성화"""

    def __init__(self, db: Session):
        self._db = db

    def _query(self, active_only: bool):
        stmt = select(PropertyProfile)
        if active_only:
            stmt = stmt.where(PropertyProfile.is_active.is_(True))
        return stmt

    def get_by_property_code(
        self,
        property_code: str,
        active_only: bool = True,
    ) -> Optional[PropertyProfile]:
        stmt = self._query(active_only).where(PropertyProfile.property_code == property_code)
        return self._db.execute(stmt).scalar_one_or_none()

    def list_all(
        self,
        *,
        host_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[PropertyProfile]:
        """property_code 순. host_id 를 주면 해당 호스트 숙소만."""
        stmt = self._query(active_only)
        if host_id is not None:
            stmt = stmt.where(PropertyProfile.host_id == host_id)
        stmt = stmt.order_by(PropertyProfile.property_code)
        return list(self._db.execute(stmt).scalars().all())

    def create(
        self,
        property_code: str,
        name: str,
        host_id: Optional[str] = None,
    ) -> PropertyProfile:
        profile = PropertyProfile(
            property_code=property_code,
            name=name,
            host_id=host_id,
            is_active=True,
        )
        self._db.add(profile)
        self._db.flush()
        return profile

    def deactivate(self, profile: PropertyProfile) -> None:
        # 코드 재사용을 막기 위해 행은 남겨둠
        profile.is_active = False
        self._db.flush()
