# backend/app/repositories/manual_block_repository.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.models.manual_block import ManualBlock


class ManualBlockRepository:
    """ManualBlock 조회/생성/삭제 레포지토리"""

    def __init__(self, db: Session):
        self._db = db

    def get(self, block_id: int) -> Optional[ManualBlock]:
        return self._db.get(ManualBlock, block_id)

    def list_for_property(self, property_code: str) -> List[ManualBlock]:
        """start_date 순 정렬"""
        stmt = (
            select(ManualBlock)
            .where(ManualBlock.property_code == property_code)
            .order_by(ManualBlock.start_date, ManualBlock.id)
        )
        return list(self._db.execute(stmt).scalars().all())

    def create(
        self,
        property_code: str,
        start_date: str,
        end_date: str,
        note: Optional[str] = None,
    ) -> ManualBlock:
        block = ManualBlock(
            property_code=property_code,
            start_date=start_date,
            end_date=end_date,
            note=note,
        )
        self._db.add(block)
        self._db.flush()
        return block

    def delete(self, block: ManualBlock) -> None:
        self._db.delete(block)
        self._db.flush()
