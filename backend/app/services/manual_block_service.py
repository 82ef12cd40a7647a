"""
Manual Block Service

호스트 수동 차단 생성/조회/삭제
- 검증 순서: 날짜 형식 → end > start → 기간 365일 이하 → 메모 길이
- 숙소 소유권 확인은 호출자(API 레이어) 책임
- 저장 시점에는 병합하지 않음 (개별 삭제 가능해야 함)
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.domain.calendar import InvalidDateFormat, days_between, parse_ymd
from app.domain.models.manual_block import ManualBlock
from app.repositories.manual_block_repository import ManualBlockRepository

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 255


class ManualBlockValidationError(ValueError):
    """수동 차단 입력값 오류 (reason 은 그대로 사용자에게 노출)"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ManualBlockNotFoundError(LookupError):
    pass


class ManualBlockOwnershipError(ValueError):
    """다른 숙소의 수동 차단을 삭제하려는 경우"""


class ManualBlockService:
    """
    수동 차단 저장소

    - create: 검증 후 저장 (flush 만, commit 은 호출자)
    - list: start 순
    - delete: 숙소 일치 확인 후 삭제
    """

    def __init__(self, db: Session, max_days: Optional[int] = None):
        self.db = db
        self.repo = ManualBlockRepository(db)
        self.max_days = max_days if max_days is not None else settings.MANUAL_BLOCK_MAX_DAYS

    def validate(self, start: str, end: str, note: Optional[str] = None) -> None:
        """
        Raises:
            ManualBlockValidationError: 첫 번째로 실패한 검증 사유
        """
        try:
            start_day = parse_ymd(start)
            end_day = parse_ymd(end)
        except InvalidDateFormat:
            raise ManualBlockValidationError("Dates must be in YYYY-MM-DD format")

        if end_day <= start_day:
            raise ManualBlockValidationError("end must be after start")

        try:
            span = days_between(start_day, end_day)
        except (ValueError, OverflowError):
            raise ManualBlockValidationError("Dates must be in YYYY-MM-DD format")

        if span > self.max_days:
            raise ManualBlockValidationError(f"Block range cannot exceed {self.max_days} days")

        if note is not None and len(note) > MAX_NOTE_LENGTH:
            raise ManualBlockValidationError(
                f"Note must be {MAX_NOTE_LENGTH} characters or fewer"
            )

    def create(
        self,
        property_code: str,
        start: str,
        end: str,
        note: Optional[str] = None,
    ) -> ManualBlock:
        self.validate(start, end, note)

        block = self.repo.create(
            property_code=property_code,
            start_date=start,
            end_date=end,
            note=(note or "").strip() or None,
        )
        logger.info(
            f"MANUAL_BLOCK: Created block for property={property_code}: {start} to {end}"
        )
        return block

    def list(self, property_code: str) -> list[ManualBlock]:
        return self.repo.list_for_property(property_code)

    def delete(self, property_code: str, block_id: int) -> None:
        block = self.repo.get(block_id)
        if block is None:
            raise ManualBlockNotFoundError(f"Block not found: {block_id}")

        if block.property_code != property_code:
            raise ManualBlockOwnershipError("Block does not belong to this property")

        self.repo.delete(block)
        logger.info(f"MANUAL_BLOCK: Deleted block {block_id} for property={property_code}")
