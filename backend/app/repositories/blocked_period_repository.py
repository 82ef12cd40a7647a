# backend/app/repositories/blocked_period_repository.py
"""
Blocked Period Repository

차단 기간 저장소
- replace_synced_periods: 피드 단위 통째 교체 (delete → insert, 커밋은 호출자)
- list_periods: 숙소의 synced ∪ manual 차단 기간을 도메인 타입으로 반환
"""
from __future__ import annotations

from typing import Iterable, List

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from app.domain.calendar import BlockedPeriod, PeriodSource, parse_ymd
from app.domain.models.ical_blocked_period import IcalBlockedPeriod
from app.domain.models.manual_block import ManualBlock


def _clip(value: str | None, limit: int = 255) -> str | None:
    if not value:
        return None
    return value[:limit]


def _synced_to_domain(row: IcalBlockedPeriod) -> BlockedPeriod:
    return BlockedPeriod(
        start=parse_ymd(row.start_date),
        end=parse_ymd(row.end_date),
        source=PeriodSource.SYNCED,
        summary=row.summary,
        uid=row.uid,
        feed_id=row.feed_id,
    )


def manual_to_domain(row: ManualBlock) -> BlockedPeriod:
    return BlockedPeriod(
        start=parse_ymd(row.start_date),
        end=parse_ymd(row.end_date),
        source=PeriodSource.MANUAL,
        summary=row.note or "Manual block",
        manual_block_id=row.id,
    )


class BlockedPeriodRepository:
    """iCal 차단 기간 + 수동 차단 조회 레포지토리"""

    def __init__(self, db: Session):
        self._db = db

    def replace_synced_periods(
        self,
        feed_id: int,
        property_code: str,
        periods: Iterable[BlockedPeriod],
    ) -> int:
        """
        피드의 기존 차단 기간을 모두 지우고 새로 삽입

        같은 트랜잭션 안에서 실행되어야 하며 commit/rollback 은 호출자 책임.

        Returns:
            삽입된 차단 기간 수
        """
        self._db.execute(
            delete(IcalBlockedPeriod).where(IcalBlockedPeriod.feed_id == feed_id)
        )

        count = 0
        for period in periods:
            self._db.add(IcalBlockedPeriod(
                feed_id=feed_id,
                property_code=property_code,
                start_date=period.start.ymd,
                end_date=period.end.ymd,
                summary=_clip(period.summary),
                uid=_clip(period.uid),
            ))
            count += 1

        self._db.flush()
        return count

    def delete_for_feed(self, feed_id: int) -> None:
        self._db.execute(
            delete(IcalBlockedPeriod).where(IcalBlockedPeriod.feed_id == feed_id)
        )
        self._db.flush()

    def list_synced_for_feed(self, feed_id: int) -> List[BlockedPeriod]:
        stmt = (
            select(IcalBlockedPeriod)
            .where(IcalBlockedPeriod.feed_id == feed_id)
            .order_by(IcalBlockedPeriod.start_date, IcalBlockedPeriod.id)
        )
        return [_synced_to_domain(row) for row in self._db.execute(stmt).scalars().all()]

    def list_synced(self, property_code: str) -> List[BlockedPeriod]:
        stmt = (
            select(IcalBlockedPeriod)
            .where(IcalBlockedPeriod.property_code == property_code)
            .order_by(IcalBlockedPeriod.start_date, IcalBlockedPeriod.id)
        )
        return [_synced_to_domain(row) for row in self._db.execute(stmt).scalars().all()]

    def list_manual(self, property_code: str) -> List[BlockedPeriod]:
        stmt = (
            select(ManualBlock)
            .where(ManualBlock.property_code == property_code)
            .order_by(ManualBlock.start_date, ManualBlock.id)
        )
        return [manual_to_domain(row) for row in self._db.execute(stmt).scalars().all()]

    def list_periods(self, property_code: str) -> List[BlockedPeriod]:
        """synced + manual 차단 기간 (start 순)"""
        periods = self.list_synced(property_code) + self.list_manual(property_code)
        periods.sort(key=lambda p: p.start.ymd)
        return periods
