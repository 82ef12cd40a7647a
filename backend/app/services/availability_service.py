"""
Availability Service

숙소별 예약 가능 여부 조회 (읽기 전용, 락 없음)
- iCal 차단 + 수동 차단을 조회 시점에 합쳐서 판단
- 동기화가 실패 중인 숙소는 마지막 성공 데이터로 응답
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.domain.calendar import (
    BlockedPeriod,
    CalendarDay,
    DayRange,
    PeriodSource,
    add_months,
    blocked_days,
    compute_available_periods,
    find_blocking_periods,
    find_conflicts,
    is_blocked,
    iterate_days,
    merge_periods,
)
from app.domain.models.calendar_feed import CalendarFeed
from app.domain.models.manual_block import ManualBlock
from app.repositories.blocked_period_repository import BlockedPeriodRepository
from app.repositories.calendar_feed_repository import CalendarFeedRepository
from app.repositories.manual_block_repository import ManualBlockRepository

logger = logging.getLogger(__name__)


@dataclass
class CalendarView:
    """숙소 달력 요약 (출처별 + 병합 + 가용 기간)"""
    property_code: str
    blocked_from_ical: list[BlockedPeriod]
    blocked_manual: list[BlockedPeriod]
    blocked_merged: list[BlockedPeriod]
    available_periods: list[DayRange]
    feeds: list[CalendarFeed] = field(default_factory=list)


@dataclass
class CalendarDayInfo:
    day: CalendarDay
    blocked: bool
    source: Optional[PeriodSource] = None
    summary: Optional[str] = None


@dataclass
class MonthCalendar:
    property_code: str
    year: int
    month: int
    days: list[CalendarDayInfo]

    @property
    def blocked_days(self) -> int:
        return sum(1 for d in self.days if d.blocked)

    @property
    def total_days(self) -> int:
        return len(self.days)

    @property
    def occupancy_rate(self) -> float:
        if not self.days:
            return 0.0
        return round(self.blocked_days / self.total_days * 100, 1)


@dataclass
class RangeCheck:
    available: bool
    conflicts: list[tuple[CalendarDay, BlockedPeriod]]


class AvailabilityService:
    """
    조회 인터페이스

    - is_date_blocked: 특정 날짜 차단 여부
    - get_available_periods: horizon 내 예약 가능 구간
    - list_manual_blocks: 수동 차단 목록
    """

    def __init__(self, db: Session):
        self.db = db
        self.periods = BlockedPeriodRepository(db)
        self.manual_blocks = ManualBlockRepository(db)
        self.feeds = CalendarFeedRepository(db)

    def list_periods(self, property_code: str) -> list[BlockedPeriod]:
        return self.periods.list_periods(property_code)

    def is_date_blocked(self, property_code: str, day: CalendarDay) -> bool:
        return is_blocked(day, self.list_periods(property_code))

    def find_blocking_periods(self, property_code: str, day: CalendarDay) -> list[BlockedPeriod]:
        return find_blocking_periods(day, self.list_periods(property_code))

    def get_available_periods(
        self,
        property_code: str,
        today: CalendarDay,
        horizon_months: Optional[int] = None,
    ) -> list[DayRange]:
        if horizon_months is None:
            horizon_months = settings.AVAILABILITY_HORIZON_MONTHS
        return compute_available_periods(
            self.list_periods(property_code),
            horizon_months,
            today,
        )

    def list_manual_blocks(self, property_code: str) -> list[ManualBlock]:
        return self.manual_blocks.list_for_property(property_code)

    def get_calendar_view(
        self,
        property_code: str,
        today: CalendarDay,
        horizon_months: Optional[int] = None,
    ) -> CalendarView:
        if horizon_months is None:
            horizon_months = settings.AVAILABILITY_HORIZON_MONTHS

        synced = self.periods.list_synced(property_code)
        manual = self.periods.list_manual(property_code)
        combined = synced + manual

        return CalendarView(
            property_code=property_code,
            blocked_from_ical=synced,
            blocked_manual=manual,
            blocked_merged=merge_periods(combined),
            available_periods=compute_available_periods(combined, horizon_months, today),
            feeds=self.feeds.list_for_property(property_code),
        )

    def get_month_calendar(self, property_code: str, year: int, month: int) -> MonthCalendar:
        """월간 달력 (날짜별 차단 여부와 사유)"""
        month_start = CalendarDay(year, month, 1)
        month_end = add_months(month_start, 1)

        by_day = blocked_days(self.list_periods(property_code), month_start, month_end)

        days: list[CalendarDayInfo] = []
        for day in iterate_days(month_start, month_end):
            blocking = by_day.get(day)
            if not blocking:
                days.append(CalendarDayInfo(day=day, blocked=False))
                continue
            # 수동 차단보다 iCal 차단을 먼저 보여줌
            first = sorted(blocking, key=lambda p: p.source != PeriodSource.SYNCED)[0]
            days.append(CalendarDayInfo(
                day=day,
                blocked=True,
                source=first.source,
                summary=first.summary,
            ))

        return MonthCalendar(property_code=property_code, year=year, month=month, days=days)

    def check_range(self, property_code: str, start: CalendarDay, end: CalendarDay) -> RangeCheck:
        """[start, end) 숙박 가능 여부"""
        conflicts = find_conflicts(start, end, self.list_periods(property_code))
        return RangeCheck(available=not conflicts, conflicts=conflicts)
