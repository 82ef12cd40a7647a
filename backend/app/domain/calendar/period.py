"""
Blocked Period 도메인 타입

- RawCalendarEvent: 피드 파싱 직후의 VEVENT 원본 토큰 (저장하지 않음)
- BlockedPeriod: [start, end) 반개구간 차단 기간
- DayRange: 가용 기간 등 출처 없는 날짜 구간
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.domain.calendar.day import CalendarDay


class PeriodSource(str, Enum):
    SYNCED = "synced"    # iCal 피드에서 동기화
    MANUAL = "manual"    # 호스트가 직접 막은 날짜


@dataclass(frozen=True)
class RawCalendarEvent:
    """VEVENT 하나에서 뽑아낸 원본 필드 (모두 optional)"""
    start_token: Optional[str] = None
    end_token: Optional[str] = None
    summary: Optional[str] = None
    uid: Optional[str] = None


@dataclass(frozen=True)
class DayRange:
    """[start, end) 날짜 구간"""
    start: CalendarDay
    end: CalendarDay

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def contains(self, day: CalendarDay) -> bool:
        return self.start <= day < self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.ymd, "end": self.end.ymd}


@dataclass(frozen=True)
class BlockedPeriod:
    """
    차단 기간

    - start: 첫 차단일 (inclusive)
    - end: 차단 후 첫 예약 가능일 (exclusive, iCal DTEND 와 동일)
    - source 가 SYNCED 이면 feed_id, MANUAL 이면 manual_block_id 를 가짐
    """
    start: CalendarDay
    end: CalendarDay
    source: PeriodSource
    summary: Optional[str] = None
    uid: Optional[str] = None
    feed_id: Optional[int] = None
    manual_block_id: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return self.end > self.start

    def contains(self, day: CalendarDay) -> bool:
        return self.start <= day < self.end

    def as_range(self) -> DayRange:
        return DayRange(self.start, self.end)
