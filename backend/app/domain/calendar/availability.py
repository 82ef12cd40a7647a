"""
Availability Resolver

차단 기간(synced ∪ manual)에 대한 조회용 순수 함수.
"오늘"은 항상 인자로 받는다.
"""
from __future__ import annotations

from typing import Iterable

from app.domain.calendar.day import CalendarDay, add_months, iterate_days
from app.domain.calendar.merger import merge_periods
from app.domain.calendar.period import BlockedPeriod, DayRange


def is_blocked(day: CalendarDay, periods: Iterable[BlockedPeriod]) -> bool:
    """day 가 어느 차단 기간의 [start, end) 에 들어가면 True"""
    return any(period.contains(day) for period in periods)


def find_blocking_periods(day: CalendarDay, periods: Iterable[BlockedPeriod]) -> list[BlockedPeriod]:
    """day 를 막고 있는 차단 기간들 (차단 사유 표시용)"""
    return [period for period in periods if period.contains(day)]


def horizon_end(today: CalendarDay, horizon_months: int) -> CalendarDay:
    return add_months(today, horizon_months)


def compute_available_periods(
    periods: Iterable[BlockedPeriod],
    horizon_months: int,
    today: CalendarDay,
) -> list[DayRange]:
    """
    [today, today + horizon_months) 에서 차단 기간을 뺀 예약 가능 구간

    - 오늘 이전에 끝난 차단은 무시
    - horizon 을 넘는 차단은 horizon 끝에서 잘림
    - horizon 전체가 막혀 있으면 빈 리스트
    """
    window_end = horizon_end(today, horizon_months)
    available: list[DayRange] = []
    cursor = today

    for blocked in merge_periods(periods):
        if cursor >= window_end:
            break
        if blocked.end <= cursor:
            continue
        if blocked.start >= window_end:
            break
        if blocked.start > cursor:
            available.append(DayRange(cursor, blocked.start))
        cursor = max(cursor, blocked.end)

    if cursor < window_end:
        available.append(DayRange(cursor, window_end))

    return available


def find_conflicts(
    start: CalendarDay,
    end: CalendarDay,
    periods: Iterable[BlockedPeriod],
) -> list[tuple[CalendarDay, BlockedPeriod]]:
    """[start, end) 기간 중 막혀 있는 날짜와 그 날짜를 막은 기간"""
    periods = list(periods)
    conflicts = []
    for day in iterate_days(start, end):
        blocking = find_blocking_periods(day, periods)
        if blocking:
            conflicts.append((day, blocking[0]))
    return conflicts


def blocked_days(
    periods: Iterable[BlockedPeriod],
    window_start: CalendarDay,
    window_end: CalendarDay,
) -> dict[CalendarDay, list[BlockedPeriod]]:
    """window 안의 날짜별 차단 기간 (달력 표시용)"""
    days: dict[CalendarDay, list[BlockedPeriod]] = {}
    for period in periods:
        start = max(period.start, window_start)
        end = min(period.end, window_end)
        for day in iterate_days(start, end):
            days.setdefault(day, []).append(period)
    return days
