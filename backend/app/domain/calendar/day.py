"""
Calendar Day Model

타임존 없는 달력 날짜 (YYYY-MM-DD)
- 모든 비교/정렬은 YYYY-MM-DD 문자열 기준
- 날짜 연산은 year/month/day 분해값으로만 수행 (타임스탬프 파싱 금지)
- 월별 일수 검증은 하지 않음 (2월 30일 허용, 연산 시 다음 달로 넘어감)
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterator

from dateutil.relativedelta import relativedelta

YMD_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# 숙박 달력에서 의미 있는 연도 범위
MIN_YEAR = 1900
MAX_YEAR = 2100


class InvalidDateFormat(ValueError):
    """YYYY-MM-DD 형식이 아닌 날짜 문자열"""


class Ordering(int, Enum):
    BEFORE = -1
    EQUAL = 0
    AFTER = 1


@dataclass(frozen=True, eq=False)
class CalendarDay:
    """
    하루 단위 날짜

    동등성/대소 비교는 ymd 문자열 기준.
    zero-padding 덕분에 문자열 사전순 == 날짜순.
    """
    year: int
    month: int
    day: int

    @property
    def ymd(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def __str__(self) -> str:
        return self.ymd

    def __repr__(self) -> str:
        return f"CalendarDay({self.ymd})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CalendarDay):
            return NotImplemented
        return self.ymd == other.ymd

    def __hash__(self) -> int:
        return hash(self.ymd)

    def __lt__(self, other: CalendarDay) -> bool:
        return self.ymd < other.ymd

    def __le__(self, other: CalendarDay) -> bool:
        return self.ymd <= other.ymd

    def __gt__(self, other: CalendarDay) -> bool:
        return self.ymd > other.ymd

    def __ge__(self, other: CalendarDay) -> bool:
        return self.ymd >= other.ymd

    @classmethod
    def from_date(cls, value: date) -> CalendarDay:
        return cls(value.year, value.month, value.day)

    def to_date(self) -> date:
        """
        datetime.date 로 변환

        월 길이를 넘는 day (예: 2월 30일)는 다음 달로 넘긴다.
        """
        return date(self.year, self.month, 1) + timedelta(days=self.day - 1)

    def normalized(self) -> CalendarDay:
        """실제 달력 날짜로 맞춘 값 (2월 30일 → 3월 2일)"""
        return CalendarDay.from_date(self.to_date())


def parse_ymd(text: str) -> CalendarDay:
    """
    YYYY-MM-DD 문자열 파싱

    Raises:
        InvalidDateFormat: 형식 불일치, 연도(1900~2100), 월(1~12) 또는 일(1~31) 범위 밖
    """
    if not isinstance(text, str):
        raise InvalidDateFormat(f"Not a date string: {text!r}")

    match = YMD_PATTERN.match(text)
    if not match:
        raise InvalidDateFormat(f"Dates must be in YYYY-MM-DD format: {text!r}")

    year, month, day = (int(part) for part in match.groups())
    if not is_valid_year(year):
        raise InvalidDateFormat(f"Year out of range: {text!r}")
    if not 1 <= month <= 12:
        raise InvalidDateFormat(f"Month out of range: {text!r}")
    if not 1 <= day <= 31:
        raise InvalidDateFormat(f"Day out of range: {text!r}")

    return CalendarDay(year, month, day)


def is_valid_year(year: int) -> bool:
    return MIN_YEAR <= year <= MAX_YEAR


def is_valid_ymd(text: str) -> bool:
    try:
        parse_ymd(text)
    except InvalidDateFormat:
        return False
    return True


def compare(a: CalendarDay, b: CalendarDay) -> Ordering:
    if a.ymd < b.ymd:
        return Ordering.BEFORE
    if a.ymd > b.ymd:
        return Ordering.AFTER
    return Ordering.EQUAL


def add_days(day: CalendarDay, n: int) -> CalendarDay:
    """n일 더하기 (음수 가능). epoch 밀리초가 아닌 달력 연산."""
    return CalendarDay.from_date(day.to_date() + timedelta(days=n))


def add_months(day: CalendarDay, n: int) -> CalendarDay:
    """n개월 더하기. 대상 월에 없는 날짜는 말일로 맞춤 (1월 31일 + 1개월 = 2월 28일)."""
    return CalendarDay.from_date(day.to_date() + relativedelta(months=n))


def days_between(start: CalendarDay, end: CalendarDay) -> int:
    return (end.to_date() - start.to_date()).days


def in_range(day: CalendarDay, start: CalendarDay, end: CalendarDay) -> bool:
    """start <= day < end"""
    return start <= day < end


def iterate_days(start: CalendarDay, end: CalendarDay) -> Iterator[CalendarDay]:
    """start 부터 end 직전까지 하루씩 (end exclusive)"""
    current = start
    while current < end:
        yield current
        current = add_days(current, 1)
