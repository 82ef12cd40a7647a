"""
Period Normalizer

RawCalendarEvent → BlockedPeriod(source=synced)

날짜 토큰 해석 순서:
- 20240115          → DATE (종일)
- 20240115T120000   → DATE_TIME (날짜 부분만 사용)
- 20240115T120000Z  → DATE_TIME (UTC 여부 무시, 날짜 부분만 사용)
- 그 외             → dateutil 로 파싱 후 날짜만 사용 (FALLBACK, 연/월/일 모두 필요)

연도는 1900~2100 만 허용. 2월 30일 같은 날짜는 해석 시점에 실제 날짜로 맞춤.

iCal DTEND 는 exclusive.
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from datetime import date, datetime
from typing import Iterable, Optional

from dateutil import parser as date_parser

from app.domain.calendar.day import CalendarDay, add_days, is_valid_year
from app.domain.calendar.period import BlockedPeriod, PeriodSource, RawCalendarEvent

logger = logging.getLogger(__name__)

DATE_TOKEN = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
DATE_TIME_TOKEN = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})(Z)?$")

# 토큰에 없는 연/월/일을 채우는 기본값. 둘이 다르면 토큰이 전부 갖고 있지 않은 것
FALLBACK_DEFAULTS = (datetime(1904, 1, 1), datetime(1908, 2, 2))


class TokenKind(str, Enum):
    DATE = "date"
    DATE_TIME = "date_time"
    FALLBACK = "fallback"
    INVALID = "invalid"


class FilterReason(str, Enum):
    INVALID_START = "invalid_start"
    INVALID_END = "invalid_end"
    END_BEFORE_START = "end_before_start"
    PAST_EVENT = "past_event"


@dataclass(frozen=True)
class DecodedToken:
    """날짜 토큰 해석 결과"""
    kind: TokenKind
    raw: Optional[str]
    day: Optional[CalendarDay] = None
    is_utc: bool = False

    @property
    def ok(self) -> bool:
        return self.kind != TokenKind.INVALID and self.day is not None


@dataclass
class NormalizeResult:
    """정규화 결과 + 필터링 통계"""
    periods: list[BlockedPeriod] = field(default_factory=list)
    raw_event_count: int = 0
    filter_reasons: Counter = field(default_factory=Counter)

    @property
    def filtered_count(self) -> int:
        # invalid_end 는 1일 이벤트로 살려두므로 버려진 수에 포함하지 않음
        return sum(
            count for reason, count in self.filter_reasons.items()
            if reason != FilterReason.INVALID_END.value
        )


def _day_from_parts(year: str, month: str, day: str) -> Optional[CalendarDay]:
    y, m, d = int(year), int(month), int(day)
    if not is_valid_year(y) or not 1 <= m <= 12 or not 1 <= d <= 31:
        return None
    # 2월 30일 같은 값은 여기서 한 번만 실제 날짜로 맞춤
    return CalendarDay(y, m, d).normalized()


def _parse_fallback(text: str) -> Optional[date]:
    """
    dateutil 파싱. 연/월/일이 모두 토큰에 있어야 함

    "15", "Monday" 처럼 빠진 값을 기본값(현재 시각 등)으로 채우는 토큰은 거부.
    """
    parsed = [date_parser.parse(text, default=default).date() for default in FALLBACK_DEFAULTS]
    if parsed[0] != parsed[1] or not is_valid_year(parsed[0].year):
        return None
    return parsed[0]


def decode_date_token(token: Optional[str]) -> DecodedToken:
    """
    DTSTART / DTEND 값 → 날짜

    예외를 던지지 않고 TokenKind.INVALID 를 반환한다.
    """
    if token is None:
        return DecodedToken(TokenKind.INVALID, None)

    cleaned = re.sub(r"\r?\n[ \t]", "", token).strip()
    if not cleaned:
        return DecodedToken(TokenKind.INVALID, token)

    match = DATE_TOKEN.match(cleaned)
    if match:
        day = _day_from_parts(*match.groups())
        if day is None:
            return DecodedToken(TokenKind.INVALID, token)
        return DecodedToken(TokenKind.DATE, token, day)

    match = DATE_TIME_TOKEN.match(cleaned)
    if match:
        day = _day_from_parts(*match.groups()[:3])
        if day is None:
            return DecodedToken(TokenKind.INVALID, token)
        return DecodedToken(TokenKind.DATE_TIME, token, day, is_utc=bool(match.group(7)))

    try:
        parsed = _parse_fallback(cleaned)
    except (ValueError, OverflowError):
        parsed = None

    if parsed is None:
        logger.warning(f"ICAL_PARSER: Unknown iCal date format: {token!r}")
        return DecodedToken(TokenKind.INVALID, token)

    return DecodedToken(TokenKind.FALLBACK, token, CalendarDay.from_date(parsed))


def normalize_event(
    event: RawCalendarEvent,
    today: CalendarDay,
    feed_id: Optional[int] = None,
) -> tuple[Optional[BlockedPeriod], Optional[FilterReason]]:
    """
    이벤트 하나 정규화

    Returns:
        (BlockedPeriod 또는 None, 버린/보정한 사유)
    """
    start = decode_date_token(event.start_token)
    if not start.ok:
        return None, FilterReason.INVALID_START

    note: Optional[FilterReason] = None
    end_day: Optional[CalendarDay] = None
    if event.end_token is not None:
        end = decode_date_token(event.end_token)
        if end.ok:
            end_day = end.day
        else:
            note = FilterReason.INVALID_END

    # DTEND 가 없으면 1일짜리 이벤트
    if end_day is None:
        try:
            end_day = add_days(start.day, 1)
        except (ValueError, OverflowError):
            return None, FilterReason.INVALID_START

    if end_day <= start.day:
        return None, FilterReason.END_BEFORE_START

    # 오늘 이전에 끝난 이벤트는 의미 없음 (오늘 끝나는 이벤트는 유지)
    if end_day < today:
        return None, FilterReason.PAST_EVENT

    period = BlockedPeriod(
        start=start.day,
        end=end_day,
        source=PeriodSource.SYNCED,
        summary=event.summary or None,
        uid=event.uid or None,
        feed_id=feed_id,
    )
    return period, note


def normalize_events(
    events: Iterable[RawCalendarEvent],
    today: CalendarDay,
    feed_id: Optional[int] = None,
) -> NormalizeResult:
    """
    RawCalendarEvent 리스트 → start 순으로 정렬된 BlockedPeriod 리스트

    잘못된 이벤트는 건너뛰고 사유별로 집계한다.
    """
    result = NormalizeResult()

    for event in events:
        result.raw_event_count += 1
        period, reason = normalize_event(event, today, feed_id)

        if reason is not None:
            result.filter_reasons[reason.value] += 1

        if period is None:
            logger.debug(
                f"ICAL_PARSER: Skipped event ({reason.value if reason else '-'}): "
                f"start={event.start_token!r}, end={event.end_token!r}"
            )
            continue

        if reason == FilterReason.INVALID_END:
            logger.debug(f"ICAL_PARSER: Invalid DTEND {event.end_token!r}, using single day")

        result.periods.append(period)

    result.periods.sort(key=lambda p: p.start.ymd)
    return result
