"""
iCal Feed Parser

iCal 텍스트 → RawCalendarEvent 리스트
- 접힌 줄(공백/탭으로 시작하는 연속 줄)을 한 줄로 펼침
- BEGIN:VEVENT ~ END:VEVENT 블록 단위로 자름 (END 가 없으면 다음 BEGIN 또는 끝까지)
- DTSTART / DTEND / SUMMARY / UID 추출
  1) FIELD:value 형태 우선
  2) 없으면 FIELD;param=x:value 형태
- 필드 누락은 여기서 판단하지 않음 (Normalizer 담당)
- 깨진 텍스트는 에러가 아니라 빈 리스트
"""
from __future__ import annotations

import logging
from typing import Optional, Union

from icalendar.parser import Contentline, Contentlines

from app.domain.calendar.period import RawCalendarEvent

logger = logging.getLogger(__name__)

EVENT_BEGIN = "BEGIN:VEVENT"
EVENT_END = "END:VEVENT"


def _unfold(text: str) -> list[Contentline]:
    """RFC 5545 line folding 해제 후 논리적 줄 단위로 분리"""
    try:
        return [line for line in Contentlines.from_ical(text) if line]
    except ValueError as e:
        logger.warning(f"ICAL_PARSER: Failed to unfold feed text: {e}")
        return []


def _split_line(line: Contentline) -> Optional[tuple[str, bool, str]]:
    """
    content line → (대문자 필드명, 파라미터 유무, 값)

    icalendar 파서가 거부하는 줄은 단순 분리로 한 번 더 시도.
    """
    try:
        name, params, value = line.parts()
        return name.upper(), bool(params), value
    except ValueError:
        head, sep, value = line.partition(":")
        if not sep:
            return None
        name, _, param_text = head.partition(";")
        if not name:
            return None
        return name.strip().upper(), bool(param_text), value


def _split_events(lines: list[Contentline]) -> list[list[tuple[str, bool, str]]]:
    events: list[list[tuple[str, bool, str]]] = []
    current: Optional[list[tuple[str, bool, str]]] = None

    for line in lines:
        marker = line.strip().upper()
        if marker == EVENT_BEGIN:
            # END 없이 다음 BEGIN 이 오면 이전 블록은 여기까지
            if current is not None:
                events.append(current)
            current = []
            continue
        if marker == EVENT_END:
            if current is not None:
                events.append(current)
                current = None
            continue
        if current is None:
            continue

        parsed = _split_line(line)
        if parsed is not None:
            current.append(parsed)

    if current is not None:
        events.append(current)

    return events


def extract_field(fields: list[tuple[str, bool, str]], field_name: str) -> Optional[str]:
    """
    이벤트 필드 값 추출

    FIELD:value 를 먼저 찾고, 없으면 FIELD;params:value.
    대소문자 무시, 첫 번째 매치 사용, 앞뒤 공백 제거.
    """
    wanted = field_name.upper()

    for with_params in (False, True):
        for name, has_params, value in fields:
            if name != wanted or has_params != with_params:
                continue
            value = value.strip()
            if value:
                return value

    return None


def parse_feed(ical_data: Union[str, bytes, None]) -> list[RawCalendarEvent]:
    """
    iCal 데이터 → RawCalendarEvent 리스트

    Args:
        ical_data: iCal 문서 (UTF-8)

    Returns:
        VEVENT 블록마다 하나씩, 파싱할 수 없으면 빈 리스트
    """
    if not ical_data:
        return []

    if isinstance(ical_data, bytes):
        ical_data = ical_data.decode("utf-8", errors="replace")

    events: list[RawCalendarEvent] = []
    for fields in _split_events(_unfold(ical_data)):
        events.append(RawCalendarEvent(
            start_token=extract_field(fields, "DTSTART"),
            end_token=extract_field(fields, "DTEND"),
            summary=extract_field(fields, "SUMMARY"),
            uid=extract_field(fields, "UID"),
        ))

    logger.debug(f"ICAL_PARSER: Found {len(events)} VEVENT blocks")
    return events
