"""
Interval Merger

겹치거나 맞닿은 [start, end) 구간을 최소 개수의 정렬된 구간으로 병합.
맞닿음은 exclusive end 기준: next.start == current.end 이면 병합,
next.start == current.end + 1 이면 병합하지 않음.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from app.domain.calendar.period import BlockedPeriod

RESERVED_LABEL = "Reserved"


class MergeInvariantError(RuntimeError):
    """병합 결과가 정렬/비중첩 조건을 만족하지 않음 (프로그래머 오류)"""


def _pick_summary(current: Optional[str], incoming: Optional[str]) -> Optional[str]:
    # "Reserved" 라벨이 "Not available" 보다 우선
    if incoming and RESERVED_LABEL in incoming:
        return incoming
    return current or incoming


def merge_periods(periods: Iterable[BlockedPeriod]) -> list[BlockedPeriod]:
    """
    차단 기간 병합 (순수 함수, 입력 리스트는 변경하지 않음)

    Args:
        periods: 차단 기간들 (정렬 여부 무관, 무효 구간은 버림)

    Returns:
        정렬되고 서로 겹치지도 맞닿지도 않는 차단 기간 리스트
    """
    ordered = sorted(
        (p for p in periods if p.is_valid),
        key=lambda p: p.start.ymd,
    )
    if not ordered:
        return []

    merged: list[BlockedPeriod] = []
    current = ordered[0]

    for nxt in ordered[1:]:
        if nxt.start <= current.end:
            current = replace(
                current,
                end=max(current.end, nxt.end),
                summary=_pick_summary(current.summary, nxt.summary),
            )
        else:
            merged.append(current)
            current = nxt

    merged.append(current)
    return merged


def check_merged(periods: list[BlockedPeriod]) -> None:
    """병합 결과 검증. 위반 시 MergeInvariantError."""
    previous: Optional[BlockedPeriod] = None
    for period in periods:
        if not period.is_valid:
            raise MergeInvariantError(f"Empty period in merged set: {period.start}..{period.end}")
        if previous is not None and period.start <= previous.end:
            raise MergeInvariantError(
                f"Overlapping or unsorted periods: "
                f"{previous.start}..{previous.end} / {period.start}..{period.end}"
            )
        previous = period
