# backend/app/repositories/calendar_feed_repository.py
"""
CalendarFeed Repository

iCal 피드 구독 조회/관리 레포지토리
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from app.domain.models.calendar_feed import CalendarFeed


class CalendarFeedRepository:
    """CalendarFeed 조회/관리 레포지토리"""

    def __init__(self, db: Session):
        self._db = db

    def get(self, feed_id: int) -> Optional[CalendarFeed]:
        return self._db.get(CalendarFeed, feed_id)

    def list_for_property(self, property_code: str) -> List[CalendarFeed]:
        """숙소의 모든 피드 (비활성 포함)"""
        stmt = (
            select(CalendarFeed)
            .where(CalendarFeed.property_code == property_code)
            .order_by(CalendarFeed.id)
        )
        return list(self._db.execute(stmt).scalars().all())

    def list_due_for_sync(self, synced_before: datetime, limit: int) -> List[CalendarFeed]:
        """
        동기화 대상 피드

        한 번도 동기화되지 않았거나 synced_before 이전에 마지막으로 동기화된
        활성 피드를 오래된 순으로 limit 개.
        """
        stmt = (
            select(CalendarFeed)
            .where(
                CalendarFeed.is_active == True,
                or_(
                    CalendarFeed.last_synced_at.is_(None),
                    CalendarFeed.last_synced_at < synced_before,
                ),
            )
            .order_by(CalendarFeed.last_synced_at.asc().nulls_first(), CalendarFeed.id)
            .limit(limit)
        )
        return list(self._db.execute(stmt).scalars().all())

    def create(self, property_code: str, ical_url: str, platform: str = "airbnb") -> CalendarFeed:
        feed = CalendarFeed(
            property_code=property_code,
            ical_url=ical_url,
            platform=platform,
            is_active=True,
        )
        self._db.add(feed)
        self._db.flush()
        return feed

    def delete(self, feed: CalendarFeed) -> None:
        self._db.delete(feed)
        self._db.flush()
