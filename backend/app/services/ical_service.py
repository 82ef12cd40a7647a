"""
iCal Service

iCal 피드 동기화 (Sync Orchestrator)
- 피드 URL에서 데이터 fetch (시간 제한, ETag / Last-Modified 조건부 요청)
- Parser → Normalizer → Merger 순서로 차단 기간 생성
- 피드 단위로 기존 차단 기간을 한 트랜잭션에서 통째로 교체

상태: IDLE → FETCHING → PARSING → PERSISTING → SUCCEEDED / FAILED
실패 시 이전에 저장된 차단 기간은 그대로 둔다 (빈 달력보다 오래된 달력이 낫다).
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domain.calendar import BlockedPeriod, CalendarDay, check_merged, merge_periods
from app.domain.models.calendar_feed import CalendarFeed, FeedSyncStatus
from app.repositories.blocked_period_repository import BlockedPeriodRepository
from app.repositories.calendar_feed_repository import CalendarFeedRepository
from app.services.ical_parser import parse_feed
from app.services.period_normalizer import NormalizeResult, normalize_events

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class FetchResult:
    """fetch 결과"""
    ok: bool
    text: Optional[str] = None
    status_code: Optional[int] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    not_modified: bool = False
    error: Optional[str] = None


@dataclass
class SyncResult:
    """피드 하나의 동기화 결과"""
    feed_id: int
    success: bool = False
    state: SyncState = SyncState.IDLE
    event_count: int = 0
    period_count: int = 0
    raw_event_count: int = 0
    not_modified: bool = False
    error: Optional[str] = None
    filter_reasons: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "feed_id": self.feed_id,
            "success": self.success,
            "state": self.state.value,
            "event_count": self.event_count,
            "period_count": self.period_count,
            "raw_event_count": self.raw_event_count,
            "not_modified": self.not_modified,
            "error": self.error,
            "filter_reasons": self.filter_reasons,
        }


@dataclass
class SweepResult:
    """주기 동기화 결과"""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    results: list[SyncResult] = field(default_factory=list)


@dataclass(frozen=True)
class _FeedSnapshot:
    id: int
    property_code: str
    ical_url: str
    etag: Optional[str]
    last_modified: Optional[str]


def build_periods(
    ical_data: str,
    today: CalendarDay,
    feed_id: Optional[int] = None,
) -> tuple[list[BlockedPeriod], NormalizeResult]:
    """
    iCal 텍스트 → 병합된 차단 기간

    Raises:
        MergeInvariantError: 병합 결과가 깨진 경우 (저장하면 안 됨)
    """
    events = parse_feed(ical_data)
    normalized = normalize_events(events, today, feed_id=feed_id)
    merged = merge_periods(normalized.periods)
    check_merged(merged)
    return merged, normalized


class IcalService:
    """
    iCal 동기화 서비스

    - fetch_ical: URL에서 iCal 데이터 가져오기
    - sync_feed: 특정 피드 동기화 (커밋까지 수행)
    """

    def __init__(
        self,
        db: Session,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.db = db
        self.http_client = http_client
        self.timeout = timeout if timeout is not None else settings.ICAL_FETCH_TIMEOUT_SECONDS
        self.feeds = CalendarFeedRepository(db)
        self.periods = BlockedPeriodRepository(db)

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
    ) -> httpx.Response:
        return await client.get(url, headers=headers, timeout=self.timeout, follow_redirects=True)

    async def fetch_ical(
        self,
        url: str,
        etag: Optional[str] = None,
        last_modified: Optional[str] = None,
    ) -> FetchResult:
        """
        iCal URL에서 데이터 fetch

        전체 요청이 timeout 초 안에 끝나지 않으면 실패로 처리.

        Args:
            url: iCal URL
            etag: 이전 응답의 ETag (If-None-Match)
            last_modified: 이전 응답의 Last-Modified (If-Modified-Since)
        """
        headers = {
            "User-Agent": settings.ICAL_USER_AGENT,
            "Accept": "text/calendar, application/calendar+json, */*",
        }
        if etag:
            headers["If-None-Match"] = etag
        if last_modified:
            headers["If-Modified-Since"] = last_modified

        try:
            if self.http_client is not None:
                response = await asyncio.wait_for(
                    self._get(self.http_client, url, headers), timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await asyncio.wait_for(
                        self._get(client, url, headers), timeout=self.timeout
                    )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.error(f"ICAL_SERVICE: Timeout fetching iCal: {url}")
            return FetchResult(ok=False, error=f"Timed out after {self.timeout:g}s")
        except httpx.HTTPError as e:
            logger.error(f"ICAL_SERVICE: Failed to fetch iCal: {url}, error: {e}")
            return FetchResult(ok=False, error=f"Failed to fetch calendar: {e}")

        if response.status_code == 304:
            logger.info(f"ICAL_SERVICE: 304 Not Modified: {url}")
            return FetchResult(
                ok=True,
                status_code=304,
                not_modified=True,
                etag=response.headers.get("ETag") or etag,
                last_modified=response.headers.get("Last-Modified") or last_modified,
            )

        if not response.is_success:
            logger.error(f"ICAL_SERVICE: HTTP {response.status_code} fetching iCal: {url}")
            return FetchResult(
                ok=False,
                status_code=response.status_code,
                error=f"Failed to fetch calendar: {response.status_code} {response.reason_phrase}",
            )

        return FetchResult(
            ok=True,
            text=response.text,
            status_code=response.status_code,
            etag=response.headers.get("ETag"),
            last_modified=response.headers.get("Last-Modified"),
        )

    def _load_snapshot(self, feed_id: int) -> tuple[Optional[_FeedSnapshot], Optional[str]]:
        feed = self.feeds.get(feed_id)
        if feed is None:
            return None, "Feed not found"
        if not feed.is_active:
            return None, "Feed is inactive"
        if not feed.ical_url or not feed.ical_url.startswith(("http://", "https://")):
            return None, "Invalid iCal URL"

        return _FeedSnapshot(
            id=feed.id,
            property_code=feed.property_code,
            ical_url=feed.ical_url,
            etag=feed.etag,
            last_modified=feed.last_modified,
        ), None

    def _lock_feed(self, feed_id: int) -> Optional[CalendarFeed]:
        # 같은 피드에 대한 동시 교체를 직렬화 (sqlite 에서는 무시됨)
        stmt = select(CalendarFeed).where(CalendarFeed.id == feed_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def _record_failure(self, feed_id: int, error: str) -> None:
        """실패 상태만 기록. 차단 기간과 last_synced_at 은 건드리지 않음 (다음 주기에 재시도)."""
        try:
            feed = self.feeds.get(feed_id)
            if feed is None:
                return
            feed.last_sync_status = FeedSyncStatus.FAILED.value
            feed.last_sync_error = error[:1000]
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"ICAL_SERVICE: Failed to record sync failure: feed={feed_id}, error: {e}")

    def _fail(self, result: SyncResult, error: str) -> SyncResult:
        result.success = False
        result.state = SyncState.FAILED
        result.error = error
        logger.warning(f"ICAL_SERVICE: Sync failed: feed={result.feed_id}, reason={error}")
        return result

    async def sync_feed(self, feed_id: int, today: CalendarDay) -> SyncResult:
        """
        특정 피드 동기화

        Args:
            feed_id: 피드 ID
            today: 기준일 (이미 끝난 이벤트 필터링)

        Returns:
            SyncResult (실패해도 예외를 던지지 않음)
        """
        result = SyncResult(feed_id=feed_id)

        snapshot, error = self._load_snapshot(feed_id)
        if snapshot is None:
            self.db.rollback()
            if error != "Feed not found":
                self._record_failure(feed_id, error)
            return self._fail(result, error)

        # 네트워크 대기 중 읽기 트랜잭션을 잡고 있지 않도록 닫음
        self.db.commit()

        # 1. fetch
        result.state = SyncState.FETCHING
        fetched = await self.fetch_ical(
            snapshot.ical_url,
            etag=snapshot.etag,
            last_modified=snapshot.last_modified,
        )
        if not fetched.ok:
            self._record_failure(feed_id, fetched.error or "Unknown fetch error")
            return self._fail(result, fetched.error or "Unknown fetch error")

        if fetched.not_modified:
            return self._mark_not_modified(result, snapshot, fetched)

        # 2. 파싱 → 정규화 → 병합
        result.state = SyncState.PARSING
        try:
            periods, normalized = build_periods(fetched.text or "", today, feed_id=feed_id)
        except Exception as e:
            logger.exception(f"ICAL_SERVICE: Failed to parse iCal: feed={feed_id}")
            self._record_failure(feed_id, f"Parse error: {e}")
            return self._fail(result, f"Parse error: {e}")

        result.raw_event_count = normalized.raw_event_count
        result.event_count = len(normalized.periods)
        result.filter_reasons = dict(normalized.filter_reasons)

        # 3. 기존 데이터 삭제 후 새로 삽입 (full replace, 단일 트랜잭션)
        result.state = SyncState.PERSISTING
        try:
            feed = self._lock_feed(feed_id)
            if feed is None:
                self.db.rollback()
                return self._fail(result, "Feed not found")

            result.period_count = self.periods.replace_synced_periods(
                feed_id, snapshot.property_code, periods
            )

            feed.etag = fetched.etag
            feed.last_modified = fetched.last_modified
            feed.last_synced_at = datetime.now(timezone.utc)
            feed.last_sync_status = FeedSyncStatus.SUCCEEDED.value
            feed.last_sync_error = None
            feed.last_event_count = result.event_count

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"ICAL_SERVICE: Failed to persist periods: feed={feed_id}, error: {e}")
            self._record_failure(feed_id, f"Persist error: {e}")
            return self._fail(result, f"Persist error: {e}")

        result.success = True
        result.state = SyncState.SUCCEEDED

        logger.info(
            f"ICAL_SERVICE: Synced feed={feed_id}, property={snapshot.property_code}, "
            f"events={result.raw_event_count}, kept={result.event_count}, "
            f"periods={result.period_count}"
        )
        return result

    def _mark_not_modified(
        self,
        result: SyncResult,
        snapshot: _FeedSnapshot,
        fetched: FetchResult,
    ) -> SyncResult:
        """304: 기존 차단 기간 유지, 동기화 시각만 갱신"""
        result.state = SyncState.PERSISTING
        try:
            feed = self._lock_feed(snapshot.id)
            if feed is None:
                self.db.rollback()
                return self._fail(result, "Feed not found")

            feed.etag = fetched.etag
            feed.last_modified = fetched.last_modified
            feed.last_synced_at = datetime.now(timezone.utc)
            feed.last_sync_status = FeedSyncStatus.NOT_MODIFIED.value
            feed.last_sync_error = None
            result.event_count = feed.last_event_count or 0
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            return self._fail(result, f"Persist error: {e}")

        result.period_count = len(self.periods.list_synced_for_feed(snapshot.id))
        result.success = True
        result.not_modified = True
        result.state = SyncState.SUCCEEDED
        return result


async def sync_all_feeds(
    today: CalendarDay,
    session_factory: Optional[Callable[[], Session]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    concurrency: Optional[int] = None,
    batch_size: Optional[int] = None,
    interval_hours: Optional[int] = None,
) -> SweepResult:
    """
    동기화 대상 피드 전체 동기화

    - 한 번도 동기화되지 않았거나 interval_hours 이전에 동기화된 피드, 오래된 순
    - 피드마다 별도 세션 / 별도 태스크 (서로 상태 공유 없음)
    - 한 피드의 실패가 다른 피드에 영향을 주지 않음
    """
    if session_factory is None:
        from app.db.session import SessionLocal
        session_factory = SessionLocal

    concurrency = concurrency or settings.ICAL_SYNC_CONCURRENCY
    batch_size = batch_size or settings.ICAL_SYNC_BATCH_SIZE
    interval_hours = interval_hours if interval_hours is not None else settings.ICAL_SYNC_INTERVAL_HOURS

    db = session_factory()
    try:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=interval_hours)
        feed_ids = [feed.id for feed in CalendarFeedRepository(db).list_due_for_sync(cutoff, batch_size)]
    finally:
        db.close()

    logger.info(f"ICAL_SERVICE: Found {len(feed_ids)} feeds to sync")

    semaphore = asyncio.Semaphore(concurrency)

    async def _run(feed_id: int) -> SyncResult:
        async with semaphore:
            session = session_factory()
            try:
                service = IcalService(session, http_client=http_client)
                return await service.sync_feed(feed_id, today)
            except Exception as e:
                session.rollback()
                logger.exception(f"ICAL_SERVICE: Unexpected error syncing feed={feed_id}")
                return SyncResult(
                    feed_id=feed_id,
                    success=False,
                    state=SyncState.FAILED,
                    error=str(e) or e.__class__.__name__,
                )
            finally:
                session.close()

    results = await asyncio.gather(*(_run(feed_id) for feed_id in feed_ids))

    sweep = SweepResult(total=len(results), results=list(results))
    sweep.succeeded = sum(1 for r in results if r.success)
    sweep.failed = sweep.total - sweep.succeeded

    logger.info(f"ICAL_SERVICE: Sweep completed: {sweep.succeeded} success, {sweep.failed} failed")
    return sweep
