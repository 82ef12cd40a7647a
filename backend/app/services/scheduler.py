# backend/app/services/scheduler.py
"""
Calendar Scheduler Service (APScheduler 기반)

ICAL_SYNC_INTERVAL_HOURS 마다 iCal 피드 동기화를 실행합니다.

사용법:
    from app.services.scheduler import start_scheduler, shutdown_scheduler

    # FastAPI lifespan에서
    start_scheduler()
    ...
    shutdown_scheduler()
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings

# 로거 설정
logger = logging.getLogger("stays.scheduler")
logger.setLevel(logging.INFO)

# 콘솔 핸들러 추가 (서버 로그에 출력)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s [SCHEDULER] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

ICAL_SYNC_JOB_ID = "ical_sync_job"

# 전역 스케줄러 인스턴스
_scheduler: Optional[AsyncIOScheduler] = None


@dataclass
class SweepSummary:
    """마지막 주기 동기화 요약 (상태 API 용)"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    error: Optional[str] = None


_last_sweep: Optional[SweepSummary] = None


async def ical_sync_job() -> SweepSummary:
    """
    iCal Sync Job

    - 동기화 대상 피드 조회 (미동기화 또는 오래된 순)
    - 피드별 독립 태스크로 fetch → 파싱 → 저장
    - 실패한 피드는 기존 데이터 유지, 다음 주기에 재시도
    """
    global _last_sweep
    from app.services.ical_service import sync_all_feeds

    summary = SweepSummary(started_at=datetime.now(timezone.utc))
    _last_sweep = summary

    logger.info("=" * 60)
    logger.info("iCal Sync Job 시작")
    logger.info(f"  시작 시간: {summary.started_at.isoformat()}")
    logger.info("=" * 60)

    try:
        sweep = await sync_all_feeds(today=settings.today())
    except Exception as e:
        summary.error = str(e) or e.__class__.__name__
        summary.finished_at = datetime.now(timezone.utc)
        logger.exception(f"iCal Sync Job 실패: {summary.error}")
        return summary

    for result in sweep.results:
        if result.success:
            label = "304" if result.not_modified else f"{result.period_count}개 기간"
            logger.info(f"  [feed {result.feed_id}] → ✓ {label}")
        else:
            logger.warning(f"  [feed {result.feed_id}] → ✗ {result.error}")

    summary.total = sweep.total
    summary.succeeded = sweep.succeeded
    summary.failed = sweep.failed
    summary.finished_at = datetime.now(timezone.utc)

    duration = (summary.finished_at - summary.started_at).total_seconds()
    logger.info("-" * 60)
    logger.info("iCal Sync Job 완료")
    logger.info(f"  소요 시간: {duration:.1f}초")
    logger.info(f"  대상 피드: {sweep.total}개, 성공: {sweep.succeeded}개, 실패: {sweep.failed}개")
    logger.info("=" * 60)
    return summary


def start_scheduler(interval_hours: Optional[int] = None, run_now: bool = True):
    """
    스케줄러 시작 (이벤트 루프 안에서 호출)

    Args:
        interval_hours: 실행 간격 (시간), 기본 ICAL_SYNC_INTERVAL_HOURS
        run_now: True 이면 시작 직후 1회 실행 (재시작 동안 밀린 피드 처리)
    """
    global _scheduler

    if _scheduler is not None:
        logger.warning("스케줄러가 이미 실행 중입니다")
        return

    interval_hours = interval_hours or settings.ICAL_SYNC_INTERVAL_HOURS

    _scheduler = AsyncIOScheduler(timezone=settings.CALENDAR_TIMEZONE)

    job_options = {}
    if run_now:
        # next_run_time=None 은 일시정지 상태라 지정할 때만 넘김
        job_options["next_run_time"] = datetime.now(timezone.utc)

    # 동시에 하나의 sweep 만 실행
    _scheduler.add_job(
        ical_sync_job,
        trigger=IntervalTrigger(hours=interval_hours),
        id=ICAL_SYNC_JOB_ID,
        name="iCal 피드 동기화",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **job_options,
    )

    _scheduler.start()

    logger.info("=" * 60)
    logger.info("Calendar Scheduler 시작됨")
    logger.info(f"  [Job] iCal Sync: {interval_hours}시간 간격")
    logger.info(f"        다음 실행: {_scheduler.get_job(ICAL_SYNC_JOB_ID).next_run_time}")
    logger.info("=" * 60)


def shutdown_scheduler():
    """스케줄러 종료"""
    global _scheduler

    if _scheduler is None:
        return

    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Calendar Scheduler 종료됨")


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """현재 스케줄러 인스턴스 반환"""
    return _scheduler


def get_last_sweep() -> Optional[SweepSummary]:
    return _last_sweep
