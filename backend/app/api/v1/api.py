# backend/app/api/v1/api.py
"""
Calendar API Router
- 숙소 / 달력(차단, 가용 기간, 수동 차단, iCal 피드) API
- 스케줄러 상태 조회
"""
from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.api.v1 import (
    calendar,  # 달력 / iCal
    properties,  # 숙소 관리
)
from app.core.config import settings
from app.services.scheduler import (
    ICAL_SYNC_JOB_ID,
    get_last_sweep,
    get_scheduler,
    ical_sync_job,
)

api_router = APIRouter()

# ✅ Property Management (숙소 관리)
api_router.include_router(properties.router)

# ✅ Calendar (차단 기간 / 예약 가능 기간 / iCal 동기화)
api_router.include_router(calendar.router)


# ============================================================
# Scheduler API (테스트/관리용)
# ============================================================

class LastSweepResponse(BaseModel):
    started_at: datetime
    finished_at: datetime | None
    total: int
    succeeded: int
    failed: int
    error: str | None


class SchedulerStatusResponse(BaseModel):
    running: bool
    interval_hours: int | None
    next_run: str | None
    last_sweep: LastSweepResponse | None = None


def _last_sweep_response(summary) -> LastSweepResponse | None:
    if summary is None:
        return None
    return LastSweepResponse(**asdict(summary))


@api_router.get("/scheduler/status", response_model=SchedulerStatusResponse, tags=["Scheduler"])
def get_scheduler_status():
    """스케줄러 상태 + 마지막 sweep 요약"""
    scheduler = get_scheduler()
    last_sweep = _last_sweep_response(get_last_sweep())
    if scheduler is None:
        return SchedulerStatusResponse(
            running=False,
            interval_hours=None,
            next_run=None,
            last_sweep=last_sweep,
        )

    job = scheduler.get_job(ICAL_SYNC_JOB_ID)
    next_run = None
    if job and job.next_run_time:
        next_run = job.next_run_time.isoformat()

    return SchedulerStatusResponse(
        running=scheduler.running,
        interval_hours=settings.ICAL_SYNC_INTERVAL_HOURS,
        next_run=next_run,
        last_sweep=last_sweep,
    )


@api_router.post("/scheduler/run-now", response_model=LastSweepResponse, tags=["Scheduler"])
async def run_scheduler_now():
    """iCal Sync Job 즉시 실행 (스케줄과 별개로 1회)"""
    summary = await ical_sync_job()
    if summary.error:
        raise HTTPException(status_code=500, detail=summary.error)
    return _last_sweep_response(summary)
