"""
Calendar API

숙소별 차단 기간, 예약 가능 기간, 수동 차단, iCal 피드 관리 및 동기화
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.domain.calendar import (
    BlockedPeriod,
    CalendarDay,
    DayRange,
    InvalidDateFormat,
    PeriodSource,
    parse_ymd,
)
from app.domain.models.property_profile import PropertyProfile
from app.repositories.blocked_period_repository import BlockedPeriodRepository
from app.repositories.calendar_feed_repository import CalendarFeedRepository
from app.repositories.property_profile_repository import PropertyProfileRepository
from app.services.availability_service import AvailabilityService
from app.services.ical_service import IcalService, SyncResult, sync_all_feeds
from app.services.manual_block_service import (
    ManualBlockNotFoundError,
    ManualBlockOwnershipError,
    ManualBlockService,
    ManualBlockValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["Calendar"])


# ========== DTOs ==========

class CalendarDayType(str, Enum):
    """달력 날짜 타입"""
    AVAILABLE = "available"      # 예약 가능
    BLOCKED = "blocked"          # 차단됨 (iCal)
    MANUAL = "manual"            # 호스트 수동 차단


class PeriodDTO(BaseModel):
    """차단 기간 [start, end)"""
    start: str
    end: str
    source: PeriodSource
    summary: Optional[str] = None
    uid: Optional[str] = None
    feed_id: Optional[int] = None
    manual_block_id: Optional[int] = None


class DayRangeDTO(BaseModel):
    """날짜 구간 [start, end)"""
    start: str
    end: str


class FeedDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_code: str
    platform: str
    ical_url: str
    is_active: bool
    last_synced_at: Optional[datetime] = None
    last_sync_status: Optional[str] = None
    last_sync_error: Optional[str] = None
    last_event_count: Optional[int] = None


class CalendarViewDTO(BaseModel):
    """숙소 달력 요약"""
    property_code: str
    property_name: str
    today: str
    horizon_months: int
    has_calendar: bool
    blocked_from_ical: list[PeriodDTO]
    blocked_manual: list[PeriodDTO]
    blocked_merged: list[PeriodDTO]
    available_periods: list[DayRangeDTO]
    feeds: list[FeedDTO]


class CalendarDayDTO(BaseModel):
    """달력 하루 데이터"""
    date: str
    type: CalendarDayType
    summary: Optional[str] = None  # 차단 사유


class CalendarMonthDTO(BaseModel):
    """월별 달력 데이터"""
    property_code: str
    property_name: str
    year: int
    month: int
    days: list[CalendarDayDTO]
    occupancy_rate: float  # 차단율 (0~100)
    blocked_days: int
    available_days: int
    total_days: int


class BlockedCheckDTO(BaseModel):
    """특정 날짜 차단 여부"""
    property_code: str
    date: str
    blocked: bool
    blocking_periods: list[PeriodDTO]


class AvailablePeriodsDTO(BaseModel):
    property_code: str
    today: str
    horizon_months: int
    available_periods: list[DayRangeDTO]


class AvailabilityCheckRequest(BaseModel):
    """예약 가능 여부 체크 요청"""
    property_code: str
    checkin_date: str = Field(..., description="YYYY-MM-DD")
    checkout_date: str = Field(..., description="YYYY-MM-DD (exclusive)")


class ConflictDTO(BaseModel):
    """충돌 정보"""
    date: str
    source: PeriodSource
    summary: Optional[str] = None


class AvailabilityCheckResponse(BaseModel):
    """예약 가능 여부 체크 응답"""
    available: bool
    conflicts: list[ConflictDTO]
    message: str


class ManualBlockCreateRequest(BaseModel):
    """수동 차단 생성 요청"""
    start_date: str = Field(..., description="첫 차단일 YYYY-MM-DD")
    end_date: str = Field(..., description="차단 후 첫 예약 가능일 YYYY-MM-DD")
    note: Optional[str] = None


class ManualBlockDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_code: str
    start_date: str
    end_date: str
    note: Optional[str] = None
    created_at: datetime


class FeedCreateRequest(BaseModel):
    """iCal 피드 등록 요청"""
    ical_url: str
    platform: str = "airbnb"


class SyncResultDTO(BaseModel):
    """iCal 동기화 결과"""
    feed_id: int
    success: bool
    state: str
    event_count: int
    period_count: int
    raw_event_count: int
    not_modified: bool
    error: Optional[str] = None
    filter_reasons: dict[str, int] = Field(default_factory=dict)


class FeedCreateResponse(BaseModel):
    feed: FeedDTO
    synced: bool
    sync: SyncResultDTO


class SweepResultDTO(BaseModel):
    total: int
    succeeded: int
    failed: int
    results: list[SyncResultDTO]


# ========== Helper Functions ==========

def _period_dto(period: BlockedPeriod) -> PeriodDTO:
    return PeriodDTO(
        start=period.start.ymd,
        end=period.end.ymd,
        source=period.source,
        summary=period.summary,
        uid=period.uid,
        feed_id=period.feed_id,
        manual_block_id=period.manual_block_id,
    )


def _range_dto(day_range: DayRange) -> DayRangeDTO:
    return DayRangeDTO(start=day_range.start.ymd, end=day_range.end.ymd)


def _sync_dto(result: SyncResult) -> SyncResultDTO:
    return SyncResultDTO(**result.to_dict())


def _parse_day(value: str, field_name: str) -> CalendarDay:
    try:
        return parse_ymd(value)
    except InvalidDateFormat:
        raise HTTPException(
            status_code=400,
            detail=f"{field_name} must be in YYYY-MM-DD format",
        )


def _get_property_or_404(
    db: Session,
    property_code: str,
    host_id: Optional[str] = None,
) -> PropertyProfile:
    """
    활성 숙소 조회

    host_id 가 주어지면 숙소 관리 호스트와 일치해야 한다 (쓰기 작업용).
    """
    profile = PropertyProfileRepository(db).get_by_property_code(property_code)
    if not profile:
        raise HTTPException(status_code=404, detail=f"Property not found: {property_code}")
    if host_id is not None and profile.host_id is not None and profile.host_id != host_id:
        raise HTTPException(status_code=403, detail="Not authorized for this property")
    return profile


# ========== Endpoints ==========

@router.get("/properties/list")
def list_properties_with_calendar(
    db: Session = Depends(get_db),
):
    """
    달력이 있는 숙소 목록 (iCal 피드 수, 마지막 동기화 시각 포함)
    """
    feed_repo = CalendarFeedRepository(db)
    items = []
    for p in PropertyProfileRepository(db).list_all():
        feeds = feed_repo.list_for_property(p.property_code)
        synced = [f.last_synced_at for f in feeds if f.last_synced_at]
        items.append({
            "property_code": p.property_code,
            "name": p.name,
            "has_ical": any(f.is_active for f in feeds),
            "feed_count": len(feeds),
            "last_synced_at": max(synced) if synced else None,
        })
    return items


@router.get("/{property_code}", response_model=CalendarViewDTO)
def get_calendar(
    property_code: str,
    horizon_months: int = Query(
        default=None, ge=1, le=24, description="예약 가능 기간 조회 개월 수 (기본: 3)"
    ),
    db: Session = Depends(get_db),
) -> CalendarViewDTO:
    """
    숙소 달력 요약

    - iCal 차단 / 수동 차단 / 병합 결과
    - 오늘부터 horizon_months 개월 동안의 예약 가능 기간
    """
    profile = _get_property_or_404(db, property_code)

    horizon_months = horizon_months or settings.AVAILABILITY_HORIZON_MONTHS
    today = settings.today()
    view = AvailabilityService(db).get_calendar_view(property_code, today, horizon_months)

    return CalendarViewDTO(
        property_code=property_code,
        property_name=profile.name,
        today=today.ymd,
        horizon_months=horizon_months,
        has_calendar=any(f.is_active for f in view.feeds),
        blocked_from_ical=[_period_dto(p) for p in view.blocked_from_ical],
        blocked_manual=[_period_dto(p) for p in view.blocked_manual],
        blocked_merged=[_period_dto(p) for p in view.blocked_merged],
        available_periods=[_range_dto(r) for r in view.available_periods],
        feeds=[FeedDTO.model_validate(f) for f in view.feeds],
    )


@router.get("/{property_code}/month", response_model=CalendarMonthDTO)
def get_month_calendar(
    property_code: str,
    year: int = Query(default=None, description="조회 연도 (기본: 현재)"),
    month: int = Query(default=None, ge=1, le=12, description="조회 월 (1-12)"),
    db: Session = Depends(get_db),
) -> CalendarMonthDTO:
    """숙소별 월간 달력 데이터 조회"""
    profile = _get_property_or_404(db, property_code)

    # 기본값: 현재 월
    today = settings.today()
    if year is None:
        year = today.year
    if month is None:
        month = today.month

    calendar = AvailabilityService(db).get_month_calendar(property_code, year, month)

    days = []
    for info in calendar.days:
        if not info.blocked:
            day_type = CalendarDayType.AVAILABLE
        elif info.source == PeriodSource.MANUAL:
            day_type = CalendarDayType.MANUAL
        else:
            day_type = CalendarDayType.BLOCKED
        days.append(CalendarDayDTO(date=info.day.ymd, type=day_type, summary=info.summary))

    return CalendarMonthDTO(
        property_code=property_code,
        property_name=profile.name,
        year=year,
        month=month,
        days=days,
        occupancy_rate=calendar.occupancy_rate,
        blocked_days=calendar.blocked_days,
        available_days=calendar.total_days - calendar.blocked_days,
        total_days=calendar.total_days,
    )


@router.get("/{property_code}/blocked", response_model=BlockedCheckDTO)
def is_date_blocked(
    property_code: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
) -> BlockedCheckDTO:
    """특정 날짜 차단 여부 (+ 차단 사유)"""
    _get_property_or_404(db, property_code)
    day = _parse_day(date, "date")

    blocking = AvailabilityService(db).find_blocking_periods(property_code, day)
    return BlockedCheckDTO(
        property_code=property_code,
        date=day.ymd,
        blocked=bool(blocking),
        blocking_periods=[_period_dto(p) for p in blocking],
    )


@router.get("/{property_code}/available", response_model=AvailablePeriodsDTO)
def get_available_periods(
    property_code: str,
    horizon_months: int = Query(default=None, ge=1, le=24),
    db: Session = Depends(get_db),
) -> AvailablePeriodsDTO:
    """오늘부터 horizon_months 개월 동안의 예약 가능 기간"""
    _get_property_or_404(db, property_code)

    horizon_months = horizon_months or settings.AVAILABILITY_HORIZON_MONTHS
    today = settings.today()
    periods = AvailabilityService(db).get_available_periods(property_code, today, horizon_months)

    return AvailablePeriodsDTO(
        property_code=property_code,
        today=today.ymd,
        horizon_months=horizon_months,
        available_periods=[_range_dto(r) for r in periods],
    )


@router.post("/check-availability", response_model=AvailabilityCheckResponse)
def check_availability(
    request: AvailabilityCheckRequest,
    db: Session = Depends(get_db),
) -> AvailabilityCheckResponse:
    """
    예약 가능 여부 체크

    checkin_date ~ checkout_date 사이에 차단(iCal 또는 수동)이 있는지 확인
    """
    _get_property_or_404(db, request.property_code)
    checkin = _parse_day(request.checkin_date, "checkin_date")
    checkout = _parse_day(request.checkout_date, "checkout_date")

    if checkout <= checkin:
        raise HTTPException(status_code=400, detail="checkout must be after checkin")

    check = AvailabilityService(db).check_range(request.property_code, checkin, checkout)
    conflicts = [
        ConflictDTO(date=day.ymd, source=period.source, summary=period.summary)
        for day, period in check.conflicts
    ]

    if check.available:
        message = f"{checkin} ~ {checkout} 예약 가능합니다."
    else:
        synced = sum(1 for c in conflicts if c.source == PeriodSource.SYNCED)
        manual = len(conflicts) - synced
        parts = []
        if synced:
            parts.append(f"iCal 차단 {synced}일")
        if manual:
            parts.append(f"수동 차단 {manual}일")
        message = f"예약 불가: {', '.join(parts)}"

    return AvailabilityCheckResponse(
        available=check.available,
        conflicts=conflicts,
        message=message,
    )


# ========== Manual Blocks ==========

@router.get("/{property_code}/manual-blocks", response_model=list[ManualBlockDTO])
def list_manual_blocks(
    property_code: str,
    db: Session = Depends(get_db),
):
    """수동 차단 목록 (start 순)"""
    _get_property_or_404(db, property_code)
    return ManualBlockService(db).list(property_code)


@router.post("/{property_code}/manual-blocks", response_model=ManualBlockDTO, status_code=201)
def create_manual_block(
    property_code: str,
    request: ManualBlockCreateRequest,
    db: Session = Depends(get_db),
    x_host_id: Optional[str] = Header(default=None),
):
    """
    수동 차단 생성

    end_date 는 exclusive (차단 후 첫 예약 가능일), 최대 365일.
    """
    _get_property_or_404(db, property_code, x_host_id)

    try:
        block = ManualBlockService(db).create(
            property_code,
            request.start_date,
            request.end_date,
            request.note,
        )
    except ManualBlockValidationError as e:
        raise HTTPException(status_code=400, detail=e.reason)

    db.commit()
    db.refresh(block)
    return block


@router.delete("/{property_code}/manual-blocks/{block_id}")
def delete_manual_block(
    property_code: str,
    block_id: int,
    db: Session = Depends(get_db),
    x_host_id: Optional[str] = Header(default=None),
):
    """수동 차단 삭제"""
    _get_property_or_404(db, property_code, x_host_id)

    try:
        ManualBlockService(db).delete(property_code, block_id)
    except ManualBlockNotFoundError:
        raise HTTPException(status_code=404, detail="Block not found")
    except ManualBlockOwnershipError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    return {"success": True}


# ========== iCal Feeds ==========

@router.get("/{property_code}/feeds", response_model=list[FeedDTO])
def list_feeds(
    property_code: str,
    db: Session = Depends(get_db),
):
    _get_property_or_404(db, property_code)
    return CalendarFeedRepository(db).list_for_property(property_code)


@router.post("/{property_code}/feeds", response_model=FeedCreateResponse, status_code=201)
async def create_feed(
    property_code: str,
    request: FeedCreateRequest,
    db: Session = Depends(get_db),
    x_host_id: Optional[str] = Header(default=None),
):
    """
    iCal 피드 등록 후 바로 1회 동기화

    동기화가 실패해도 피드는 저장되고, 다음 주기에 자동 재시도된다.
    """
    _get_property_or_404(db, property_code, x_host_id)

    ical_url = request.ical_url.strip()
    if not ical_url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="Invalid iCal URL format")

    try:
        feed = CalendarFeedRepository(db).create(property_code, ical_url, request.platform)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="iCal URL already registered for this property")

    feed_id = feed.id
    result = await IcalService(db).sync_feed(feed_id, settings.today())
    if not result.success:
        logger.warning(f"CALENDAR_API: Feed saved but initial sync failed: {feed_id}, {result.error}")

    feed = CalendarFeedRepository(db).get(feed_id)
    return FeedCreateResponse(
        feed=FeedDTO.model_validate(feed),
        synced=result.success,
        sync=_sync_dto(result),
    )


@router.delete("/{property_code}/feeds/{feed_id}")
def delete_feed(
    property_code: str,
    feed_id: int,
    db: Session = Depends(get_db),
    x_host_id: Optional[str] = Header(default=None),
):
    """피드 삭제 (해당 피드의 차단 기간도 함께 삭제)"""
    _get_property_or_404(db, property_code, x_host_id)

    feed_repo = CalendarFeedRepository(db)
    feed = feed_repo.get(feed_id)
    if not feed or feed.property_code != property_code:
        raise HTTPException(status_code=404, detail="Feed not found")

    BlockedPeriodRepository(db).delete_for_feed(feed_id)
    feed_repo.delete(feed)
    db.commit()

    return {"success": True}


@router.post("/feeds/{feed_id}/sync", response_model=SyncResultDTO)
async def sync_feed(
    feed_id: int,
    db: Session = Depends(get_db),
) -> SyncResultDTO:
    """
    iCal 수동 동기화

    실패해도 200 으로 결과를 돌려주며 (success=false, error), 기존 차단 기간은 유지된다.
    """
    feed = CalendarFeedRepository(db).get(feed_id)
    if not feed:
        raise HTTPException(status_code=404, detail="Feed not found")

    result = await IcalService(db).sync_feed(feed_id, settings.today())
    logger.info(
        f"CALENDAR_API: Manual sync: feed={feed_id}, success={result.success}, "
        f"events={result.event_count}"
    )
    return _sync_dto(result)


@router.post("/sync-all", response_model=SweepResultDTO)
async def sync_all():
    """동기화 대상 피드 전체 즉시 동기화"""
    sweep = await sync_all_feeds(today=settings.today())
    return SweepResultDTO(
        total=sweep.total,
        succeeded=sweep.succeeded,
        failed=sweep.failed,
        results=[_sync_dto(r) for r in sweep.results],
    )
