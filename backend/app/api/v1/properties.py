"""
Properties API

달력 대상 숙소 등록/조회/비활성화
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.repositories.blocked_period_repository import BlockedPeriodRepository
from app.repositories.calendar_feed_repository import CalendarFeedRepository
from app.repositories.manual_block_repository import ManualBlockRepository
from app.repositories.property_profile_repository import PropertyProfileRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["properties"])


# ========== DTOs ==========

class PropertyCreateRequest(BaseModel):
    property_code: str = Field(..., min_length=1, max_length=64, description="숙소 코드 (예: PV-B)")
    name: str = Field(..., min_length=1, max_length=255)
    host_id: Optional[str] = Field(default=None, max_length=64, description="관리 호스트 ID")


class PropertyDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_code: str
    name: str
    host_id: Optional[str] = None
    is_active: bool
    created_at: datetime


# ========== Endpoints ==========

@router.get("", response_model=list[PropertyDTO])
def list_properties(
    host_id: Optional[str] = Query(default=None),
    active_only: bool = True,
    db: Session = Depends(get_db),
):
    return PropertyProfileRepository(db).list_all(host_id=host_id, active_only=active_only)


@router.get("/{property_code}", response_model=PropertyDTO)
def get_property(
    property_code: str,
    db: Session = Depends(get_db),
):
    profile = PropertyProfileRepository(db).get_by_property_code(property_code, active_only=False)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Property not found: {property_code}")
    return profile


@router.post("/", response_model=PropertyDTO, status_code=status.HTTP_201_CREATED)
def create_property(
    request: PropertyCreateRequest,
    db: Session = Depends(get_db),
):
    repo = PropertyProfileRepository(db)

    # 비활성 숙소의 코드도 재사용 불가
    if repo.get_by_property_code(request.property_code, active_only=False) is not None:
        raise HTTPException(status_code=400, detail="property_code already exists")

    profile = repo.create(request.property_code, request.name, request.host_id)
    db.commit()
    db.refresh(profile)

    logger.info(f"PROPERTIES: Created property={profile.property_code}")
    return profile


@router.delete("/{property_code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property(
    property_code: str,
    db: Session = Depends(get_db),
) -> None:
    """
    숙소 비활성화

    달력 데이터(수동 차단, iCal 피드, 동기화된 차단 기간)는 같은 트랜잭션에서 삭제.
    """
    repo = PropertyProfileRepository(db)
    profile = repo.get_by_property_code(property_code)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Property not found: {property_code}")

    manual_blocks = ManualBlockRepository(db)
    for block in manual_blocks.list_for_property(property_code):
        manual_blocks.delete(block)

    feeds = CalendarFeedRepository(db)
    periods = BlockedPeriodRepository(db)
    for feed in feeds.list_for_property(property_code):
        periods.delete_for_feed(feed.id)
        feeds.delete(feed)

    repo.deactivate(profile)
    db.commit()

    logger.info(f"PROPERTIES: Deactivated property={property_code}")
