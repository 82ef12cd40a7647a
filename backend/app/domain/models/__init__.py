# backend/app/domain/models/__init__.py

from app.db.base import Base

from .property_profile import PropertyProfile
from .calendar_feed import CalendarFeed, FeedSyncStatus
from .ical_blocked_period import IcalBlockedPeriod
from .manual_block import ManualBlock

__all__ = [
    "Base",
    "PropertyProfile",
    "CalendarFeed",
    "FeedSyncStatus",
    "IcalBlockedPeriod",
    "ManualBlock",
]
