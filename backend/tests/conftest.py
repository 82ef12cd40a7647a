import os
import tempfile

# app.core.config 가 import 되기 전에 테스트용 sqlite DB 지정
_DB_DIR = tempfile.mkdtemp(prefix="stays-calendar-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["CALENDAR_TIMEZONE"] = "UTC"

import pytest  # noqa: E402

from app.domain.calendar import CalendarDay  # noqa: E402


TODAY = CalendarDay(2026, 1, 1)


def vevent(start, end=None, summary=None, uid=None, start_params="", end_params=""):
    """VEVENT 블록 한 개의 줄 목록"""
    lines = ["BEGIN:VEVENT"]
    if start is not None:
        lines.append(f"DTSTART{start_params}:{start}")
    if end is not None:
        lines.append(f"DTEND{end_params}:{end}")
    if summary is not None:
        lines.append(f"SUMMARY:{summary}")
    if uid is not None:
        lines.append(f"UID:{uid}")
    lines.append("END:VEVENT")
    return lines


def make_ical(*events):
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Airbnb Inc//Hosting Calendar 0.8.8//EN",
        "CALSCALE:GREGORIAN",
    ]
    for event in events:
        lines.extend(event)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture()
def db_session():
    import app.domain.models  # noqa: F401
    from app.db.base import Base
    from app.db.session import SessionLocal, engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def property_code(db_session):
    from app.repositories.property_profile_repository import PropertyProfileRepository

    PropertyProfileRepository(db_session).create("PV-B", "Pine Valley Cabin")
    db_session.commit()
    return "PV-B"


@pytest.fixture()
def make_feed(db_session, property_code):
    from app.repositories.calendar_feed_repository import CalendarFeedRepository

    def _make(url="https://www.airbnb.com/calendar/ical/1.ics", platform="airbnb"):
        feed = CalendarFeedRepository(db_session).create(property_code, url, platform)
        db_session.commit()
        return feed.id

    return _make
