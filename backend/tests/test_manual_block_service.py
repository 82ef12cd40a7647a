import pytest

from app.repositories.blocked_period_repository import BlockedPeriodRepository
from app.services.manual_block_service import (
    ManualBlockNotFoundError,
    ManualBlockOwnershipError,
    ManualBlockService,
    ManualBlockValidationError,
)


def _reason(service, *args):
    with pytest.raises(ManualBlockValidationError) as exc_info:
        service.create(*args)
    return exc_info.value.reason


def test_create_and_list_sorted(db_session, property_code):
    service = ManualBlockService(db_session)

    service.create(property_code, "2026-03-01", "2026-03-05", "Deep cleaning")
    service.create(property_code, "2026-02-10", "2026-02-12")
    db_session.commit()

    blocks = service.list(property_code)
    assert [(b.start_date, b.end_date) for b in blocks] == [
        ("2026-02-10", "2026-02-12"),
        ("2026-03-01", "2026-03-05"),
    ]
    assert blocks[1].note == "Deep cleaning"


def test_end_before_start_is_rejected_and_nothing_persisted(db_session, property_code):
    service = ManualBlockService(db_session)

    assert _reason(service, property_code, "2026-01-05", "2026-01-04") == "end must be after start"
    db_session.commit()

    assert service.list(property_code) == []


def test_same_day_range_is_rejected(db_session, property_code):
    service = ManualBlockService(db_session)

    assert _reason(service, property_code, "2026-01-05", "2026-01-05") == "end must be after start"


@pytest.mark.parametrize(
    "start, end",
    [("2026/01/05", "2026-01-10"), ("2026-01-05", "2026-13-01"), ("", "2026-01-10"), ("2026-1-5", "2026-1-9")],
)
def test_bad_format(db_session, property_code, start, end):
    service = ManualBlockService(db_session)

    assert _reason(service, property_code, start, end) == "Dates must be in YYYY-MM-DD format"


@pytest.mark.parametrize(
    "start, end",
    [("0000-01-01", "0000-01-05"), ("9999-12-30", "9999-12-31"), ("1899-12-30", "1900-01-02")],
)
def test_out_of_range_year_is_a_format_error(db_session, property_code, start, end):
    service = ManualBlockService(db_session)

    assert _reason(service, property_code, start, end) == "Dates must be in YYYY-MM-DD format"
    assert service.list(property_code) == []


def test_format_checked_before_order(db_session, property_code):
    service = ManualBlockService(db_session)

    assert _reason(service, property_code, "2026-02-01", "bad") == "Dates must be in YYYY-MM-DD format"


def test_span_limit(db_session, property_code):
    service = ManualBlockService(db_session)

    # 정확히 365일은 허용
    service.create(property_code, "2026-01-01", "2027-01-01")

    assert (
        _reason(service, property_code, "2026-01-01", "2027-01-02")
        == "Block range cannot exceed 365 days"
    )


def test_span_limit_is_configurable(db_session, property_code):
    service = ManualBlockService(db_session, max_days=7)

    assert _reason(service, property_code, "2026-01-01", "2026-01-09") == "Block range cannot exceed 7 days"


def test_note_length(db_session, property_code):
    service = ManualBlockService(db_session)

    assert (
        _reason(service, property_code, "2026-01-01", "2026-01-02", "x" * 256)
        == "Note must be 255 characters or fewer"
    )


def test_overlapping_blocks_are_stored_separately(db_session, property_code):
    service = ManualBlockService(db_session)

    first = service.create(property_code, "2026-02-01", "2026-02-05")
    service.create(property_code, "2026-02-03", "2026-02-08")
    db_session.commit()

    assert len(service.list(property_code)) == 2

    service.delete(property_code, first.id)
    db_session.commit()

    periods = BlockedPeriodRepository(db_session).list_manual(property_code)
    assert [(p.start.ymd, p.end.ymd) for p in periods] == [("2026-02-03", "2026-02-08")]


def test_delete_checks_ownership(db_session, property_code):
    service = ManualBlockService(db_session)
    block = service.create(property_code, "2026-02-01", "2026-02-05")
    db_session.commit()

    with pytest.raises(ManualBlockOwnershipError):
        service.delete("OTHER", block.id)
    with pytest.raises(ManualBlockNotFoundError):
        service.delete(property_code, block.id + 100)

    assert len(service.list(property_code)) == 1
