import pytest

from app.domain.calendar import (
    CalendarDay,
    InvalidDateFormat,
    Ordering,
    add_days,
    add_months,
    compare,
    days_between,
    in_range,
    is_valid_ymd,
    iterate_days,
    parse_ymd,
)


class TestParseYmd:
    def test_valid_date(self):
        day = parse_ymd("2026-01-27")
        assert day == CalendarDay(2026, 1, 27)
        assert str(day) == "2026-01-27"

    @pytest.mark.parametrize(
        "text",
        [
            "2026/01/27",
            "2026-1-27",
            "20260127",
            "26-01-27",
            "2026-01-27T00:00:00",
            " 2026-01-27",
            "2026-13-01",
            "2026-00-10",
            "2026-01-32",
            "2026-01-00",
            "0000-01-01",
            "1899-12-31",
            "2101-01-01",
            "9999-12-31",
            "",
        ],
    )
    def test_rejects_invalid(self, text):
        with pytest.raises(InvalidDateFormat):
            parse_ymd(text)
        assert not is_valid_ymd(text)

    def test_day_of_month_is_not_checked_against_month_length(self):
        day = parse_ymd("2026-02-30")
        assert day.ymd == "2026-02-30"
        # 2026-02-01 + 29일
        assert add_days(day, 0) == CalendarDay(2026, 3, 2)
        assert add_days(day, 1) == CalendarDay(2026, 3, 3)

    def test_year_bounds_are_inclusive(self):
        assert parse_ymd("1900-01-01").year == 1900
        assert parse_ymd("2100-12-31").year == 2100
        assert add_days(parse_ymd("2100-12-31"), 1).ymd == "2101-01-01"

    def test_normalized_projects_overflow_day(self):
        assert parse_ymd("2026-02-30").normalized() == CalendarDay(2026, 3, 2)
        assert parse_ymd("2026-02-28").normalized() == CalendarDay(2026, 2, 28)


class TestOrdering:
    def test_equality_is_string_form_equality(self):
        assert parse_ymd("2026-01-05") == CalendarDay(2026, 1, 5)
        assert hash(parse_ymd("2026-01-05")) == hash(CalendarDay(2026, 1, 5))
        assert CalendarDay(2026, 1, 5) != CalendarDay(2026, 1, 6)

    def test_compare(self):
        assert compare(parse_ymd("2026-01-27"), parse_ymd("2026-01-28")) is Ordering.BEFORE
        assert compare(parse_ymd("2026-01-27"), parse_ymd("2026-01-27")) is Ordering.EQUAL
        assert compare(parse_ymd("2026-01-28"), parse_ymd("2026-01-27")) is Ordering.AFTER

    def test_sorting_follows_string_form(self):
        days = [parse_ymd(s) for s in ["2026-10-01", "2025-12-31", "2026-02-01", "2026-01-15"]]
        assert [d.ymd for d in sorted(days)] == [
            "2025-12-31",
            "2026-01-15",
            "2026-02-01",
            "2026-10-01",
        ]


class TestArithmetic:
    @pytest.mark.parametrize(
        "start, n, expected",
        [
            ("2026-01-30", 3, "2026-02-02"),
            ("2026-12-31", 1, "2027-01-01"),
            ("2024-02-28", 1, "2024-02-29"),
            ("2026-03-01", -1, "2026-02-28"),
            ("2026-03-29", 1, "2026-03-30"),  # DST 전환 주간
            ("2026-01-10", 0, "2026-01-10"),
        ],
    )
    def test_add_days(self, start, n, expected):
        assert add_days(parse_ymd(start), n).ymd == expected

    def test_add_days_is_reversible(self):
        day = CalendarDay(2024, 1, 1)
        for _ in range(0, 800, 7):
            for n in (-400, -31, -1, 0, 1, 29, 365, 1000):
                assert add_days(add_days(day, n), -n) == day
            day = add_days(day, 7)

    def test_add_months_clamps_to_month_end(self):
        assert add_months(parse_ymd("2026-01-31"), 1).ymd == "2026-02-28"
        assert add_months(parse_ymd("2026-01-15"), 3).ymd == "2026-04-15"
        assert add_months(parse_ymd("2026-11-30"), 3).ymd == "2027-02-28"

    def test_days_between(self):
        assert days_between(parse_ymd("2026-01-01"), parse_ymd("2027-01-01")) == 365
        assert days_between(parse_ymd("2026-01-05"), parse_ymd("2026-01-04")) == -1


class TestIteration:
    def test_three_day_range_end_exclusive(self):
        days = [d.ymd for d in iterate_days(parse_ymd("2026-01-27"), parse_ymd("2026-01-30"))]
        assert days == ["2026-01-27", "2026-01-28", "2026-01-29"]

    def test_cross_month_boundary(self):
        days = [d.ymd for d in iterate_days(parse_ymd("2026-01-30"), parse_ymd("2026-02-02"))]
        assert days == ["2026-01-30", "2026-01-31", "2026-02-01"]

    def test_empty_and_reversed_ranges(self):
        assert list(iterate_days(parse_ymd("2026-01-27"), parse_ymd("2026-01-27"))) == []
        assert list(iterate_days(parse_ymd("2026-01-30"), parse_ymd("2026-01-27"))) == []

    def test_in_range(self):
        start, end = parse_ymd("2026-01-27"), parse_ymd("2026-01-30")
        assert in_range(parse_ymd("2026-01-27"), start, end)
        assert in_range(parse_ymd("2026-01-29"), start, end)
        assert not in_range(parse_ymd("2026-01-30"), start, end)
