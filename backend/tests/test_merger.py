import random

import pytest

from app.domain.calendar import (
    BlockedPeriod,
    CalendarDay,
    MergeInvariantError,
    PeriodSource,
    add_days,
    check_merged,
    iterate_days,
    merge_periods,
    parse_ymd,
)


def _period(start, end, summary=None, source=PeriodSource.SYNCED):
    return BlockedPeriod(parse_ymd(start), parse_ymd(end), source, summary=summary)


def _spans(periods):
    return [(p.start.ymd, p.end.ymd) for p in periods]


def _covered_days(periods):
    days = set()
    for p in periods:
        days.update(iterate_days(p.start, p.end))
    return days


def test_touching_periods_are_merged():
    merged = merge_periods([
        _period("2026-01-10", "2026-01-13"),
        _period("2026-01-13", "2026-01-15"),
    ])

    assert _spans(merged) == [("2026-01-10", "2026-01-15")]


def test_one_day_gap_is_not_merged():
    merged = merge_periods([
        _period("2026-01-10", "2026-01-12"),
        _period("2026-01-13", "2026-01-15"),
    ])

    assert _spans(merged) == [("2026-01-10", "2026-01-12"), ("2026-01-13", "2026-01-15")]


def test_overlapping_and_contained_periods():
    merged = merge_periods([
        _period("2026-02-01", "2026-02-10"),
        _period("2026-02-03", "2026-02-05"),
        _period("2026-02-08", "2026-02-12"),
        _period("2026-03-01", "2026-03-02"),
    ])

    assert _spans(merged) == [("2026-02-01", "2026-02-12"), ("2026-03-01", "2026-03-02")]


def test_unsorted_input_is_not_mutated():
    periods = [
        _period("2026-05-01", "2026-05-03"),
        _period("2026-01-01", "2026-01-03"),
        _period("2026-03-01", "2026-03-03"),
    ]
    snapshot = list(periods)

    merged = merge_periods(periods)

    assert periods == snapshot
    assert _spans(merged) == [
        ("2026-01-01", "2026-01-03"),
        ("2026-03-01", "2026-03-03"),
        ("2026-05-01", "2026-05-03"),
    ]


def test_empty_periods_are_dropped():
    merged = merge_periods([
        _period("2026-01-10", "2026-01-10"),
        _period("2026-01-12", "2026-01-11"),
        _period("2026-01-20", "2026-01-21"),
    ])

    assert _spans(merged) == [("2026-01-20", "2026-01-21")]


def test_empty_input():
    assert merge_periods([]) == []


def test_reserved_label_wins_over_not_available():
    merged = merge_periods([
        _period("2026-01-10", "2026-01-13", "Airbnb (Not available)"),
        _period("2026-01-12", "2026-01-15", "Reserved"),
    ])

    assert merged[0].summary == "Reserved"


def test_first_label_kept_when_neither_is_reserved():
    merged = merge_periods([
        _period("2026-01-10", "2026-01-13", "Blocked"),
        _period("2026-01-12", "2026-01-15", None),
    ])

    assert merged[0].summary == "Blocked"


def test_check_merged_rejects_overlap_and_touching():
    with pytest.raises(MergeInvariantError):
        check_merged([_period("2026-01-10", "2026-01-13"), _period("2026-01-12", "2026-01-15")])
    with pytest.raises(MergeInvariantError):
        check_merged([_period("2026-01-10", "2026-01-13"), _period("2026-01-13", "2026-01-15")])
    with pytest.raises(MergeInvariantError):
        check_merged([_period("2026-01-10", "2026-01-10")])


@pytest.mark.parametrize("seed", range(20))
def test_random_inputs_merge_into_disjoint_sorted_cover(seed):
    rng = random.Random(seed)
    base = CalendarDay(2026, 1, 1)
    periods = []
    for _ in range(rng.randint(0, 25)):
        start = add_days(base, rng.randint(0, 120))
        periods.append(BlockedPeriod(start, add_days(start, rng.randint(1, 10)), PeriodSource.SYNCED))

    merged = merge_periods(periods)

    check_merged(merged)
    for previous, current in zip(merged, merged[1:]):
        assert previous.end < current.start
    assert _covered_days(merged) == _covered_days(periods)
    assert merge_periods(merged) == merged
