from datetime import date, datetime

import pytest

from app.utils.time_windows import (
    UTC,
    as_utc,
    build_window,
    clamp,
    format_clock,
    is_valid_clock_time,
    is_valid_timezone,
    local_date_bounds,
    local_day_bounds,
    midpoint,
    minutes_between,
    parse_time_string,
    round_half_up,
    shift_window,
)
from helpers import after, at


def test_as_utc_treats_naive_as_utc():
    naive = datetime(2026, 5, 1, 9, 30)
    assert as_utc(naive) == at(9, 30)
    assert as_utc(None) is None


def test_parse_time_string_follows_dst():
    # US daylight saving starts 2026-03-08
    before = datetime(2026, 3, 7, 15, 0, tzinfo=UTC)
    on = datetime(2026, 3, 8, 15, 0, tzinfo=UTC)
    assert parse_time_string("19:00", before, "America/New_York") == datetime(2026, 3, 8, 0, 0, tzinfo=UTC)
    assert parse_time_string("19:00", on, "America/New_York") == datetime(2026, 3, 8, 23, 0, tzinfo=UTC)


def test_parse_time_string_uses_local_day_of_reference():
    # 02:00 UTC on May 2 is still May 1 in New York
    reference = datetime(2026, 5, 2, 2, 0, tzinfo=UTC)
    assert parse_time_string("07:00", reference, "America/New_York") == datetime(2026, 5, 1, 11, 0, tzinfo=UTC)


def test_parse_time_string_rejects_bad_clock():
    with pytest.raises(ValueError):
        parse_time_string("7:00", at(6), "UTC")
    with pytest.raises(ValueError):
        parse_time_string("24:00", at(6), "UTC")


def test_clock_and_zone_validation():
    assert is_valid_clock_time("00:00")
    assert is_valid_clock_time("23:59")
    assert not is_valid_clock_time("12:60")
    assert not is_valid_clock_time(None)
    assert is_valid_timezone("Europe/Berlin")
    assert not is_valid_timezone("Mars/Olympus")
    assert not is_valid_timezone("")


def test_format_clock_in_zone():
    assert format_clock(at(23, 15), "UTC") == "23:15"
    assert format_clock(at(23, 15), "Asia/Tokyo") == "08:15"


def test_minutes_between_floors():
    start = at(9)
    assert minutes_between(start, datetime(2026, 5, 1, 9, 10, 59, tzinfo=UTC)) == 10
    assert minutes_between(start, datetime(2026, 5, 1, 8, 59, 30, tzinfo=UTC)) == -1
    assert minutes_between(None, start) is None


def test_round_half_up():
    assert round_half_up(30.5) == 31
    assert round_half_up(22.5) == 23
    assert round_half_up(7.49) == 7


def test_midpoint_and_clamp():
    assert midpoint(at(9), at(9, 30)) == at(9, 15)
    assert midpoint(at(9), at(9, 15)) == at(9, 8)
    assert clamp(at(8), at(9), at(10)) == at(9)
    assert clamp(at(11), at(9), at(10)) == at(10)
    assert clamp(at(11), at(10), at(9)) == at(10)


def test_build_window_collapses_inverted_range():
    notes = []
    window = build_window(at(13, 15), at(12), None, notes, "collapsed")
    assert window.earliest == window.latest == window.recommended == at(13, 15)
    assert notes == ["collapsed"]


def test_build_window_clamps_recommended():
    window = build_window(at(9), at(9, 30), at(10))
    assert window.recommended == at(9, 30)


def test_shift_window():
    window = shift_window(build_window(at(18, 53), at(19, 7), at(19)), 15)
    assert (window.earliest, window.recommended, window.latest) == (at(19, 8), at(19, 15), at(19, 22))


def test_local_day_bounds():
    start, end = local_day_bounds(datetime(2026, 5, 2, 2, 0, tzinfo=UTC), "America/New_York")
    assert start == datetime(2026, 5, 1, 4, 0, tzinfo=UTC)
    assert end == datetime(2026, 5, 2, 4, 0, tzinfo=UTC)


def test_local_date_bounds_far_east_zone():
    start, end = local_date_bounds(date(2026, 5, 1), "Pacific/Kiritimati")
    assert start == datetime(2026, 4, 30, 10, 0, tzinfo=UTC)
    assert end == after(start, 24 * 60)
