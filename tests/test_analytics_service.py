from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.enums import SessionEvent, SessionType, TrendDirection, TrendPeriod
from app.exceptions.errors import NotFoundError, ValidationError
from app.schemas.analytics_schemas import ComparisonRequest
from app.schemas.session_schemas import SessionCreate, SessionUpdate
from app.services.analytics_service import AnalyticsService, average_clock_time, trend_direction
from app.services.session_service import SessionService
from helpers import at


async def _completed(db, user, child, session_type, put, asleep, woke, out, nap_number=None):
    session = await SessionService.create_session(
        db, user.id, child.id, SessionCreate(session_type=session_type, nap_number=nap_number, put_down_at=put), "UTC",
    )
    for event, field, value in (
        (SessionEvent.FELL_ASLEEP, "asleep_at", asleep),
        (SessionEvent.WOKE_UP, "woke_up_at", woke),
        (SessionEvent.OUT_OF_CRIB, "out_of_crib_at", out),
    ):
        session = await SessionService.update_session(
            db, user.id, child.id, session.id, SessionUpdate(event=event, **{field: value}),
        )
    return session


@pytest.fixture
async def two_days(db, user, child):
    """Night of Apr 30 (650 min), then naps of 60 and 30 min on May 1."""
    await _completed(
        db, user, child, SessionType.NIGHT_SLEEP,
        at(19, day=30, month=4), at(19, 10, day=30, month=4), at(6), at(6, 15),
    )
    await _completed(db, user, child, SessionType.NAP, at(9), at(9, 10), at(10, 10), at(10, 20), nap_number=1)
    await _completed(db, user, child, SessionType.NAP, at(13), at(13, 5), at(13, 35), at(13, 45), nap_number=2)
    # still in progress, so left out of every rollup
    await SessionService.create_session(
        db, user.id, child.id, SessionCreate(session_type=SessionType.NAP, nap_number=3, put_down_at=at(16)), "UTC",
    )


async def test_weekly_summary(db, user, child, two_days):
    week = await AnalyticsService.get_weekly_summary(db, user.id, child.id, date(2026, 5, 1), "UTC")

    assert (week.week_start, week.week_end) == (date(2026, 4, 26), date(2026, 5, 2))
    assert len(week.daily_breakdown) == 7
    assert week.days_with_data == 2
    assert week.avg_total_sleep_minutes == 370
    assert week.avg_nap_count == 1.0
    assert week.avg_nap_minutes == 45
    assert week.avg_night_sleep_minutes == 325
    assert week.avg_nap_length == 45
    assert week.avg_bedtime == "19:00"
    assert week.avg_wake_time == "06:00"

    evening, day = week.daily_breakdown[4], week.daily_breakdown[5]
    assert evening.date == date(2026, 4, 30)
    assert evening.night_sleep_minutes == 650
    assert day.nap_count == 2
    assert (day.longest_nap, day.shortest_nap) == (60, 30)
    assert (day.first_nap_start, day.last_nap_end) == ("09:00", "13:35")


async def test_sleep_trends(db, user, child, two_days):
    trends = await AnalyticsService.get_sleep_trends(db, user.id, child.id, TrendPeriod.SEVEN_DAYS, "UTC", at(20))

    assert len(trends.data_points) == 8
    assert trends.data_points[-1].date == date(2026, 5, 1)
    assert trends.data_points[-1].nap_minutes == 90
    assert trends.averages.total_sleep_minutes == 370
    assert trends.averages.nap_count == 1.0
    assert trends.trends.total_sleep == TrendDirection.STABLE


async def test_comparison(db, user, child, two_days):
    request = ComparisonRequest(
        period1_start=date(2026, 4, 30), period1_end=date(2026, 4, 30),
        period2_start=date(2026, 5, 1), period2_end=date(2026, 5, 1),
    )
    result = await AnalyticsService.get_comparison(db, user.id, child.id, request, "UTC")

    assert result.period1.avg_total_sleep == 650
    assert result.period2.avg_nap_count == 2.0
    assert result.changes.total_sleep_change == -560
    assert result.changes.total_sleep_change_percent == -86
    assert result.changes.nap_count_change == 2.0


async def test_comparison_limits(db, user, child, stranger):
    long_range = ComparisonRequest(
        period1_start=date(2026, 1, 1), period1_end=date(2026, 6, 1),
        period2_start=date(2026, 6, 2), period2_end=date(2026, 6, 3),
    )
    with pytest.raises(ValidationError):
        await AnalyticsService.get_comparison(db, user.id, child.id, long_range, "UTC")
    with pytest.raises(NotFoundError):
        await AnalyticsService.get_weekly_summary(db, stranger.id, child.id, date(2026, 5, 1), "UTC")
    with pytest.raises(PydanticValidationError):
        ComparisonRequest(
            period1_start=date(2026, 5, 2), period1_end=date(2026, 5, 1),
            period2_start=date(2026, 5, 3), period2_end=date(2026, 5, 4),
        )


def test_trend_direction():
    assert trend_direction([100, 100, 120, 130]) == TrendDirection.INCREASING
    assert trend_direction([130, 120, 100, 100]) == TrendDirection.DECREASING
    assert trend_direction([100, 90, 100, 95]) == TrendDirection.STABLE
    assert trend_direction([100, 300]) == TrendDirection.STABLE
    assert trend_direction([0, 0, 1, 2]) == TrendDirection.INCREASING


def test_average_clock_time():
    assert average_clock_time(["19:00", "19:30"]) == "19:15"
    assert average_clock_time([]) is None
