"""
Sleep analytics over stored sessions: weekly averages, 7/30-day trends and
period-over-period comparison.

Completed sessions are bucketed by the local calendar date they were put
down on, the same day assignment the daily summary uses. Averages only count
days that have any recorded sleep.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from app.enums import SessionState, SessionType, TrendDirection, TrendPeriod
from app.exceptions.errors import ValidationError
from app.models import SleepSession
from app.schemas.analytics_schemas import (
    ComparisonRequest,
    ComparisonResponse,
    DailySleepStats,
    PeriodAverages,
    PeriodChanges,
    SleepTrendResponse,
    TrendAverages,
    TrendDirections,
    TrendPoint,
    WeeklySummaryResponse,
)
from app.services.child_access_service import ChildAccessService
from app.services.session_service import SessionService
from app.utils.time_windows import as_utc, format_clock, local_date_bounds, round_half_up
from app.core.logger import get_logger

logger = get_logger("analytics_service")

TREND_DAYS = {TrendPeriod.SEVEN_DAYS: 7, TrendPeriod.THIRTY_DAYS: 30}
# Half-over-half change beyond this percentage counts as a trend
TREND_THRESHOLD_PERCENT = 10
MAX_COMPARISON_DAYS = 92


def _average(values) -> Optional[int]:
    return round_half_up(sum(values) / len(values)) if values else None


def _one_decimal(value: float) -> float:
    return round_half_up(value * 10) / 10


def _clock_minutes(clock: str) -> int:
    hours, minutes = clock.split(":")
    return int(hours) * 60 + int(minutes)


def average_clock_time(clocks: List[str]) -> Optional[str]:
    """Mean of "HH:MM" clock readings."""
    if not clocks:
        return None
    mean = round_half_up(sum(_clock_minutes(c) for c in clocks) / len(clocks))
    return f"{mean // 60:02d}:{mean % 60:02d}"


def trend_direction(values: List[int]) -> TrendDirection:
    """Compare the mean of the second half of the series with the first half."""
    if len(values) < 3:
        return TrendDirection.STABLE
    half = len(values) // 2
    first = sum(values[:half]) / half
    second = sum(values[half:]) / (len(values) - half)
    if first == 0:
        return TrendDirection.INCREASING if second > 0 else TrendDirection.STABLE

    change = (second - first) / first * 100
    if change > TREND_THRESHOLD_PERCENT:
        return TrendDirection.INCREASING
    if change < -TREND_THRESHOLD_PERCENT:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def local_put_down_date(session: SleepSession, tz_name: str) -> date:
    return as_utc(session.put_down_at).astimezone(ZoneInfo(tz_name)).date()


def daily_stats(day: date, sessions: List[SleepSession], tz_name: str) -> DailySleepStats:
    """Totals for one local date from its completed sessions."""
    naps = [s for s in sessions if s.session_type == SessionType.NAP.value]
    nights = [s for s in sessions if s.session_type == SessionType.NIGHT_SLEEP.value]
    nap_lengths = [s.sleep_minutes for s in naps if s.sleep_minutes]
    crying = sum(s.crying_minutes or 0 for s in sessions)

    stats = DailySleepStats(
        date=day,
        total_sleep_minutes=sum(s.sleep_minutes or 0 for s in sessions),
        nap_count=len(naps),
        nap_minutes=sum(s.sleep_minutes or 0 for s in naps),
        night_sleep_minutes=sum(s.sleep_minutes or 0 for s in nights),
        average_nap_length=_average(nap_lengths),
        longest_nap=max(nap_lengths) if nap_lengths else None,
        shortest_nap=min(nap_lengths) if nap_lengths else None,
        crying_minutes=crying or None,
    )

    nap_starts = [as_utc(s.put_down_at) for s in naps if s.put_down_at]
    nap_ends = [as_utc(s.woke_up_at) for s in naps if s.woke_up_at]
    if nap_starts:
        stats.first_nap_start = format_clock(min(nap_starts), tz_name)
    if nap_ends:
        stats.last_nap_end = format_clock(max(nap_ends), tz_name)

    # The evening's night session gives that day's bedtime and the next morning's wake
    if nights:
        night = nights[-1]
        if night.put_down_at:
            stats.bedtime = format_clock(as_utc(night.put_down_at), tz_name)
        if night.woke_up_at:
            stats.wake_time = format_clock(as_utc(night.woke_up_at), tz_name)
    return stats


def _days(start: date, end: date) -> List[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


class AnalyticsService:

    @staticmethod
    async def _daily_breakdown(
        db: AsyncSession,
        child_id: str,
        start: date,
        end: date,
        tz_name: str
    ) -> List[DailySleepStats]:
        range_start, _ = local_date_bounds(start, tz_name)
        _, range_end = local_date_bounds(end, tz_name)
        sessions = await SessionService.sessions_between(db, child_id, range_start, range_end)

        by_day: Dict[date, List[SleepSession]] = {}
        for session in sessions:
            if session.state != SessionState.COMPLETED.value:
                continue
            by_day.setdefault(local_put_down_date(session, tz_name), []).append(session)

        return [daily_stats(day, by_day.get(day, []), tz_name) for day in _days(start, end)]

    @staticmethod
    async def get_weekly_summary(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        week_of: date,
        tz_name: str
    ) -> WeeklySummaryResponse:
        """Averages for the Sunday-to-Saturday week containing ``week_of``."""
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        week_start = week_of - timedelta(days=(week_of.weekday() + 1) % 7)
        week_end = week_start + timedelta(days=6)

        breakdown = await AnalyticsService._daily_breakdown(db, child_id, week_start, week_end, tz_name)
        with_data = [d for d in breakdown if d.total_sleep_minutes > 0]
        count = len(with_data)

        return WeeklySummaryResponse(
            week_start=week_start,
            week_end=week_end,
            timezone=tz_name,
            avg_total_sleep_minutes=_average([d.total_sleep_minutes for d in with_data]) or 0,
            avg_nap_count=_one_decimal(sum(d.nap_count for d in with_data) / count) if count else 0,
            avg_nap_minutes=_average([d.nap_minutes for d in with_data]) or 0,
            avg_night_sleep_minutes=_average([d.night_sleep_minutes for d in with_data]) or 0,
            avg_nap_length=_average([d.average_nap_length for d in with_data if d.average_nap_length]),
            avg_bedtime=average_clock_time([d.bedtime for d in with_data if d.bedtime]),
            avg_wake_time=average_clock_time([d.wake_time for d in with_data if d.wake_time]),
            days_with_data=count,
            daily_breakdown=breakdown,
        )

    @staticmethod
    async def get_sleep_trends(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        period: TrendPeriod,
        tz_name: str,
        now
    ) -> SleepTrendResponse:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        today = as_utc(now).astimezone(ZoneInfo(tz_name)).date()
        start = today - timedelta(days=TREND_DAYS[TrendPeriod(period)])

        breakdown = await AnalyticsService._daily_breakdown(db, child_id, start, today, tz_name)
        with_data = [d for d in breakdown if d.total_sleep_minutes > 0]
        count = len(with_data)

        return SleepTrendResponse(
            period=period,
            timezone=tz_name,
            data_points=[
                TrendPoint(
                    date=d.date,
                    total_sleep_minutes=d.total_sleep_minutes,
                    nap_minutes=d.nap_minutes,
                    night_sleep_minutes=d.night_sleep_minutes,
                    nap_count=d.nap_count,
                )
                for d in breakdown
            ],
            averages=TrendAverages(
                total_sleep_minutes=_average([d.total_sleep_minutes for d in with_data]) or 0,
                nap_minutes=_average([d.nap_minutes for d in with_data]) or 0,
                night_sleep_minutes=_average([d.night_sleep_minutes for d in with_data]) or 0,
                nap_count=_one_decimal(sum(d.nap_count for d in with_data) / count) if count else 0,
            ),
            trends=TrendDirections(
                total_sleep=trend_direction([d.total_sleep_minutes for d in with_data]),
                nap_count=trend_direction([d.nap_count for d in with_data]),
                nap_length=trend_direction([d.average_nap_length for d in with_data if d.average_nap_length]),
            ),
        )

    @staticmethod
    async def _period_averages(db: AsyncSession, child_id: str, start: date, end: date, tz_name: str):
        if (end - start).days + 1 > MAX_COMPARISON_DAYS:
            raise ValidationError(f"Comparison periods are limited to {MAX_COMPARISON_DAYS} days")
        breakdown = await AnalyticsService._daily_breakdown(db, child_id, start, end, tz_name)
        with_data = [d for d in breakdown if d.total_sleep_minutes > 0]
        count = len(with_data)
        avg_sleep = sum(d.total_sleep_minutes for d in with_data) / count if count else 0
        avg_naps = sum(d.nap_count for d in with_data) / count if count else 0
        return avg_sleep, avg_naps, count

    @staticmethod
    async def get_comparison(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        request: ComparisonRequest,
        tz_name: str
    ) -> ComparisonResponse:
        """Period 2 measured against period 1."""
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        sleep1, naps1, days1 = await AnalyticsService._period_averages(
            db, child_id, request.period1_start, request.period1_end, tz_name
        )
        sleep2, naps2, days2 = await AnalyticsService._period_averages(
            db, child_id, request.period2_start, request.period2_end, tz_name
        )

        change = sleep2 - sleep1
        return ComparisonResponse(
            period1=PeriodAverages(
                start=request.period1_start,
                end=request.period1_end,
                avg_total_sleep=round_half_up(sleep1),
                avg_nap_count=_one_decimal(naps1),
                days_with_data=days1,
            ),
            period2=PeriodAverages(
                start=request.period2_start,
                end=request.period2_end,
                avg_total_sleep=round_half_up(sleep2),
                avg_nap_count=_one_decimal(naps2),
                days_with_data=days2,
            ),
            changes=PeriodChanges(
                total_sleep_change=round_half_up(change),
                total_sleep_change_percent=round_half_up(change / sleep1 * 100) if sleep1 > 0 else 0,
                nap_count_change=_one_decimal(naps2 - naps1),
            ),
        )
