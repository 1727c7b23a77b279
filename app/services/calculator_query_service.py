"""
Read-side queries that feed stored sessions and schedules into the calculator:
day schedule, next action, today summary, bedtime adjustment and transition
views.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, desc
from typing import List, Optional
from datetime import timedelta

from app.models import SleepSession
from app.enums import NapStatus, SessionState, SessionType
from app.exceptions.errors import NotFoundError
from app.schemas.calculator_schemas import (
    AdHocNapSummary,
    BedtimeAdjustmentRequest,
    BedtimeRecommendation,
    Crib90Compliance,
    DayScheduleRecommendation,
    DayScheduleRequest,
    NapActual,
    NapPushReadiness,
    NapStatusItem,
    NextActionRecommendation,
    TodaySummaryResponse,
    TransitionProgressResponse,
)
from app.schemas.schedule_schemas import ScheduleResponse
from app.services.child_access_service import ChildAccessService
from app.services.next_action_service import NextActionService
from app.services.schedule_calculator_service import ScheduleCalculatorService
from app.services.schedule_service import ScheduleService
from app.services.session_service import SessionService
from app.services.transition_tracker_service import TransitionTrackerService
from app.utils.time_windows import as_utc, local_day_bounds, parse_time_string, shift_window
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger("calculator_query_service")

AD_HOC_BEDTIME_BUMP_MINUTES = 15
AD_HOC_BUMP_MIN_SLEEP = 30


class TodayState:
    """Today's sessions split the way the calculator needs them."""

    def __init__(self, sessions: List[SleepSession], day_start, day_end, tz_name: str):
        self.night_session = None
        for session in sessions:
            woke = as_utc(session.woke_up_at)
            if (
                session.session_type == SessionType.NIGHT_SLEEP.value
                and woke is not None
                and day_start <= woke < day_end
                and (self.night_session is None or woke > as_utc(self.night_session.woke_up_at))
            ):
                self.night_session = session

        self.active_session = next(
            (s for s in reversed(sessions) if s.state != SessionState.COMPLETED.value),
            None,
        )
        self.asleep_session = next(
            (s for s in reversed(sessions) if s.state == SessionState.ASLEEP.value),
            None,
        )
        todays = [s for s in sessions if s.put_down_at is not None and day_start <= as_utc(s.put_down_at) < day_end]
        self.scheduled_naps = [
            s for s in todays
            if s.session_type == SessionType.NAP.value and not s.is_ad_hoc
        ]
        self.completed_naps = [s for s in self.scheduled_naps if s.state == SessionState.COMPLETED.value]
        self.ad_hoc_naps = [s for s in todays if s.is_ad_hoc]

    def nap_actuals(self) -> List[NapActual]:
        return [
            NapActual(
                nap_number=index,
                duration_minutes=session.qualified_rest_minutes or 0,
                ended_at=as_utc(session.out_of_crib_at or session.woke_up_at),
            )
            for index, session in enumerate(self.completed_naps, start=1)
        ]


class CalculatorQueryService:

    @staticmethod
    async def _schedule(db: AsyncSession, child_id: str) -> ScheduleResponse:
        schedule = await ScheduleService.find_active_schedule(db, child_id)
        if schedule is None:
            raise NotFoundError("SCHEDULE_NOT_FOUND", "No active schedule for this child")
        return schedule

    @staticmethod
    async def _today(db: AsyncSession, child_id: str, tz_name: str, now) -> TodayState:
        day_start, day_end = local_day_bounds(now, tz_name)
        # Last night's session was put down yesterday
        sessions = await SessionService.sessions_between(db, child_id, day_start - timedelta(days=1), day_end)
        return TodayState(sessions, day_start, day_end, tz_name)

    @staticmethod
    def _wake_time(today: TodayState, now, tz_name: str):
        if today.night_session is not None:
            return as_utc(today.night_session.woke_up_at), "night_session"
        return parse_time_string(settings.DEFAULT_WAKE_TIME, now, tz_name), "default"

    @staticmethod
    async def get_day_schedule(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        request: DayScheduleRequest,
        tz_name: str,
        now
    ) -> DayScheduleRecommendation:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        schedule = await CalculatorQueryService._schedule(db, child_id)
        transition = await ScheduleService.find_active_transition(db, child_id)

        durations = request.actual_nap_durations or []
        end_times = request.nap_end_times or []
        actuals = [
            NapActual(
                nap_number=index,
                duration_minutes=minutes,
                ended_at=end_times[index - 1] if index <= len(end_times) else None,
            )
            for index, minutes in enumerate(durations, start=1)
        ]
        wake_time = parse_time_string(request.wake_time, now, tz_name)
        return ScheduleCalculatorService.calculate_day_schedule(wake_time, schedule, tz_name, actuals, transition)

    @staticmethod
    def _next_action(schedule: ScheduleResponse, day: DayScheduleRecommendation, today: TodayState, tz_name: str, now):
        asleep = today.asleep_session
        return NextActionService.calculate_next_action(
            now,
            day,
            completed_naps=len(today.completed_naps),
            currently_asleep=asleep is not None,
            tz_name=tz_name,
            is_night_sleep=asleep is not None and asleep.session_type == SessionType.NIGHT_SLEEP.value,
            must_wake_by=schedule.must_wake_by,
        )

    @staticmethod
    async def get_next_action(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        tz_name: str,
        now
    ) -> NextActionRecommendation:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        schedule = await CalculatorQueryService._schedule(db, child_id)
        transition = await ScheduleService.find_active_transition(db, child_id)
        today = await CalculatorQueryService._today(db, child_id, tz_name, now)
        wake_time, _ = CalculatorQueryService._wake_time(today, now, tz_name)

        day = ScheduleCalculatorService.calculate_day_schedule(
            wake_time, schedule, tz_name, today.nap_actuals(), transition
        )
        return CalculatorQueryService._next_action(schedule, day, today, tz_name, now)

    @staticmethod
    async def get_today_summary(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        tz_name: str,
        now
    ) -> TodaySummaryResponse:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        schedule = await CalculatorQueryService._schedule(db, child_id)
        transition = await ScheduleService.find_active_transition(db, child_id)
        today = await CalculatorQueryService._today(db, child_id, tz_name, now)
        wake_time, wake_source = CalculatorQueryService._wake_time(today, now, tz_name)

        day = ScheduleCalculatorService.calculate_day_schedule(
            wake_time, schedule, tz_name, today.nap_actuals(), transition
        )

        bump = 0
        if any((s.sleep_minutes or 0) >= AD_HOC_BUMP_MIN_SLEEP for s in today.ad_hoc_naps):
            bump = AD_HOC_BEDTIME_BUMP_MINUTES
            day.bedtime = BedtimeRecommendation(
                window=shift_window(day.bedtime.window, bump),
                notes=day.bedtime.notes + [f"Bedtime {bump} min later after an ad-hoc nap of 30+ min"],
            )

        next_action = CalculatorQueryService._next_action(schedule, day, today, tz_name, now)

        completed = len(today.completed_naps)
        active = today.active_session
        nap_in_progress = (
            active is not None
            and active.session_type == SessionType.NAP.value
            and not active.is_ad_hoc
        )
        statuses = []
        for nap in day.naps:
            item = NapStatusItem(
                nap_number=nap.nap_number,
                status=NapStatus.UPCOMING,
                window=nap.window,
                skip_recommended=nap.skip_recommended,
            )
            if nap.nap_number <= completed:
                session = today.completed_naps[nap.nap_number - 1]
                item.status = NapStatus.COMPLETED
                item.session_id = session.id
                item.sleep_minutes = session.sleep_minutes
                item.qualified_rest_minutes = session.qualified_rest_minutes
            elif nap_in_progress and nap.nap_number == completed + 1:
                item.status = NapStatus.IN_PROGRESS
                item.session_id = active.id
            statuses.append(item)

        nap_goal = ScheduleCalculatorService.nap_goal(schedule)
        expected = ScheduleCalculatorService.expected_day_sleep(schedule)
        required = ScheduleCalculatorService.required_nap_count(schedule)
        skipped = sum(1 for n in day.naps if n.skip_recommended and n.nap_number > completed)
        total_qualified = sum(s.qualified_rest_minutes or 0 for s in today.completed_naps) + sum(
            s.qualified_rest_minutes or 0 for s in today.ad_hoc_naps
        )
        debt = max(0, expected - total_qualified)
        debt_note = None
        if debt > 0:
            debt_note = (
                f"{debt} min short of {expected} min goal (got {total_qualified} min credit)"
                f" - earlier bedtime recommended"
            )

        return TodaySummaryResponse(
            wake_time=wake_time,
            wake_time_source=wake_source,
            schedule=day,
            next_action=next_action,
            naps=statuses,
            ad_hoc_naps=[
                AdHocNapSummary(
                    session_id=s.id,
                    location=s.location,
                    asleep_at=as_utc(s.asleep_at),
                    woke_up_at=as_utc(s.woke_up_at),
                    sleep_minutes=s.sleep_minutes,
                    qualified_rest_minutes=s.qualified_rest_minutes,
                )
                for s in today.ad_hoc_naps
            ],
            completed_naps=completed,
            required_naps=required,
            total_qualified_minutes=total_qualified,
            nap_goal_minutes=nap_goal,
            expected_day_sleep_minutes=expected,
            sleep_debt_minutes=debt,
            sleep_debt_note=debt_note,
            ad_hoc_bedtime_adjustment_minutes=bump,
            bedtime_finalized=completed >= required - skipped,
        )

    @staticmethod
    async def get_adjusted_bedtime(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        request: BedtimeAdjustmentRequest,
        tz_name: str,
        now
    ) -> BedtimeRecommendation:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        schedule = await CalculatorQueryService._schedule(db, child_id)
        wake_time = parse_time_string(request.wake_time, now, tz_name)
        return ScheduleCalculatorService.calculate_adjusted_bedtime(
            wake_time, schedule, tz_name, request.total_nap_minutes
        )

    @staticmethod
    async def get_transition_progress(db: AsyncSession, user_id: str, child_id: str, now) -> Optional[TransitionProgressResponse]:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        transition = await ScheduleService.find_active_transition(db, child_id)
        if transition is None:
            return None
        schedule = await ScheduleService.find_active_schedule(db, child_id)
        crib_minutes = schedule.minimum_crib_minutes if schedule else 90
        return TransitionTrackerService.calculate_progress(transition, now, crib_minutes)

    @staticmethod
    async def get_nap_push_readiness(db: AsyncSession, user_id: str, child_id: str, now) -> Optional[NapPushReadiness]:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        transition = await ScheduleService.find_active_transition(db, child_id)
        if transition is None:
            return None
        result = await db.execute(
            select(SleepSession)
            .where(and_(
                SleepSession.child_id == child_id,
                SleepSession.session_type == SessionType.NAP.value,
                SleepSession.state == SessionState.COMPLETED.value,
                SleepSession.is_ad_hoc.is_(False),
                SleepSession.put_down_at >= as_utc(now) - timedelta(days=7),
            ))
            .order_by(desc(SleepSession.put_down_at))
        )
        return TransitionTrackerService.analyze_nap_push_readiness(transition, result.scalars().all(), now)

    @staticmethod
    async def get_crib90_compliance(db: AsyncSession, user_id: str, child_id: str, session_id: str, now) -> Crib90Compliance:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        session = await SessionService._get_session(db, child_id, session_id)
        schedule = await ScheduleService.find_active_schedule(db, child_id)
        required = schedule.minimum_crib_minutes if schedule else 90
        return TransitionTrackerService.check_crib90(session, now, required)
