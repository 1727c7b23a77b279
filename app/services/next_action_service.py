"""
Next-action advisor: the single "what to do right now" recommendation.
"""

from datetime import timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.enums.sleep_enums import NextActionType
from app.schemas.calculator_schemas import DayScheduleRecommendation, NextActionRecommendation
from app.utils.time_windows import as_utc, format_clock, minutes_between, parse_time_string

# A window opening further out than this is a WAIT
LEAD_MINUTES = 30


def wake_deadline(now, must_wake_by: str, tz_name: str):
    """Next occurrence of the must-wake-by clock time; from noon on it refers to tomorrow morning."""
    now = as_utc(now)
    local_now = now.astimezone(ZoneInfo(tz_name))
    base = now + timedelta(days=1) if local_now.hour >= 12 else now
    return parse_time_string(must_wake_by, base, tz_name)


class NextActionService:

    @staticmethod
    def while_asleep(now, tz_name: str, is_night_sleep: bool, must_wake_by: Optional[str]) -> NextActionRecommendation:
        if not (is_night_sleep and must_wake_by):
            return NextActionRecommendation(
                action=NextActionType.WAIT,
                message="Child is currently sleeping",
                notes=["Monitor for wake signs"],
            )

        deadline = wake_deadline(now, must_wake_by, tz_name)
        minutes_until = minutes_between(as_utc(now), deadline)
        if minutes_until <= 0:
            overdue = -minutes_until
            return NextActionRecommendation(
                action=NextActionType.WAKE,
                minutes_overdue=overdue,
                message=f"Wake now - {overdue} min past the {must_wake_by} wake deadline",
                notes=["Waking on time protects the first nap and bedtime"],
            )
        if minutes_until <= LEAD_MINUTES:
            return NextActionRecommendation(
                action=NextActionType.WAIT,
                minutes_until=minutes_until,
                message=f"Wake by {must_wake_by} ({minutes_until} min)",
            )
        return NextActionRecommendation(
            action=NextActionType.WAIT,
            message="Child is currently sleeping",
            notes=[f"Wake deadline: {must_wake_by}"],
        )

    @staticmethod
    def calculate_next_action(
        now,
        day_schedule: DayScheduleRecommendation,
        completed_naps: int,
        currently_asleep: bool,
        tz_name: str,
        is_night_sleep: bool = False,
        must_wake_by: Optional[str] = None,
    ) -> NextActionRecommendation:
        now = as_utc(now)
        if currently_asleep:
            return NextActionService.while_asleep(now, tz_name, is_night_sleep, must_wake_by)

        next_nap = next(
            (n for n in day_schedule.naps if n.nap_number > completed_naps and not n.skip_recommended),
            None,
        )
        if next_nap is not None:
            minutes_until = minutes_between(now, next_nap.window.earliest)
            if minutes_until > LEAD_MINUTES:
                return NextActionRecommendation(
                    action=NextActionType.WAIT,
                    nap_number=next_nap.nap_number,
                    window=next_nap.window,
                    minutes_until=minutes_until,
                    message=f"Nap {next_nap.nap_number} in {minutes_until} minutes",
                    notes=[f"Target put down: {format_clock(next_nap.window.recommended, tz_name)}"],
                )
            return NextActionRecommendation(
                action=NextActionType.NAP,
                nap_number=next_nap.nap_number,
                window=next_nap.window,
                minutes_until=max(minutes_until, 0),
                message=f"Time for nap {next_nap.nap_number}",
                notes=list(next_nap.notes),
            )

        bedtime = day_schedule.bedtime
        minutes_until = minutes_between(now, bedtime.window.earliest)
        if minutes_until > LEAD_MINUTES:
            return NextActionRecommendation(
                action=NextActionType.WAIT,
                window=bedtime.window,
                minutes_until=minutes_until,
                message=f"Bedtime in {minutes_until} minutes",
                notes=[f"Target bedtime: {format_clock(bedtime.window.recommended, tz_name)}"],
            )
        return NextActionRecommendation(
            action=NextActionType.BEDTIME,
            window=bedtime.window,
            minutes_until=max(minutes_until, 0),
            message="Time for bedtime",
            notes=list(bedtime.notes),
        )
