"""
2-nap to 1-nap transition tracking: pace, progress, nap-push readiness and
the crib-90 rule.
"""

from types import MappingProxyType

from app.core.logger import get_logger
from app.enums.sleep_enums import ScheduleType, TransitionPhase
from app.exceptions.errors import ValidationError
from app.schemas.calculator_schemas import (
    Crib90Compliance,
    NapPushReadiness,
    PaceOption,
    TransitionProgressResponse,
)
from app.utils.time_windows import as_utc, minutes_between

logger = get_logger("transition_tracker_service")

TRANSITION_START_NAP_TIME = "11:30"
WEEK2_MIN_NAP_TIME = "12:00"
TRANSITION_GOAL_NAP_TIME = "12:30"
PUSH_AMOUNT_MINUTES = 15
PUSH_INTERVAL_DAYS = 3
FAST_TRACK_PUSH_INTERVAL_DAYS = 2
GOOD_NAP_MINUTES = 90
MIN_GOOD_NAPS = 3
MIN_RECENT_NAPS = 5
CRIB_RULE_MINUTES = 90
FAST_TRACK_MAX_WEEKS = 4

PACE_GUIDANCE = MappingProxyType({
    6: "Standard pace - recommended for most babies",
    5: "Slightly accelerated pace",
    4: "Accelerated pace - for babies showing strong readiness",
    3: "Fast pace - for babies adapting quickly",
    2: "Fastest pace - only if baby is fully ready",
})

FAST_TRACK_TIPS = (
    "Check temperament at 11:30am - if good, try pushing to 12pm",
    "Can push nap time every 2-3 days if baby adapts well",
    "Morning rest can help baby stay well-rested",
)

# Schedule values applied when a transition starts
DEFAULT_TRANSITION_SCHEDULE = MappingProxyType({
    "type": ScheduleType.TRANSITION,
    "wake_window_1_min": 300,
    "wake_window_1_max": 330,
    "wake_window_2_min": 240,
    "wake_window_2_max": 300,
    "nap1_earliest": TRANSITION_START_NAP_TIME,
    "nap1_latest_start": "13:00",
    "nap1_max_duration": 150,
    "nap1_end_by": "15:00",
    "bedtime_earliest": "18:45",
    "bedtime_latest": "19:30",
    "bedtime_goal_start": "19:00",
    "bedtime_goal_end": "19:30",
    "day_sleep_cap": 150,
    "wake_time_latest": "08:00",
    "minimum_crib_minutes": CRIB_RULE_MINUTES,
})


def clock_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_clock(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


class TransitionTrackerService:

    @staticmethod
    def pace_option(target_weeks: int) -> PaceOption:
        if target_weeks not in PACE_GUIDANCE:
            raise ValidationError("Transition pace must be between 2 and 6 weeks")
        return PaceOption(
            weeks=target_weeks,
            label="Fast-track" if target_weeks <= FAST_TRACK_MAX_WEEKS else "Standard",
            guidance=PACE_GUIDANCE[target_weeks],
            is_fast_track=target_weeks <= FAST_TRACK_MAX_WEEKS,
        )

    @staticmethod
    def pace_options():
        return [TransitionTrackerService.pace_option(weeks) for weeks in sorted(PACE_GUIDANCE, reverse=True)]

    @staticmethod
    def progress_percent(current_week: int, target_weeks: int) -> float:
        if target_weeks <= 0:
            return 0.0
        return round(min(100.0, current_week / target_weeks * 100), 1)

    @staticmethod
    def nap_time_progress_percent(current_nap_time: str) -> float:
        start = clock_minutes(TRANSITION_START_NAP_TIME)
        goal = clock_minutes(TRANSITION_GOAL_NAP_TIME)
        made = clock_minutes(current_nap_time) - start
        return round(min(100.0, max(0.0, made / (goal - start) * 100)), 1)

    @staticmethod
    def determine_phase(current_week: int, current_nap_time: str) -> TransitionPhase:
        if current_week <= 2:
            return TransitionPhase.WEEK1_2
        if clock_minutes(current_nap_time) >= clock_minutes(TRANSITION_GOAL_NAP_TIME):
            return TransitionPhase.FINAL
        return TransitionPhase.WEEK2_PLUS

    @staticmethod
    def next_push_time(current_nap_time: str) -> str:
        pushed = clock_minutes(current_nap_time) + PUSH_AMOUNT_MINUTES
        return minutes_to_clock(min(pushed, clock_minutes(TRANSITION_GOAL_NAP_TIME)))

    @staticmethod
    def calculate_progress(transition, now, minimum_crib_minutes: int = CRIB_RULE_MINUTES) -> TransitionProgressResponse:
        pace = TransitionTrackerService.pace_option(transition.target_weeks)
        phase = TransitionTrackerService.determine_phase(transition.current_week, transition.current_nap_time)
        days_in = max(minutes_between(transition.start_date, now) // (24 * 60), 0)

        if phase == TransitionPhase.WEEK1_2:
            milestone = (
                f"Hold the nap at {transition.current_nap_time} or later and keep the crib "
                f"{minimum_crib_minutes} rule through week 2"
            )
        elif phase == TransitionPhase.WEEK2_PLUS:
            milestone = (
                f"Push nap time to {TransitionTrackerService.next_push_time(transition.current_nap_time)} "
                f"when baby is ready"
            )
        else:
            milestone = "Complete the transition once baby is consistently thriving"

        return TransitionProgressResponse(
            phase=phase,
            current_week=transition.current_week,
            target_weeks=transition.target_weeks,
            progress_percent=TransitionTrackerService.progress_percent(transition.current_week, transition.target_weeks),
            current_nap_time=transition.current_nap_time,
            target_nap_time=TRANSITION_GOAL_NAP_TIME,
            nap_time_progress_percent=TransitionTrackerService.nap_time_progress_percent(transition.current_nap_time),
            days_in_transition=days_in,
            pace=pace,
            fast_track_tips=list(FAST_TRACK_TIPS) if pace.is_fast_track else [],
            next_milestone=milestone,
            minimum_crib_minutes=minimum_crib_minutes,
            is_completed=transition.completed_at is not None,
        )

    @staticmethod
    def analyze_nap_push_readiness(transition, recent_naps, now) -> NapPushReadiness:
        """``recent_naps`` are completed crib naps from the last week."""
        fast_track = transition.target_weeks <= FAST_TRACK_MAX_WEEKS
        interval = FAST_TRACK_PUSH_INTERVAL_DAYS if fast_track else PUSH_INTERVAL_DAYS
        hold_weeks = 1 if fast_track else 2

        total = len(recent_naps)
        good = sum(1 for nap in recent_naps if (nap.sleep_minutes or 0) >= GOOD_NAP_MINUTES)
        last_push = transition.last_push_at or transition.start_date
        days_since_push = max(minutes_between(last_push, now) // (24 * 60), 0)

        suggested = None
        ready = False
        if transition.current_week <= hold_weeks:
            reason = f"Still in the first {hold_weeks} week(s) of the transition - keep the current nap time"
        elif clock_minutes(transition.current_nap_time) >= clock_minutes(TRANSITION_GOAL_NAP_TIME):
            reason = "Nap time has reached the goal - consider completing the transition"
        elif days_since_push < interval:
            reason = f"Wait at least {interval} days between pushes ({days_since_push} so far)"
        elif good < MIN_GOOD_NAPS or total < MIN_RECENT_NAPS:
            reason = (
                f"Wait for more consistent good naps ({good} of {total} naps reached "
                f"{GOOD_NAP_MINUTES} min; need {MIN_GOOD_NAPS} of at least {MIN_RECENT_NAPS})"
            )
        else:
            ready = True
            suggested = TransitionTrackerService.next_push_time(transition.current_nap_time)
            reason = "Baby is showing good signs of readiness"

        return NapPushReadiness(
            ready=ready,
            good_nap_count=good,
            total_naps=total,
            days_since_last_push=days_since_push,
            current_nap_time=transition.current_nap_time,
            suggested_nap_time=suggested,
            reason=reason,
        )

    @staticmethod
    def check_crib90(session, now, required_minutes: int = CRIB_RULE_MINUTES) -> Crib90Compliance:
        """Crib time so far (or in total, once out of the crib) against the minimum."""
        end = session.out_of_crib_at or as_utc(now)
        in_crib = max(minutes_between(session.put_down_at, end) or 0, 0) if session.put_down_at else 0
        compliant = in_crib >= required_minutes
        remaining = max(required_minutes - in_crib, 0)
        if compliant:
            message = f"Crib {required_minutes} rule met!"
        else:
            message = f"Keep in crib for {remaining} more minutes to meet the crib {required_minutes} rule"
        return Crib90Compliance(
            session_id=session.id,
            compliant=compliant,
            minutes_in_crib=in_crib,
            required_minutes=required_minutes,
            minutes_remaining=remaining,
            message=message,
        )
