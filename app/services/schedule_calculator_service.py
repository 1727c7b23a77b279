"""
Schedule Calculator Service

Turns a wake time, a child's schedule and any naps already taken today into
put-down windows for every nap and for bedtime. Special cases are written as
ordered rule tables (guard -> outcome -> note) evaluated top to bottom, so the
tie-break order can be read and tested on its own.
"""

from types import MappingProxyType
from typing import Callable, List, NamedTuple, Optional

from app.core.logger import get_logger
from app.enums.sleep_enums import ScheduleType
from app.exceptions.errors import UnknownScheduleTypeError
from app.schemas.calculator_schemas import (
    BedtimeRecommendation,
    DayScheduleRecommendation,
    NapActual,
    NapRecommendation,
    TimeWindow,
)
from app.utils.time_windows import (
    add_minutes,
    as_utc,
    build_window,
    clamp,
    format_clock,
    midpoint,
    minutes_between,
    parse_time_string,
)

logger = get_logger("schedule_calculator_service")

# Per-schedule-type fallbacks for anything the stored schedule leaves blank
SCHEDULE_DEFAULTS = MappingProxyType({
    ScheduleType.THREE_NAP: MappingProxyType({
        "nap_count": 3,
        "nap_max_duration": 90,
        "last_nap_max_duration": 45,
        "wake_window_2": (120, 150),
        "wake_window_3": (150, 180),
        "nap_goal": 45,
        "expected_day_sleep": 180,
    }),
    ScheduleType.TWO_NAP: MappingProxyType({
        "nap_count": 2,
        "nap_max_duration": 120,
        "nap2_exception_duration": 150,
        "wake_window_2": (150, 210),
        "wake_window_3": (210, 270),
        "nap_goal": 60,
        "expected_day_sleep": 120,
    }),
    ScheduleType.ONE_NAP: MappingProxyType({
        "nap_count": 1,
        "nap_max_duration": 150,
        "wake_window_2": (240, 300),
        "nap_goal": 90,
        "expected_day_sleep": 90,
    }),
    ScheduleType.TRANSITION: MappingProxyType({
        "nap_count": 1,
        "nap_max_duration": 150,
        "wake_window_2": (240, 300),
        "nap_goal": 90,
        "expected_day_sleep": 90,
    }),
})

SHORT_NAP_MINUTES = 60
NAP_GOAL_MINUTES = 60
MIN_USEFUL_NAP_MINUTES = 45
SKIPPED_NAP2_BAND = ("12:15", "12:30")
LATE_NAP_END = "14:30"
BEDTIME_NUDGE_MINUTES = 15
BEDTIME_HALF_WIDTH = 7
TRANSITION_HALF_WIDTH = 15
ONE_NAP_BEDTIME_BASELINE = "19:15"


class NapFacts(NamedTuple):
    """What is known about earlier naps when a rule is evaluated."""
    nap1_minutes: Optional[int]
    nap2_minutes: Optional[int]
    nap2_skipped: bool
    all_goals_met: bool
    shortfall: int
    last_nap_ended_late: bool


class Rule(NamedTuple):
    name: str
    guard: Callable[[NapFacts], bool]
    outcome: object
    note: Optional[str]


def first_matching(rules, facts: NapFacts) -> Rule:
    for rule in rules:
        if rule.guard(facts):
            return rule
    raise LookupError("Rule table has no catch-all entry")


# Nap 2 placement after nap 1
NAP2_TIMING_RULES = (
    Rule("skipped", lambda f: f.nap1_minutes == 0, "band",
         "Nap 1 skipped - nap 2 moved up to {start}-{end}"),
    Rule("short", lambda f: f.nap1_minutes is not None and f.nap1_minutes < SHORT_NAP_MINUTES, "early",
         "Short nap 1 ({nap1} min) - aim for the early side of the nap 2 window"),
    Rule("normal", lambda f: True, "midpoint", None),
)

# Two-nap bedtime offset from the baseline, in minutes
TWO_NAP_BEDTIME_RULES = (
    Rule("shortfall", lambda f: f.shortfall > 0, lambda f: -f.shortfall,
         "Naps were {shortfall} min short of their 60 min goals (sleep debt) - bedtime {shortfall} min earlier"),
    Rule("late_nap_end", lambda f: f.all_goals_met and f.last_nap_ended_late, lambda f: BEDTIME_NUDGE_MINUTES,
         "Both naps met their goal and nap 2 ended after 14:30 - bedtime a little later"),
    Rule("early_nap_end", lambda f: f.all_goals_met, lambda f: -BEDTIME_NUDGE_MINUTES,
         "Both naps met their goal with an early nap 2 end - bedtime a little earlier"),
    Rule("estimate", lambda f: True, lambda f: 0, None),
)


class BedtimeTier(NamedTuple):
    min_nap_minutes: int
    fixed_time: Optional[str]
    debt_base: int
    debt_goal: int
    note: str


# One-nap bedtime by nap length; debt tiers move earlier from the 19:15 baseline
ONE_NAP_BEDTIME_TIERS = (
    BedtimeTier(120, "19:15", 0, 0, "Long nap ({minutes} min) - regular bedtime"),
    BedtimeTier(90, "19:00", 0, 0, "Good nap ({minutes} min) - bedtime slightly early"),
    BedtimeTier(60, None, 0, 90, "Short nap ({minutes} min) - bedtime {offset} min earlier"),
    BedtimeTier(30, None, 30, 60, "Very short nap ({minutes} min) - bedtime {offset} min earlier"),
    BedtimeTier(0, "18:00", 0, 0, "Nap under 30 min - early bedtime"),
)


class DayContext:
    """Resolves schedule clock strings on the wake day in the child's zone."""

    def __init__(self, wake_time, tz_name: str, schedule):
        self.wake_time = as_utc(wake_time)
        self.tz = tz_name
        self.schedule = schedule
        self.schedule_type = resolve_schedule_type(schedule.type)
        self.defaults = SCHEDULE_DEFAULTS[self.schedule_type]

    def at(self, clock: str):
        return parse_time_string(clock, self.wake_time, self.tz)

    def clock(self, instant) -> str:
        return format_clock(instant, self.tz)

    def cfg(self, field: str, default=None):
        value = getattr(self.schedule, field, None)
        return default if value is None else value

    def wake_window(self, number: int):
        if number == 1:
            return self.schedule.wake_window_1_min, self.schedule.wake_window_1_max
        low, high = self.defaults.get(f"wake_window_{number}", (None, None))
        return (
            self.cfg(f"wake_window_{number}_min", low),
            self.cfg(f"wake_window_{number}_max", high),
        )


def resolve_schedule_type(value) -> ScheduleType:
    try:
        return ScheduleType(value)
    except ValueError:
        logger.error(f"Unknown schedule type reached the calculator: {value}")
        raise UnknownScheduleTypeError(value)


def nap_actual(actuals: Optional[List[NapActual]], nap_number: int) -> Optional[NapActual]:
    for actual in actuals or []:
        if actual.nap_number == nap_number:
            return actual
    return None


def nap_end(window: TimeWindow, max_duration: int, actual: Optional[NapActual]):
    """Observed end, else recommended put-down plus the actual or maximum length."""
    if actual is not None and actual.ended_at is not None:
        return as_utc(actual.ended_at)
    if actual is not None:
        return add_minutes(window.recommended, actual.duration_minutes)
    return add_minutes(window.recommended, max_duration)


def _bounded_window(ctx: DayContext, label: str, earliest, latest, earliest_field, latest_field, notes):
    """Narrow [earliest, latest] by the schedule's own bounds; a bound only wins if it restricts."""
    bound_earliest = ctx.cfg(earliest_field)
    if bound_earliest:
        held = ctx.at(bound_earliest)
        if held > earliest:
            earliest = held
            notes.append(f"{label} held until {bound_earliest} per schedule")

    latest_start = ctx.cfg(latest_field)
    inverted_by_bound = False
    if latest_start:
        cutoff = ctx.at(latest_start)
        if cutoff < latest:
            latest = cutoff
            inverted_by_bound = earliest > latest

    if inverted_by_bound:
        collapse_note = (
            f"{label} wake window opens after its latest start {latest_start} - "
            f"window collapsed to {ctx.clock(earliest)}"
        )
    else:
        collapse_note = f"Late wake time - {label.lower()} window collapsed to {ctx.clock(earliest)}"

    return build_window(earliest, latest, None, notes, collapse_note)


def _limit_to_end_by(ctx: DayContext, label: str, window: TimeWindow, max_duration: int, end_by_field, notes):
    end_by_clock = ctx.cfg(end_by_field)
    if not end_by_clock:
        return max_duration, None, None
    end_by = ctx.at(end_by_clock)
    available = minutes_between(window.recommended, end_by)
    if available < max_duration:
        notes.append(f"{label} must end by {end_by_clock} ({max(available, 0)} min available)")
        max_duration = max(available, 0)
    return max_duration, end_by, available


def _bedtime_window(ctx: DayContext, candidate, notes) -> TimeWindow:
    """Clamp into the schedule's bedtime bounds, then a tight window around it."""
    bedtime_earliest = ctx.at(ctx.schedule.bedtime_earliest)
    bedtime_latest = ctx.at(ctx.schedule.bedtime_latest)

    if candidate < bedtime_earliest:
        notes.append(f"Bedtime held until {ctx.schedule.bedtime_earliest} per schedule")
    elif candidate > bedtime_latest:
        notes.append(f"Bedtime capped at {ctx.schedule.bedtime_latest} per schedule")
    recommended = clamp(candidate, bedtime_earliest, bedtime_latest)

    return build_window(
        max(add_minutes(recommended, -BEDTIME_HALF_WIDTH), bedtime_earliest),
        min(add_minutes(recommended, BEDTIME_HALF_WIDTH), bedtime_latest),
        recommended,
        notes,
        f"Bedtime bounds are inverted - bedtime set to {ctx.clock(recommended)}",
    )


def _bedtime_baseline(ctx: DayContext):
    goal_start = ctx.cfg("bedtime_goal_start")
    goal_end = ctx.cfg("bedtime_goal_end")
    if goal_start and goal_end:
        return midpoint(ctx.at(goal_start), ctx.at(goal_end))
    return midpoint(ctx.at(ctx.schedule.bedtime_earliest), ctx.at(ctx.schedule.bedtime_latest))


def _hold_for_wake_window(ctx: DayContext, candidate, last_nap_end, min_wake_window, notes):
    floor = add_minutes(last_nap_end, min_wake_window)
    if candidate < floor:
        notes.append(f"Bedtime held to {ctx.clock(floor)} to keep a {min_wake_window} min wake window after the last nap")
        return floor
    return candidate


class ScheduleCalculatorService:

    @staticmethod
    def calculate_nap1(ctx: DayContext) -> NapRecommendation:
        notes = []
        ww_min, ww_max = ctx.wake_window(1)
        window = _bounded_window(
            ctx, "Nap 1",
            add_minutes(ctx.wake_time, ww_min),
            add_minutes(ctx.wake_time, ww_max),
            "nap1_earliest", "nap1_latest_start", notes,
        )
        max_duration = ctx.cfg("nap1_max_duration", ctx.defaults["nap_max_duration"])
        max_duration, end_by, _ = _limit_to_end_by(ctx, "Nap 1", window, max_duration, "nap1_end_by", notes)
        return NapRecommendation(nap_number=1, window=window, max_duration=max_duration, end_by=end_by, notes=notes)

    @staticmethod
    def calculate_nap2(ctx: DayContext, nap1: NapRecommendation, actual1: Optional[NapActual]) -> NapRecommendation:
        notes = []
        nap1_minutes = actual1.duration_minutes if actual1 is not None else None
        facts = NapFacts(nap1_minutes, None, False, False, 0, False)
        rule = first_matching(NAP2_TIMING_RULES, facts)

        if rule.outcome == "band":
            start, end = SKIPPED_NAP2_BAND
            window = build_window(ctx.at(start), ctx.at(end), ctx.at(start), notes)
        else:
            anchor = nap_end(nap1.window, nap1.max_duration, actual1)
            ww_min, ww_max = ctx.wake_window(2)
            window = _bounded_window(
                ctx, "Nap 2",
                add_minutes(anchor, ww_min),
                add_minutes(anchor, ww_max),
                "nap2_earliest", "nap2_latest_start", notes,
            )
            if rule.outcome == "early":
                lean = midpoint(window.earliest, midpoint(window.earliest, window.latest))
                window = TimeWindow(earliest=window.earliest, latest=window.latest, recommended=lean)
        if rule.note:
            notes.append(rule.note.format(start=SKIPPED_NAP2_BAND[0], end=SKIPPED_NAP2_BAND[1], nap1=nap1_minutes))

        max_duration = ctx.cfg("nap2_max_duration", ctx.defaults["nap_max_duration"])
        if rule.name in ("skipped", "short"):
            max_duration = ctx.cfg("nap2_exception_duration", ctx.defaults["nap2_exception_duration"])
            notes.append(f"Nap 2 may run up to {max_duration} min to catch up")

        day_sleep_cap = ctx.cfg("day_sleep_cap")
        if day_sleep_cap is not None and nap1_minutes is not None:
            remaining = max(day_sleep_cap - nap1_minutes, 0)
            if remaining < max_duration:
                max_duration = remaining
                notes.append(f"Day sleep cap of {day_sleep_cap} min limits nap 2 to {remaining} min")

        max_duration, end_by, available = _limit_to_end_by(ctx, "Nap 2", window, max_duration, "nap2_end_by", notes)
        skip = available is not None and available < MIN_USEFUL_NAP_MINUTES
        if skip:
            notes.append(
                f"Less than {MIN_USEFUL_NAP_MINUTES} min left before nap 2 must end at "
                f"{ctx.cfg('nap2_end_by')} - skip nap 2 and go to bedtime early"
            )

        return NapRecommendation(
            nap_number=2,
            window=window,
            max_duration=max_duration,
            end_by=end_by,
            skip_recommended=skip,
            notes=notes,
        )

    @staticmethod
    def calculate_two_nap_bedtime(
        ctx: DayContext,
        nap1: NapRecommendation,
        nap2: NapRecommendation,
        actual1: Optional[NapActual],
        actual2: Optional[NapActual],
    ) -> BedtimeRecommendation:
        notes = []
        nap1_end = nap_end(nap1.window, nap1.max_duration, actual1)
        if actual2 is None and nap2.skip_recommended:
            last_nap_end = nap1_end
            nap2_minutes = 0
        else:
            last_nap_end = nap_end(nap2.window, nap2.max_duration, actual2)
            nap2_minutes = actual2.duration_minutes if actual2 is not None else None
        nap1_minutes = actual1.duration_minutes if actual1 is not None else None

        observed = [m for m in (nap1_minutes, nap2_minutes) if m is not None]
        facts = NapFacts(
            nap1_minutes=nap1_minutes,
            nap2_minutes=nap2_minutes,
            nap2_skipped=nap2.skip_recommended,
            all_goals_met=len(observed) == 2 and all(m >= NAP_GOAL_MINUTES for m in observed),
            shortfall=sum(max(NAP_GOAL_MINUTES - m, 0) for m in observed),
            last_nap_ended_late=last_nap_end > ctx.at(LATE_NAP_END),
        )
        rule = first_matching(TWO_NAP_BEDTIME_RULES, facts)
        candidate = add_minutes(_bedtime_baseline(ctx), rule.outcome(facts))
        if rule.note:
            notes.append(rule.note.format(shortfall=facts.shortfall))

        ww_min, _ = ctx.wake_window(3)
        candidate = _hold_for_wake_window(ctx, candidate, last_nap_end, ww_min, notes)
        return BedtimeRecommendation(window=_bedtime_window(ctx, candidate, notes), notes=notes)

    @staticmethod
    def calculate_single_nap(ctx: DayContext, transition=None) -> NapRecommendation:
        notes = []
        if transition is not None:
            center = ctx.at(transition.current_nap_time)
            window = build_window(
                add_minutes(center, -TRANSITION_HALF_WIDTH),
                add_minutes(center, TRANSITION_HALF_WIDTH),
                center,
                notes,
            )
            notes.append(f"Transition week {transition.current_week}: targeting {transition.current_nap_time}")
        else:
            ww_min, ww_max = ctx.wake_window(1)
            window = _bounded_window(
                ctx, "Nap",
                add_minutes(ctx.wake_time, ww_min),
                add_minutes(ctx.wake_time, ww_max),
                "nap1_earliest", "nap1_latest_start", notes,
            )

        max_duration = ctx.cfg("nap1_max_duration", ctx.cfg("nap_cap_minutes", ctx.defaults["nap_max_duration"]))
        day_sleep_cap = ctx.cfg("day_sleep_cap")
        if day_sleep_cap is not None and day_sleep_cap < max_duration:
            max_duration = day_sleep_cap
            notes.append(f"Day sleep cap limits the nap to {day_sleep_cap} min")
        max_duration, end_by, _ = _limit_to_end_by(ctx, "Nap", window, max_duration, "nap1_end_by", notes)
        return NapRecommendation(nap_number=1, window=window, max_duration=max_duration, end_by=end_by, notes=notes)

    @staticmethod
    def calculate_one_nap_bedtime(ctx: DayContext, nap: NapRecommendation, actual: Optional[NapActual]) -> BedtimeRecommendation:
        notes = []
        minutes = actual.duration_minutes if actual is not None else nap.max_duration
        if actual is None:
            notes.append(f"Estimated from a {minutes} min nap")

        tier = next(t for t in ONE_NAP_BEDTIME_TIERS if minutes >= t.min_nap_minutes)
        if tier.fixed_time is not None:
            candidate = ctx.at(tier.fixed_time)
            notes.append(tier.note.format(minutes=minutes))
        else:
            offset = tier.debt_base + (tier.debt_goal - minutes)
            candidate = add_minutes(ctx.at(ONE_NAP_BEDTIME_BASELINE), -offset)
            notes.append(tier.note.format(minutes=minutes, offset=offset))

        ww_min, _ = ctx.wake_window(2)
        candidate = _hold_for_wake_window(ctx, candidate, nap_end(nap.window, nap.max_duration, actual), ww_min, notes)
        return BedtimeRecommendation(window=_bedtime_window(ctx, candidate, notes), notes=notes)

    @staticmethod
    def calculate_three_nap_day(ctx: DayContext, actuals: Optional[List[NapActual]]):
        """Naps chained by wake window 2; the last nap is a short catnap."""
        naps = [ScheduleCalculatorService.calculate_nap1(ctx)]
        ww_min, ww_max = ctx.wake_window(2)
        for number in (2, 3):
            previous = naps[-1]
            notes = []
            anchor = nap_end(previous.window, previous.max_duration, nap_actual(actuals, previous.nap_number))
            window = _bounded_window(
                ctx, f"Nap {number}",
                add_minutes(anchor, ww_min),
                add_minutes(anchor, ww_max),
                f"nap{number}_earliest", f"nap{number}_latest_start", notes,
            )
            if number == 3:
                max_duration = ctx.defaults["last_nap_max_duration"]
            else:
                max_duration = ctx.cfg("nap2_max_duration", ctx.defaults["nap_max_duration"])
            naps.append(NapRecommendation(nap_number=number, window=window, max_duration=max_duration, notes=notes))

        notes = []
        last = naps[-1]
        last_end = nap_end(last.window, last.max_duration, nap_actual(actuals, 3))
        bed_ww_min, _ = ctx.wake_window(3)
        candidate = _hold_for_wake_window(ctx, _bedtime_baseline(ctx), last_end, bed_ww_min, notes)
        bedtime = BedtimeRecommendation(window=_bedtime_window(ctx, candidate, notes), notes=notes)
        return naps, bedtime

    @staticmethod
    def calculate_day_schedule(
        wake_time,
        schedule,
        tz_name: str,
        actuals: Optional[List[NapActual]] = None,
        transition=None,
    ) -> DayScheduleRecommendation:
        """Full day: a recommendation for every nap plus bedtime."""
        ctx = DayContext(wake_time, tz_name, schedule)
        warnings = []
        is_transition = False

        if ctx.schedule_type == ScheduleType.TWO_NAP:
            nap1 = ScheduleCalculatorService.calculate_nap1(ctx)
            actual1 = nap_actual(actuals, 1)
            nap2 = ScheduleCalculatorService.calculate_nap2(ctx, nap1, actual1)
            bedtime = ScheduleCalculatorService.calculate_two_nap_bedtime(ctx, nap1, nap2, actual1, nap_actual(actuals, 2))
            naps = [nap1, nap2]

        elif ctx.schedule_type in (ScheduleType.ONE_NAP, ScheduleType.TRANSITION):
            active = transition
            if ctx.schedule_type == ScheduleType.TRANSITION and active is None:
                warnings.append("No active transition - nap timed from wake windows")
            is_transition = active is not None
            nap = ScheduleCalculatorService.calculate_single_nap(ctx, active)
            bedtime = ScheduleCalculatorService.calculate_one_nap_bedtime(ctx, nap, nap_actual(actuals, 1))
            naps = [nap]

        elif ctx.schedule_type == ScheduleType.THREE_NAP:
            naps, bedtime = ScheduleCalculatorService.calculate_three_nap_day(ctx, actuals)

        else:
            raise UnknownScheduleTypeError(ctx.schedule_type)

        total_max_day_sleep = sum(n.max_duration for n in naps if not n.skip_recommended)
        day_sleep_cap = ctx.cfg("day_sleep_cap")
        if day_sleep_cap is not None and total_max_day_sleep > day_sleep_cap:
            warnings.append(
                f"Maximum nap time ({total_max_day_sleep} min) may exceed the day sleep cap ({day_sleep_cap} min)"
            )

        return DayScheduleRecommendation(
            schedule_type=ctx.schedule_type,
            wake_time=ctx.wake_time,
            timezone=tz_name,
            naps=naps,
            bedtime=bedtime,
            total_max_day_sleep=total_max_day_sleep,
            warnings=warnings,
            is_transition=is_transition,
            transition_week=transition.current_week if is_transition else None,
        )

    @staticmethod
    def calculate_adjusted_bedtime(wake_time, schedule, tz_name: str, total_nap_minutes: int) -> BedtimeRecommendation:
        """Bedtime from the schedule bounds alone, pulled earlier by up to an hour of missed day sleep."""
        ctx = DayContext(wake_time, tz_name, schedule)
        notes = []
        candidate = _bedtime_baseline(ctx)
        expected = ctx.defaults["expected_day_sleep"]
        shortfall = expected - total_nap_minutes
        if shortfall > 30:
            adjustment = min(shortfall, 60)
            candidate = add_minutes(candidate, -adjustment)
            notes.append(f"Earlier bedtime recommended due to {shortfall} min sleep debt")
        return BedtimeRecommendation(window=_bedtime_window(ctx, candidate, notes), notes=notes)

    @staticmethod
    def expected_day_sleep(schedule) -> int:
        return SCHEDULE_DEFAULTS[resolve_schedule_type(schedule.type)]["expected_day_sleep"]

    @staticmethod
    def nap_goal(schedule) -> int:
        return SCHEDULE_DEFAULTS[resolve_schedule_type(schedule.type)]["nap_goal"]

    @staticmethod
    def required_nap_count(schedule) -> int:
        return SCHEDULE_DEFAULTS[resolve_schedule_type(schedule.type)]["nap_count"]
