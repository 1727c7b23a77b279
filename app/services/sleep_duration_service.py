"""
Duration and qualified-rest calculator.

Pure functions over a session's lifecycle timestamps and, for night sleep,
its wake cycles. Two independent axes pick the formula: the session kind
(NAP / NIGHT_SLEEP) and the sleep context (CRIB / AD_HOC).
"""

from typing import List, Optional

from app.core.logger import get_logger
from app.enums.sleep_enums import SessionType, SleepContext, WakeType
from app.schemas.session_schemas import CycleDurations, SessionDurations
from app.utils.time_windows import as_utc, minutes_between, round_half_up

logger = get_logger("sleep_duration_service")

# Ad-hoc sleep shorter than this only lowers sleep pressure and earns no credit
AD_HOC_MIN_CREDIT_MINUTES = 15


def session_kind(session) -> SessionType:
    return SessionType(session.session_type)


def sleep_context(session) -> SleepContext:
    return SleepContext.AD_HOC if session.is_ad_hoc else SleepContext.CRIB


def _span(start, end, label: str, notes: List[str]) -> Optional[int]:
    minutes = minutes_between(start, end)
    if minutes is None:
        return None
    if minutes < 0:
        notes.append(f"{label} ends before it starts ({minutes} min) - clamped to 0")
        return 0
    return minutes


def _sum_known(*values) -> Optional[int]:
    known = [v for v in values if v is not None]
    if not known:
        return None
    return sum(known)


def _crib_credit(awake_minutes: Optional[int], sleep_minutes: Optional[int]) -> int:
    return round_half_up((awake_minutes or 0) / 2 + (sleep_minutes or 0))


def _crib_session(session, cycles, notes: List[str]) -> SessionDurations:
    total = _span(session.put_down_at, session.out_of_crib_at, "Crib time", notes)
    sleep = _span(session.asleep_at, session.woke_up_at, "Sleep", notes)
    settling = _span(session.put_down_at, session.asleep_at, "Settling", notes)
    post_wake = _span(session.woke_up_at, session.out_of_crib_at, "Post-wake time", notes)
    awake_crib = _sum_known(settling, post_wake)

    return SessionDurations(
        total_minutes=total,
        sleep_minutes=sleep,
        settling_minutes=settling,
        post_wake_minutes=post_wake,
        awake_crib_minutes=awake_crib,
        qualified_rest_minutes=_crib_credit(awake_crib, sleep),
        notes=notes,
    )


def _night_session(session, cycles, notes: List[str]) -> SessionDurations:
    if not cycles:
        return _crib_session(session, cycles, notes)

    total = _span(session.put_down_at, session.out_of_crib_at, "Crib time", notes)
    settling = _span(session.put_down_at, session.asleep_at, "Settling", notes)

    cycle_results = []
    segment_minutes = []
    quiet_awake = []
    sleep_start = session.asleep_at
    for index, cycle in enumerate(cycles, start=1):
        segment = _span(sleep_start, cycle.woke_up_at, f"Sleep before wake {index}", notes)
        awake = _span(cycle.woke_up_at, cycle.fell_back_asleep_at, f"Wake {index}", notes)
        segment_minutes.append(segment)
        if awake is not None and WakeType(cycle.wake_type) == WakeType.QUIET:
            quiet_awake.append(awake)
        cycle_results.append(CycleDurations(cycle_number=index, sleep_minutes=segment, awake_minutes=awake))
        sleep_start = cycle.fell_back_asleep_at

    last = cycles[-1]
    if last.fell_back_asleep_at is not None:
        segment_minutes.append(_span(last.fell_back_asleep_at, session.woke_up_at, "Final sleep", notes))
        final_wake = session.woke_up_at
    else:
        final_wake = last.woke_up_at

    sleep = _sum_known(*segment_minutes)
    post_wake = _span(final_wake, session.out_of_crib_at, "Post-wake time", notes)
    awake_crib = _sum_known(settling, post_wake, *quiet_awake)

    return SessionDurations(
        total_minutes=total,
        sleep_minutes=sleep,
        settling_minutes=settling,
        post_wake_minutes=post_wake,
        awake_crib_minutes=awake_crib,
        qualified_rest_minutes=_crib_credit(awake_crib, sleep),
        cycles=cycle_results,
        notes=notes,
    )


def _ad_hoc_session(session, cycles, notes: List[str]) -> SessionDurations:
    total = _span(session.put_down_at, session.out_of_crib_at, "Sleep", notes)
    sleep = _span(session.asleep_at, session.woke_up_at, "Sleep", notes)

    qualified = None
    if sleep is not None:
        if sleep < AD_HOC_MIN_CREDIT_MINUTES:
            qualified = 0
        else:
            qualified = round_half_up(sleep / 2)

    return SessionDurations(
        total_minutes=total,
        sleep_minutes=sleep,
        qualified_rest_minutes=qualified,
        notes=notes,
    )


_CALCULATORS = {
    (SessionType.NAP, SleepContext.CRIB): _crib_session,
    (SessionType.NIGHT_SLEEP, SleepContext.CRIB): _night_session,
    (SessionType.NAP, SleepContext.AD_HOC): _ad_hoc_session,
    (SessionType.NIGHT_SLEEP, SleepContext.AD_HOC): _ad_hoc_session,
}


def sort_cycles(cycles) -> list:
    return sorted(cycles or [], key=lambda c: as_utc(c.woke_up_at))


def calculate_durations(session, cycles=None) -> SessionDurations:
    """
    Compute every derived minute field for ``session``. Cycles are ordered by
    wake time before use; naps never carry cycles. Degenerate ranges are
    clamped to 0 and described in ``notes``.
    """
    ordered = sort_cycles(cycles) if session_kind(session) == SessionType.NIGHT_SLEEP else []
    calculator = _CALCULATORS[(session_kind(session), sleep_context(session))]
    return calculator(session, ordered, [])


def recalculate_session(session) -> SessionDurations:
    """
    Renumber the session's cycles by wake time and rewrite all derived fields
    on the session and its cycles from scratch.
    """
    cycles = sort_cycles(session.sleep_cycles)
    for number, cycle in enumerate(cycles, start=1):
        cycle.cycle_number = number

    result = calculate_durations(session, cycles)

    session.total_minutes = result.total_minutes
    session.sleep_minutes = result.sleep_minutes
    session.settling_minutes = result.settling_minutes
    session.post_wake_minutes = result.post_wake_minutes
    session.awake_crib_minutes = result.awake_crib_minutes
    session.qualified_rest_minutes = result.qualified_rest_minutes
    session.calculation_notes = result.notes or None

    by_number = {c.cycle_number: c for c in result.cycles}
    for cycle in cycles:
        derived = by_number.get(cycle.cycle_number)
        cycle.sleep_minutes = derived.sleep_minutes if derived else None
        cycle.awake_minutes = derived.awake_minutes if derived else None

    if result.notes:
        logger.warning(f"Session {session.id} durations clamped: {'; '.join(result.notes)}")
    return result
