"""
Sleep session lifecycle.

PENDING -> ASLEEP -> AWAKE -> COMPLETED, with AWAKE -> ASLEEP when the baby
re-settles and PENDING -> COMPLETED when they never fall asleep. Ad-hoc
sessions go straight from ASLEEP to COMPLETED on waking.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Optional

from app.core.logger import get_logger
from app.enums.sleep_enums import SessionEvent, SessionState, SessionType, WakeType
from app.exceptions.errors import InvalidStateTransitionError
from app.models.sleep_session import SleepCycle
from app.services.sleep_duration_service import recalculate_session, sort_cycles
from app.utils.time_windows import as_utc

logger = get_logger("session_state_machine")

VALID_STATE_TRANSITIONS = MappingProxyType({
    SessionState.PENDING: frozenset({SessionState.ASLEEP, SessionState.COMPLETED}),
    SessionState.ASLEEP: frozenset({SessionState.AWAKE, SessionState.COMPLETED}),
    SessionState.AWAKE: frozenset({SessionState.ASLEEP, SessionState.COMPLETED}),
    SessionState.COMPLETED: frozenset(),
})

# Which timestamp an event records
EVENT_TIMESTAMP_FIELDS = MappingProxyType({
    SessionEvent.FELL_ASLEEP: "asleep_at",
    SessionEvent.WOKE_UP: "woke_up_at",
    SessionEvent.OUT_OF_CRIB: "out_of_crib_at",
})


def can_transition(from_state, to_state) -> bool:
    return SessionState(to_state) in VALID_STATE_TRANSITIONS[SessionState(from_state)]


def target_state(session, event: SessionEvent) -> SessionState:
    event = SessionEvent(event)
    if event == SessionEvent.FELL_ASLEEP:
        return SessionState.ASLEEP
    if event == SessionEvent.WOKE_UP:
        return SessionState.COMPLETED if session.is_ad_hoc else SessionState.AWAKE
    return SessionState.COMPLETED


def validate_event(session, event: SessionEvent) -> SessionState:
    """Return the state ``event`` leads to, or raise without touching the session."""
    current = SessionState(session.state)
    target = target_state(session, event)
    if session.is_ad_hoc and current == SessionState.AWAKE and target == SessionState.ASLEEP:
        raise InvalidStateTransitionError(current, target, event)
    if not can_transition(current, target):
        raise InvalidStateTransitionError(current, target, event)
    return target


def _open_cycle(session) -> Optional[SleepCycle]:
    for cycle in reversed(sort_cycles(session.sleep_cycles)):
        if cycle.fell_back_asleep_at is None:
            return cycle
    return None


def apply_event(session, event: SessionEvent, at: datetime) -> SessionState:
    """
    Apply ``event`` at instant ``at`` and recompute durations.
    Raises InvalidStateTransitionError before any mutation if the event is illegal.
    """
    event = SessionEvent(event)
    previous = SessionState(session.state)
    target = validate_event(session, event)
    at = as_utc(at)
    is_night = SessionType(session.session_type) == SessionType.NIGHT_SLEEP

    if event == SessionEvent.FELL_ASLEEP:
        if previous == SessionState.PENDING:
            session.asleep_at = at
        else:
            if is_night:
                cycle = _open_cycle(session)
                if cycle is not None:
                    cycle.fell_back_asleep_at = at
            # Sleep continues, so the last wake is no longer the final one
            session.woke_up_at = None

    elif event == SessionEvent.WOKE_UP:
        session.woke_up_at = at
        if session.is_ad_hoc:
            session.out_of_crib_at = at
        elif is_night:
            session.sleep_cycles.append(SleepCycle(
                cycle_number=len(session.sleep_cycles) + 1,
                woke_up_at=at,
                fell_back_asleep_at=None,
                wake_type=WakeType.QUIET.value,
            ))

    else:
        session.out_of_crib_at = at
        if previous == SessionState.ASLEEP and session.woke_up_at is None:
            session.woke_up_at = at

    session.state = target.value
    recalculate_session(session)
    logger.info(f"Session {session.id}: {previous.value} -> {target.value} on {event.value}")
    return target


def apply_corrections(session, **timestamps) -> bool:
    """Overwrite any supplied lifecycle timestamps and recompute. Returns True if anything changed."""
    changed = False
    for field in ("put_down_at", "asleep_at", "woke_up_at", "out_of_crib_at"):
        value = timestamps.get(field)
        if value is not None:
            setattr(session, field, as_utc(value))
            changed = True
    if changed and session.is_ad_hoc:
        # No crib: put-down and out-of-crib mirror sleep onset and wake
        session.put_down_at = session.asleep_at
        session.out_of_crib_at = session.woke_up_at
    if changed:
        recalculate_session(session)
    return changed
