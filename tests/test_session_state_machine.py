import pytest

from app.enums.sleep_enums import SessionEvent, SessionState, SessionType
from app.exceptions.errors import InvalidStateTransitionError
from app.models import SleepSession
from app.services.session_state_machine import apply_corrections, apply_event, can_transition
from helpers import at


def _session(session_type=SessionType.NAP, state=SessionState.PENDING, ad_hoc=False, **timestamps):
    return SleepSession(
        session_type=session_type.value,
        is_ad_hoc=ad_hoc,
        location="STROLLER" if ad_hoc else "CRIB",
        state=state.value,
        **timestamps,
    )


def test_transition_table():
    assert can_transition(SessionState.PENDING, SessionState.ASLEEP)
    assert can_transition(SessionState.PENDING, SessionState.COMPLETED)
    assert can_transition(SessionState.AWAKE, SessionState.ASLEEP)
    assert not can_transition(SessionState.PENDING, SessionState.AWAKE)
    assert not can_transition(SessionState.COMPLETED, SessionState.ASLEEP)
    assert not can_transition(SessionState.ASLEEP, SessionState.PENDING)


def test_nap_happy_path():
    session = _session(put_down_at=at(13))

    assert apply_event(session, SessionEvent.FELL_ASLEEP, at(13, 10)) == SessionState.ASLEEP
    assert apply_event(session, SessionEvent.WOKE_UP, at(14, 10)) == SessionState.AWAKE
    assert apply_event(session, SessionEvent.OUT_OF_CRIB, at(14, 20)) == SessionState.COMPLETED

    assert session.state == "COMPLETED"
    assert session.sleep_cycles == []
    assert session.qualified_rest_minutes == 70


def test_night_flow_records_cycles_and_resettles():
    session = _session(SessionType.NIGHT_SLEEP, put_down_at=at(19, day=30, month=4))

    apply_event(session, SessionEvent.FELL_ASLEEP, at(19, 10, day=30, month=4))
    apply_event(session, SessionEvent.WOKE_UP, at(23, day=30, month=4))
    assert session.state == "AWAKE"
    assert session.sleep_cycles[0].fell_back_asleep_at is None

    apply_event(session, SessionEvent.FELL_ASLEEP, at(23, 30, day=30, month=4))
    assert session.woke_up_at is None
    assert session.sleep_cycles[0].fell_back_asleep_at == at(23, 30, day=30, month=4)

    apply_event(session, SessionEvent.WOKE_UP, at(6))
    apply_event(session, SessionEvent.OUT_OF_CRIB, at(6, 15))

    assert session.state == "COMPLETED"
    assert len(session.sleep_cycles) == 2
    assert session.sleep_minutes == 620
    assert session.qualified_rest_minutes == 648


def test_never_fell_asleep():
    session = _session(put_down_at=at(13))
    assert apply_event(session, SessionEvent.OUT_OF_CRIB, at(13, 30)) == SessionState.COMPLETED
    assert session.asleep_at is None
    assert session.woke_up_at is None
    assert session.total_minutes == 30


def test_out_of_crib_while_asleep_sets_wake_time():
    session = _session(state=SessionState.ASLEEP, put_down_at=at(13), asleep_at=at(13, 5))
    apply_event(session, SessionEvent.OUT_OF_CRIB, at(14))
    assert session.woke_up_at == at(14)
    assert session.sleep_minutes == 55


def test_ad_hoc_wake_completes_session():
    session = _session(state=SessionState.ASLEEP, ad_hoc=True, put_down_at=at(15), asleep_at=at(15))
    assert apply_event(session, SessionEvent.WOKE_UP, at(15, 40)) == SessionState.COMPLETED
    assert session.out_of_crib_at == at(15, 40)
    assert session.qualified_rest_minutes == 20


@pytest.mark.parametrize("state,event", [
    (SessionState.PENDING, SessionEvent.WOKE_UP),
    (SessionState.ASLEEP, SessionEvent.FELL_ASLEEP),
    (SessionState.COMPLETED, SessionEvent.OUT_OF_CRIB),
    (SessionState.COMPLETED, SessionEvent.FELL_ASLEEP),
])
def test_illegal_events_leave_session_untouched(state, event):
    session = _session(state=state, put_down_at=at(13))
    with pytest.raises(InvalidStateTransitionError) as exc_info:
        apply_event(session, event, at(14))

    assert exc_info.value.status_code == 400
    assert exc_info.value.code == "INVALID_STATE_TRANSITION"
    assert session.state == state.value
    assert session.asleep_at is None
    assert session.woke_up_at is None
    assert session.out_of_crib_at is None


def test_corrections_recompute_durations():
    session = _session(
        state=SessionState.COMPLETED,
        put_down_at=at(13),
        asleep_at=at(13, 10),
        woke_up_at=at(14, 10),
        out_of_crib_at=at(14, 20),
    )
    assert apply_corrections(session, asleep_at=at(13, 20))
    assert session.sleep_minutes == 50
    assert session.settling_minutes == 20
    assert not apply_corrections(session)


def test_ad_hoc_corrections_mirror_crib_fields():
    session = _session(
        state=SessionState.COMPLETED,
        ad_hoc=True,
        put_down_at=at(15),
        asleep_at=at(15),
        woke_up_at=at(15, 40),
        out_of_crib_at=at(15, 40),
    )
    apply_corrections(session, asleep_at=at(15, 10), woke_up_at=at(16))
    assert session.put_down_at == at(15, 10)
    assert session.out_of_crib_at == at(16)
    assert session.sleep_minutes == 50
    assert session.qualified_rest_minutes == 25


def test_nap_resettle_clears_wake_time():
    session = _session(put_down_at=at(13))
    apply_event(session, SessionEvent.FELL_ASLEEP, at(13, 10))
    apply_event(session, SessionEvent.WOKE_UP, at(13, 40))
    assert session.sleep_minutes == 30

    assert apply_event(session, SessionEvent.FELL_ASLEEP, at(13, 50)) == SessionState.ASLEEP
    assert session.woke_up_at is None
    assert session.asleep_at == at(13, 10)
    assert session.sleep_minutes is None
    assert session.sleep_cycles == []

    apply_event(session, SessionEvent.WOKE_UP, at(14, 30))
    apply_event(session, SessionEvent.OUT_OF_CRIB, at(14, 40))
    assert session.sleep_minutes == 80
    assert session.qualified_rest_minutes == 90
