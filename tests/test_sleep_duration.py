from app.enums.sleep_enums import SessionType, WakeType
from app.models import SleepCycle, SleepSession
from app.services.sleep_duration_service import calculate_durations, recalculate_session
from helpers import after, at


def _nap(put=None, asleep=None, woke=None, out=None, ad_hoc=False):
    return SleepSession(
        session_type=SessionType.NAP.value,
        is_ad_hoc=ad_hoc,
        location="CAR" if ad_hoc else "CRIB",
        state="COMPLETED",
        put_down_at=put,
        asleep_at=asleep,
        woke_up_at=woke,
        out_of_crib_at=out,
    )


def _night(cycles):
    session = SleepSession(
        session_type=SessionType.NIGHT_SLEEP.value,
        is_ad_hoc=False,
        location="CRIB",
        state="COMPLETED",
        put_down_at=at(19, day=30, month=4),
        asleep_at=at(19, 15, day=30, month=4),
        woke_up_at=at(6, 30),
        out_of_crib_at=at(6, 40),
    )
    session.sleep_cycles.extend(cycles)
    return session


def _cycle(woke, back, wake_type=WakeType.QUIET):
    return SleepCycle(cycle_number=0, woke_up_at=woke, fell_back_asleep_at=back, wake_type=wake_type.value)


def test_crib_nap_credits_half_of_awake_time():
    result = calculate_durations(_nap(at(13), at(13, 10), at(14, 10), at(14, 20)))
    assert result.total_minutes == 80
    assert result.sleep_minutes == 60
    assert result.settling_minutes == 10
    assert result.post_wake_minutes == 10
    assert result.awake_crib_minutes == 20
    assert result.qualified_rest_minutes == 70
    assert result.notes == []


def test_ad_hoc_nap_credit_thresholds():
    def credit(minutes):
        start = at(15)
        return calculate_durations(_nap(start, start, after(start, minutes), after(start, minutes), ad_hoc=True))

    assert credit(14).qualified_rest_minutes == 0
    assert credit(15).qualified_rest_minutes == 8
    assert credit(30).qualified_rest_minutes == 15
    assert credit(61).qualified_rest_minutes == 31
    assert credit(61).awake_crib_minutes is None


def test_night_sleep_counts_only_quiet_wakes_as_crib_rest():
    session = _night([
        _cycle(at(2), at(2, 15), WakeType.CRYING),
        _cycle(at(23, day=30, month=4), at(23, 20, day=30, month=4)),
    ])
    result = calculate_durations(session, session.sleep_cycles)

    assert result.total_minutes == 700
    assert result.sleep_minutes == 640
    assert result.awake_crib_minutes == 45
    assert result.qualified_rest_minutes == 663
    # cycles are ordered by wake time, not insertion order
    assert [c.sleep_minutes for c in result.cycles] == [225, 160]
    assert [c.awake_minutes for c in result.cycles] == [20, 15]


def test_night_sleep_all_quiet_wakes():
    session = _night([
        _cycle(at(23, day=30, month=4), at(23, 20, day=30, month=4)),
        _cycle(at(2), at(2, 15)),
    ])
    assert calculate_durations(session, session.sleep_cycles).qualified_rest_minutes == 670


def test_night_sleep_with_open_final_wake():
    session = SleepSession(
        session_type=SessionType.NIGHT_SLEEP.value,
        is_ad_hoc=False,
        state="COMPLETED",
        put_down_at=at(19, day=30, month=4),
        asleep_at=at(19, day=30, month=4),
        woke_up_at=at(5),
        out_of_crib_at=at(5, 30),
    )
    session.sleep_cycles.append(_cycle(at(5), None))
    result = calculate_durations(session, session.sleep_cycles)

    assert result.sleep_minutes == 600
    assert result.post_wake_minutes == 30
    assert result.qualified_rest_minutes == 615


def test_night_sleep_without_cycles_uses_crib_formula():
    result = calculate_durations(_night([]), [])
    assert result.sleep_minutes == 675
    assert result.awake_crib_minutes == 25
    assert result.qualified_rest_minutes == 688


def test_inverted_range_is_clamped_with_note():
    result = calculate_durations(_nap(at(9, 30), at(10), at(9, 50), at(10, 5)))
    assert result.sleep_minutes == 0
    assert any(note.startswith("Sleep ends before it starts") for note in result.notes)


def test_missing_timestamps_leave_fields_empty():
    result = calculate_durations(_nap(at(13), None, None, at(13, 30)))
    assert result.total_minutes == 30
    assert result.sleep_minutes is None
    assert result.settling_minutes is None
    assert result.qualified_rest_minutes == 0


def test_recalculate_session_writes_fields_and_renumbers_cycles():
    late = _cycle(at(2), at(2, 15))
    early = _cycle(at(23, day=30, month=4), at(23, 20, day=30, month=4))
    session = _night([late, early])

    recalculate_session(session)

    assert (early.cycle_number, late.cycle_number) == (1, 2)
    assert (early.awake_minutes, late.awake_minutes) == (20, 15)
    assert session.sleep_minutes == 640
    assert session.qualified_rest_minutes == 670
    assert session.calculation_notes is None


def test_recalculate_session_is_idempotent():
    session = _night([
        _cycle(at(2), at(2, 15), WakeType.CRYING),
        _cycle(at(23, day=30, month=4), at(23, 20, day=30, month=4)),
    ])
    fields = (
        "total_minutes", "sleep_minutes", "settling_minutes", "post_wake_minutes",
        "awake_crib_minutes", "qualified_rest_minutes", "calculation_notes",
    )

    recalculate_session(session)
    first = [getattr(session, f) for f in fields]
    first_cycles = [(c.cycle_number, c.sleep_minutes, c.awake_minutes) for c in session.sleep_cycles]

    recalculate_session(session)
    assert [getattr(session, f) for f in fields] == first
    assert [(c.cycle_number, c.sleep_minutes, c.awake_minutes) for c in session.sleep_cycles] == first_cycles


def test_qualified_rest_never_drops_as_sleep_grows():
    crib = []
    ad_hoc = []
    for minutes in range(0, 181, 5):
        asleep = at(13, 10)
        woke = after(asleep, minutes)
        # 10 min settling and 10 min in the crib after waking in every case
        crib.append(calculate_durations(_nap(at(13), asleep, woke, after(woke, 10))).qualified_rest_minutes)
        ad_hoc.append(calculate_durations(_nap(asleep, asleep, woke, woke, ad_hoc=True)).qualified_rest_minutes)

    assert crib == sorted(crib)
    assert ad_hoc == sorted(ad_hoc)
    assert crib[0] == 10
