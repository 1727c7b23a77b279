from types import SimpleNamespace

import pytest

from app.enums.sleep_enums import ScheduleType
from app.exceptions.errors import UnknownScheduleTypeError
from app.schemas.calculator_schemas import NapActual
from app.schemas.schedule_schemas import ScheduleConfig
from app.services.schedule_calculator_service import (
    NapFacts,
    TWO_NAP_BEDTIME_RULES,
    ScheduleCalculatorService,
    first_matching,
)
from helpers import at

WAKE = at(7)


def _day(schedule, actuals=None, transition=None, wake=WAKE, tz="UTC"):
    return ScheduleCalculatorService.calculate_day_schedule(wake, schedule, tz, actuals, transition)


def _window(recommendation):
    window = recommendation.window
    return window.earliest, window.recommended, window.latest


def _with(schedule, **changes):
    return schedule.copy(update=changes)


# ---- two-nap ----

def test_two_nap_day_without_actuals(two_nap_schedule):
    day = _day(two_nap_schedule)
    nap1, nap2 = day.naps

    assert _window(nap1) == (at(9), at(9, 15), at(9, 30))
    assert nap1.max_duration == 90
    assert _window(nap2) == (at(13, 15), at(13, 30), at(13, 45))
    assert nap2.max_duration == 90
    assert _window(day.bedtime) == (at(18, 53), at(19), at(19, 7))
    assert day.total_max_day_sleep == 180
    assert day.schedule_type == ScheduleType.TWO_NAP


def test_skipped_nap1_moves_nap2_up(two_nap_schedule):
    day = _day(two_nap_schedule, [NapActual(nap_number=1, duration_minutes=0)])
    nap2 = day.naps[1]

    assert _window(nap2) == (at(12, 15), at(12, 15), at(12, 30))
    assert nap2.max_duration == 150
    assert "Nap 1 skipped - nap 2 moved up to 12:15-12:30" in nap2.notes


def test_short_nap1_leans_nap2_early_and_pulls_bedtime(two_nap_schedule):
    day = _day(two_nap_schedule, [NapActual(nap_number=1, duration_minutes=45)])
    nap2 = day.naps[1]

    assert _window(nap2) == (at(12, 30), at(12, 38), at(13))
    assert nap2.max_duration == 150
    assert nap2.notes[0].startswith("Short nap 1 (45 min)")

    assert _window(day.bedtime) == (at(18, 38), at(18, 45), at(18, 52))
    assert any("sleep debt" in note for note in day.bedtime.notes)


def test_good_naps_ending_late_push_bedtime_later(two_nap_schedule):
    actuals = [
        NapActual(nap_number=1, duration_minutes=90, ended_at=at(10, 45)),
        NapActual(nap_number=2, duration_minutes=90, ended_at=at(15)),
    ]
    assert _window(_day(two_nap_schedule, actuals).bedtime) == (at(19, 8), at(19, 15), at(19, 22))


def test_good_naps_ending_early_pull_bedtime_earlier(two_nap_schedule):
    actuals = [
        NapActual(nap_number=1, duration_minutes=90, ended_at=at(10, 30)),
        NapActual(nap_number=2, duration_minutes=90, ended_at=at(14)),
    ]
    assert _day(two_nap_schedule, actuals).bedtime.window.recommended == at(18, 45)


def test_nap2_latest_start_before_window_collapses(two_nap_schedule):
    nap2 = _day(_with(two_nap_schedule, nap2_latest_start="12:00")).naps[1]

    assert _window(nap2) == (at(13, 15), at(13, 15), at(13, 15))
    assert "Nap 2 wake window opens after its latest start 12:00 - window collapsed to 13:15" in nap2.notes


def test_nap2_end_by_recommends_skip_and_early_bedtime(two_nap_schedule):
    day = _day(_with(two_nap_schedule, nap2_end_by="14:00"))
    nap2 = day.naps[1]

    assert nap2.max_duration == 30
    assert nap2.end_by == at(14)
    assert nap2.skip_recommended
    assert _window(day.bedtime) == (at(18, 30), at(18, 30), at(18, 37))
    assert day.total_max_day_sleep == 90


def test_day_sleep_cap_limits_nap2_once_nap1_is_known(two_nap_schedule):
    capped = _with(two_nap_schedule, day_sleep_cap=150)

    unknown = _day(capped)
    assert unknown.naps[1].max_duration == 90
    assert "Maximum nap time (180 min) may exceed the day sleep cap (150 min)" in unknown.warnings

    known = _day(capped, [NapActual(nap_number=1, duration_minutes=90, ended_at=at(10, 45))])
    assert known.naps[1].max_duration == 60
    assert known.warnings == []


def test_bedtime_held_for_last_wake_window(two_nap_schedule):
    # nap 2 runs late, so 210 min of wake time pushes bedtime to the latest bound
    actuals = [
        NapActual(nap_number=1, duration_minutes=90, ended_at=at(10, 45)),
        NapActual(nap_number=2, duration_minutes=90, ended_at=at(16, 30)),
    ]
    bedtime = _day(two_nap_schedule, actuals).bedtime
    assert bedtime.window.recommended == at(19, 30)
    assert any(note.startswith("Bedtime capped at 19:30") for note in bedtime.notes)


# ---- one-nap and transition ----

def test_one_nap_day_without_actuals(one_nap_schedule):
    day = _day(one_nap_schedule)
    assert _window(day.naps[0]) == (at(12), at(12, 15), at(12, 30))
    assert day.naps[0].max_duration == 150
    assert _window(day.bedtime) == (at(19, 8), at(19, 15), at(19, 22))


@pytest.mark.parametrize("minutes,bedtime", [
    (120, at(19, 15)),
    (90, at(19)),
    (75, at(19)),
    (45, at(18, 30)),
    (20, at(18)),
])
def test_one_nap_bedtime_tiers(one_nap_schedule, minutes, bedtime):
    day = _day(one_nap_schedule, [NapActual(nap_number=1, duration_minutes=minutes)])
    assert day.bedtime.window.recommended == bedtime


def test_one_nap_very_short_nap_window_stays_in_bounds(one_nap_schedule):
    day = _day(one_nap_schedule, [NapActual(nap_number=1, duration_minutes=20)])
    assert _window(day.bedtime) == (at(18), at(18), at(18, 7))


def test_transition_nap_follows_current_nap_time(one_nap_schedule):
    schedule = _with(one_nap_schedule, type=ScheduleType.TRANSITION)
    transition = SimpleNamespace(current_nap_time="12:00", current_week=2)

    day = _day(schedule, transition=transition)
    assert _window(day.naps[0]) == (at(11, 45), at(12), at(12, 15))
    assert day.is_transition
    assert day.transition_week == 2


def test_transition_schedule_without_transition_warns(one_nap_schedule):
    day = _day(_with(one_nap_schedule, type=ScheduleType.TRANSITION))
    assert not day.is_transition
    assert "No active transition - nap timed from wake windows" in day.warnings


# ---- three-nap ----

def test_three_nap_day():
    schedule = ScheduleConfig(
        type=ScheduleType.THREE_NAP,
        wake_window_1_min=90,
        wake_window_1_max=120,
        wake_window_2_min=120,
        wake_window_2_max=150,
        wake_window_3_min=150,
        wake_window_3_max=180,
        nap1_max_duration=60,
        nap2_max_duration=60,
        bedtime_earliest="18:30",
        bedtime_latest="19:30",
        wake_time_earliest="06:30",
        wake_time_latest="07:30",
    )
    day = _day(schedule)

    assert [n.window.recommended for n in day.naps] == [at(8, 45), at(12), at(15, 15)]
    assert day.naps[2].max_duration == 45
    assert day.bedtime.window.recommended == at(19)


# ---- adjusted bedtime and errors ----

def test_adjusted_bedtime_for_sleep_debt(two_nap_schedule):
    schedule = _with(
        two_nap_schedule,
        bedtime_earliest="17:30",
        bedtime_goal_start="18:45",
        bedtime_goal_end="19:15",
    )
    bedtime = ScheduleCalculatorService.calculate_adjusted_bedtime(WAKE, schedule, "UTC", 60)
    assert bedtime.window.recommended == at(18)
    assert bedtime.notes == ["Earlier bedtime recommended due to 60 min sleep debt"]

    rested = ScheduleCalculatorService.calculate_adjusted_bedtime(WAKE, schedule, "UTC", 100)
    assert rested.window.recommended == at(19)
    assert rested.notes == []


def test_unknown_schedule_type_is_rejected(two_nap_schedule):
    schedule = SimpleNamespace(**{**two_nap_schedule.dict(), "type": "FOUR_NAP"})
    with pytest.raises(UnknownScheduleTypeError):
        _day(schedule)


def test_clock_times_follow_local_zone(two_nap_schedule):
    # 07:00 in New York during daylight time is 11:00 UTC
    day = _day(two_nap_schedule, wake=at(11), tz="America/New_York")
    assert day.naps[0].window.earliest == at(13)
    assert day.bedtime.window.recommended == at(23)


# ---- rule tables ----

def _facts(**overrides):
    base = dict(
        nap1_minutes=None,
        nap2_minutes=None,
        nap2_skipped=False,
        all_goals_met=False,
        shortfall=0,
        last_nap_ended_late=False,
    )
    base.update(overrides)
    return NapFacts(**base)


def test_bedtime_rules_take_first_match():
    assert first_matching(TWO_NAP_BEDTIME_RULES, _facts(shortfall=10, all_goals_met=True)).name == "shortfall"
    assert first_matching(TWO_NAP_BEDTIME_RULES, _facts(all_goals_met=True, last_nap_ended_late=True)).name == "late_nap_end"
    assert first_matching(TWO_NAP_BEDTIME_RULES, _facts(all_goals_met=True)).name == "early_nap_end"
    assert first_matching(TWO_NAP_BEDTIME_RULES, _facts()).name == "estimate"


def test_rule_table_without_catch_all():
    with pytest.raises(LookupError):
        first_matching((), _facts())


def test_every_window_is_ordered(two_nap_schedule, one_nap_schedule):
    schedules = [
        two_nap_schedule,
        _with(two_nap_schedule, nap2_latest_start="12:00", nap1_end_by="10:00"),
        one_nap_schedule,
    ]
    for schedule in schedules:
        for wake_hour in (5, 7, 9, 11):
            for minutes in (None, 0, 20, 45, 90, 150):
                actuals = None if minutes is None else [
                    NapActual(nap_number=1, duration_minutes=minutes),
                    NapActual(nap_number=2, duration_minutes=minutes),
                ]
                day = _day(schedule, actuals, wake=at(wake_hour))
                for recommendation in [*day.naps, day.bedtime]:
                    earliest, recommended, latest = _window(recommendation)
                    assert earliest <= recommended <= latest
