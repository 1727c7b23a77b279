import pytest

from app.enums.sleep_enums import NextActionType
from app.services.next_action_service import NextActionService, wake_deadline
from app.services.schedule_calculator_service import ScheduleCalculatorService
from helpers import at


@pytest.fixture
def day(two_nap_schedule):
    return ScheduleCalculatorService.calculate_day_schedule(at(7), two_nap_schedule, "UTC")


def _next(day, now, completed=0, asleep=False, **kwargs):
    return NextActionService.calculate_next_action(now, day, completed, asleep, "UTC", **kwargs)


def test_wait_for_first_nap(day):
    action = _next(day, at(8))
    assert action.action == NextActionType.WAIT
    assert action.nap_number == 1
    assert action.minutes_until == 60
    assert action.message == "Nap 1 in 60 minutes"
    assert action.notes == ["Target put down: 09:15"]


def test_nap_inside_lead_time(day):
    action = _next(day, at(8, 45))
    assert action.action == NextActionType.NAP
    assert action.nap_number == 1
    assert action.minutes_until == 15


def test_nap_overdue_reports_zero_minutes(day):
    action = _next(day, at(9, 40))
    assert action.action == NextActionType.NAP
    assert action.minutes_until == 0


def test_second_nap_after_first_completed(day):
    action = _next(day, at(12), completed=1)
    assert action.action == NextActionType.WAIT
    assert action.nap_number == 2
    assert action.minutes_until == 75


def test_bedtime_after_all_naps(day):
    waiting = _next(day, at(18), completed=2)
    assert waiting.action == NextActionType.WAIT
    assert waiting.message == "Bedtime in 53 minutes"

    now = _next(day, at(18, 30), completed=2)
    assert now.action == NextActionType.BEDTIME
    assert now.minutes_until == 23


def test_skipped_nap_goes_straight_to_bedtime(day):
    day.naps[1].skip_recommended = True
    action = _next(day, at(18, 40), completed=1)
    assert action.action == NextActionType.BEDTIME


def test_sleeping_child_during_nap(day):
    action = _next(day, at(10), asleep=True)
    assert action.action == NextActionType.WAIT
    assert action.message == "Child is currently sleeping"


def test_overdue_morning_wake(day):
    action = _next(day, at(7, 40), asleep=True, is_night_sleep=True, must_wake_by="07:30")
    assert action.action == NextActionType.WAKE
    assert action.minutes_overdue == 10


def test_wake_deadline_approaching(day):
    action = _next(day, at(7, 10), asleep=True, is_night_sleep=True, must_wake_by="07:30")
    assert action.action == NextActionType.WAIT
    assert action.minutes_until == 20


def test_wake_deadline_far_away(day):
    action = _next(day, at(21), asleep=True, is_night_sleep=True, must_wake_by="07:30")
    assert action.action == NextActionType.WAIT
    assert action.notes == ["Wake deadline: 07:30"]


def test_wake_deadline_refers_to_tomorrow_after_noon():
    assert wake_deadline(at(21), "07:30", "UTC") == at(7, 30, day=2)
    assert wake_deadline(at(5), "07:30", "UTC") == at(7, 30)
    # 01:00 UTC is still the previous evening in New York
    assert wake_deadline(at(1), "07:00", "America/New_York") == at(11)
