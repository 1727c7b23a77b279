from datetime import timedelta
from types import SimpleNamespace

import pytest

from app.enums.sleep_enums import TransitionPhase
from app.exceptions.errors import ValidationError
from app.services.transition_tracker_service import TransitionTrackerService
from helpers import at

NOW = at(12, day=15)


def _transition(current_week=3, target_weeks=6, current_nap_time="12:00", last_push_days=4, completed_at=None):
    return SimpleNamespace(
        current_week=current_week,
        target_weeks=target_weeks,
        current_nap_time=current_nap_time,
        start_date=at(8, day=1),
        last_push_at=NOW - timedelta(days=last_push_days) if last_push_days is not None else None,
        completed_at=completed_at,
    )


def _naps(*minutes):
    return [SimpleNamespace(sleep_minutes=m) for m in minutes]


def test_progress_percent():
    assert TransitionTrackerService.progress_percent(3, 6) == 50.0
    assert TransitionTrackerService.progress_percent(1, 3) == 33.3
    assert TransitionTrackerService.progress_percent(8, 6) == 100.0


def test_nap_time_progress():
    assert TransitionTrackerService.nap_time_progress_percent("11:30") == 0.0
    assert TransitionTrackerService.nap_time_progress_percent("12:00") == 50.0
    assert TransitionTrackerService.nap_time_progress_percent("12:45") == 100.0
    assert TransitionTrackerService.nap_time_progress_percent("11:00") == 0.0


@pytest.mark.parametrize("week,nap_time,phase", [
    (1, "11:30", TransitionPhase.WEEK1_2),
    (2, "12:30", TransitionPhase.WEEK1_2),
    (3, "12:00", TransitionPhase.WEEK2_PLUS),
    (4, "12:30", TransitionPhase.FINAL),
])
def test_determine_phase(week, nap_time, phase):
    assert TransitionTrackerService.determine_phase(week, nap_time) == phase


def test_next_push_time_stops_at_goal():
    assert TransitionTrackerService.next_push_time("11:30") == "11:45"
    assert TransitionTrackerService.next_push_time("12:25") == "12:30"
    assert TransitionTrackerService.next_push_time("12:30") == "12:30"


def test_pace_options():
    options = TransitionTrackerService.pace_options()
    assert [o.weeks for o in options] == [6, 5, 4, 3, 2]
    assert not options[0].is_fast_track
    assert options[2].is_fast_track
    assert options[2].label == "Fast-track"
    with pytest.raises(ValidationError):
        TransitionTrackerService.pace_option(7)


def test_calculate_progress():
    progress = TransitionTrackerService.calculate_progress(_transition(), NOW)
    assert progress.phase == TransitionPhase.WEEK2_PLUS
    assert progress.progress_percent == 50.0
    assert progress.days_in_transition == 14
    assert progress.next_milestone == "Push nap time to 12:15 when baby is ready"
    assert progress.fast_track_tips == []
    assert progress.minimum_crib_minutes == 90
    assert not progress.is_completed


def test_fast_track_progress_carries_tips():
    progress = TransitionTrackerService.calculate_progress(_transition(current_week=1, target_weeks=3), NOW)
    assert progress.pace.is_fast_track
    assert len(progress.fast_track_tips) == 3
    assert progress.next_milestone.startswith("Hold the nap at 12:00")


def test_ready_to_push():
    readiness = TransitionTrackerService.analyze_nap_push_readiness(
        _transition(), _naps(95, 100, 90, 60, 50), NOW,
    )
    assert readiness.ready
    assert readiness.good_nap_count == 3
    assert readiness.total_naps == 5
    assert readiness.days_since_last_push == 4
    assert readiness.suggested_nap_time == "12:15"


def test_recent_push_blocks_readiness():
    readiness = TransitionTrackerService.analyze_nap_push_readiness(
        _transition(last_push_days=2), _naps(95, 100, 90, 60, 50), NOW,
    )
    assert not readiness.ready
    assert readiness.suggested_nap_time is None
    assert readiness.reason == "Wait at least 3 days between pushes (2 so far)"


def test_fast_track_pushes_sooner():
    readiness = TransitionTrackerService.analyze_nap_push_readiness(
        _transition(current_week=2, target_weeks=4, last_push_days=2), _naps(95, 100, 90, 60, 50), NOW,
    )
    assert readiness.ready


def test_first_weeks_hold_nap_time():
    readiness = TransitionTrackerService.analyze_nap_push_readiness(
        _transition(current_week=2), _naps(95, 100, 90, 92, 91), NOW,
    )
    assert not readiness.ready
    assert readiness.reason.startswith("Still in the first 2 week(s)")


def test_too_few_good_naps():
    readiness = TransitionTrackerService.analyze_nap_push_readiness(
        _transition(), _naps(95, 100, 60, 60, 50), NOW,
    )
    assert not readiness.ready
    assert readiness.good_nap_count == 2


def test_goal_nap_time_reached():
    readiness = TransitionTrackerService.analyze_nap_push_readiness(
        _transition(current_week=5, current_nap_time="12:30"), _naps(95, 100, 90, 92, 91), NOW,
    )
    assert not readiness.ready
    assert readiness.reason.startswith("Nap time has reached the goal")


def test_push_interval_counts_from_start_without_pushes():
    readiness = TransitionTrackerService.analyze_nap_push_readiness(
        _transition(last_push_days=None), _naps(95, 100, 90, 92, 91), NOW,
    )
    assert readiness.days_since_last_push == 14
    assert readiness.ready


def test_crib90_in_progress_and_met():
    session = SimpleNamespace(id="s1", put_down_at=at(13), out_of_crib_at=None)
    pending = TransitionTrackerService.check_crib90(session, at(14))
    assert not pending.compliant
    assert pending.minutes_in_crib == 60
    assert pending.minutes_remaining == 30
    assert pending.message == "Keep in crib for 30 more minutes to meet the crib 90 rule"

    session.out_of_crib_at = at(14, 35)
    met = TransitionTrackerService.check_crib90(session, at(18))
    assert met.compliant
    assert met.minutes_in_crib == 95
    assert met.message == "Crib 90 rule met!"
