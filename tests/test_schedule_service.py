import pytest
from pydantic import ValidationError as PydanticValidationError

from app.enums import ScheduleType
from app.exceptions.errors import ConflictError, ForbiddenError, NotFoundError
from app.schemas.schedule_schemas import TransitionProgress, TransitionStart
from app.services.schedule_service import ScheduleService


async def test_missing_schedule(db, user, child):
    with pytest.raises(NotFoundError) as exc_info:
        await ScheduleService.get_active_schedule(db, user.id, child.id)
    assert exc_info.value.code == "SCHEDULE_NOT_FOUND"


async def test_save_fills_response_defaults(db, user, child, two_nap_schedule):
    saved = await ScheduleService.create_or_update_schedule(db, user.id, child.id, two_nap_schedule)

    assert saved.type == ScheduleType.TWO_NAP
    assert saved.is_active
    assert saved.must_wake_by == "07:30"
    assert saved.nap_cap_minutes == 120
    assert saved.minimum_crib_minutes == 90

    fetched = await ScheduleService.get_active_schedule(db, user.id, child.id)
    assert fetched.id == saved.id


async def test_save_replaces_previous_schedule(db, user, child, two_nap_schedule, one_nap_schedule):
    first = await ScheduleService.create_or_update_schedule(db, user.id, child.id, two_nap_schedule)
    second = await ScheduleService.create_or_update_schedule(db, user.id, child.id, one_nap_schedule)

    assert second.id != first.id
    active = await ScheduleService.get_active_schedule(db, user.id, child.id)
    assert active.id == second.id
    assert active.type == ScheduleType.ONE_NAP


async def test_viewer_cannot_save(db, viewer, child, two_nap_schedule):
    with pytest.raises(ForbiddenError):
        await ScheduleService.create_or_update_schedule(db, viewer.id, child.id, two_nap_schedule)


async def test_transition_lifecycle(db, user, child, two_nap_schedule):
    await ScheduleService.create_or_update_schedule(db, user.id, child.id, two_nap_schedule)

    started = await ScheduleService.start_transition(db, user.id, child.id, TransitionStart(target_weeks=4))
    assert started.from_type == ScheduleType.TWO_NAP
    assert started.to_type == ScheduleType.ONE_NAP
    assert started.current_week == 1
    assert started.current_nap_time == "11:30"

    schedule = await ScheduleService.get_active_schedule(db, user.id, child.id)
    assert schedule.type == ScheduleType.TRANSITION
    # values the caregiver already set are kept
    assert schedule.wake_window_1_min == 120
    assert schedule.nap1_earliest == "11:30"
    assert schedule.day_sleep_cap == 150

    with pytest.raises(ConflictError) as exc_info:
        await ScheduleService.start_transition(db, user.id, child.id, TransitionStart())
    assert exc_info.value.code == "TRANSITION_IN_PROGRESS"

    pushed = await ScheduleService.progress_transition(
        db, user.id, child.id, TransitionProgress(new_nap_time="11:45", current_week=2),
    )
    assert pushed.current_nap_time == "11:45"
    assert pushed.current_week == 2
    assert pushed.last_push_at is not None

    done = await ScheduleService.progress_transition(db, user.id, child.id, TransitionProgress(complete=True))
    assert done.completed_at is not None

    final = await ScheduleService.get_active_schedule(db, user.id, child.id)
    assert final.type == ScheduleType.ONE_NAP
    assert final.nap1_earliest == "11:45"
    assert await ScheduleService.get_active_transition(db, user.id, child.id) is None

    history = await ScheduleService.get_transition_history(db, user.id, child.id)
    assert [t.id for t in history] == [started.id]


async def test_cancel_transition_restores_type(db, user, child, two_nap_schedule):
    await ScheduleService.create_or_update_schedule(db, user.id, child.id, two_nap_schedule)
    await ScheduleService.start_transition(db, user.id, child.id, TransitionStart())

    cancelled = await ScheduleService.cancel_transition(db, user.id, child.id)
    assert cancelled.cancelled_at is not None

    schedule = await ScheduleService.get_active_schedule(db, user.id, child.id)
    assert schedule.type == ScheduleType.TWO_NAP

    with pytest.raises(NotFoundError) as exc_info:
        await ScheduleService.cancel_transition(db, user.id, child.id)
    assert exc_info.value.code == "TRANSITION_NOT_FOUND"


async def test_transition_needs_schedule(db, user, child):
    with pytest.raises(NotFoundError):
        await ScheduleService.start_transition(db, user.id, child.id, TransitionStart())


async def test_transition_pace_change_is_validated(db, user, child, two_nap_schedule):
    await ScheduleService.create_or_update_schedule(db, user.id, child.id, two_nap_schedule)
    await ScheduleService.start_transition(db, user.id, child.id, TransitionStart())

    slower = await ScheduleService.progress_transition(db, user.id, child.id, TransitionProgress(target_weeks=5))
    assert slower.target_weeks == 5

    with pytest.raises(PydanticValidationError):
        TransitionProgress(target_weeks=7)
