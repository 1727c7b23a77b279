from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, desc
from typing import Optional, List
from datetime import datetime

from app.models import SleepSchedule, ScheduleTransition
from app.enums import ScheduleType
from app.exceptions.errors import ConflictError, NotFoundError
from app.schemas.schedule_schemas import (
    ScheduleConfig,
    ScheduleResponse,
    TransitionProgress,
    TransitionResponse,
    TransitionStart,
)
from app.services.child_access_service import ChildAccessService
from app.services.transition_tracker_service import DEFAULT_TRANSITION_SCHEDULE, TransitionTrackerService
from app.utils.time_windows import UTC
from app.core.logger import get_logger

logger = get_logger("schedule_service")

# Shown and calculated with when the stored schedule leaves them blank
SCHEDULE_RESPONSE_DEFAULTS = {
    "must_wake_by": "07:30",
    "nap_cap_minutes": 120,
    "minimum_crib_minutes": 90,
}

_NON_CONFIG_COLUMNS = {"id", "child_id", "is_active", "created_by_id", "created_at", "updated_at"}


def format_schedule(schedule: SleepSchedule) -> ScheduleResponse:
    response = ScheduleResponse.model_validate(schedule)
    updates = {
        field: default
        for field, default in SCHEDULE_RESPONSE_DEFAULTS.items()
        if getattr(response, field) is None
    }
    return response.model_copy(update=updates) if updates else response


def _config_values(schedule: SleepSchedule) -> dict:
    return {
        column.name: getattr(schedule, column.name)
        for column in SleepSchedule.__table__.columns
        if column.name not in _NON_CONFIG_COLUMNS
    }


class ScheduleService:
    """Schedule store and 2-to-1 nap transitions."""

    @staticmethod
    async def _active_schedule(db: AsyncSession, child_id: str) -> SleepSchedule:
        result = await db.execute(
            select(SleepSchedule)
            .where(and_(SleepSchedule.child_id == child_id, SleepSchedule.is_active.is_(True)))
            .order_by(desc(SleepSchedule.created_at))
        )
        schedule = result.scalars().first()
        if schedule is None:
            raise NotFoundError("SCHEDULE_NOT_FOUND", "No active schedule for this child")
        return schedule

    @staticmethod
    async def find_active_schedule(db: AsyncSession, child_id: str) -> Optional[ScheduleResponse]:
        try:
            return format_schedule(await ScheduleService._active_schedule(db, child_id))
        except NotFoundError:
            return None

    @staticmethod
    async def find_active_transition(db: AsyncSession, child_id: str) -> Optional[ScheduleTransition]:
        result = await db.execute(
            select(ScheduleTransition)
            .where(and_(
                ScheduleTransition.child_id == child_id,
                ScheduleTransition.completed_at.is_(None),
                ScheduleTransition.cancelled_at.is_(None),
            ))
            .order_by(desc(ScheduleTransition.start_date))
        )
        return result.scalars().first()

    @staticmethod
    async def _replace_schedule(db: AsyncSession, child_id: str, values: dict, user_id: str) -> SleepSchedule:
        """Deactivate the current schedule (if any) and insert a new one."""
        result = await db.execute(
            select(SleepSchedule).where(and_(SleepSchedule.child_id == child_id, SleepSchedule.is_active.is_(True)))
        )
        for old in result.scalars().all():
            old.is_active = False

        schedule = SleepSchedule(child_id=child_id, is_active=True, created_by_id=user_id, **values)
        db.add(schedule)
        await db.flush()
        return schedule

    @staticmethod
    async def get_active_schedule(db: AsyncSession, user_id: str, child_id: str) -> ScheduleResponse:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        return format_schedule(await ScheduleService._active_schedule(db, child_id))

    @staticmethod
    async def create_or_update_schedule(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        data: ScheduleConfig
    ) -> ScheduleResponse:
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        values = data.model_dump()
        values["type"] = data.type.value
        try:
            schedule = await ScheduleService._replace_schedule(db, child_id, values, user_id)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error saving schedule for child {child_id}: {e}")
            raise
        logger.info(f"Saved {schedule.type} schedule {schedule.id} for child {child_id}")
        return format_schedule(schedule)

    @staticmethod
    async def get_active_transition(db: AsyncSession, user_id: str, child_id: str) -> Optional[TransitionResponse]:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        transition = await ScheduleService.find_active_transition(db, child_id)
        return TransitionResponse.model_validate(transition) if transition else None

    @staticmethod
    async def _require_active_transition(db: AsyncSession, child_id: str) -> ScheduleTransition:
        transition = await ScheduleService.find_active_transition(db, child_id)
        if transition is None:
            raise NotFoundError("TRANSITION_NOT_FOUND", "No active transition for this child")
        return transition

    @staticmethod
    async def start_transition(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        data: TransitionStart
    ) -> TransitionResponse:
        """Begin a 2-to-1 nap transition; the schedule switches to TRANSITION."""
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        TransitionTrackerService.pace_option(data.target_weeks)
        schedule = await ScheduleService._active_schedule(db, child_id)

        if await ScheduleService.find_active_transition(db, child_id) is not None:
            raise ConflictError("TRANSITION_IN_PROGRESS", "A transition is already in progress")

        now = datetime.now(UTC)
        transition = ScheduleTransition(
            child_id=child_id,
            from_type=schedule.type,
            to_type=ScheduleType.ONE_NAP.value,
            start_date=now,
            current_week=1,
            target_weeks=data.target_weeks,
            current_nap_time=data.starting_nap_time,
            notes=data.notes,
        )
        db.add(transition)

        values = _config_values(schedule)
        for field, default in DEFAULT_TRANSITION_SCHEDULE.items():
            if values.get(field) is None:
                values[field] = default
        values["type"] = ScheduleType.TRANSITION.value

        try:
            await ScheduleService._replace_schedule(db, child_id, values, user_id)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error starting transition for child {child_id}: {e}")
            raise
        logger.info(f"Started {data.target_weeks}-week transition for child {child_id}")
        return TransitionResponse.model_validate(transition)

    @staticmethod
    async def progress_transition(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        data: TransitionProgress
    ) -> TransitionResponse:
        """Push the nap later, move the week, change pace or complete."""
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        transition = await ScheduleService._require_active_transition(db, child_id)
        now = datetime.now(UTC)

        if data.new_nap_time is not None and data.new_nap_time != transition.current_nap_time:
            logger.info(f"Transition {transition.id}: nap {transition.current_nap_time} -> {data.new_nap_time}")
            transition.current_nap_time = data.new_nap_time
            transition.last_push_at = now
        if data.current_week is not None:
            transition.current_week = data.current_week
        if data.target_weeks is not None:
            TransitionTrackerService.pace_option(data.target_weeks)
            transition.target_weeks = data.target_weeks
        if data.notes is not None:
            transition.notes = data.notes

        try:
            if data.complete:
                transition.completed_at = now
                schedule = await ScheduleService._active_schedule(db, child_id)
                values = _config_values(schedule)
                values["type"] = ScheduleType.ONE_NAP.value
                values["nap1_earliest"] = transition.current_nap_time
                await ScheduleService._replace_schedule(db, child_id, values, user_id)
                logger.info(f"Transition {transition.id} completed for child {child_id}")
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error updating transition {transition.id}: {e}")
            raise
        return TransitionResponse.model_validate(transition)

    @staticmethod
    async def cancel_transition(db: AsyncSession, user_id: str, child_id: str) -> TransitionResponse:
        """Abandon the transition and return to the original schedule type."""
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        transition = await ScheduleService._require_active_transition(db, child_id)
        transition.cancelled_at = datetime.now(UTC)

        try:
            schedule = await ScheduleService._active_schedule(db, child_id)
            values = _config_values(schedule)
            values["type"] = transition.from_type or ScheduleType.TWO_NAP.value
            await ScheduleService._replace_schedule(db, child_id, values, user_id)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error cancelling transition {transition.id}: {e}")
            raise
        logger.info(f"Transition {transition.id} cancelled for child {child_id}")
        return TransitionResponse.model_validate(transition)

    @staticmethod
    async def get_transition_history(db: AsyncSession, user_id: str, child_id: str) -> List[TransitionResponse]:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        result = await db.execute(
            select(ScheduleTransition)
            .where(ScheduleTransition.child_id == child_id)
            .order_by(desc(ScheduleTransition.start_date))
        )
        return [TransitionResponse.model_validate(t) for t in result.scalars().all()]
