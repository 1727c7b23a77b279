from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy import select, and_, func, desc
from typing import Optional, List
from datetime import datetime, date
import math

from app.models import Child, SleepSession, SleepCycle
from app.enums import SessionState, SessionType, SleepLocation, WakeType
from app.exceptions.errors import ConflictError, NotFoundError, ValidationError
from app.schemas.session_schemas import (
    AdHocSessionCreate,
    CycleCreate,
    CycleResponse,
    CycleUpdate,
    DailySummaryResponse,
    SessionCreate,
    SessionListResponse,
    SessionResponse,
    SessionUpdate,
)
from app.services.child_access_service import ChildAccessService
from app.services.session_state_machine import EVENT_TIMESTAMP_FIELDS, apply_corrections, apply_event
from app.services.sleep_duration_service import recalculate_session, sort_cycles
from app.utils.time_windows import UTC, as_utc, local_date_bounds
from app.core.logger import get_logger

logger = get_logger("session_service")


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_session(session: SleepSession) -> SessionResponse:
    """Response with cycle totals: wake count, cycle sleep and all awake minutes."""
    cycles = sort_cycles(session.sleep_cycles)
    cycle_awake = sum(c.awake_minutes or 0 for c in cycles)
    total_awake = None
    if cycles or session.settling_minutes is not None or session.post_wake_minutes is not None:
        total_awake = (session.settling_minutes or 0) + (session.post_wake_minutes or 0) + cycle_awake

    return SessionResponse(
        id=session.id,
        child_id=session.child_id,
        session_type=session.session_type,
        nap_number=session.nap_number,
        is_ad_hoc=bool(session.is_ad_hoc),
        location=session.location or SleepLocation.CRIB.value,
        state=session.state,
        put_down_at=as_utc(session.put_down_at),
        asleep_at=as_utc(session.asleep_at),
        woke_up_at=as_utc(session.woke_up_at),
        out_of_crib_at=as_utc(session.out_of_crib_at),
        total_minutes=session.total_minutes,
        sleep_minutes=session.sleep_minutes,
        settling_minutes=session.settling_minutes,
        post_wake_minutes=session.post_wake_minutes,
        awake_crib_minutes=session.awake_crib_minutes,
        qualified_rest_minutes=session.qualified_rest_minutes,
        calculation_notes=session.calculation_notes or [],
        crying_minutes=session.crying_minutes,
        notes=session.notes,
        timezone=session.timezone,
        cycles=[
            CycleResponse(
                id=c.id,
                cycle_number=c.cycle_number,
                woke_up_at=as_utc(c.woke_up_at),
                fell_back_asleep_at=as_utc(c.fell_back_asleep_at),
                wake_type=c.wake_type,
                sleep_minutes=c.sleep_minutes,
                awake_minutes=c.awake_minutes,
            )
            for c in cycles
        ],
        wake_up_count=len(cycles),
        total_cycle_sleep_minutes=sum(c.sleep_minutes or 0 for c in cycles) if cycles else None,
        total_awake_minutes=total_awake,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


class SessionService:
    """Sleep session store: lifecycle events, corrections and wake cycles."""

    @staticmethod
    async def _lock_child(db: AsyncSession, child_id: str) -> Child:
        """Per-child serialization point for creates and transitions."""
        result = await db.execute(
            select(Child).where(Child.id == child_id).with_for_update()
        )
        child = result.scalar_one_or_none()
        if child is None:
            raise NotFoundError("CHILD_NOT_FOUND", "Child not found")
        return child

    @staticmethod
    async def _get_session(db: AsyncSession, child_id: str, session_id: str, lock: bool = False) -> SleepSession:
        query = (
            select(SleepSession)
            .options(selectinload(SleepSession.sleep_cycles))
            .where(and_(SleepSession.id == session_id, SleepSession.child_id == child_id))
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        result = await db.execute(query)
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError("SESSION_NOT_FOUND", "Session not found")
        return session

    @staticmethod
    async def _ensure_no_active_session(db: AsyncSession, child_id: str):
        result = await db.execute(
            select(SleepSession.id).where(
                and_(SleepSession.child_id == child_id, SleepSession.state != SessionState.COMPLETED.value)
            )
        )
        active_id = result.scalars().first()
        if active_id is not None:
            raise ConflictError(
                "ACTIVE_SESSION_EXISTS",
                f"Child already has an active session ({active_id}); complete it first",
            )

    @staticmethod
    async def _commit_and_reload(db: AsyncSession, session: SleepSession) -> SleepSession:
        try:
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error saving session {session.id}: {e}", exc_info=True)
            raise
        return await SessionService._get_session(db, session.child_id, session.id)

    @staticmethod
    async def create_session(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        data: SessionCreate,
        tz_name: str
    ) -> SessionResponse:
        """Put down: a new session in PENDING."""
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        await SessionService._lock_child(db, child_id)
        await SessionService._ensure_no_active_session(db, child_id)

        if data.session_type == SessionType.NAP and data.nap_number is None:
            raise ValidationError("nap_number is required for naps")

        session = SleepSession(
            child_id=child_id,
            created_by_id=user_id,
            session_type=data.session_type.value,
            nap_number=data.nap_number if data.session_type == SessionType.NAP else None,
            is_ad_hoc=False,
            location=SleepLocation.CRIB.value,
            state=SessionState.PENDING.value,
            put_down_at=as_utc(data.put_down_at) or utc_now(),
            notes=data.notes,
            timezone=tz_name,
            sleep_cycles=[],
        )
        recalculate_session(session)
        db.add(session)
        await db.flush()
        logger.info(f"Created {session.session_type} session {session.id} for child {child_id}")
        return format_session(await SessionService._commit_and_reload(db, session))

    @staticmethod
    async def create_ad_hoc_session(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        data: AdHocSessionCreate,
        tz_name: str
    ) -> SessionResponse:
        """Car, stroller and other non-crib naps: ASLEEP, or COMPLETED when the wake time is known."""
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        await SessionService._lock_child(db, child_id)
        if data.woke_up_at is None:
            await SessionService._ensure_no_active_session(db, child_id)

        asleep_at = as_utc(data.asleep_at)
        woke_up_at = as_utc(data.woke_up_at)
        session = SleepSession(
            child_id=child_id,
            created_by_id=user_id,
            session_type=SessionType.NAP.value,
            nap_number=None,
            is_ad_hoc=True,
            location=data.location.value,
            state=SessionState.COMPLETED.value if woke_up_at else SessionState.ASLEEP.value,
            put_down_at=asleep_at,
            asleep_at=asleep_at,
            woke_up_at=woke_up_at,
            out_of_crib_at=woke_up_at,
            notes=data.notes,
            timezone=tz_name,
            sleep_cycles=[],
        )
        recalculate_session(session)
        db.add(session)
        await db.flush()
        logger.info(f"Created ad-hoc {session.location} nap {session.id} for child {child_id}")
        return format_session(await SessionService._commit_and_reload(db, session))

    @staticmethod
    async def update_session(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        session_id: str,
        data: SessionUpdate
    ) -> SessionResponse:
        """
        Apply an optional event, then any retroactive timestamp corrections.
        The event's own timestamp, when sent, is used as the event time.
        """
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        await SessionService._lock_child(db, child_id)
        session = await SessionService._get_session(db, child_id, session_id, lock=True)

        corrections = {
            "put_down_at": data.put_down_at,
            "asleep_at": data.asleep_at,
            "woke_up_at": data.woke_up_at,
            "out_of_crib_at": data.out_of_crib_at,
        }

        if data.event is not None:
            event_field = EVENT_TIMESTAMP_FIELDS[data.event]
            at = corrections.pop(event_field) or utc_now()
            apply_event(session, data.event, at)

        apply_corrections(session, **corrections)

        if data.crying_minutes is not None:
            session.crying_minutes = data.crying_minutes
        if data.notes is not None:
            session.notes = data.notes

        return format_session(await SessionService._commit_and_reload(db, session))

    @staticmethod
    async def delete_session(db: AsyncSession, user_id: str, child_id: str, session_id: str) -> None:
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        session = await SessionService._get_session(db, child_id, session_id)
        await db.delete(session)
        await db.commit()
        logger.info(f"Deleted session {session_id} for child {child_id}")

    @staticmethod
    async def get_session(db: AsyncSession, user_id: str, child_id: str, session_id: str) -> SessionResponse:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        return format_session(await SessionService._get_session(db, child_id, session_id))

    @staticmethod
    async def get_active_session(db: AsyncSession, user_id: str, child_id: str) -> Optional[SessionResponse]:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        result = await db.execute(
            select(SleepSession)
            .options(selectinload(SleepSession.sleep_cycles))
            .where(and_(SleepSession.child_id == child_id, SleepSession.state != SessionState.COMPLETED.value))
            .order_by(desc(SleepSession.put_down_at))
        )
        session = result.scalars().first()
        return format_session(session) if session else None

    @staticmethod
    async def list_sessions(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        session_type: Optional[SessionType] = None,
        state: Optional[SessionState] = None,
        page: int = 1,
        page_size: int = 20
    ) -> SessionListResponse:
        await ChildAccessService.verify_child_access(db, user_id, child_id)

        filters = [SleepSession.child_id == child_id]
        if start is not None:
            filters.append(SleepSession.put_down_at >= as_utc(start))
        if end is not None:
            filters.append(SleepSession.put_down_at <= as_utc(end))
        if session_type is not None:
            filters.append(SleepSession.session_type == session_type.value)
        if state is not None:
            filters.append(SleepSession.state == state.value)

        total = (await db.execute(select(func.count(SleepSession.id)).where(and_(*filters)))).scalar_one()
        result = await db.execute(
            select(SleepSession)
            .options(selectinload(SleepSession.sleep_cycles))
            .where(and_(*filters))
            .order_by(desc(SleepSession.put_down_at))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        sessions = result.scalars().all()

        return SessionListResponse(
            sessions=[format_session(s) for s in sessions],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    @staticmethod
    async def sessions_between(db: AsyncSession, child_id: str, start: datetime, end: datetime) -> List[SleepSession]:
        """Sessions put down in [start, end), oldest first."""
        result = await db.execute(
            select(SleepSession)
            .options(selectinload(SleepSession.sleep_cycles))
            .where(and_(
                SleepSession.child_id == child_id,
                SleepSession.put_down_at >= start,
                SleepSession.put_down_at < end,
            ))
            .order_by(SleepSession.put_down_at)
        )
        return list(result.scalars().all())

    # ---- wake cycles ----

    @staticmethod
    async def _get_night_session(db: AsyncSession, user_id: str, child_id: str, session_id: str) -> SleepSession:
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        session = await SessionService._get_session(db, child_id, session_id, lock=True)
        if session.session_type != SessionType.NIGHT_SLEEP.value:
            raise ValidationError("Wake cycles can only be recorded on night sleep sessions")
        return session

    @staticmethod
    def _find_cycle(session: SleepSession, cycle_id: str) -> SleepCycle:
        for cycle in session.sleep_cycles:
            if cycle.id == cycle_id:
                return cycle
        raise NotFoundError("CYCLE_NOT_FOUND", "Sleep cycle not found")

    @staticmethod
    async def create_cycle(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        session_id: str,
        data: CycleCreate
    ) -> SessionResponse:
        session = await SessionService._get_night_session(db, user_id, child_id, session_id)
        session.sleep_cycles.append(SleepCycle(
            cycle_number=len(session.sleep_cycles) + 1,
            woke_up_at=as_utc(data.woke_up_at),
            fell_back_asleep_at=as_utc(data.fell_back_asleep_at),
            wake_type=data.wake_type.value,
        ))
        recalculate_session(session)
        logger.info(f"Added wake cycle to session {session_id}")
        return format_session(await SessionService._commit_and_reload(db, session))

    @staticmethod
    async def update_cycle(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        session_id: str,
        cycle_id: str,
        data: CycleUpdate
    ) -> SessionResponse:
        session = await SessionService._get_night_session(db, user_id, child_id, session_id)
        cycle = SessionService._find_cycle(session, cycle_id)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("woke_up_at", cycle.woke_up_at) is None:
            raise ValidationError("woke_up_at cannot be cleared")
        woke_up_at = as_utc(changes.get("woke_up_at", cycle.woke_up_at))
        fell_back = as_utc(changes.get("fell_back_asleep_at", cycle.fell_back_asleep_at))
        if fell_back is not None and fell_back < woke_up_at:
            raise ValidationError("fell_back_asleep_at cannot be before woke_up_at")

        cycle.woke_up_at = woke_up_at
        cycle.fell_back_asleep_at = fell_back
        if changes.get("wake_type") is not None:
            cycle.wake_type = WakeType(changes["wake_type"]).value

        recalculate_session(session)
        return format_session(await SessionService._commit_and_reload(db, session))

    @staticmethod
    async def delete_cycle(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        session_id: str,
        cycle_id: str
    ) -> SessionResponse:
        session = await SessionService._get_night_session(db, user_id, child_id, session_id)
        cycle = SessionService._find_cycle(session, cycle_id)
        session.sleep_cycles.remove(cycle)
        recalculate_session(session)
        logger.info(f"Removed wake cycle {cycle_id} from session {session_id}")
        return format_session(await SessionService._commit_and_reload(db, session))

    # ---- day views ----

    @staticmethod
    async def recalculate_day(db: AsyncSession, user_id: str, child_id: str, day: date, tz_name: str) -> int:
        """Recompute every session put down on ``day`` (local)."""
        await ChildAccessService.verify_child_access(db, user_id, child_id, require_write=True)
        start, end = local_date_bounds(day, tz_name)
        sessions = await SessionService.sessions_between(db, child_id, start, end)
        for session in sessions:
            recalculate_session(session)
        await db.commit()
        logger.info(f"Recalculated {len(sessions)} sessions for child {child_id} on {day}")
        return len(sessions)

    @staticmethod
    async def get_daily_summary(db: AsyncSession, user_id: str, child_id: str, day: date, tz_name: str) -> DailySummaryResponse:
        await ChildAccessService.verify_child_access(db, user_id, child_id)
        start, end = local_date_bounds(day, tz_name)
        sessions = await SessionService.sessions_between(db, child_id, start, end)

        naps = [s for s in sessions if s.session_type == SessionType.NAP.value]
        nights = [s for s in sessions if s.session_type == SessionType.NIGHT_SLEEP.value]
        night_cycles = [c for s in nights for c in s.sleep_cycles]

        return DailySummaryResponse(
            date=day,
            timezone=tz_name,
            nap_count=sum(1 for s in naps if s.sleep_minutes),
            total_nap_minutes=sum(s.sleep_minutes or 0 for s in naps),
            total_night_minutes=sum(s.sleep_minutes or 0 for s in nights),
            total_qualified_rest_minutes=sum(s.qualified_rest_minutes or 0 for s in naps),
            night_wake_count=sum(1 for c in night_cycles if c.fell_back_asleep_at is not None),
            total_awake_minutes=sum(c.awake_minutes or 0 for c in night_cycles),
            sessions=[format_session(s) for s in sessions],
        )

