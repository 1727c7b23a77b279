"""
Session Controller
"""
from fastapi import Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date, datetime
from typing import Optional

from app.enums import SessionState, SessionType
from app.exceptions.errors import ApplicationException
from app.middlewares.clerk_auth import get_current_user_from_request
from app.schemas.session_schemas import (
    AdHocSessionCreate,
    CycleCreate,
    CycleUpdate,
    DailySummaryResponse,
    RecalculateResponse,
    SessionCreate,
    SessionListResponse,
    SessionResponse,
    SessionUpdate,
)
from app.services.session_service import SessionService
from app.utils.timezone import resolve_timezone
from app.core.logger import get_logger

logger = get_logger("session_controller")


def internal_error(action: str, e: Exception) -> ApplicationException:
    logger.error(f"❌ Error {action}: {e}", exc_info=True)
    return ApplicationException(
        f"Failed {action}",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
    )


class SessionController:
    """Controller for sleep sessions and night wake cycles."""

    @staticmethod
    async def create_session(request: Request, db: AsyncSession, child_id: str, data: SessionCreate) -> SessionResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await SessionService.create_session(db, user.id, child_id, data, tz_name)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("creating session", e)

    @staticmethod
    async def create_ad_hoc_session(
        request: Request, db: AsyncSession, child_id: str, data: AdHocSessionCreate
    ) -> SessionResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await SessionService.create_ad_hoc_session(db, user.id, child_id, data, tz_name)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("creating ad-hoc session", e)

    @staticmethod
    async def update_session(
        request: Request, db: AsyncSession, child_id: str, session_id: str, data: SessionUpdate
    ) -> SessionResponse:
        try:
            user = get_current_user_from_request(request)
            return await SessionService.update_session(db, user.id, child_id, session_id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"updating session {session_id}", e)

    @staticmethod
    async def delete_session(request: Request, db: AsyncSession, child_id: str, session_id: str) -> dict:
        try:
            user = get_current_user_from_request(request)
            await SessionService.delete_session(db, user.id, child_id, session_id)
            return {"success": True, "message": "Session deleted"}
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"deleting session {session_id}", e)

    @staticmethod
    async def get_session(request: Request, db: AsyncSession, child_id: str, session_id: str) -> SessionResponse:
        try:
            user = get_current_user_from_request(request)
            return await SessionService.get_session(db, user.id, child_id, session_id)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"getting session {session_id}", e)

    @staticmethod
    async def get_active_session(request: Request, db: AsyncSession, child_id: str) -> Optional[SessionResponse]:
        try:
            user = get_current_user_from_request(request)
            return await SessionService.get_active_session(db, user.id, child_id)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("getting active session", e)

    @staticmethod
    async def list_sessions(
        request: Request,
        db: AsyncSession,
        child_id: str,
        start: Optional[datetime],
        end: Optional[datetime],
        session_type: Optional[SessionType],
        state: Optional[SessionState],
        page: int,
        page_size: int
    ) -> SessionListResponse:
        try:
            user = get_current_user_from_request(request)
            return await SessionService.list_sessions(
                db, user.id, child_id, start, end, session_type, state, page, page_size
            )
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("listing sessions", e)

    @staticmethod
    async def create_cycle(
        request: Request, db: AsyncSession, child_id: str, session_id: str, data: CycleCreate
    ) -> SessionResponse:
        try:
            user = get_current_user_from_request(request)
            return await SessionService.create_cycle(db, user.id, child_id, session_id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"adding wake cycle to session {session_id}", e)

    @staticmethod
    async def update_cycle(
        request: Request, db: AsyncSession, child_id: str, session_id: str, cycle_id: str, data: CycleUpdate
    ) -> SessionResponse:
        try:
            user = get_current_user_from_request(request)
            return await SessionService.update_cycle(db, user.id, child_id, session_id, cycle_id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"updating wake cycle {cycle_id}", e)

    @staticmethod
    async def delete_cycle(
        request: Request, db: AsyncSession, child_id: str, session_id: str, cycle_id: str
    ) -> SessionResponse:
        try:
            user = get_current_user_from_request(request)
            return await SessionService.delete_cycle(db, user.id, child_id, session_id, cycle_id)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"deleting wake cycle {cycle_id}", e)

    @staticmethod
    async def recalculate_day(request: Request, db: AsyncSession, child_id: str, day: date) -> RecalculateResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            count = await SessionService.recalculate_day(db, user.id, child_id, day, tz_name)
            return RecalculateResponse(date=day, recalculated=count)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"recalculating {day}", e)

    @staticmethod
    async def get_daily_summary(request: Request, db: AsyncSession, child_id: str, day: date) -> DailySummaryResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await SessionService.get_daily_summary(db, user.id, child_id, day, tz_name)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"building daily summary for {day}", e)
