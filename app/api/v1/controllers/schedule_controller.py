"""
Schedule Controller
"""
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.exceptions.errors import ApplicationException
from app.middlewares.clerk_auth import get_current_user_from_request
from app.schemas.schedule_schemas import (
    ScheduleConfig,
    ScheduleResponse,
    TransitionHistoryResponse,
    TransitionProgress,
    TransitionResponse,
    TransitionStart,
)
from app.services.schedule_service import ScheduleService
from app.api.v1.controllers.session_controller import internal_error


class ScheduleController:
    """Controller for the active sleep schedule and nap transitions."""

    @staticmethod
    async def get_schedule(request: Request, db: AsyncSession, child_id: str) -> ScheduleResponse:
        try:
            user = get_current_user_from_request(request)
            return await ScheduleService.get_active_schedule(db, user.id, child_id)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("getting schedule", e)

    @staticmethod
    async def save_schedule(request: Request, db: AsyncSession, child_id: str, data: ScheduleConfig) -> ScheduleResponse:
        try:
            user = get_current_user_from_request(request)
            return await ScheduleService.create_or_update_schedule(db, user.id, child_id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("saving schedule", e)

    @staticmethod
    async def get_transition(request: Request, db: AsyncSession, child_id: str) -> Optional[TransitionResponse]:
        try:
            user = get_current_user_from_request(request)
            return await ScheduleService.get_active_transition(db, user.id, child_id)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("getting transition", e)

    @staticmethod
    async def start_transition(request: Request, db: AsyncSession, child_id: str, data: TransitionStart) -> TransitionResponse:
        try:
            user = get_current_user_from_request(request)
            return await ScheduleService.start_transition(db, user.id, child_id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("starting transition", e)

    @staticmethod
    async def progress_transition(
        request: Request, db: AsyncSession, child_id: str, data: TransitionProgress
    ) -> TransitionResponse:
        try:
            user = get_current_user_from_request(request)
            return await ScheduleService.progress_transition(db, user.id, child_id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("updating transition", e)

    @staticmethod
    async def cancel_transition(request: Request, db: AsyncSession, child_id: str) -> TransitionResponse:
        try:
            user = get_current_user_from_request(request)
            return await ScheduleService.cancel_transition(db, user.id, child_id)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("cancelling transition", e)

    @staticmethod
    async def get_transition_history(request: Request, db: AsyncSession, child_id: str) -> TransitionHistoryResponse:
        try:
            user = get_current_user_from_request(request)
            transitions = await ScheduleService.get_transition_history(db, user.id, child_id)
            return TransitionHistoryResponse(transitions=transitions)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("getting transition history", e)
