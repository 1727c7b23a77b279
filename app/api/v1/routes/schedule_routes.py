"""
Sleep Schedule Routes
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.database.connection import get_db
from app.middlewares.clerk_auth import get_authenticated_user
from app.models.user import User
from app.api.v1.controllers.schedule_controller import ScheduleController
from app.schemas.schedule_schemas import (
    ScheduleConfig,
    ScheduleResponse,
    TransitionHistoryResponse,
    TransitionProgress,
    TransitionResponse,
    TransitionStart,
)

router = APIRouter(prefix="/children/{child_id}/schedule", tags=["Sleep Schedule"])


@router.get("", response_model=ScheduleResponse, summary="Get the active schedule")
async def get_schedule(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await ScheduleController.get_schedule(request, db, child_id)


@router.put("", response_model=ScheduleResponse, summary="Create or replace the schedule")
async def save_schedule(
    child_id: str,
    data: ScheduleConfig,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """The previous schedule is deactivated and kept for history."""
    return await ScheduleController.save_schedule(request, db, child_id, data)


@router.get("/transition", response_model=Optional[TransitionResponse], summary="Get the active transition")
async def get_transition(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await ScheduleController.get_transition(request, db, child_id)


@router.post("/transition", response_model=TransitionResponse, summary="Start a 2-to-1 nap transition")
async def start_transition(
    child_id: str,
    data: TransitionStart,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await ScheduleController.start_transition(request, db, child_id, data)


@router.patch("/transition", response_model=TransitionResponse, summary="Progress the transition")
async def progress_transition(
    child_id: str,
    data: TransitionProgress,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """Push the nap later, change week or pace, or complete the move to one nap."""
    return await ScheduleController.progress_transition(request, db, child_id, data)


@router.delete("/transition", response_model=TransitionResponse, summary="Cancel the transition")
async def cancel_transition(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await ScheduleController.cancel_transition(request, db, child_id)


@router.get("/transition/history", response_model=TransitionHistoryResponse, summary="Past transitions")
async def get_transition_history(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await ScheduleController.get_transition_history(request, db, child_id)
