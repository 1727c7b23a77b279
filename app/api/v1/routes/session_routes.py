"""
Sleep Session Routes
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date, datetime
from typing import Optional

from app.database.connection import get_db
from app.enums import SessionState, SessionType
from app.middlewares.clerk_auth import get_authenticated_user
from app.models.user import User
from app.api.v1.controllers.session_controller import SessionController
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

router = APIRouter(prefix="/children/{child_id}/sessions", tags=["Sleep Sessions"])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED, summary="Start a crib session")
async def create_session(
    child_id: str,
    data: SessionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """Put the child down for a nap or night sleep. The session starts PENDING."""
    return await SessionController.create_session(request, db, child_id, data)


@router.post("/ad-hoc", response_model=SessionResponse, status_code=status.HTTP_201_CREATED, summary="Log an ad-hoc nap")
async def create_ad_hoc_session(
    child_id: str,
    data: AdHocSessionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """Car, stroller or carrier sleep. Completed immediately when woke_up_at is given."""
    return await SessionController.create_ad_hoc_session(request, db, child_id, data)


@router.get("", response_model=SessionListResponse, summary="List sessions")
async def list_sessions(
    child_id: str,
    request: Request,
    start: Optional[datetime] = Query(None, description="Put down at or after"),
    end: Optional[datetime] = Query(None, description="Put down before"),
    session_type: Optional[SessionType] = Query(None),
    state: Optional[SessionState] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.list_sessions(
        request, db, child_id, start, end, session_type, state, page, page_size
    )


@router.get("/active", response_model=Optional[SessionResponse], summary="Get the active session")
async def get_active_session(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.get_active_session(request, db, child_id)


@router.get("/daily-summary", response_model=DailySummaryResponse, summary="Daily sleep totals")
async def get_daily_summary(
    child_id: str,
    request: Request,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.get_daily_summary(request, db, child_id, day)


@router.post("/recalculate", response_model=RecalculateResponse, summary="Recalculate a day's sessions")
async def recalculate_day(
    child_id: str,
    request: Request,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """Recompute derived durations for every session put down on the given local date."""
    return await SessionController.recalculate_day(request, db, child_id, day)


@router.get("/{session_id}", response_model=SessionResponse, summary="Get a session")
async def get_session(
    child_id: str,
    session_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.get_session(request, db, child_id, session_id)


@router.patch("/{session_id}", response_model=SessionResponse, summary="Apply an event or correction")
async def update_session(
    child_id: str,
    session_id: str,
    data: SessionUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """
    Apply a lifecycle event (fell_asleep, woke_up, out_of_crib) and/or timestamp
    corrections. Durations are recalculated after every change.
    """
    return await SessionController.update_session(request, db, child_id, session_id, data)


@router.delete("/{session_id}", summary="Delete a session")
async def delete_session(
    child_id: str,
    session_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.delete_session(request, db, child_id, session_id)


@router.post(
    "/{session_id}/cycles",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a night wake"
)
async def create_cycle(
    child_id: str,
    session_id: str,
    data: CycleCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.create_cycle(request, db, child_id, session_id, data)


@router.patch("/{session_id}/cycles/{cycle_id}", response_model=SessionResponse, summary="Edit a night wake")
async def update_cycle(
    child_id: str,
    session_id: str,
    cycle_id: str,
    data: CycleUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.update_cycle(request, db, child_id, session_id, cycle_id, data)


@router.delete("/{session_id}/cycles/{cycle_id}", response_model=SessionResponse, summary="Remove a night wake")
async def delete_cycle(
    child_id: str,
    session_id: str,
    cycle_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await SessionController.delete_cycle(request, db, child_id, session_id, cycle_id)
