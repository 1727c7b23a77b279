"""
Schedule Calculator Routes
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.database.connection import get_db
from app.middlewares.clerk_auth import get_authenticated_user
from app.models.user import User
from app.api.v1.controllers.calculator_controller import CalculatorController
from app.schemas.calculator_schemas import (
    BedtimeAdjustmentRequest,
    BedtimeRecommendation,
    Crib90Compliance,
    DayScheduleRecommendation,
    DayScheduleRequest,
    NapPushReadiness,
    NextActionRecommendation,
    PaceOption,
    TodaySummaryResponse,
    TransitionProgressResponse,
)

router = APIRouter(prefix="/children/{child_id}/calculator", tags=["Schedule Calculator"])


@router.post("/day-schedule", response_model=DayScheduleRecommendation, summary="Nap and bedtime windows")
async def get_day_schedule(
    child_id: str,
    data: DayScheduleRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """
    Windows for the day from a morning wake time and the stored schedule.
    Pass the durations (and optionally end times) of naps already taken to
    adapt later windows and bedtime.
    """
    return await CalculatorController.get_day_schedule(request, db, child_id, data)


@router.get("/next-action", response_model=NextActionRecommendation, summary="What to do next")
async def get_next_action(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await CalculatorController.get_next_action(request, db, child_id)


@router.get("/today", response_model=TodaySummaryResponse, summary="Today's sleep summary")
async def get_today_summary(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await CalculatorController.get_today_summary(request, db, child_id)


@router.post("/bedtime", response_model=BedtimeRecommendation, summary="Bedtime adjusted for day sleep")
async def get_adjusted_bedtime(
    child_id: str,
    data: BedtimeAdjustmentRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await CalculatorController.get_adjusted_bedtime(request, db, child_id, data)


@router.get("/transition/progress", response_model=Optional[TransitionProgressResponse], summary="Transition progress")
async def get_transition_progress(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await CalculatorController.get_transition_progress(request, db, child_id)


@router.get("/transition/push-readiness", response_model=Optional[NapPushReadiness], summary="Ready to push the nap later?")
async def get_nap_push_readiness(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await CalculatorController.get_nap_push_readiness(request, db, child_id)


@router.get("/transition/paces", response_model=List[PaceOption], summary="Transition pace options")
async def get_pace_options(
    child_id: str,
    _: User = Depends(get_authenticated_user)
):
    return CalculatorController.get_pace_options()


@router.get("/sessions/{session_id}/crib90", response_model=Crib90Compliance, summary="Crib-90 compliance")
async def get_crib90_compliance(
    child_id: str,
    session_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await CalculatorController.get_crib90_compliance(request, db, child_id, session_id)
