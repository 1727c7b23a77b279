"""
Sleep Analytics Routes
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date

from app.database.connection import get_db
from app.enums import TrendPeriod
from app.middlewares.clerk_auth import get_authenticated_user
from app.models.user import User
from app.api.v1.controllers.analytics_controller import AnalyticsController
from app.schemas.analytics_schemas import ComparisonRequest, ComparisonResponse, SleepTrendResponse, WeeklySummaryResponse

router = APIRouter(prefix="/children/{child_id}/analytics", tags=["Sleep Analytics"])


@router.get("/weekly", response_model=WeeklySummaryResponse, summary="Weekly sleep averages")
async def get_weekly_summary(
    child_id: str,
    request: Request,
    week_of: date = Query(..., description="Any date in the Sunday-to-Saturday week"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await AnalyticsController.get_weekly_summary(request, db, child_id, week_of)


@router.get("/trends", response_model=SleepTrendResponse, summary="7 or 30 day sleep trends")
async def get_sleep_trends(
    child_id: str,
    request: Request,
    period: TrendPeriod = Query(TrendPeriod.SEVEN_DAYS),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await AnalyticsController.get_sleep_trends(request, db, child_id, period)


@router.post("/comparison", response_model=ComparisonResponse, summary="Compare two date ranges")
async def get_comparison(
    child_id: str,
    data: ComparisonRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """Average daily sleep and nap count of period 2 against period 1."""
    return await AnalyticsController.get_comparison(request, db, child_id, data)
