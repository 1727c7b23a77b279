"""
Analytics Controller
"""
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date, datetime

from app.enums import TrendPeriod
from app.exceptions.errors import ApplicationException
from app.middlewares.clerk_auth import get_current_user_from_request
from app.schemas.analytics_schemas import ComparisonRequest, ComparisonResponse, SleepTrendResponse, WeeklySummaryResponse
from app.services.analytics_service import AnalyticsService
from app.utils.time_windows import UTC
from app.utils.timezone import resolve_timezone
from app.api.v1.controllers.session_controller import internal_error


class AnalyticsController:
    """Controller for weekly summaries, trends and comparisons."""

    @staticmethod
    async def get_weekly_summary(request: Request, db: AsyncSession, child_id: str, week_of: date) -> WeeklySummaryResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await AnalyticsService.get_weekly_summary(db, user.id, child_id, week_of, tz_name)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"building weekly summary for {week_of}", e)

    @staticmethod
    async def get_sleep_trends(request: Request, db: AsyncSession, child_id: str, period: TrendPeriod) -> SleepTrendResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await AnalyticsService.get_sleep_trends(db, user.id, child_id, period, tz_name, datetime.now(UTC))
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("calculating sleep trends", e)

    @staticmethod
    async def get_comparison(request: Request, db: AsyncSession, child_id: str, data: ComparisonRequest) -> ComparisonResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await AnalyticsService.get_comparison(db, user.id, child_id, data, tz_name)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("comparing periods", e)
