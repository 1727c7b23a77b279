"""
Calculator Controller
"""
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import List, Optional

from app.exceptions.errors import ApplicationException
from app.middlewares.clerk_auth import get_current_user_from_request
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
from app.services.calculator_query_service import CalculatorQueryService
from app.services.transition_tracker_service import TransitionTrackerService
from app.utils.time_windows import UTC
from app.utils.timezone import resolve_timezone
from app.api.v1.controllers.session_controller import internal_error


class CalculatorController:
    """Controller for schedule recommendations and transition guidance."""

    @staticmethod
    async def get_day_schedule(
        request: Request, db: AsyncSession, child_id: str, data: DayScheduleRequest
    ) -> DayScheduleRecommendation:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await CalculatorQueryService.get_day_schedule(
                db, user.id, child_id, data, tz_name, datetime.now(UTC)
            )
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("calculating day schedule", e)

    @staticmethod
    async def get_next_action(request: Request, db: AsyncSession, child_id: str) -> NextActionRecommendation:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await CalculatorQueryService.get_next_action(db, user.id, child_id, tz_name, datetime.now(UTC))
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("calculating next action", e)

    @staticmethod
    async def get_today_summary(request: Request, db: AsyncSession, child_id: str) -> TodaySummaryResponse:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await CalculatorQueryService.get_today_summary(db, user.id, child_id, tz_name, datetime.now(UTC))
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("building today summary", e)

    @staticmethod
    async def get_adjusted_bedtime(
        request: Request, db: AsyncSession, child_id: str, data: BedtimeAdjustmentRequest
    ) -> BedtimeRecommendation:
        try:
            user = get_current_user_from_request(request)
            tz_name = resolve_timezone(request, user)
            return await CalculatorQueryService.get_adjusted_bedtime(
                db, user.id, child_id, data, tz_name, datetime.now(UTC)
            )
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("adjusting bedtime", e)

    @staticmethod
    async def get_transition_progress(
        request: Request, db: AsyncSession, child_id: str
    ) -> Optional[TransitionProgressResponse]:
        try:
            user = get_current_user_from_request(request)
            return await CalculatorQueryService.get_transition_progress(db, user.id, child_id, datetime.now(UTC))
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("getting transition progress", e)

    @staticmethod
    async def get_nap_push_readiness(request: Request, db: AsyncSession, child_id: str) -> Optional[NapPushReadiness]:
        try:
            user = get_current_user_from_request(request)
            return await CalculatorQueryService.get_nap_push_readiness(db, user.id, child_id, datetime.now(UTC))
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("analyzing nap push readiness", e)

    @staticmethod
    async def get_crib90_compliance(
        request: Request, db: AsyncSession, child_id: str, session_id: str
    ) -> Crib90Compliance:
        try:
            user = get_current_user_from_request(request)
            return await CalculatorQueryService.get_crib90_compliance(
                db, user.id, child_id, session_id, datetime.now(UTC)
            )
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("checking crib-90 compliance", e)

    @staticmethod
    def get_pace_options() -> List[PaceOption]:
        return TransitionTrackerService.pace_options()
