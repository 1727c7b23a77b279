"""
Child Controller
"""
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions.errors import ApplicationException
from app.middlewares.clerk_auth import get_current_user_from_request
from app.schemas.child_schemas import (
    ChildCreate,
    ChildDetailResponse,
    ChildListResponse,
    ChildResponse,
    ChildUpdate,
)
from app.services.child_service import ChildService
from app.api.v1.controllers.session_controller import internal_error


class ChildController:
    """Controller for child profiles."""

    @staticmethod
    async def list_children(request: Request, db: AsyncSession) -> ChildListResponse:
        try:
            user = get_current_user_from_request(request)
            return ChildListResponse(children=await ChildService.list_children(db, user.id))
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("listing children", e)

    @staticmethod
    async def create_child(request: Request, db: AsyncSession, data: ChildCreate) -> ChildResponse:
        try:
            user = get_current_user_from_request(request)
            return await ChildService.create_child(db, user.id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error("creating child", e)

    @staticmethod
    async def get_child(request: Request, db: AsyncSession, child_id: str) -> ChildDetailResponse:
        try:
            user = get_current_user_from_request(request)
            return await ChildService.get_child(db, user.id, child_id)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"getting child {child_id}", e)

    @staticmethod
    async def update_child(request: Request, db: AsyncSession, child_id: str, data: ChildUpdate) -> ChildResponse:
        try:
            user = get_current_user_from_request(request)
            return await ChildService.update_child(db, user.id, child_id, data)
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"updating child {child_id}", e)

    @staticmethod
    async def delete_child(request: Request, db: AsyncSession, child_id: str) -> dict:
        try:
            user = get_current_user_from_request(request)
            await ChildService.delete_child(db, user.id, child_id)
            return {"success": True, "message": "Child deleted"}
        except ApplicationException:
            raise
        except Exception as e:
            raise internal_error(f"deleting child {child_id}", e)
