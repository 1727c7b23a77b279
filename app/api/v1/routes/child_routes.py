"""
Child Profile Routes
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_db
from app.middlewares.clerk_auth import get_authenticated_user
from app.models.user import User
from app.api.v1.controllers.child_controller import ChildController
from app.schemas.child_schemas import (
    ChildCreate,
    ChildDetailResponse,
    ChildListResponse,
    ChildResponse,
    ChildUpdate,
)

router = APIRouter(prefix="/children", tags=["Children"])


@router.get("", response_model=ChildListResponse, summary="List my children")
async def list_children(
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """Children the caller has accepted, active access to, newest first."""
    return await ChildController.list_children(request, db)


@router.post("", response_model=ChildResponse, status_code=status.HTTP_201_CREATED, summary="Add a child")
async def create_child(
    data: ChildCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """The caller becomes the child's admin caregiver."""
    return await ChildController.create_child(request, db, data)


@router.get("/{child_id}", response_model=ChildDetailResponse, summary="Get a child")
async def get_child(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await ChildController.get_child(request, db, child_id)


@router.patch("/{child_id}", response_model=ChildResponse, summary="Update a child")
async def update_child(
    child_id: str,
    data: ChildUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    return await ChildController.update_child(request, db, child_id, data)


@router.delete("/{child_id}", summary="Delete a child")
async def delete_child(
    child_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_authenticated_user)
):
    """Admins only. Sessions, schedules and transitions are deleted with the child."""
    return await ChildController.delete_child(request, db, child_id)
