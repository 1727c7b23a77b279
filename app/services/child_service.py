from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, desc
from sqlalchemy.orm import selectinload
from typing import List
from datetime import datetime, time

from app.models import Child, ChildCaregiver
from app.enums import CaregiverRole, InviteStatus
from app.exceptions.errors import ForbiddenError, NotFoundError
from app.schemas.child_schemas import (
    CaregiverInfo,
    ChildCreate,
    ChildDetailResponse,
    ChildResponse,
    ChildUpdate,
)
from app.services.child_access_service import ChildAccessService
from app.core.logger import get_logger

logger = get_logger("child_service")


def format_child(child: Child, role: str) -> ChildResponse:
    return ChildResponse(
        id=child.id,
        name=child.name,
        birth_date=child.birth_date.date() if child.birth_date else None,
        photo_url=child.photo_url,
        role=role,
        created_at=child.created_at,
        updated_at=child.updated_at,
    )


class ChildService:
    """Child profiles. The creating user becomes the child's ADMIN caregiver."""

    @staticmethod
    async def _get_child(db: AsyncSession, child_id: str) -> Child:
        result = await db.execute(
            select(Child)
            .options(selectinload(Child.caregivers).selectinload(ChildCaregiver.user))
            .where(Child.id == child_id)
            .execution_options(populate_existing=True)
        )
        child = result.scalar_one_or_none()
        if child is None:
            raise NotFoundError("CHILD_NOT_FOUND", "Child not found")
        return child

    @staticmethod
    async def _require_admin(db: AsyncSession, user_id: str, child_id: str, action: str) -> ChildCaregiver:
        relation = await ChildAccessService.verify_child_access(db, user_id, child_id)
        if relation.role != CaregiverRole.ADMIN.value:
            logger.warning(f"User {user_id} ({relation.role}) attempted to {action} child {child_id}")
            raise ForbiddenError(f"Only admins can {action} child profiles")
        return relation

    @staticmethod
    async def list_children(db: AsyncSession, user_id: str) -> List[ChildResponse]:
        result = await db.execute(
            select(ChildCaregiver)
            .options(selectinload(ChildCaregiver.child))
            .join(Child, Child.id == ChildCaregiver.child_id)
            .where(and_(
                ChildCaregiver.user_id == user_id,
                ChildCaregiver.status == InviteStatus.ACCEPTED.value,
                ChildCaregiver.is_active.is_(True),
            ))
            .order_by(desc(Child.created_at))
        )
        return [format_child(relation.child, relation.role) for relation in result.scalars().all()]

    @staticmethod
    async def create_child(db: AsyncSession, user_id: str, data: ChildCreate) -> ChildResponse:
        try:
            child = Child(
                name=data.name,
                birth_date=datetime.combine(data.birth_date, time()),
                photo_url=data.photo_url,
            )
            db.add(child)
            await db.flush()

            db.add(ChildCaregiver(
                child_id=child.id,
                user_id=user_id,
                role=CaregiverRole.ADMIN.value,
                status=InviteStatus.ACCEPTED.value,
                is_active=True,
            ))
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error creating child for user {user_id}: {e}")
            raise

        logger.info(f"Created child {child.id} for user {user_id}")
        return format_child(child, CaregiverRole.ADMIN.value)

    @staticmethod
    async def get_child(db: AsyncSession, user_id: str, child_id: str) -> ChildDetailResponse:
        relation = await ChildAccessService.verify_child_access(db, user_id, child_id)
        child = await ChildService._get_child(db, child_id)

        caregivers = [
            CaregiverInfo(
                id=link.id,
                user_id=link.user_id,
                email=link.user.email if link.user else None,
                name=link.user.name if link.user else None,
                role=link.role,
                status=link.status,
                is_active=link.is_active,
            )
            for link in child.caregivers
        ]
        return ChildDetailResponse(**format_child(child, relation.role).model_dump(), caregivers=caregivers)

    @staticmethod
    async def update_child(db: AsyncSession, user_id: str, child_id: str, data: ChildUpdate) -> ChildResponse:
        relation = await ChildService._require_admin(db, user_id, child_id, "update")
        child = await ChildService._get_child(db, child_id)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is not None:
            child.name = changes["name"]
        if changes.get("birth_date") is not None:
            child.birth_date = datetime.combine(changes["birth_date"], time())
        if "photo_url" in changes:
            child.photo_url = changes["photo_url"]

        try:
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error updating child {child_id}: {e}")
            raise
        return format_child(child, relation.role)

    @staticmethod
    async def delete_child(db: AsyncSession, user_id: str, child_id: str) -> None:
        """Removes the child with its sessions, schedules, transitions and caregiver links."""
        await ChildService._require_admin(db, user_id, child_id, "delete")
        child = await ChildService._get_child(db, child_id)
        try:
            await db.delete(child)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error deleting child {child_id}: {e}")
            raise
        logger.info(f"Deleted child {child_id}")
