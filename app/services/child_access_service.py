from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from app.models import ChildCaregiver
from app.enums import CaregiverRole, InviteStatus
from app.exceptions.errors import ForbiddenError, NotFoundError
from app.core.logger import get_logger

logger = get_logger("child_access_service")


class ChildAccessService:
    """Caregiver authorization for a child's data."""

    @staticmethod
    async def verify_child_access(
        db: AsyncSession,
        user_id: str,
        child_id: str,
        require_write: bool = False
    ) -> ChildCaregiver:
        """
        Return the caregiver link, or raise CHILD_NOT_FOUND when the user has no
        accepted, active access. Viewers asking for write access get FORBIDDEN.
        """
        result = await db.execute(
            select(ChildCaregiver).where(
                and_(ChildCaregiver.child_id == child_id, ChildCaregiver.user_id == user_id)
            )
        )
        relation = result.scalar_one_or_none()

        if (
            relation is None
            or relation.status != InviteStatus.ACCEPTED.value
            or not relation.is_active
        ):
            logger.warning(f"User {user_id} has no access to child {child_id}")
            raise NotFoundError("CHILD_NOT_FOUND", "Child not found")

        if require_write and relation.role == CaregiverRole.VIEWER.value:
            logger.warning(f"Viewer {user_id} attempted a write on child {child_id}")
            raise ForbiddenError()

        return relation
