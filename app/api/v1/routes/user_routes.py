from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.database.connection import get_db
from app.models.user import User
from app.middlewares.clerk_auth import get_authenticated_user
from app.schemas.user_schemas import UserResponse, UserTimezoneUpdate
from app.core.logger import get_logger

logger = get_logger("user_routes")
router = APIRouter()

@router.get("/user/me", tags=["User"], response_model=UserResponse)
async def get_current_user(
    current_user: User = Depends(get_authenticated_user),
):
    """Get current authenticated user's information"""
    return UserResponse.model_validate(current_user)


@router.put("/user/me/timezone", tags=["User"], response_model=UserResponse)
async def update_timezone(
    data: UserTimezoneUpdate,
    current_user: User = Depends(get_authenticated_user),
    db: AsyncSession = Depends(get_db)
):
    """Set the zone used for schedule clock times when no X-Timezone header is sent"""
    result = await db.execute(select(User).where(User.id == current_user.id))
    user = result.scalar_one()
    user.timezone = data.timezone
    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating timezone for user {user.id}: {e}")
        raise
    await db.refresh(user)
    logger.info(f"User {user.id} timezone set to {user.timezone}")
    return UserResponse.model_validate(user)
