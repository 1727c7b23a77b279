from typing import List
from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from sqlalchemy.future import select
from clerk_backend_api import Clerk
from clerk_backend_api.security.types import AuthenticateRequestOptions
from httpx import Request as HttpxRequest
from app.database import AsyncSessionLocal
from app.models.user import User
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger("clerk_auth_middleware")

whitelisted_routes = [
    "/docs", "/openapi.json", "/redoc", "/favicon.ico",
    "/api/v1/health",
]


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "error": {"code": "UNAUTHORIZED", "message": message}}
    )


class ClerkAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, whitelisted_routes: List[str] = None):
        super().__init__(app)
        self.clerk_sdk = Clerk(bearer_auth=settings.CLERK_SECRET_KEY)
        self.whitelisted_routes = whitelisted_routes or []

    def _is_whitelisted(self, path: str) -> bool:
        """Check if the route is whitelisted (public)"""
        if path == "/":
            return True
        for route in self.whitelisted_routes:
            if path.startswith(route):
                return True
        return False

    async def _get_or_create_user(self, clerk_user_id: str) -> User:
        async with AsyncSessionLocal() as db:
            result = await db.execute(
                select(User).where(User.clerk_id == clerk_user_id)
            )
            user = result.scalar_one_or_none()
            if user:
                return user

            # First request from this Clerk identity
            clerk_user = self.clerk_sdk.users.get(user_id=clerk_user_id)
            email = clerk_user.email_addresses[0].email_address if clerk_user.email_addresses else None
            name = " ".join(part for part in (clerk_user.first_name, clerk_user.last_name) if part) or None

            if email:
                email_result = await db.execute(
                    select(User).where(User.email == email)
                )
                existing_user = email_result.scalar_one_or_none()
                if existing_user:
                    # Re-signed up after deleting the Clerk account
                    existing_user.clerk_id = clerk_user_id
                    existing_user.is_active = True
                    existing_user.is_deleted = False
                    await db.commit()
                    await db.refresh(existing_user)
                    logger.info(f"Updated existing user's Clerk ID: {existing_user.id} (New Clerk ID: {clerk_user_id})")
                    return existing_user

            user = User(
                clerk_id=clerk_user_id,
                email=email,
                name=name,
                type="user",
                is_active=True,
                is_deleted=False
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            logger.info(f"Created new user {user.id} (Clerk ID: {clerk_user_id})")
            return user

    async def dispatch(self, request: Request, call_next):
        """Verify the Clerk JWT and attach the caregiver to request.state."""

        if self._is_whitelisted(request.url.path):
            logger.debug(f"Whitelisted route: {request.url.path}")
            return await call_next(request)

        # CORS preflight
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            logger.warning(f"Missing or invalid Authorization header for: {request.url.path}")
            return _unauthorized("Missing or invalid authorization token")

        try:
            httpx_request = HttpxRequest(
                method=request.method,
                url=str(request.url),
                headers=dict(request.headers)
            )
            request_state = self.clerk_sdk.authenticate_request(
                httpx_request,
                AuthenticateRequestOptions()
            )

            if not request_state.is_signed_in:
                logger.warning(f"Invalid Clerk token: {request_state.reason}")
                return _unauthorized("Invalid authentication token")

            clerk_user_id = request_state.payload.get("sub") if request_state.payload else None
            if not clerk_user_id:
                logger.warning("No user_id in token payload")
                return _unauthorized("Invalid token payload")

            user = await self._get_or_create_user(clerk_user_id)
            if user.is_deleted or not user.is_active:
                logger.warning(f"Inactive user {user.id} rejected")
                return _unauthorized("User account is inactive")

        except Exception as e:
            logger.error(f"Authentication error: {e}")
            return _unauthorized("Authentication failed")

        request.state.user = user
        request.state.clerk_user_id = clerk_user_id
        return await call_next(request)


def get_current_user_from_request(request: Request) -> User:
    """Extract authenticated user from request state"""
    if not hasattr(request.state, 'user'):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated"
        )
    return request.state.user


async def get_authenticated_user(request: Request) -> User:
    """FastAPI dependency to get authenticated user"""
    return get_current_user_from_request(request)
