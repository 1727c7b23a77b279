import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.exceptions.handlers import (
    application_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    generic_exception_handler
)
from app.exceptions.errors import ApplicationException
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from app.database.base import Base
from app.database.connection import engine

from app.api.v1.routes import (
    user_router,
    child_router,
    session_router,
    schedule_router,
    calculator_router,
    analytics_router,
)
from app.middlewares.clerk_auth import ClerkAuthMiddleware, whitelisted_routes
from app.core.config import settings

from app.core.logger import get_logger

logger = get_logger("naptime-backend")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 FastAPI app is starting...")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Application database tables ensured.")
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise e

    yield

    await engine.dispose()
    logger.info("🛑 FastAPI app is shutting down...")

IS_DEVELOPMENT = settings.ENVIRONMENT == "development"

swagger_ui_parameters = {
    "deepLinking": True,
    "displayRequestDuration": True,
    "tryItOutEnabled": True,
    "filter": True,
    "syntaxHighlight.theme": "arta",
}

if IS_DEVELOPMENT:
    swagger_ui_parameters["persistAuthorization"] = True

app = FastAPI(
    title="Naptime Backend",
    version="1.0.0",
    lifespan=lifespan,
    description="""
    Naptime Backend API: infant sleep tracking and schedule recommendations.

    ## Authentication

    Uses Clerk JWT tokens. Include your JWT token in the Authorization header:
    ```
    Authorization: Bearer <your-jwt-token>
    ```

    ## Timezone

    Schedule clock times are read in the caregiver's timezone. Send an
    `X-Timezone` header (IANA name) to override it for one request.
    """,
    swagger_ui_parameters=swagger_ui_parameters,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(
    ClerkAuthMiddleware,
    whitelisted_routes=whitelisted_routes
)

app.include_router(user_router, prefix="/api/v1")
app.include_router(child_router, prefix="/api/v1")
app.include_router(session_router, prefix="/api/v1")
app.include_router(schedule_router, prefix="/api/v1")
app.include_router(calculator_router, prefix="/api/v1")
app.include_router(analytics_router, prefix="/api/v1")

@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "Naptime Backend API",
        "docs": "/docs",
        "development_mode": IS_DEVELOPMENT,
        "version": "1.0.0"
    }

@app.get("/api/v1/health", tags=["Health"])
async def health():
    return {"status": "ok"}

app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        limit_concurrency=20,
        timeout_keep_alive=30,
        limit_max_requests=1000,
        timeout_graceful_shutdown=30
    )
