"""
API v1 routes package.
Naptime app backend routes.
"""

from .user_routes import router as user_router
from .session_routes import router as session_router
from .schedule_routes import router as schedule_router
from .calculator_routes import router as calculator_router
from .child_routes import router as child_router
from .analytics_routes import router as analytics_router

__all__ = [
    "user_router",
    "session_router",
    "schedule_router",
    "calculator_router",
    "child_router",
    "analytics_router"
]
