from fastapi import Request

from app.core.config import settings
from app.utils.time_windows import is_valid_timezone
from app.core.logger import get_logger

logger = get_logger("timezone")

TIMEZONE_HEADER = "X-Timezone"


def resolve_timezone(request: Request = None, user=None) -> str:
    """X-Timezone header when it names a real IANA zone, else the user's zone, else the default."""
    if request is not None:
        header = request.headers.get(TIMEZONE_HEADER)
        if header:
            if is_valid_timezone(header):
                return header
            logger.warning(f"Ignoring invalid {TIMEZONE_HEADER} header: {header}")

    user_zone = getattr(user, "timezone", None)
    if is_valid_timezone(user_zone):
        return user_zone

    return settings.DEFAULT_TIMEZONE
