"""
Shared enums for the application.
"""

from .user_enums import (
    CaregiverRole,
    InviteStatus
)
from .sleep_enums import (
    SessionType,
    SessionState,
    SessionEvent,
    SleepContext,
    SleepLocation,
    WakeType,
    ScheduleType,
    NextActionType,
    NapStatus,
    TransitionPhase,
    TrendPeriod,
    TrendDirection
)

__all__ = [
    "CaregiverRole",
    "InviteStatus",
    "SessionType",
    "SessionState",
    "SessionEvent",
    "SleepContext",
    "SleepLocation",
    "WakeType",
    "ScheduleType",
    "NextActionType",
    "NapStatus",
    "TransitionPhase",
    "TrendPeriod",
    "TrendDirection"
]
