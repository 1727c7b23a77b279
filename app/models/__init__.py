"""
Models package for the application.
"""

from .user import User
from .child import Child, ChildCaregiver
from .sleep_session import SleepSession, SleepCycle
from .sleep_schedule import SleepSchedule, ScheduleTransition

__all__ = [
    "User",
    "Child",
    "ChildCaregiver",
    "SleepSession",
    "SleepCycle",
    "SleepSchedule",
    "ScheduleTransition",
]
