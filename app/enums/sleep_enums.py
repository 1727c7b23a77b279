"""
Sleep tracking and scheduling enums.
"""

from enum import Enum


class SessionType(str, Enum):
    NAP = "NAP"
    NIGHT_SLEEP = "NIGHT_SLEEP"


class SessionState(str, Enum):
    PENDING = "PENDING"
    ASLEEP = "ASLEEP"
    AWAKE = "AWAKE"
    COMPLETED = "COMPLETED"


class SessionEvent(str, Enum):
    FELL_ASLEEP = "fell_asleep"
    WOKE_UP = "woke_up"
    OUT_OF_CRIB = "out_of_crib"


class SleepContext(str, Enum):
    CRIB = "CRIB"
    AD_HOC = "AD_HOC"


class SleepLocation(str, Enum):
    CRIB = "CRIB"
    CAR = "CAR"
    STROLLER = "STROLLER"
    CARRIER = "CARRIER"
    SWING = "SWING"
    PLAYPEN = "PLAYPEN"
    OTHER = "OTHER"


class WakeType(str, Enum):
    QUIET = "QUIET"
    RESTLESS = "RESTLESS"
    CRYING = "CRYING"


class ScheduleType(str, Enum):
    THREE_NAP = "THREE_NAP"
    TWO_NAP = "TWO_NAP"
    ONE_NAP = "ONE_NAP"
    TRANSITION = "TRANSITION"


class NextActionType(str, Enum):
    NAP = "NAP"
    BEDTIME = "BEDTIME"
    WAIT = "WAIT"
    WAKE = "WAKE"


class NapStatus(str, Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    UPCOMING = "upcoming"


class TransitionPhase(str, Enum):
    WEEK1_2 = "week1_2"
    WEEK2_PLUS = "week2_plus"
    FINAL = "final"


class TrendPeriod(str, Enum):
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
