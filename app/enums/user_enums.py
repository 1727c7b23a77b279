"""
User and caregiver enums for the application.
"""

from enum import Enum


class CaregiverRole(str, Enum):
    ADMIN = "ADMIN"
    CAREGIVER = "CAREGIVER"
    VIEWER = "VIEWER"


class InviteStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
