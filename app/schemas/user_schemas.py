"""
Caregiver account schemas
"""
from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime

from app.utils.time_windows import is_valid_timezone


class UserResponse(BaseModel):
    id: str
    email: Optional[str]
    clerk_id: str
    name: Optional[str]
    timezone: Optional[str]
    type: str
    is_active: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class UserTimezoneUpdate(BaseModel):
    timezone: str = Field(..., description="IANA zone, e.g. America/Chicago")

    @validator('timezone')
    def validate_timezone(cls, v):
        if not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone '{v}'")
        return v
