"""
Child profile schemas
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import date, datetime

from app.enums import CaregiverRole


def _validate_photo_url(v):
    if v is not None and not v.startswith(("http://", "https://")):
        raise ValueError("photo_url must be an http(s) URL")
    return v


class ChildCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    birth_date: date
    photo_url: Optional[str] = Field(None, max_length=500)

    @validator('name')
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @validator('photo_url')
    def validate_photo_url(cls, v):
        return _validate_photo_url(v)


class ChildUpdate(BaseModel):
    """Only the fields sent are changed; photo_url may be cleared with null."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    birth_date: Optional[date] = None
    photo_url: Optional[str] = Field(None, max_length=500)

    @validator('name')
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name is required")
        return v.strip() if v is not None else v

    @validator('photo_url')
    def validate_photo_url(cls, v):
        return _validate_photo_url(v)


class CaregiverInfo(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: CaregiverRole
    status: str
    is_active: bool


class ChildResponse(BaseModel):
    id: str
    name: str
    birth_date: Optional[date] = None
    photo_url: Optional[str] = None
    role: CaregiverRole
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChildDetailResponse(ChildResponse):
    caregivers: List[CaregiverInfo] = []


class ChildListResponse(BaseModel):
    children: List[ChildResponse]
