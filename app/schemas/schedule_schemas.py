"""
Sleep schedule and transition schemas
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime

from app.enums.sleep_enums import ScheduleType
from app.schemas.common import validate_clock_time

_CLOCK_FIELDS = (
    'nap1_earliest', 'nap1_latest_start', 'nap1_end_by',
    'nap2_earliest', 'nap2_latest_start', 'nap2_end_by',
    'bedtime_earliest', 'bedtime_latest', 'bedtime_goal_start', 'bedtime_goal_end',
    'wake_time_earliest', 'wake_time_latest', 'must_wake_by',
)


class ScheduleConfig(BaseModel):
    """Schedule settings the calculator reads; clock fields are local "HH:MM" strings"""
    type: ScheduleType

    wake_window_1_min: int = Field(..., ge=30, le=480)
    wake_window_1_max: int = Field(..., ge=30, le=480)
    wake_window_2_min: Optional[int] = Field(None, ge=30, le=480)
    wake_window_2_max: Optional[int] = Field(None, ge=30, le=480)
    wake_window_3_min: Optional[int] = Field(None, ge=30, le=480)
    wake_window_3_max: Optional[int] = Field(None, ge=30, le=480)

    nap1_earliest: Optional[str] = None
    nap1_latest_start: Optional[str] = None
    nap1_max_duration: Optional[int] = Field(None, ge=15, le=240)
    nap1_end_by: Optional[str] = None
    nap2_earliest: Optional[str] = None
    nap2_latest_start: Optional[str] = None
    nap2_max_duration: Optional[int] = Field(None, ge=15, le=240)
    nap2_end_by: Optional[str] = None
    nap2_exception_duration: Optional[int] = Field(None, ge=15, le=240)

    bedtime_earliest: str
    bedtime_latest: str
    bedtime_goal_start: Optional[str] = None
    bedtime_goal_end: Optional[str] = None
    wake_time_earliest: str
    wake_time_latest: str
    must_wake_by: Optional[str] = None

    day_sleep_cap: Optional[int] = Field(None, ge=0, le=720)
    nap_cap_minutes: Optional[int] = Field(None, ge=15, le=240)
    minimum_crib_minutes: Optional[int] = Field(None, ge=30, le=180)

    nap_reminder_minutes: Optional[int] = Field(None, ge=0, le=120)
    bedtime_reminder_minutes: Optional[int] = Field(None, ge=0, le=120)

    @validator(*_CLOCK_FIELDS)
    def validate_clock_fields(cls, v):
        return validate_clock_time(v)

    @validator('wake_window_1_max')
    def validate_wake_window_1(cls, v, values):
        low = values.get('wake_window_1_min')
        if low is not None and v < low:
            raise ValueError("wake_window_1_max must be >= wake_window_1_min")
        return v

    @validator('wake_window_2_max')
    def validate_wake_window_2(cls, v, values):
        low = values.get('wake_window_2_min')
        if v is not None and low is not None and v < low:
            raise ValueError("wake_window_2_max must be >= wake_window_2_min")
        return v

    @validator('wake_window_3_max')
    def validate_wake_window_3(cls, v, values):
        low = values.get('wake_window_3_min')
        if v is not None and low is not None and v < low:
            raise ValueError("wake_window_3_max must be >= wake_window_3_min")
        return v

    class Config:
        from_attributes = True


class ScheduleResponse(ScheduleConfig):
    id: str
    child_id: str
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class TransitionStart(BaseModel):
    target_weeks: int = Field(6, ge=2, le=6)
    starting_nap_time: str = "11:30"
    notes: Optional[str] = Field(None, max_length=500)

    @validator('starting_nap_time')
    def validate_nap_time(cls, v):
        return validate_clock_time(v)


class TransitionProgress(BaseModel):
    new_nap_time: Optional[str] = None
    current_week: Optional[int] = Field(None, ge=1, le=12)
    target_weeks: Optional[int] = Field(None, ge=2, le=6)
    notes: Optional[str] = Field(None, max_length=500)
    complete: bool = False

    @validator('new_nap_time')
    def validate_nap_time(cls, v):
        return validate_clock_time(v)


class TransitionResponse(BaseModel):
    id: str
    child_id: str
    from_type: ScheduleType
    to_type: ScheduleType
    start_date: datetime
    current_week: int
    target_weeks: int
    current_nap_time: str
    last_push_at: Optional[datetime]
    notes: Optional[str]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    class Config:
        from_attributes = True


class TransitionHistoryResponse(BaseModel):
    transitions: List[TransitionResponse]
