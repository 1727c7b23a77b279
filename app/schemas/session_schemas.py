"""
Sleep session and wake cycle schemas
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime, date

from app.enums.sleep_enums import SessionEvent, SessionState, SessionType, SleepLocation, WakeType
from app.utils.time_windows import as_utc

_TIMESTAMP_ORDER = ("put_down_at", "asleep_at", "woke_up_at", "out_of_crib_at")


def _ensure_not_before_earlier(name, value, values):
    """Timestamps supplied together in one payload must be in lifecycle order."""
    if value is None:
        return value
    for earlier in _TIMESTAMP_ORDER[:_TIMESTAMP_ORDER.index(name)]:
        prior = values.get(earlier)
        if prior is not None and as_utc(value) < as_utc(prior):
            raise ValueError(f"{name} cannot be before {earlier}")
    return value


# ---- engine results ----

class CycleDurations(BaseModel):
    cycle_number: int
    sleep_minutes: Optional[int] = None
    awake_minutes: Optional[int] = None


class SessionDurations(BaseModel):
    """Derived minutes for one session; recomputed from timestamps every time"""
    total_minutes: Optional[int] = None
    sleep_minutes: Optional[int] = None
    settling_minutes: Optional[int] = None
    post_wake_minutes: Optional[int] = None
    awake_crib_minutes: Optional[int] = None
    qualified_rest_minutes: Optional[int] = None
    cycles: List[CycleDurations] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


# ---- requests ----

class SessionCreate(BaseModel):
    session_type: SessionType
    nap_number: Optional[int] = Field(None, ge=1, le=3)
    put_down_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


class AdHocSessionCreate(BaseModel):
    location: SleepLocation
    asleep_at: datetime
    woke_up_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)

    @validator('location')
    def validate_location(cls, v):
        if v == SleepLocation.CRIB:
            raise ValueError("Ad-hoc naps must happen outside the crib")
        return v

    @validator('woke_up_at')
    def validate_woke_up_at(cls, v, values):
        asleep_at = values.get('asleep_at')
        if v is not None and asleep_at is not None and as_utc(v) < as_utc(asleep_at):
            raise ValueError("woke_up_at cannot be before asleep_at")
        return v


class SessionUpdate(BaseModel):
    """An event, retroactive corrections, or both"""
    event: Optional[SessionEvent] = None
    put_down_at: Optional[datetime] = None
    asleep_at: Optional[datetime] = None
    woke_up_at: Optional[datetime] = None
    out_of_crib_at: Optional[datetime] = None
    crying_minutes: Optional[int] = Field(None, ge=0, le=180)
    notes: Optional[str] = Field(None, max_length=500)

    @validator('asleep_at')
    def validate_asleep_at(cls, v, values):
        return _ensure_not_before_earlier('asleep_at', v, values)

    @validator('woke_up_at')
    def validate_woke_up_at(cls, v, values):
        return _ensure_not_before_earlier('woke_up_at', v, values)

    @validator('out_of_crib_at')
    def validate_out_of_crib_at(cls, v, values):
        return _ensure_not_before_earlier('out_of_crib_at', v, values)


class CycleCreate(BaseModel):
    woke_up_at: datetime
    fell_back_asleep_at: Optional[datetime] = None
    wake_type: WakeType = WakeType.QUIET

    @validator('fell_back_asleep_at')
    def validate_fell_back(cls, v, values):
        woke_up_at = values.get('woke_up_at')
        if v is not None and woke_up_at is not None and as_utc(v) < as_utc(woke_up_at):
            raise ValueError("fell_back_asleep_at cannot be before woke_up_at")
        return v


class CycleUpdate(BaseModel):
    """Only fields that are sent are applied; fell_back_asleep_at may be sent as null"""
    woke_up_at: Optional[datetime] = None
    fell_back_asleep_at: Optional[datetime] = None
    wake_type: Optional[WakeType] = None


# ---- responses ----

class CycleResponse(BaseModel):
    id: str
    cycle_number: int
    woke_up_at: datetime
    fell_back_asleep_at: Optional[datetime]
    wake_type: WakeType
    sleep_minutes: Optional[int]
    awake_minutes: Optional[int]

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    id: str
    child_id: str
    session_type: SessionType
    nap_number: Optional[int]
    is_ad_hoc: bool
    location: SleepLocation
    state: SessionState
    put_down_at: Optional[datetime]
    asleep_at: Optional[datetime]
    woke_up_at: Optional[datetime]
    out_of_crib_at: Optional[datetime]
    total_minutes: Optional[int]
    sleep_minutes: Optional[int]
    settling_minutes: Optional[int]
    post_wake_minutes: Optional[int]
    awake_crib_minutes: Optional[int]
    qualified_rest_minutes: Optional[int]
    calculation_notes: List[str] = Field(default_factory=list)
    crying_minutes: Optional[int]
    notes: Optional[str]
    timezone: Optional[str]
    cycles: List[CycleResponse] = Field(default_factory=list)
    wake_up_count: int = 0
    total_cycle_sleep_minutes: Optional[int] = None
    total_awake_minutes: Optional[int] = None
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class SessionListResponse(BaseModel):
    sessions: List[SessionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class DailySummaryResponse(BaseModel):
    date: date
    timezone: str
    nap_count: int
    total_nap_minutes: int
    total_night_minutes: int
    total_qualified_rest_minutes: int
    night_wake_count: int
    total_awake_minutes: int
    sessions: List[SessionResponse]


class RecalculateResponse(BaseModel):
    date: date
    recalculated: int
