"""
Schedule calculator, next-action and transition schemas
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime

from app.enums.sleep_enums import NextActionType, NapStatus, ScheduleType, SleepLocation, TransitionPhase
from app.schemas.common import validate_clock_time


class TimeWindow(BaseModel):
    """Put-down window; always earliest <= recommended <= latest"""
    earliest: datetime
    latest: datetime
    recommended: datetime


class NapActual(BaseModel):
    """A nap already observed today"""
    nap_number: int
    duration_minutes: int = Field(..., ge=0)
    ended_at: Optional[datetime] = None


class NapRecommendation(BaseModel):
    nap_number: int
    window: TimeWindow
    max_duration: int
    end_by: Optional[datetime] = None
    skip_recommended: bool = False
    notes: List[str] = Field(default_factory=list)


class BedtimeRecommendation(BaseModel):
    window: TimeWindow
    notes: List[str] = Field(default_factory=list)


class DayScheduleRecommendation(BaseModel):
    schedule_type: ScheduleType
    wake_time: datetime
    timezone: str
    naps: List[NapRecommendation]
    bedtime: BedtimeRecommendation
    total_max_day_sleep: int
    warnings: List[str] = Field(default_factory=list)
    is_transition: bool = False
    transition_week: Optional[int] = None


class NextActionRecommendation(BaseModel):
    action: NextActionType
    nap_number: Optional[int] = None
    window: Optional[TimeWindow] = None
    minutes_until: Optional[int] = None
    minutes_overdue: Optional[int] = None
    message: str
    notes: List[str] = Field(default_factory=list)


class DayScheduleRequest(BaseModel):
    """Day-schedule query"""
    wake_time: str = Field(..., description="Morning wake time in HH:MM")
    actual_nap_durations: Optional[List[int]] = Field(None, description="Minutes for each completed nap, in order")
    nap_end_times: Optional[List[datetime]] = None

    @validator('wake_time')
    def validate_wake_time(cls, v):
        return validate_clock_time(v)

    @validator('actual_nap_durations')
    def validate_durations(cls, v):
        if v is not None and any(d < 0 for d in v):
            raise ValueError("Nap durations cannot be negative")
        return v


class BedtimeAdjustmentRequest(BaseModel):
    wake_time: str
    total_nap_minutes: int = Field(..., ge=0, le=720)

    @validator('wake_time')
    def validate_wake_time(cls, v):
        return validate_clock_time(v)


class NapStatusItem(BaseModel):
    nap_number: int
    status: NapStatus
    window: Optional[TimeWindow] = None
    session_id: Optional[str] = None
    sleep_minutes: Optional[int] = None
    qualified_rest_minutes: Optional[int] = None
    skip_recommended: bool = False


class AdHocNapSummary(BaseModel):
    session_id: str
    location: SleepLocation
    asleep_at: Optional[datetime]
    woke_up_at: Optional[datetime]
    sleep_minutes: Optional[int]
    qualified_rest_minutes: Optional[int]


class TodaySummaryResponse(BaseModel):
    wake_time: datetime
    wake_time_source: str  # "night_session" | "default"
    schedule: DayScheduleRecommendation
    next_action: NextActionRecommendation
    naps: List[NapStatusItem]
    ad_hoc_naps: List[AdHocNapSummary]
    completed_naps: int
    required_naps: int
    total_qualified_minutes: int
    nap_goal_minutes: int
    expected_day_sleep_minutes: int
    sleep_debt_minutes: int
    sleep_debt_note: Optional[str] = None
    ad_hoc_bedtime_adjustment_minutes: int = 0
    bedtime_finalized: bool


class PaceOption(BaseModel):
    weeks: int
    label: str
    guidance: str
    is_fast_track: bool


class TransitionProgressResponse(BaseModel):
    phase: TransitionPhase
    current_week: int
    target_weeks: int
    progress_percent: float
    current_nap_time: str
    target_nap_time: str
    nap_time_progress_percent: float
    days_in_transition: int
    pace: PaceOption
    fast_track_tips: List[str] = Field(default_factory=list)
    next_milestone: str
    minimum_crib_minutes: int
    is_completed: bool = False


class NapPushReadiness(BaseModel):
    ready: bool
    good_nap_count: int
    total_naps: int
    days_since_last_push: Optional[int]
    current_nap_time: str
    suggested_nap_time: Optional[str] = None
    reason: str


class Crib90Compliance(BaseModel):
    session_id: str
    compliant: bool
    minutes_in_crib: int
    required_minutes: int
    minutes_remaining: int
    message: str
