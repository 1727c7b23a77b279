"""
Sleep analytics schemas: per-day rollups, weekly averages, trends and period comparison
"""
from pydantic import BaseModel, validator
from typing import Optional, List
from datetime import date

from app.enums import TrendDirection, TrendPeriod


class DailySleepStats(BaseModel):
    date: date
    total_sleep_minutes: int = 0
    nap_count: int = 0
    nap_minutes: int = 0
    night_sleep_minutes: int = 0
    average_nap_length: Optional[int] = None
    longest_nap: Optional[int] = None
    shortest_nap: Optional[int] = None
    first_nap_start: Optional[str] = None
    last_nap_end: Optional[str] = None
    bedtime: Optional[str] = None
    wake_time: Optional[str] = None
    crying_minutes: Optional[int] = None


class WeeklySummaryResponse(BaseModel):
    week_start: date
    week_end: date
    timezone: str
    avg_total_sleep_minutes: int
    avg_nap_count: float
    avg_nap_minutes: int
    avg_night_sleep_minutes: int
    avg_nap_length: Optional[int] = None
    avg_bedtime: Optional[str] = None
    avg_wake_time: Optional[str] = None
    days_with_data: int
    daily_breakdown: List[DailySleepStats]


class TrendPoint(BaseModel):
    date: date
    total_sleep_minutes: int
    nap_minutes: int
    night_sleep_minutes: int
    nap_count: int


class TrendAverages(BaseModel):
    total_sleep_minutes: int
    nap_minutes: int
    night_sleep_minutes: int
    nap_count: float


class TrendDirections(BaseModel):
    total_sleep: TrendDirection
    nap_count: TrendDirection
    nap_length: TrendDirection


class SleepTrendResponse(BaseModel):
    period: TrendPeriod
    timezone: str
    data_points: List[TrendPoint]
    averages: TrendAverages
    trends: TrendDirections


class ComparisonRequest(BaseModel):
    period1_start: date
    period1_end: date
    period2_start: date
    period2_end: date

    @validator('period1_end')
    def validate_period1(cls, v, values):
        start = values.get('period1_start')
        if start is not None and v < start:
            raise ValueError("period1_end cannot be before period1_start")
        return v

    @validator('period2_end')
    def validate_period2(cls, v, values):
        start = values.get('period2_start')
        if start is not None and v < start:
            raise ValueError("period2_end cannot be before period2_start")
        return v


class PeriodAverages(BaseModel):
    start: date
    end: date
    avg_total_sleep: int
    avg_nap_count: float
    days_with_data: int


class PeriodChanges(BaseModel):
    total_sleep_change: int
    total_sleep_change_percent: int
    nap_count_change: float


class ComparisonResponse(BaseModel):
    period1: PeriodAverages
    period2: PeriodAverages
    changes: PeriodChanges
