from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Boolean, Text, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database.base import Base
import cuid


class SleepSchedule(Base):
    """
    Per-child schedule configuration. Clock fields are "HH:MM" strings in the
    child's local zone. A schedule is replaced wholesale on edit: the old row
    is deactivated and a new one inserted.
    """
    __tablename__ = "sleep_schedules"

    id = Column(String(25), primary_key=True, index=True, default=lambda: cuid.cuid())
    child_id = Column(String(25), ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # THREE_NAP | TWO_NAP | ONE_NAP | TRANSITION
    is_active = Column(Boolean, default=True, nullable=False)

    # Wake windows (minutes)
    wake_window_1_min = Column(Integer, nullable=False)
    wake_window_1_max = Column(Integer, nullable=False)
    wake_window_2_min = Column(Integer, nullable=True)
    wake_window_2_max = Column(Integer, nullable=True)
    wake_window_3_min = Column(Integer, nullable=True)
    wake_window_3_max = Column(Integer, nullable=True)

    # Nap bounds
    nap1_earliest = Column(String(5), nullable=True)
    nap1_latest_start = Column(String(5), nullable=True)
    nap1_max_duration = Column(Integer, nullable=True)
    nap1_end_by = Column(String(5), nullable=True)
    nap2_earliest = Column(String(5), nullable=True)
    nap2_latest_start = Column(String(5), nullable=True)
    nap2_max_duration = Column(Integer, nullable=True)
    nap2_end_by = Column(String(5), nullable=True)
    nap2_exception_duration = Column(Integer, nullable=True)

    # Bedtime and morning
    bedtime_earliest = Column(String(5), nullable=False)
    bedtime_latest = Column(String(5), nullable=False)
    bedtime_goal_start = Column(String(5), nullable=True)
    bedtime_goal_end = Column(String(5), nullable=True)
    wake_time_earliest = Column(String(5), nullable=False)
    wake_time_latest = Column(String(5), nullable=False)
    must_wake_by = Column(String(5), nullable=True)

    # Caps
    day_sleep_cap = Column(Integer, nullable=True)
    nap_cap_minutes = Column(Integer, nullable=True)
    minimum_crib_minutes = Column(Integer, nullable=True)

    # Reminder offsets (delivery is handled elsewhere)
    nap_reminder_minutes = Column(Integer, nullable=True)
    bedtime_reminder_minutes = Column(Integer, nullable=True)

    created_by_id = Column(String(25), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    child = relationship("Child", back_populates="schedules")

    __table_args__ = (
        Index("ix_sleep_schedules_child_active", "child_id", "is_active"),
    )


class ScheduleTransition(Base):
    """An in-progress or finished 2-nap to 1-nap migration."""

    __tablename__ = "schedule_transitions"

    id = Column(String(25), primary_key=True, index=True, default=lambda: cuid.cuid())
    child_id = Column(String(25), ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    from_type = Column(String(20), nullable=False, default="TWO_NAP")
    to_type = Column(String(20), nullable=False, default="ONE_NAP")
    start_date = Column(DateTime(timezone=True), nullable=False)
    current_week = Column(Integer, nullable=False, default=1)
    target_weeks = Column(Integer, nullable=False, default=6)
    current_nap_time = Column(String(5), nullable=False, default="11:30")
    last_push_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    child = relationship("Child", back_populates="transitions")
