from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Boolean, Text, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database.base import Base
import cuid


class SleepSession(Base):
    """
    One sleep attempt for a child: a crib nap, an ad-hoc nap or a night sleep.
    Lifecycle timestamps are timezone-aware; derived minute fields are recomputed
    on every mutation and never edited directly.
    """
    __tablename__ = "sleep_sessions"

    id = Column(String(25), primary_key=True, index=True, default=lambda: cuid.cuid())
    child_id = Column(String(25), ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_id = Column(String(25), ForeignKey("users.id"), nullable=True)

    session_type = Column(String(20), nullable=False)  # NAP | NIGHT_SLEEP
    nap_number = Column(Integer, nullable=True)
    is_ad_hoc = Column(Boolean, default=False, nullable=False)
    location = Column(String(20), default="CRIB", nullable=False)
    state = Column(String(20), default="PENDING", nullable=False, index=True)

    put_down_at = Column(DateTime(timezone=True), nullable=True)
    asleep_at = Column(DateTime(timezone=True), nullable=True)
    woke_up_at = Column(DateTime(timezone=True), nullable=True)
    out_of_crib_at = Column(DateTime(timezone=True), nullable=True)

    # Derived minutes
    total_minutes = Column(Integer, nullable=True)
    sleep_minutes = Column(Integer, nullable=True)
    settling_minutes = Column(Integer, nullable=True)
    post_wake_minutes = Column(Integer, nullable=True)
    awake_crib_minutes = Column(Integer, nullable=True)
    qualified_rest_minutes = Column(Integer, nullable=True)
    calculation_notes = Column(JSON, nullable=True)  # ["Woke up before falling asleep ..."]

    crying_minutes = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    timezone = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    child = relationship("Child", back_populates="sleep_sessions")
    sleep_cycles = relationship(
        "SleepCycle",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SleepCycle.woke_up_at",
    )

    __table_args__ = (
        Index("ix_sleep_sessions_child_put_down", "child_id", "put_down_at"),
        Index("ix_sleep_sessions_child_state", "child_id", "state"),
    )

    def __repr__(self):
        return f"<SleepSession {self.session_type} #{self.nap_number} ({self.state})>"


class SleepCycle(Base):
    """A wake and optional re-settle inside a night sleep."""

    __tablename__ = "sleep_cycles"

    id = Column(String(25), primary_key=True, index=True, default=lambda: cuid.cuid())
    session_id = Column(String(25), ForeignKey("sleep_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    cycle_number = Column(Integer, nullable=False)
    woke_up_at = Column(DateTime(timezone=True), nullable=False)
    fell_back_asleep_at = Column(DateTime(timezone=True), nullable=True)  # null while still awake
    wake_type = Column(String(20), default="QUIET", nullable=False)

    sleep_minutes = Column(Integer, nullable=True)
    awake_minutes = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session = relationship("SleepSession", back_populates="sleep_cycles")
