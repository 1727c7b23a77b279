from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database.base import Base
import cuid


class Child(Base):
    __tablename__ = "children"

    id = Column(String(25), primary_key=True, index=True, default=lambda: cuid.cuid())
    name = Column(String(120), nullable=False)
    birth_date = Column(DateTime, nullable=True)
    photo_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    caregivers = relationship("ChildCaregiver", back_populates="child", cascade="all, delete-orphan")
    sleep_sessions = relationship("SleepSession", back_populates="child", cascade="all, delete-orphan")
    schedules = relationship("SleepSchedule", back_populates="child", cascade="all, delete-orphan")
    transitions = relationship("ScheduleTransition", back_populates="child", cascade="all, delete-orphan")


class ChildCaregiver(Base):
    """Access grant of a user to a child: ADMIN, CAREGIVER or VIEWER."""

    __tablename__ = "child_caregivers"

    id = Column(String(25), primary_key=True, index=True, default=lambda: cuid.cuid())
    child_id = Column(String(25), ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(25), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="CAREGIVER")
    status = Column(String(20), nullable=False, default="PENDING")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    child = relationship("Child", back_populates="caregivers")
    user = relationship("User", back_populates="caregiver_links")

    __table_args__ = (
        UniqueConstraint("child_id", "user_id", name="uq_child_caregiver"),
    )
