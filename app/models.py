import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    # super_admin, admin, user, viewer - admins may modify the pipeline and calendar
    role = Column(String(50), default="user", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Job(Base):
    """A woodworking job moving through the sales/production pipeline"""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    title = Column(String(255), nullable=False)
    customer_name = Column(String(255), nullable=True)  # Customers live in the CRM
    # Stage codes come from domain.pipeline.stages - stored as plain strings so
    # legacy codes (e.g. CONTRACT_SIGNED) still load
    stage = Column(String(50), default="ESTIMATE_IN_PROGRESS", nullable=False, index=True)
    value_estimated = Column(Float, default=0, nullable=False)
    value_contracted = Column(Float, default=0, nullable=False)
    source = Column(String(50), nullable=True)  # referral, yelp, instagram, website, ...
    color = Column(String(7), default="#1976D2", nullable=False)  # Calendar display color
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Estimate tracking
    estimate_amount = Column(Float, nullable=True)
    estimate_sent_at = Column(DateTime, nullable=True, index=True)

    # Schedule - both null means the job sits on the bench
    schedule_start = Column(DateTime, nullable=True, index=True)
    schedule_end = Column(DateTime, nullable=True)
    installer = Column(String(100), nullable=True)  # Installer name for calendar ordering
    crew_notes = Column(Text, nullable=True)
    recurrence_type = Column(String(20), default="none", nullable=False)  # none, daily, weekly, monthly, yearly
    recurrence_interval = Column(Integer, default=1, nullable=False)
    recurrence_count = Column(Integer, default=10, nullable=False)

    # External calendar sync
    google_event_id = Column(String(255), nullable=True)
    calendar_status = Column(String(20), default="none", nullable=False)  # created, updated, error, none
    calendar_synced_at = Column(DateTime, nullable=True)

    # Archive instead of delete
    is_archived = Column(Boolean, default=False, nullable=False, index=True)
    archived_at = Column(DateTime, nullable=True)
    archived_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Dead estimates - estimates sent but no response within the threshold
    is_dead_estimate = Column(Boolean, default=False, nullable=False, index=True)
    moved_to_dead_estimate_at = Column(DateTime, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # Python clock, same as the naive datetime.now() cutoffs the sweeper compares against
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    notes = relationship(
        "JobNote",
        back_populates="job",
        order_by="JobNote.id",
        cascade="all, delete-orphan",
    )
    appointments = relationship("Appointment", back_populates="job")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])

    @property
    def is_scheduled(self) -> bool:
        return self.schedule_start is not None

    @property
    def is_active(self) -> bool:
        return not self.is_archived and not self.is_dead_estimate


class JobNote(Base):
    """Append-only timeline entry on a job"""

    __tablename__ = "job_notes"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # Null for system sweeps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    is_stage_change = Column(Boolean, default=False, nullable=False)
    is_schedule_change = Column(Boolean, default=False, nullable=False)
    is_appointment = Column(Boolean, default=False, nullable=False)

    job = relationship("Job", back_populates="notes")


class Appointment(Base):
    """Sales appointment, standalone or linked to a job"""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    time = Column(String(20), nullable=False)  # "10:00 AM" or "14:30"
    reason = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    # Status workflow: scheduled → completed | cancelled | no_show (all terminal)
    status = Column(String(20), default="scheduled", nullable=False, index=True)

    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=True, index=True)
    # Customer info if not in the CRM yet
    customer_name = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_email = Column(String(255), nullable=True)

    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    job = relationship("Job", back_populates="appointments")
