"""Appointment schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...models import Appointment

APPOINTMENT_STATUSES = ("scheduled", "completed", "cancelled", "no_show")
TERMINAL_STATUSES = ("completed", "cancelled", "no_show")


class AppointmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    date: datetime
    time: str = Field(..., min_length=1, max_length=20)
    reason: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    jobId: Optional[int] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None


class AppointmentUpdate(BaseModel):
    """Details only; status changes go through complete/cancel/no-show"""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[datetime] = None
    time: Optional[str] = Field(None, min_length=1, max_length=20)
    reason: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None


class AppointmentResponse(BaseModel):
    id: int
    title: str
    date: datetime
    time: str
    reason: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: str
    jobId: Optional[int] = None
    jobTitle: Optional[str] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None
    completedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    totalPages: int
    currentPage: int
    total: int


def validate_status(status: Optional[str]) -> Optional[str]:
    if status is not None and status not in APPOINTMENT_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
    return status


def serialize_appointment(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        title=appointment.title,
        date=appointment.date,
        time=appointment.time,
        reason=appointment.reason,
        location=appointment.location,
        notes=appointment.notes,
        status=appointment.status,
        jobId=appointment.job_id,
        jobTitle=appointment.job.title if appointment.job else None,
        customerName=appointment.customer_name,
        customerPhone=appointment.customer_phone,
        customerEmail=appointment.customer_email,
        completedAt=appointment.completed_at,
        cancelledAt=appointment.cancelled_at,
        createdAt=appointment.created_at,
    )
