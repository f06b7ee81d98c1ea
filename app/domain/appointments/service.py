"""Appointment service - lifecycle of sales appointments"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import InvalidAppointmentTransitionError, NotFoundError, PipelineError
from ...models import Appointment, User
from ...shared.formatting import format_day
from ..pipeline.repository import JobRepository
from ..scheduling.time_calculator import end_of_day, start_of_day
from .repository import AppointmentRepository
from .schemas import TERMINAL_STATUSES, AppointmentCreate, AppointmentUpdate, validate_status

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service layer for appointments"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("❌ Failed to save appointment change, rolled back")
            raise

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def list_appointments(
        self, status: Optional[str] = None, day: Optional[date] = None, page: int = 1, limit: int = 100
    ) -> tuple[list[Appointment], int]:
        """Appointments in ``status`` (default: still scheduled), optionally on one day"""
        try:
            validate_status(status)
        except ValueError as e:
            raise PipelineError(str(e)) from None

        day_start = start_of_day(day) if day else None
        day_end = end_of_day(day) if day else None
        return self.repo.list_appointments(self.db, status or "scheduled", day_start, day_end, page, limit)

    def list_finished(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Appointment], int]:
        return self.repo.list_finished(self.db, start_date, end_date, page, limit)

    def create_appointment(self, data: AppointmentCreate, actor: Optional[User] = None) -> Appointment:
        """Create an appointment; a linked job gets an appointment note on its timeline"""
        job = None
        if data.jobId is not None:
            job = JobRepository.get_job(self.db, data.jobId)
            if not job:
                raise NotFoundError("Job", data.jobId)

        appointment = self.repo.create_appointment(
            self.db,
            title=data.title,
            date=data.date,
            time=data.time,
            reason=data.reason,
            location=data.location,
            notes=data.notes,
            job_id=data.jobId,
            customer_name=data.customerName,
            customer_phone=data.customerPhone,
            customer_email=data.customerEmail,
            created_by_id=actor.id if actor else None,
        )

        if job:
            JobRepository.add_note(
                self.db,
                job,
                f"Appointment scheduled: {appointment.title} on {format_day(appointment.date)} at {appointment.time}",
                created_by_id=actor.id if actor else None,
                is_appointment=True,
            )

        self._commit()
        self.db.refresh(appointment)
        logger.info(f"📆 Appointment {appointment.id} created for {appointment.date:%Y-%m-%d} {appointment.time}")
        return appointment

    def update_appointment(self, appointment_id: int, data: AppointmentUpdate) -> Appointment:
        appointment = self.get_appointment(appointment_id)

        field_map = {
            "title": "title",
            "date": "date",
            "time": "time",
            "reason": "reason",
            "location": "location",
            "notes": "notes",
            "customerName": "customer_name",
            "customerPhone": "customer_phone",
            "customerEmail": "customer_email",
        }
        for field, column in field_map.items():
            value = getattr(data, field)
            if value is not None:
                setattr(appointment, column, value)

        self._commit()
        self.db.refresh(appointment)
        return appointment

    def _finish(self, appointment_id: int, status: str) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.status in TERMINAL_STATUSES:
            raise InvalidAppointmentTransitionError(appointment.id, appointment.status, status)

        now = datetime.now()
        appointment.status = status
        if status == "completed":
            appointment.completed_at = now
        elif status == "cancelled":
            appointment.cancelled_at = now

        self._commit()
        self.db.refresh(appointment)
        logger.info(f"✅ Appointment {appointment.id} transitioned: scheduled → {status}")
        return appointment

    def complete(self, appointment_id: int) -> Appointment:
        return self._finish(appointment_id, "completed")

    def cancel(self, appointment_id: int) -> Appointment:
        return self._finish(appointment_id, "cancelled")

    def mark_no_show(self, appointment_id: int) -> Appointment:
        return self._finish(appointment_id, "no_show")

    def delete_appointment(self, appointment_id: int) -> dict:
        appointment = self.get_appointment(appointment_id)
        self.repo.delete_appointment(self.db, appointment)
        self._commit()
        logger.info(f"🗑️ Appointment {appointment_id} deleted")
        return {"message": "Appointment deleted successfully"}
