"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment
from .schemas import TERMINAL_STATUSES


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def list_appointments(
        db: Session,
        status: str = "scheduled",
        day_start: Optional[datetime] = None,
        day_end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Appointment], int]:
        """Appointments in one status, soonest first"""
        query = db.query(Appointment).filter(Appointment.status == status)
        if day_start is not None:
            query = query.filter(Appointment.date >= day_start)
        if day_end is not None:
            query = query.filter(Appointment.date <= day_end)

        total = query.count()
        appointments = (
            query.order_by(Appointment.date.asc(), Appointment.time.asc(), Appointment.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total

    @staticmethod
    def list_finished(
        db: Session,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Appointment], int]:
        """Completed, cancelled and no-show appointments, most recent first"""
        query = db.query(Appointment).filter(Appointment.status.in_(TERMINAL_STATUSES))
        if start_date is not None:
            query = query.filter(Appointment.date >= start_date)
        if end_date is not None:
            query = query.filter(Appointment.date <= end_date)

        total = query.count()
        appointments = (
            query.order_by(Appointment.date.desc(), Appointment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total

    @staticmethod
    def create_appointment(db: Session, **data) -> Appointment:
        appointment = Appointment(**data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
