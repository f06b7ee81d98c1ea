"""Appointment router - FastAPI endpoints for sales appointments"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_pipeline_editor
from ...database import get_db
from ...models import User
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentUpdate,
    serialize_appointment,
)
from .service import AppointmentService

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def _page(appointments, total: int, page: int, limit: int) -> AppointmentListResponse:
    return AppointmentListResponse(
        appointments=[serialize_appointment(a) for a in appointments],
        totalPages=-(-total // limit),
        currentPage=page,
        total=total,
    )


@router.get("", response_model=AppointmentListResponse)
async def get_appointments(
    status: Optional[str] = Query(None, description="Defaults to scheduled"),
    day: Optional[date] = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments, total = service.list_appointments(status, day, page, limit)
    return _page(appointments, total, page, limit)


@router.get("/completed", response_model=AppointmentListResponse)
async def get_completed_appointments(
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Completed, cancelled and no-show appointments"""
    appointments, total = service.list_finished(startDate, endDate, page, limit)
    return _page(appointments, total, page, limit)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return serialize_appointment(service.get_appointment(appointment_id))


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(require_pipeline_editor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return serialize_appointment(service.create_appointment(data, current_user))


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: User = Depends(require_pipeline_editor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return serialize_appointment(service.update_appointment(appointment_id, data))


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return serialize_appointment(service.complete(appointment_id))


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return serialize_appointment(service.cancel(appointment_id))


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
async def mark_appointment_no_show(
    appointment_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return serialize_appointment(service.mark_no_show(appointment_id))


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.delete_appointment(appointment_id)
