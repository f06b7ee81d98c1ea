"""Scheduling router - FastAPI endpoints for the production calendar"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_calendar_editor
from ...database import get_db
from ...models import User
from ...services.google_calendar_service import CalendarSyncService, sync_job_in_background
from ..pipeline.schemas import CalendarSyncResponse, JobResponse, serialize_job
from .schemas import (
    BenchJobResponse,
    DropRequest,
    GridResponse,
    MoveRequest,
    ReconcileResponse,
    ResizeRequest,
    ScheduleChangeResponse,
    ScheduleUpdateRequest,
    serialize_change,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["Scheduling"])


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


def _respond(change: dict, background_tasks: BackgroundTasks) -> ScheduleChangeResponse:
    # Calendar sync runs after the response; the saved schedule stands either way
    background_tasks.add_task(sync_job_in_background, change["job"].id)
    return serialize_change(change)


# ============================================================================
# VIEWS
# ============================================================================


@router.get("/bench", response_model=list[BenchJobResponse])
async def get_bench(
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Production-ready jobs waiting for dates"""
    return [
        BenchJobResponse(
            id=job.id,
            title=job.title,
            customerName=job.customer_name,
            stage=job.stage,
            valueEstimated=job.value_estimated or 0,
            color=job.color or "#1976D2",
            installer=job.installer,
            suggestedDuration=suggested,
        )
        for job, suggested in service.bench_jobs()
    ]


@router.get("/scheduled", response_model=list[JobResponse])
async def get_scheduled(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Jobs with dates, optionally only those overlapping [start, end]"""
    return [serialize_job(job, include_notes=False) for job in service.scheduled_jobs(start, end)]


@router.get("/grid", response_model=GridResponse)
async def get_month_grid(
    year: int = Query(..., ge=1970, le=2100),
    month: int = Query(..., ge=1, le=12),
    current_user: User = Depends(get_current_user),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Month view: padded weeks of day cells plus one block per job per day"""
    return GridResponse(**service.month_grid(year, month))


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_schedule(
    current_user: User = Depends(require_calendar_editor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Return SCHEDULED jobs without dates to the bench"""
    job_ids = service.reconcile(current_user)
    return ReconcileResponse(count=len(job_ids), jobIds=job_ids)


# ============================================================================
# ENGINE OPERATIONS
# ============================================================================


@router.post("/jobs/{job_id}/drop", response_model=ScheduleChangeResponse)
async def drop_job(
    job_id: int,
    data: DropRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_calendar_editor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Drop a bench job onto a day"""
    change = service.schedule_from_bench(job_id, data.dropDate, current_user, data.duration)
    return _respond(change, background_tasks)


@router.post("/jobs/{job_id}/move", response_model=ScheduleChangeResponse)
async def move_job(
    job_id: int,
    data: MoveRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_calendar_editor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    change = service.move_scheduled_job(job_id, data.newStartDate, current_user)
    return _respond(change, background_tasks)


@router.post("/jobs/{job_id}/resize", response_model=ScheduleChangeResponse)
async def resize_job(
    job_id: int,
    data: ResizeRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_calendar_editor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    change = service.resize_scheduled_job(job_id, data.edge, data.boundaryDate, current_user)
    return _respond(change, background_tasks)


@router.post("/jobs/{job_id}/unschedule", response_model=ScheduleChangeResponse)
async def unschedule_job(
    job_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_calendar_editor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Send a job back to the bench"""
    change = service.unschedule(job_id, current_user)
    return _respond(change, background_tasks)


@router.put("/jobs/{job_id}", response_model=ScheduleChangeResponse)
async def set_job_schedule(
    job_id: int,
    data: ScheduleUpdateRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_calendar_editor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Save the event editor: dates, installer, crew notes and recurrence"""
    change = service.set_schedule(
        job_id,
        data.startDate,
        data.endDate,
        current_user,
        installer=data.installer,
        crew_notes=data.crewNotes,
        recurrence=data.recurrence,
        color=data.color,
        title=data.title,
    )
    return _respond(change, background_tasks)


# ============================================================================
# EXTERNAL CALENDAR
# ============================================================================


@router.post("/jobs/{job_id}/calendar-sync", response_model=CalendarSyncResponse)
async def push_job_to_calendar(
    job_id: int,
    current_user: User = Depends(require_calendar_editor),
    db: Session = Depends(get_db),
):
    """Push a scheduled job to the external calendar now"""
    job = SchedulingService(db).get_job(job_id)
    await CalendarSyncService().push_job(job, db)
    return serialize_job(job, include_notes=False).calendar


@router.delete("/jobs/{job_id}/calendar-sync", response_model=CalendarSyncResponse)
async def remove_job_from_calendar(
    job_id: int,
    current_user: User = Depends(require_calendar_editor),
    db: Session = Depends(get_db),
):
    """Delete the job's external calendar event; its schedule is kept"""
    job = SchedulingService(db).get_job(job_id)
    await CalendarSyncService().remove_job(job, db)
    return serialize_job(job, include_notes=False).calendar
