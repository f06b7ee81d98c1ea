"""Pipeline router - FastAPI endpoints for jobs, stage moves and archiving"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_pipeline_editor
from ...database import get_db
from ...models import User
from ...services.status_automation import auto_move_dead_estimates, preview_dead_estimates
from .schemas import (
    DeadEstimateSweepResponse,
    JobCreate,
    JobListResponse,
    JobResponse,
    JobsByMonth,
    JobUpdate,
    MoveStageRequest,
    NoteCreate,
    PipelineSummaryItem,
    serialize_job,
)
from .service import PipelineService
from .stages import StageInfo, list_stages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])
stages_router = APIRouter(prefix="/pipeline", tags=["Pipeline"])


def get_pipeline_service(db: Session = Depends(get_db)) -> PipelineService:
    """Dependency injection for PipelineService"""
    return PipelineService(db)


def _by_month(groups: list[dict]) -> list[JobsByMonth]:
    return [
        JobsByMonth(
            year=group["year"],
            month=group["month"],
            monthName=group["monthName"],
            jobs=[serialize_job(job, include_notes=False) for job in group["jobs"]],
        )
        for group in groups
    ]


@stages_router.get("/stages", response_model=list[StageInfo])
async def get_stages():
    """The ordered pipeline stages"""
    return list_stages()


# ============================================================================
# REPORTS AND AUTOMATION (registered before /{job_id})
# ============================================================================


@router.get("/pipeline/summary", response_model=list[PipelineSummaryItem])
async def get_pipeline_summary(
    current_user: User = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Job count and estimated value per stage"""
    return [PipelineSummaryItem(**item) for item in service.pipeline_summary()]


@router.get("/archive", response_model=list[JobsByMonth])
async def get_archived_jobs(
    current_user: User = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Archived jobs and dead estimates, grouped by month"""
    return _by_month(service.archived_by_month())


@router.get("/completed", response_model=list[JobsByMonth])
async def get_completed_jobs(
    current_user: User = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Closed jobs, grouped by month"""
    return _by_month(service.completed_by_month())


@router.post("/dead-estimates/auto-move", response_model=DeadEstimateSweepResponse)
async def run_dead_estimate_sweep(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Move stale sent estimates to the dead-estimate archive.
    Safe to call on every page load; a job is only ever moved once.
    """
    result = auto_move_dead_estimates(db)
    return DeadEstimateSweepResponse(
        message=f"Moved {result['count']} jobs to dead estimates",
        **result,
    )


@router.get("/dead-estimates/preview", response_model=list[JobResponse])
async def get_dead_estimate_preview(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Jobs the next sweep would move, without changing anything"""
    return [serialize_job(job, include_notes=False) for job in preview_dead_estimates(db)]


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=JobListResponse)
async def get_jobs(
    stage: Optional[str] = Query(None),
    assignedTo: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Active jobs (archived and dead estimates excluded)"""
    jobs, total = service.list_jobs(stage, assignedTo, search, page, limit)
    return JobListResponse(
        jobs=[serialize_job(job) for job in jobs],
        totalPages=service.page_count(total, limit),
        currentPage=page,
        total=total,
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    return serialize_job(service.get_job(job_id))


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    data: JobCreate,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Create a new job"""
    return serialize_job(service.create_job(data, current_user))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    data: JobUpdate,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Update a job's descriptive fields"""
    return serialize_job(service.update_job(job_id, data, current_user))


@router.post("/{job_id}/notes", response_model=JobResponse)
async def add_job_note(
    job_id: int,
    data: NoteCreate,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    return serialize_job(service.add_note(job_id, data.content, current_user))


# ============================================================================
# STAGE TRANSITIONS
# ============================================================================


@router.post("/{job_id}/move-stage", response_model=JobResponse)
async def move_job_stage(
    job_id: int,
    data: MoveStageRequest,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Move a job to any stage"""
    return serialize_job(service.move_to_stage(job_id, data.toStage, current_user, data.note))


@router.post("/{job_id}/next-stage", response_model=JobResponse)
async def move_job_to_next_stage(
    job_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Advance a job one stage"""
    return serialize_job(service.move_to_next_stage(job_id, current_user))


# ============================================================================
# ARCHIVE
# ============================================================================


@router.post("/{job_id}/archive", response_model=JobResponse)
async def archive_job(
    job_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    return serialize_job(service.archive(job_id, current_user))


@router.post("/{job_id}/unarchive", response_model=JobResponse)
async def unarchive_job(
    job_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    return serialize_job(service.unarchive(job_id, current_user))


@router.post("/{job_id}/move-to-dead-estimates", response_model=JobResponse)
async def move_job_to_dead_estimates(
    job_id: int,
    current_user: User = Depends(require_pipeline_editor),
    service: PipelineService = Depends(get_pipeline_service),
):
    return serialize_job(service.mark_dead_estimate(job_id, current_user))
