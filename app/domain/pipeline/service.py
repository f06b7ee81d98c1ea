"""Pipeline service - stage transitions, archiving and pipeline reports"""

import logging
import math
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import (
    ArchiveStateError,
    InvalidScheduleError,
    InvalidStageError,
    NotFoundError,
    SameStageError,
    TerminalStageError,
)
from ...models import Job, User
from ...shared.formatting import format_timestamp
from .repository import JobRepository
from .schemas import JobCreate, JobUpdate
from .stages import (
    ALL_STAGES,
    ESTIMATE_IN_PROGRESS,
    ESTIMATE_SENT,
    SCHEDULED,
    is_valid_stage,
    next_stage,
    stage_label,
)

logger = logging.getLogger(__name__)


def _actor_id(actor: Optional[User]) -> Optional[int]:
    return actor.id if actor else None


class PipelineService:
    """Service layer for the job pipeline"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()

    def _commit(self, job: Job) -> Job:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"❌ Failed to persist job {job.id}")
            raise
        self.db.refresh(job)
        return job

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def get_job(self, job_id: int) -> Job:
        job = self.repo.get_job(self.db, job_id)
        if not job:
            raise NotFoundError("Job", job_id)
        return job

    def list_jobs(
        self,
        stage: Optional[str] = None,
        assigned_to_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Job], int]:
        if stage and not is_valid_stage(stage):
            raise InvalidStageError(stage)
        return self.repo.list_active_jobs(self.db, stage, assigned_to_id, search, page, limit)

    def create_job(self, data: JobCreate, actor: Optional[User] = None) -> Job:
        """Create a job, by default at the start of the sales phase"""
        stage = data.stage or ESTIMATE_IN_PROGRESS
        if not is_valid_stage(stage):
            raise InvalidStageError(stage)
        if stage == SCHEDULED:
            raise InvalidScheduleError("New jobs are scheduled from the bench, not created as SCHEDULED")

        job = self.repo.create_job(
            self.db,
            title=data.title,
            customer_name=data.customerName,
            stage=stage,
            value_estimated=data.valueEstimated,
            value_contracted=data.valueContracted,
            source=data.source,
            color=data.color or "#1976D2",
            assigned_to_id=data.assignedToId,
            estimate_sent_at=datetime.now() if stage == ESTIMATE_SENT else None,
            created_by_id=_actor_id(actor),
        )
        if data.note:
            self.repo.add_note(self.db, job, data.note, created_by_id=_actor_id(actor))

        self._commit(job)
        logger.info(f"🆕 Job {job.id} '{job.title}' created in stage {job.stage}")
        return job

    def update_job(self, job_id: int, data: JobUpdate, actor: Optional[User] = None) -> Job:
        """Update descriptive fields; stage and schedule have their own operations"""
        job = self.get_job(job_id)

        field_map = {
            "title": "title",
            "customerName": "customer_name",
            "valueEstimated": "value_estimated",
            "valueContracted": "value_contracted",
            "source": "source",
            "color": "color",
            "assignedToId": "assigned_to_id",
            "estimateAmount": "estimate_amount",
            "estimateSentAt": "estimate_sent_at",
            "installer": "installer",
            "crewNotes": "crew_notes",
        }
        updates = {
            column: getattr(data, field)
            for field, column in field_map.items()
            if getattr(data, field) is not None
        }
        self.repo.update_job(self.db, job, **updates)
        self._commit(job)
        logger.info(f"✏️ Job {job.id} updated: {sorted(updates)}")
        return job

    def add_note(self, job_id: int, content: str, actor: Optional[User] = None) -> Job:
        job = self.get_job(job_id)
        self.repo.add_note(self.db, job, content, created_by_id=_actor_id(actor))
        return self._commit(job)

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def move_to_stage(
        self,
        job_id: int,
        to_stage: str,
        actor: Optional[User] = None,
        note: Optional[str] = None,
    ) -> Job:
        """
        Move a job to any registered stage, forwards or backwards.

        Raises:
            NotFoundError: unknown job id
            InvalidStageError: ``to_stage`` is not in the registry
            SameStageError: the job is already in ``to_stage`` (nothing is written)
            InvalidScheduleError: ``to_stage`` is SCHEDULED but the job has no dates
        """
        job = self.get_job(job_id)

        if not is_valid_stage(to_stage):
            raise InvalidStageError(to_stage)
        if job.stage == to_stage:
            raise SameStageError(job.id, to_stage)
        if to_stage == SCHEDULED and job.schedule_start is None:
            # Only the scheduling engine puts jobs on the calendar, together with dates
            raise InvalidScheduleError(f"Job {job.id} has no dates; schedule it from the bench instead")

        from_stage = job.stage
        now = datetime.now()
        job.stage = to_stage
        if to_stage == ESTIMATE_SENT:
            # Dead-estimate clock starts when the estimate goes out
            job.estimate_sent_at = now

        content = note or f"Moved from {stage_label(from_stage)} to {stage_label(to_stage)}"
        self.repo.add_note(
            self.db, job, content, created_by_id=_actor_id(actor), is_stage_change=True, created_at=now
        )
        self._commit(job)

        logger.info(f"✅ Job {job.id} transitioned: {from_stage} → {to_stage}")
        return job

    def move_to_next_stage(self, job_id: int, actor: Optional[User] = None) -> Job:
        """Advance a job to its default successor stage"""
        job = self.get_job(job_id)
        successor = next_stage(job.stage)
        if successor is None:
            raise TerminalStageError(job.id, job.stage)
        return self.move_to_stage(job.id, successor, actor)

    # ------------------------------------------------------------------
    # Archive
    # ------------------------------------------------------------------

    def archive(self, job_id: int, actor: Optional[User] = None) -> Job:
        """Archive a job without touching its stage"""
        job = self.get_job(job_id)
        if job.is_archived:
            raise ArchiveStateError(f"Job {job.id} is already archived")
        if job.is_dead_estimate:
            raise ArchiveStateError(f"Job {job.id} is already a dead estimate")

        now = datetime.now()
        job.is_archived = True
        job.archived_at = now
        job.archived_by_id = _actor_id(actor)
        self.repo.add_note(
            self.db, job, f"Job archived on {format_timestamp(now)}", created_by_id=_actor_id(actor), created_at=now
        )
        self._commit(job)

        logger.info(f"📦 Job {job.id} archived (stage {job.stage})")
        return job

    def unarchive(self, job_id: int, actor: Optional[User] = None) -> Job:
        """Restore a manually archived job to the active pipeline"""
        job = self.get_job(job_id)
        if not job.is_archived:
            raise ArchiveStateError(f"Job {job.id} is not archived")

        now = datetime.now()
        job.is_archived = False
        job.archived_at = None
        job.archived_by_id = None
        self.repo.add_note(
            self.db,
            job,
            f"Job restored from archive on {format_timestamp(now)}",
            created_by_id=_actor_id(actor),
            created_at=now,
        )
        self._commit(job)

        logger.info(f"📤 Job {job.id} restored from archive")
        return job

    def mark_dead_estimate(self, job_id: int, actor: Optional[User] = None) -> Job:
        """Manually move a job to the dead-estimate archive"""
        job = self.get_job(job_id)
        if job.is_dead_estimate:
            raise ArchiveStateError(f"Job {job.id} is already marked as dead estimate")

        now = datetime.now()
        job.is_dead_estimate = True
        job.moved_to_dead_estimate_at = now
        self.repo.add_note(
            self.db,
            job,
            f"Job moved to dead estimates on {format_timestamp(now)}",
            created_by_id=_actor_id(actor),
            created_at=now,
        )
        self._commit(job)

        logger.info(f"🪦 Job {job.id} marked as dead estimate")
        return job

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def pipeline_summary(self) -> list[dict]:
        """Count and estimated value of active jobs in every stage, in pipeline order"""
        totals = self.repo.stage_totals(self.db)
        summary = []
        for stage in ALL_STAGES:
            count, total_value = totals.get(stage, (0, 0.0))
            summary.append(
                {"stage": stage, "label": stage_label(stage), "count": count, "totalValue": total_value}
            )
        return summary

    def archived_by_month(self) -> list[dict]:
        """Archived jobs and dead estimates grouped by the month they left the pipeline"""

        def archive_date(job: Job) -> Optional[datetime]:
            return job.archived_at or job.estimate_sent_at or job.moved_to_dead_estimate_at or job.created_at

        return group_jobs_by_month(self.repo.get_archived_jobs(self.db), archive_date)

    def completed_by_month(self) -> list[dict]:
        """Closed jobs grouped by the month they were last updated"""
        return group_jobs_by_month(
            self.repo.get_completed_jobs(self.db), lambda job: job.updated_at or job.created_at
        )

    @staticmethod
    def page_count(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0


def group_jobs_by_month(jobs: list[Job], date_of: Callable[[Job], Optional[datetime]]) -> list[dict]:
    """Bucket jobs by year/month of ``date_of(job)``, newest month first"""
    organized: dict[tuple[int, int], dict] = {}
    for job in jobs:
        when = date_of(job)
        if not when:
            continue
        key = (when.year, when.month)
        if key not in organized:
            organized[key] = {
                "year": when.year,
                "month": when.month,
                "monthName": f"{when:%B}",
                "jobs": [],
            }
        organized[key]["jobs"].append(job)

    return [organized[key] for key in sorted(organized, reverse=True)]
