"""Job repository - Database operations for jobs and their notes"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import Job, JobNote
from .stages import BENCH_STAGES, ESTIMATE_IN_PROGRESS, ESTIMATE_SENT, FINAL_PAYMENT_CLOSED, SCHEDULED


def _active(query):
    """Exclude archived jobs and dead estimates"""
    return query.filter(Job.is_archived.is_(False), Job.is_dead_estimate.is_(False))


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def get_job(db: Session, job_id: int) -> Optional[Job]:
        """Get a job by ID (archived and dead jobs included)"""
        return db.query(Job).filter(Job.id == job_id).first()

    @staticmethod
    def list_active_jobs(
        db: Session,
        stage: Optional[str] = None,
        assigned_to_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 100,
    ) -> tuple[list[Job], int]:
        """Active jobs, newest first, with the total count for pagination"""
        query = _active(db.query(Job))

        if stage:
            query = query.filter(Job.stage == stage)
        if assigned_to_id:
            query = query.filter(Job.assigned_to_id == assigned_to_id)
        if search:
            query = query.filter(Job.title.ilike(f"%{search}%"))

        total = query.count()
        jobs = (
            query.options(selectinload(Job.notes))
            .order_by(Job.created_at.desc(), Job.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return jobs, total

    @staticmethod
    def create_job(db: Session, **job_data) -> Job:
        """Add a new job to the session (caller commits)"""
        job = Job(**job_data)
        db.add(job)
        db.flush()
        return job

    @staticmethod
    def update_job(db: Session, job: Job, **updates) -> Job:
        """Update a job with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(job, key):
                setattr(job, key, value)
        return job

    @staticmethod
    def add_note(
        db: Session,
        job: Job,
        content: str,
        created_by_id: Optional[int] = None,
        is_stage_change: bool = False,
        is_schedule_change: bool = False,
        is_appointment: bool = False,
        created_at: Optional[datetime] = None,
    ) -> JobNote:
        """Append a note to the job's timeline (caller commits)"""
        note = JobNote(
            content=content,
            created_by_id=created_by_id,
            created_at=created_at or datetime.now(),
            is_stage_change=is_stage_change,
            is_schedule_change=is_schedule_change,
            is_appointment=is_appointment,
        )
        job.notes.append(note)
        return note

    # Reporting

    @staticmethod
    def stage_totals(db: Session) -> dict[str, tuple[int, float]]:
        """Count and summed estimated value of active jobs per stage"""
        rows = (
            _active(db.query(Job.stage, func.count(Job.id), func.coalesce(func.sum(Job.value_estimated), 0)))
            .group_by(Job.stage)
            .all()
        )
        return {stage: (count, float(total)) for stage, count, total in rows}

    @staticmethod
    def get_archived_jobs(db: Session) -> list[Job]:
        """Manually archived jobs and dead estimates"""
        return (
            db.query(Job)
            .filter(or_(Job.is_archived.is_(True), Job.is_dead_estimate.is_(True)))
            .order_by(Job.id.desc())
            .all()
        )

    @staticmethod
    def get_completed_jobs(db: Session) -> list[Job]:
        return (
            _active(db.query(Job))
            .filter(Job.stage == FINAL_PAYMENT_CLOSED)
            .order_by(Job.updated_at.desc(), Job.id.desc())
            .all()
        )

    # Sweeper queries

    @staticmethod
    def get_stale_sent_estimates(db: Session, cutoff: datetime) -> list[Job]:
        """Active ESTIMATE_SENT jobs whose estimate went out on or before ``cutoff``"""
        return (
            _active(db.query(Job))
            .filter(
                Job.stage == ESTIMATE_SENT,
                Job.estimate_sent_at.isnot(None),
                Job.estimate_sent_at <= cutoff,
            )
            .order_by(Job.estimate_sent_at.asc(), Job.id.asc())
            .all()
        )

    @staticmethod
    def get_stale_estimates_in_progress(db: Session, cutoff: datetime) -> list[Job]:
        """Active ESTIMATE_IN_PROGRESS jobs untouched since ``cutoff``"""
        return (
            _active(db.query(Job))
            .filter(
                Job.stage == ESTIMATE_IN_PROGRESS,
                func.coalesce(Job.updated_at, Job.created_at) <= cutoff,
            )
            .order_by(Job.id.asc())
            .all()
        )

    # Scheduling queries

    @staticmethod
    def get_bench_jobs(db: Session) -> list[Job]:
        """Active readiness-phase jobs with no calendar range

        Jobs left in SCHEDULED without dates are listed too, read as-is;
        only reconcile() moves their stage.
        """
        return (
            _active(db.query(Job))
            .filter(
                or_(Job.stage.in_(BENCH_STAGES), Job.stage == SCHEDULED),
                Job.schedule_start.is_(None),
            )
            .order_by(Job.created_at.asc(), Job.id.asc())
            .all()
        )

    @staticmethod
    def get_scheduled_jobs(
        db: Session, window_start: Optional[datetime] = None, window_end: Optional[datetime] = None
    ) -> list[Job]:
        """Active jobs with a range, optionally only those overlapping a window"""
        query = _active(db.query(Job)).filter(Job.schedule_start.isnot(None))
        if window_end is not None:
            query = query.filter(Job.schedule_start <= window_end)
        if window_start is not None:
            query = query.filter(func.coalesce(Job.schedule_end, Job.schedule_start) >= window_start)
        return query.order_by(Job.schedule_start.asc(), Job.id.asc()).all()

    @staticmethod
    def get_scheduled_stage_without_range(db: Session) -> list[Job]:
        """Jobs whose stage says SCHEDULED although they have no start date"""
        return (
            _active(db.query(Job))
            .filter(Job.stage == SCHEDULED, Job.schedule_start.is_(None))
            .order_by(Job.id.asc())
            .all()
        )
