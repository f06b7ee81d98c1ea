"""Scheduling service - places jobs on the production calendar"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import InvalidDurationError, InvalidScheduleError, NotFoundError
from ...models import Job, User
from ...shared.formatting import format_day
from ..pipeline.repository import JobRepository
from ..pipeline.schemas import RecurrenceSchema
from ..pipeline.stages import READY_TO_SCHEDULE, SCHEDULED, stage_label
from .duration import estimate_duration
from .grid import build_day_cells, map_jobs_to_grid, month_grid_days, span_from_job
from .time_calculator import days_between, end_of_day, inclusive_days, span_end, start_of_day

logger = logging.getLogger(__name__)

START_EDGES = ("start", "left")
END_EDGES = ("end", "right")


def _actor_id(actor: Optional[User]) -> Optional[int]:
    return actor.id if actor else None


def describe_range(start: datetime, end: datetime) -> str:
    days = inclusive_days(start, end)
    if days == 1:
        return f"{format_day(start)} (1 day)"
    return f"{format_day(start)} - {format_day(end)} ({days} days)"


class SchedulingService:
    """
    Drop, move, resize and unschedule jobs.

    Every change returns ``{"job", "previous", "current"}`` where the ranges
    are ``(start, end)`` tuples, so a client that updated its view early can
    put ``previous`` back if it never hears back. Nothing is retried here.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()

    def get_job(self, job_id: int) -> Job:
        job = self.repo.get_job(self.db, job_id)
        if not job:
            raise NotFoundError("Job", job_id)
        return job

    def _get_schedulable_job(self, job_id: int) -> Job:
        job = self.get_job(job_id)
        if not job.is_active:
            raise InvalidScheduleError(f"Job {job.id} is archived and cannot be scheduled")
        return job

    @staticmethod
    def _require_range(job: Job) -> tuple[datetime, datetime]:
        if job.schedule_start is None:
            raise InvalidScheduleError(f"Job {job.id} is not on the calendar")
        return job.schedule_start, job.schedule_end or end_of_day(job.schedule_start)

    def _apply(
        self,
        job: Job,
        start: Optional[datetime],
        end: Optional[datetime],
        note: str,
        actor: Optional[User],
        stage: Optional[str] = None,
    ) -> dict:
        """Persist a new range (and optionally stage) with exactly one note"""
        if start is not None and end is not None and end < start:
            raise InvalidScheduleError(f"End date {end:%Y-%m-%d} is before start date {start:%Y-%m-%d}")

        previous = (job.schedule_start, job.schedule_end)
        stage_changed = stage is not None and stage != job.stage

        job.schedule_start = start
        job.schedule_end = end
        if stage_changed:
            job.stage = stage
        self.repo.add_note(
            self.db,
            job,
            note,
            created_by_id=_actor_id(actor),
            is_schedule_change=True,
            is_stage_change=stage_changed,
        )

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"❌ Failed to save schedule for job {job.id}, rolled back")
            raise
        self.db.refresh(job)

        return {"job": job, "previous": previous, "current": (job.schedule_start, job.schedule_end)}

    # ------------------------------------------------------------------
    # Engine operations
    # ------------------------------------------------------------------

    def schedule_from_bench(
        self,
        job_id: int,
        drop_date: date,
        actor: Optional[User] = None,
        duration: Optional[int] = None,
    ) -> dict:
        """Place a job on the calendar starting at ``drop_date``"""
        job = self._get_schedulable_job(job_id)
        if duration is not None and duration < 1:
            raise InvalidDurationError(duration)
        days = duration if duration is not None else estimate_duration(job)

        start = start_of_day(drop_date)
        end = span_end(drop_date, days)
        change = self._apply(job, start, end, f"Scheduled for {describe_range(start, end)}", actor, stage=SCHEDULED)

        logger.info(f"📅 Job {job.id} scheduled {start:%Y-%m-%d} → {end:%Y-%m-%d} ({days} days)")
        return change

    def move_scheduled_job(self, job_id: int, new_start: date, actor: Optional[User] = None) -> dict:
        """Shift a scheduled job, keeping its length"""
        job = self._get_schedulable_job(job_id)
        old_start, old_end = self._require_range(job)
        days = inclusive_days(old_start, old_end)

        start = start_of_day(new_start)
        end = span_end(new_start, days)
        change = self._apply(job, start, end, f"Rescheduled to {describe_range(start, end)}", actor)

        logger.info(f"📅 Job {job.id} moved {old_start:%Y-%m-%d} → {start:%Y-%m-%d}")
        return change

    def resize_scheduled_job(
        self, job_id: int, edge: str, boundary: date, actor: Optional[User] = None
    ) -> dict:
        """
        Drag one edge of a scheduled job to ``boundary``.

        Raises:
            InvalidDurationError: the dragged edge crossed the fixed one;
                the stored schedule is left as it was
        """
        job = self._get_schedulable_job(job_id)
        old_start, old_end = self._require_range(job)

        if edge in END_EDGES:
            new_duration = days_between(boundary, old_start) + 1
            start, end = old_start, end_of_day(boundary)
        elif edge in START_EDGES:
            new_duration = days_between(old_end, boundary) + 1
            start, end = start_of_day(boundary), old_end
        else:
            raise InvalidScheduleError(f"Unknown resize edge: {edge}")

        if new_duration < 1:
            raise InvalidDurationError(
                new_duration, f"Cannot resize job {job.id}: the {edge} edge would cross the other end"
            )

        change = self._apply(job, start, end, f"Schedule resized to {describe_range(start, end)}", actor)
        logger.info(f"↔️ Job {job.id} resized ({edge}) to {new_duration} days")
        return change

    def unschedule(self, job_id: int, actor: Optional[User] = None) -> dict:
        """Take a job off the calendar and put it back on the bench"""
        job = self.get_job(job_id)
        if job.schedule_start is None and job.stage != SCHEDULED:
            raise InvalidScheduleError(f"Job {job.id} is not on the calendar")

        change = self._apply(
            job, None, None, "Removed from schedule and returned to the bench", actor, stage=READY_TO_SCHEDULE
        )
        logger.info(f"↩️ Job {job.id} unscheduled, back on the bench")
        return change

    def set_schedule(
        self,
        job_id: int,
        start_date: date,
        end_date: date,
        actor: Optional[User] = None,
        installer: Optional[str] = None,
        crew_notes: Optional[str] = None,
        recurrence: Optional[RecurrenceSchema] = None,
        color: Optional[str] = None,
        title: Optional[str] = None,
    ) -> dict:
        """Explicit range and event details, as entered in the event editor"""
        job = self._get_schedulable_job(job_id)
        if end_date < start_date:
            raise InvalidScheduleError(f"End date {end_date} is before start date {start_date}")

        if installer is not None:
            job.installer = installer or None
        if crew_notes is not None:
            job.crew_notes = crew_notes
        if color:
            job.color = color
        if title:
            job.title = title
        if recurrence is not None:
            job.recurrence_type = recurrence.type
            job.recurrence_interval = recurrence.interval
            job.recurrence_count = recurrence.count

        start, end = start_of_day(start_date), end_of_day(end_date)
        change = self._apply(job, start, end, f"Schedule set to {describe_range(start, end)}", actor, stage=SCHEDULED)

        logger.info(f"📅 Job {job.id} schedule set {start:%Y-%m-%d} → {end:%Y-%m-%d}")
        return change

    def reconcile(self, actor: Optional[User] = None) -> list[int]:
        """Send jobs marked SCHEDULED without any dates back to the bench"""
        jobs = self.repo.get_scheduled_stage_without_range(self.db)
        if not jobs:
            return []

        for job in jobs:
            job.stage = READY_TO_SCHEDULE
            self.repo.add_note(
                self.db,
                job,
                f"Moved from {stage_label(SCHEDULED)} to {stage_label(READY_TO_SCHEDULE)} (no dates on the calendar)",
                created_by_id=_actor_id(actor),
                is_stage_change=True,
            )
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("❌ Failed to reconcile scheduled jobs without dates")
            raise

        job_ids = [job.id for job in jobs]
        logger.info(f"🔧 Reconciled {len(job_ids)} SCHEDULED jobs without dates: {job_ids}")
        return job_ids

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def bench_jobs(self) -> list[tuple[Job, int]]:
        """Production-ready jobs without dates, with their suggested duration"""
        return [(job, estimate_duration(job)) for job in self.repo.get_bench_jobs(self.db)]

    def scheduled_jobs(
        self, window_start: Optional[datetime] = None, window_end: Optional[datetime] = None
    ) -> list[Job]:
        return self.repo.get_scheduled_jobs(self.db, window_start, window_end)

    def month_grid(self, year: int, month: int) -> dict:
        """Day cells and per-day blocks for one month view"""
        days = month_grid_days(year, month)
        jobs = self.scheduled_jobs(start_of_day(days[0]), end_of_day(days[-1]))
        spans = [span_from_job(job) for job in jobs]
        return {
            "year": year,
            "month": month,
            "days": build_day_cells(spans, days, month=month),
            "blocks": map_jobs_to_grid(spans, days),
        }
