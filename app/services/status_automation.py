"""
Automated stage housekeeping for the job pipeline
Moves estimates that got no response into the dead-estimate archive
Optionally advances idle ESTIMATE_IN_PROGRESS jobs to ESTIMATE_SENT first
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import AUTO_ADVANCE_STALE_ESTIMATES, DEAD_ESTIMATE_THRESHOLD_DAYS, ESTIMATE_IN_PROGRESS_DAYS
from ..domain.pipeline.repository import JobRepository
from ..domain.pipeline.stages import ESTIMATE_IN_PROGRESS, ESTIMATE_SENT, stage_label
from ..models import Job
from ..shared.formatting import format_timestamp

logger = logging.getLogger(__name__)


def dead_estimate_cutoff(now: datetime, threshold_days: int = DEAD_ESTIMATE_THRESHOLD_DAYS) -> datetime:
    return now - timedelta(days=threshold_days)


def preview_dead_estimates(
    db: Session, now: Optional[datetime] = None, threshold_days: int = DEAD_ESTIMATE_THRESHOLD_DAYS
) -> list[Job]:
    """Jobs the next sweep would move, without touching them"""
    now = now or datetime.now()
    return JobRepository.get_stale_sent_estimates(db, dead_estimate_cutoff(now, threshold_days))


def _advance_stale_estimates(db: Session, now: datetime, summary: dict) -> None:
    cutoff = now - timedelta(days=ESTIMATE_IN_PROGRESS_DAYS)
    for job in JobRepository.get_stale_estimates_in_progress(db, cutoff):
        try:
            job.stage = ESTIMATE_SENT
            job.estimate_sent_at = now
            JobRepository.add_note(
                db,
                job,
                f"Stage changed: {stage_label(ESTIMATE_IN_PROGRESS)} → {stage_label(ESTIMATE_SENT)} "
                f"(auto-moved after {ESTIMATE_IN_PROGRESS_DAYS} days)",
                is_stage_change=True,
                created_at=now,
            )
            db.commit()
            summary["advancedToSent"] += 1
            logger.info(f"✅ Job {job.id} transitioned: {ESTIMATE_IN_PROGRESS} → {ESTIMATE_SENT}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Error advancing job {job.id} to {ESTIMATE_SENT}: {str(e)}")
            summary["errors"].append({"jobId": job.id, "error": str(e)})


def auto_move_dead_estimates(
    db: Session,
    now: Optional[datetime] = None,
    threshold_days: int = DEAD_ESTIMATE_THRESHOLD_DAYS,
    auto_advance: bool = AUTO_ADVANCE_STALE_ESTIMATES,
) -> dict:
    """
    Flag active ESTIMATE_SENT jobs with no response as dead estimates
    Triggered when the pipeline or archive pages load; safe to run repeatedly

    Each job is committed on its own, so a failure leaves the jobs already
    moved in place and the sweep carries on with the rest. Stage is never
    changed and the flag is never cleared, so a second run finds nothing new.

    Returns:
        dict: {"count", "jobIds", "advancedToSent", "errors"}
    """
    now = now or datetime.now()
    summary = {"count": 0, "jobIds": [], "advancedToSent": 0, "errors": []}

    if auto_advance:
        _advance_stale_estimates(db, now, summary)

    stale_jobs = preview_dead_estimates(db, now, threshold_days)
    if not stale_jobs:
        logger.debug("ℹ️ No dead estimates to move")
        return summary

    timestamp = format_timestamp(now)
    for job in stale_jobs:
        try:
            job.is_dead_estimate = True
            job.moved_to_dead_estimate_at = now
            JobRepository.add_note(
                db,
                job,
                f"Job auto-archived on {timestamp} - no response after {threshold_days} days",
                created_at=now,
            )
            db.commit()
            summary["count"] += 1
            summary["jobIds"].append(job.id)
            logger.info(f"🪦 Job {job.id} moved to dead estimates (sent {job.estimate_sent_at:%Y-%m-%d})")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Error moving job {job.id} to dead estimates: {str(e)}")
            summary["errors"].append({"jobId": job.id, "error": str(e)})

    logger.info(f"📊 Dead estimate sweep summary: {summary['count']} moved, {len(summary['errors'])} failed")
    return summary
