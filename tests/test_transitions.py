from datetime import datetime

import pytest

from app.domain.pipeline.schemas import JobCreate, JobUpdate
from app.domain.pipeline.service import PipelineService
from app.errors import (
    ArchiveStateError,
    InvalidScheduleError,
    InvalidStageError,
    NotFoundError,
    SameStageError,
    TerminalStageError,
)


def test_move_to_next_stage(db, make_job, admin):
    job = make_job(stage="CONTRACT_OUT")

    moved = PipelineService(db).move_to_next_stage(job.id, admin)

    assert moved.stage == "DEPOSIT_PENDING"
    assert len(moved.notes) == 1
    assert moved.notes[0].content == "Moved from Contract Out to Signed / Deposit Pending"
    assert moved.notes[0].is_stage_change
    assert moved.notes[0].created_by_id == admin.id


def test_next_stage_from_last_stage_fails(db, make_job, admin):
    job = make_job(stage="FINAL_PAYMENT_CLOSED")

    with pytest.raises(TerminalStageError):
        PipelineService(db).move_to_next_stage(job.id, admin)

    db.refresh(job)
    assert job.stage == "FINAL_PAYMENT_CLOSED"
    assert job.notes == []


def test_next_stage_from_legacy_stage_fails(db, make_job):
    job = make_job(stage="CONTRACT_SIGNED")

    with pytest.raises(TerminalStageError):
        PipelineService(db).move_to_next_stage(job.id)


@pytest.mark.parametrize("stage", ["APPOINTMENT_SCHEDULED", "JOB_PREP", "FINAL_PAYMENT_CLOSED"])
def test_move_to_same_stage_fails_without_note(db, make_job, stage):
    job = make_job(stage=stage)

    with pytest.raises(SameStageError):
        PipelineService(db).move_to_stage(job.id, stage)

    db.refresh(job)
    assert job.stage == stage
    assert job.notes == []


def test_move_to_stage_allows_backwards_jumps(db, make_job):
    job = make_job(stage="INSTALLED")

    moved = PipelineService(db).move_to_stage(job.id, "ESTIMATE_SENT")

    assert moved.stage == "ESTIMATE_SENT"
    assert moved.notes[-1].content == "Moved from Installed to Estimate Sent"


def test_entering_estimate_sent_starts_the_clock(db, make_job):
    job = make_job(stage="ESTIMATE_IN_PROGRESS")
    assert job.estimate_sent_at is None

    moved = PipelineService(db).move_to_stage(job.id, "ESTIMATE_SENT")

    assert moved.estimate_sent_at is not None


def test_caller_note_replaces_default_text(db, make_job):
    job = make_job(stage="JOB_PREP")

    moved = PipelineService(db).move_to_stage(job.id, "TAKEOFF_COMPLETE", note="Takeoff checked by Walter")

    assert [n.content for n in moved.notes] == ["Takeoff checked by Walter"]


def test_unknown_target_stage(db, make_job):
    job = make_job(stage="JOB_PREP")

    with pytest.raises(InvalidStageError):
        PipelineService(db).move_to_stage(job.id, "SHIPPED")


def test_unknown_job(db):
    with pytest.raises(NotFoundError):
        PipelineService(db).move_to_stage(999, "JOB_PREP")


def test_archive_keeps_stage(db, make_job, admin):
    job = make_job(stage="CONTRACT_OUT")

    archived = PipelineService(db).archive(job.id, admin)

    assert archived.is_archived
    assert archived.archived_by_id == admin.id
    assert archived.stage == "CONTRACT_OUT"
    assert archived.notes[-1].content.startswith("Job archived on ")


def test_archive_rejects_archived_and_dead_jobs(db, make_job):
    service = PipelineService(db)
    archived = make_job(is_archived=True)
    dead = make_job(is_dead_estimate=True, stage="ESTIMATE_SENT")

    with pytest.raises(ArchiveStateError):
        service.archive(archived.id)
    with pytest.raises(ArchiveStateError):
        service.archive(dead.id)


def test_unarchive(db, make_job):
    service = PipelineService(db)
    job = make_job(stage="JOB_PREP")
    service.archive(job.id)

    restored = service.unarchive(job.id)

    assert not restored.is_archived
    assert restored.archived_at is None
    assert restored.notes[-1].content.startswith("Job restored from archive on ")
    with pytest.raises(ArchiveStateError):
        service.unarchive(job.id)


def test_mark_dead_estimate_once(db, make_job):
    service = PipelineService(db)
    job = make_job(stage="ESTIMATE_SENT")

    dead = service.mark_dead_estimate(job.id)

    assert dead.is_dead_estimate
    assert dead.stage == "ESTIMATE_SENT"
    with pytest.raises(ArchiveStateError):
        service.mark_dead_estimate(job.id)


def test_create_job_defaults_to_estimate_in_progress(db, admin):
    job = PipelineService(db).create_job(JobCreate(title="Built-in bookshelf", valueEstimated=6000), admin)

    assert job.stage == "ESTIMATE_IN_PROGRESS"
    assert job.created_by_id == admin.id
    assert job.schedule_start is None


def test_create_job_cannot_start_scheduled(db):
    with pytest.raises(InvalidScheduleError):
        PipelineService(db).create_job(JobCreate(title="Vanity", stage="SCHEDULED"))


def test_update_job_leaves_stage_alone(db, make_job):
    job = make_job(stage="JOB_PREP")

    updated = PipelineService(db).update_job(job.id, JobUpdate(installer="Walter", valueEstimated=12000))

    assert updated.installer == "Walter"
    assert updated.value_estimated == 12000
    assert updated.stage == "JOB_PREP"


def test_list_jobs_excludes_archived_and_dead(db, make_job):
    active = make_job(title="Active")
    make_job(title="Archived", is_archived=True)
    make_job(title="Dead", is_dead_estimate=True)

    jobs, total = PipelineService(db).list_jobs()

    assert total == 1
    assert [j.id for j in jobs] == [active.id]


def test_pipeline_summary_counts_active_jobs(db, make_job):
    make_job(stage="JOB_PREP", value_estimated=4000)
    make_job(stage="JOB_PREP", value_estimated=2500)
    make_job(stage="JOB_PREP", value_estimated=9999, is_archived=True)

    summary = {item["stage"]: item for item in PipelineService(db).pipeline_summary()}

    assert len(summary) == 13
    assert summary["JOB_PREP"]["count"] == 2
    assert summary["JOB_PREP"]["totalValue"] == 6500
    assert summary["SCHEDULED"]["count"] == 0


def test_move_to_scheduled_without_dates_fails_without_note(db, make_job):
    job = make_job(stage="TAKEOFF_COMPLETE")

    with pytest.raises(InvalidScheduleError):
        PipelineService(db).move_to_stage(job.id, "SCHEDULED")

    db.refresh(job)
    assert job.stage == "TAKEOFF_COMPLETE"
    assert job.notes == []


def test_next_stage_from_ready_to_schedule_needs_dates(db, make_job):
    job = make_job(stage="READY_TO_SCHEDULE")

    with pytest.raises(InvalidScheduleError):
        PipelineService(db).move_to_next_stage(job.id)


def test_move_back_to_scheduled_keeps_dates(db, make_job):
    start = datetime(2026, 3, 2)
    job = make_job(stage="IN_PRODUCTION", schedule_start=start, schedule_end=datetime(2026, 3, 4, 23, 59))

    moved = PipelineService(db).move_to_stage(job.id, "SCHEDULED")

    assert moved.stage == "SCHEDULED"
    assert moved.schedule_start == start
