from datetime import date, datetime

import pytest

from app.domain.pipeline.schemas import RecurrenceSchema
from app.domain.scheduling.service import SchedulingService
from app.domain.scheduling.time_calculator import days_between
from app.errors import InvalidDurationError, InvalidScheduleError, NotFoundError


def scheduled_job(make_job, start: date, end: date, **fields):
    return make_job(
        stage="SCHEDULED",
        schedule_start=datetime.combine(start, datetime.min.time()),
        schedule_end=datetime(end.year, end.month, end.day, 23, 59, 59, 999000),
        **fields,
    )


def test_drop_with_explicit_duration_spans_inclusive_days(db, make_job, admin):
    job = make_job(stage="READY_TO_SCHEDULE", value_estimated=2000)

    change = SchedulingService(db).schedule_from_bench(job.id, date(2026, 3, 2), admin, duration=5)

    db.refresh(job)
    assert job.schedule_start == datetime(2026, 3, 2, 0, 0)
    assert job.schedule_end == datetime(2026, 3, 6, 23, 59, 59, 999000)
    assert days_between(job.schedule_end, job.schedule_start) == 4
    assert job.stage == "SCHEDULED"
    assert change["previous"] == (None, None)
    assert change["current"] == (job.schedule_start, job.schedule_end)


def test_drop_uses_estimated_duration(db, make_job):
    job = make_job(stage="TAKEOFF_COMPLETE", value_estimated=8000)

    SchedulingService(db).schedule_from_bench(job.id, date(2026, 3, 2))

    db.refresh(job)
    assert job.schedule_end.date() == date(2026, 3, 5)


def test_drop_appends_one_schedule_note(db, make_job, admin):
    job = make_job(stage="READY_TO_SCHEDULE")

    SchedulingService(db).schedule_from_bench(job.id, date(2026, 3, 2), admin, duration=3)

    db.refresh(job)
    assert len(job.notes) == 1
    assert job.notes[0].is_schedule_change
    assert job.notes[0].is_stage_change
    assert job.notes[0].content == "Scheduled for Mar 2, 2026 - Mar 4, 2026 (3 days)"


def test_drop_twice_gives_same_range(db, make_job):
    job = make_job(stage="READY_TO_SCHEDULE")
    service = SchedulingService(db)

    first = service.schedule_from_bench(job.id, date(2026, 3, 2), duration=2)
    second = service.schedule_from_bench(job.id, date(2026, 3, 2), duration=2)

    assert first["current"] == second["current"]
    assert second["previous"] == first["current"]


def test_drop_rejects_zero_duration(db, make_job):
    job = make_job(stage="READY_TO_SCHEDULE")

    with pytest.raises(InvalidDurationError):
        SchedulingService(db).schedule_from_bench(job.id, date(2026, 3, 2), duration=0)

    db.refresh(job)
    assert job.schedule_start is None
    assert job.stage == "READY_TO_SCHEDULE"


def test_archived_jobs_cannot_be_scheduled(db, make_job):
    job = make_job(stage="READY_TO_SCHEDULE", is_archived=True)

    with pytest.raises(InvalidScheduleError):
        SchedulingService(db).schedule_from_bench(job.id, date(2026, 3, 2))


def test_unknown_job(db):
    with pytest.raises(NotFoundError):
        SchedulingService(db).schedule_from_bench(404, date(2026, 3, 2))


def test_move_keeps_duration_and_stage(db, make_job):
    job = scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 4))

    change = SchedulingService(db).move_scheduled_job(job.id, date(2026, 3, 30))

    db.refresh(job)
    assert job.schedule_start == datetime(2026, 3, 30)
    assert job.schedule_end.date() == date(2026, 4, 1)
    assert job.stage == "SCHEDULED"
    assert change["previous"][0] == datetime(2026, 3, 2)


def test_move_requires_a_schedule(db, make_job):
    job = make_job(stage="READY_TO_SCHEDULE")

    with pytest.raises(InvalidScheduleError):
        SchedulingService(db).move_scheduled_job(job.id, date(2026, 3, 2))


def test_resize_end_edge(db, make_job):
    job = scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 4))

    SchedulingService(db).resize_scheduled_job(job.id, "right", date(2026, 3, 9))

    db.refresh(job)
    assert job.schedule_start == datetime(2026, 3, 2)
    assert job.schedule_end == datetime(2026, 3, 9, 23, 59, 59, 999000)


def test_resize_start_edge(db, make_job):
    job = scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 4))

    SchedulingService(db).resize_scheduled_job(job.id, "left", date(2026, 3, 4))

    db.refresh(job)
    assert job.schedule_start == datetime(2026, 3, 4)
    assert job.schedule_end.date() == date(2026, 3, 4)


@pytest.mark.parametrize(
    "edge, boundary",
    [("end", date(2026, 3, 1)), ("right", date(2026, 2, 20)), ("start", date(2026, 3, 5))],
)
def test_resize_past_the_other_edge_is_rejected(db, make_job, edge, boundary):
    job = scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 4))
    before = (job.schedule_start, job.schedule_end)

    with pytest.raises(InvalidDurationError):
        SchedulingService(db).resize_scheduled_job(job.id, edge, boundary)

    db.refresh(job)
    assert (job.schedule_start, job.schedule_end) == before
    assert job.notes == []


def test_resize_unknown_edge(db, make_job):
    job = scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 4))

    with pytest.raises(InvalidScheduleError):
        SchedulingService(db).resize_scheduled_job(job.id, "middle", date(2026, 3, 3))


def test_unschedule_returns_job_to_bench(db, make_job):
    job = scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 4))

    change = SchedulingService(db).unschedule(job.id)

    db.refresh(job)
    assert job.schedule_start is None
    assert job.schedule_end is None
    assert job.stage == "READY_TO_SCHEDULE"
    assert change["current"] == (None, None)
    assert len(job.notes) == 1


def test_unschedule_rejects_bench_jobs(db, make_job):
    job = make_job(stage="JOB_PREP")

    with pytest.raises(InvalidScheduleError):
        SchedulingService(db).unschedule(job.id)


def test_set_schedule_saves_event_details(db, make_job):
    job = make_job(stage="READY_TO_SCHEDULE")

    SchedulingService(db).set_schedule(
        job.id,
        date(2026, 4, 6),
        date(2026, 4, 8),
        installer="Nick",
        crew_notes="Bring the track saw",
        recurrence=RecurrenceSchema(type="weekly", interval=1, count=3),
    )

    db.refresh(job)
    assert job.stage == "SCHEDULED"
    assert job.installer == "Nick"
    assert job.recurrence_type == "weekly"
    assert job.recurrence_count == 3
    assert job.schedule_end.date() == date(2026, 4, 8)


def test_set_schedule_rejects_reversed_range(db, make_job):
    job = make_job(stage="READY_TO_SCHEDULE")

    with pytest.raises(InvalidScheduleError):
        SchedulingService(db).set_schedule(job.id, date(2026, 4, 8), date(2026, 4, 6))


def test_reconcile_sends_dateless_scheduled_jobs_to_bench(db, make_job):
    broken = make_job(stage="SCHEDULED")
    fine = scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 2))
    service = SchedulingService(db)

    assert service.reconcile() == [broken.id]
    assert service.reconcile() == []

    db.refresh(broken)
    db.refresh(fine)
    assert broken.stage == "READY_TO_SCHEDULE"
    assert fine.stage == "SCHEDULED"


def test_bench_lists_ready_jobs_with_suggested_duration(db, make_job):
    ready = make_job(stage="READY_TO_SCHEDULE", value_estimated=6000)
    dateless = make_job(stage="SCHEDULED", value_estimated=1000)
    make_job(stage="ESTIMATE_SENT")
    make_job(stage="JOB_PREP", is_archived=True)
    scheduled_job(make_job, date(2026, 3, 2), date(2026, 3, 2))

    bench = SchedulingService(db).bench_jobs()

    assert [(job.id, days) for job, days in bench] == [(ready.id, 3), (dateless.id, 1)]
    db.refresh(dateless)
    assert dateless.stage == "SCHEDULED"
    assert dateless.notes == []


def test_month_grid(db, make_job):
    job = scheduled_job(make_job, date(2026, 1, 30), date(2026, 2, 2), installer="Ed")
    scheduled_job(make_job, date(2026, 5, 1), date(2026, 5, 2))

    grid = SchedulingService(db).month_grid(2026, 2)

    assert grid["days"][0].date == date(2026, 2, 1)
    assert [block.jobId for block in grid["blocks"]] == [job.id, job.id]
    assert grid["days"][1].jobIds == [job.id]
