from datetime import datetime

import pytest

from app.domain.appointments.schemas import AppointmentCreate, AppointmentUpdate
from app.domain.appointments.service import AppointmentService
from app.errors import InvalidAppointmentTransitionError, NotFoundError


def new_appointment(**fields):
    data = {"title": "Measure kitchen", "date": datetime(2026, 3, 2, 10), "time": "10:00 AM"}
    data.update(fields)
    return AppointmentCreate(**data)


def test_linked_appointment_adds_job_note(db, make_job, admin):
    job = make_job(stage="APPOINTMENT_SCHEDULED")

    appointment = AppointmentService(db).create_appointment(new_appointment(jobId=job.id), admin)

    db.refresh(job)
    assert appointment.job_id == job.id
    assert appointment.status == "scheduled"
    assert job.notes[-1].content == "Appointment scheduled: Measure kitchen on Mar 2, 2026 at 10:00 AM"
    assert job.notes[-1].is_appointment
    assert not job.notes[-1].is_stage_change


def test_standalone_appointment(db):
    appointment = AppointmentService(db).create_appointment(new_appointment(customerName="Lindqvist"))

    assert appointment.job_id is None
    assert appointment.customer_name == "Lindqvist"


def test_unknown_linked_job(db):
    with pytest.raises(NotFoundError):
        AppointmentService(db).create_appointment(new_appointment(jobId=77))


def test_complete_is_terminal(db):
    service = AppointmentService(db)
    appointment = service.create_appointment(new_appointment())

    completed = service.complete(appointment.id)

    assert completed.status == "completed"
    assert completed.completed_at is not None
    with pytest.raises(InvalidAppointmentTransitionError):
        service.cancel(appointment.id)


def test_cancel_and_no_show(db):
    service = AppointmentService(db)
    cancelled = service.cancel(service.create_appointment(new_appointment()).id)
    no_show = service.mark_no_show(service.create_appointment(new_appointment()).id)

    assert cancelled.cancelled_at is not None
    assert no_show.status == "no_show"


def test_listing_splits_open_and_finished(db):
    service = AppointmentService(db)
    open_one = service.create_appointment(new_appointment(date=datetime(2026, 3, 3, 9)))
    done = service.complete(service.create_appointment(new_appointment()).id)

    scheduled, total = service.list_appointments()
    finished, finished_total = service.list_finished()

    assert (total, [a.id for a in scheduled]) == (1, [open_one.id])
    assert (finished_total, [a.id for a in finished]) == (1, [done.id])


def test_list_by_day(db):
    service = AppointmentService(db)
    service.create_appointment(new_appointment(date=datetime(2026, 3, 2, 9)))
    service.create_appointment(new_appointment(date=datetime(2026, 3, 3, 9)))

    appointments, total = service.list_appointments(day=datetime(2026, 3, 3).date())

    assert total == 1


def test_update_details(db):
    service = AppointmentService(db)
    appointment = service.create_appointment(new_appointment())

    updated = service.update_appointment(appointment.id, AppointmentUpdate(time="2:30 PM", location="Shop"))

    assert updated.time == "2:30 PM"
    assert updated.location == "Shop"
    assert updated.status == "scheduled"


def test_appointment_endpoints(client, make_job, admin_headers, viewer_headers):
    job = make_job(stage="APPOINTMENT_SCHEDULED")
    payload = {"title": "Design review", "date": "2026-03-05T14:00:00", "time": "2:00 PM", "jobId": job.id}

    assert client.post("/appointments", json=payload, headers=viewer_headers).status_code == 403

    created = client.post("/appointments", json=payload, headers=admin_headers)
    assert created.status_code == 201
    appointment_id = created.json()["id"]
    assert created.json()["jobTitle"] == job.title

    assert client.post(f"/appointments/{appointment_id}/complete", headers=admin_headers).status_code == 200
    again = client.post(f"/appointments/{appointment_id}/no-show", headers=admin_headers)
    assert again.status_code == 409
    assert again.json()["error"] == "InvalidAppointmentTransitionError"

    completed = client.get("/appointments/completed", headers=admin_headers).json()
    assert [a["id"] for a in completed["appointments"]] == [appointment_id]

    assert client.delete(f"/appointments/{appointment_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/appointments/{appointment_id}", headers=admin_headers).status_code == 404
