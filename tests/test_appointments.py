"""Tests for appointment scheduling through the service layer."""

from __future__ import annotations

from datetime import date, time

import pytest

from clinic.config import Settings
from clinic.container import ClinicContainer
from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.models import (
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    Gender,
    PatientCreate,
)

_DAY = date(2024, 3, 1)


@pytest.fixture()
def container() -> ClinicContainer:
    return ClinicContainer(Settings())


@pytest.fixture()
def patient(container: ClinicContainer):
    return container.patients.create_patient(
        PatientCreate(
            first_name="Ana",
            last_name="Rojas",
            id_number="11.111.111-1",
            date_of_birth=date(1990, 5, 17),
            gender=Gender.FEMALE,
            phone="+56 9 1234 5678",
        )
    )


def _request(patient_id: str, start: str, end: str, **overrides) -> AppointmentCreate:
    defaults = dict(
        patient_id=patient_id,
        practitioner="Dr. A",
        date=_DAY,
        start_time=start,
        end_time=end,
        type=AppointmentType.TREATMENT_SESSION,
    )
    defaults.update(overrides)
    return AppointmentCreate(**defaults)


def test_create_books_a_scheduled_appointment(container, patient):
    appt = container.appointments.create_appointment(_request(patient.id, "14:00", "15:00"))

    assert appt.status == AppointmentStatus.SCHEDULED
    assert appt.start_time == time(14, 0)
    assert container.appointment_repo.get(appt.id) is appt


def test_create_rejects_unknown_patient(container):
    with pytest.raises(ClinicError) as exc_info:
        container.appointments.create_appointment(_request("nobody", "14:00", "15:00"))
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


def test_create_refuses_double_booking_and_persists_nothing(container, patient):
    container.appointments.create_appointment(_request(patient.id, "14:00", "15:00"))

    with pytest.raises(ClinicError) as exc_info:
        container.appointments.create_appointment(_request(patient.id, "14:30", "14:45"))

    assert exc_info.value.kind == ErrorKind.SCHEDULING_CONFLICT
    assert container.appointment_repo.count() == 1


def test_create_allows_back_to_back_and_other_practitioners(container, patient):
    svc = container.appointments
    svc.create_appointment(_request(patient.id, "14:00", "15:00"))
    svc.create_appointment(_request(patient.id, "15:00", "15:30"))
    svc.create_appointment(_request(patient.id, "14:00", "15:00", practitioner="Dr. B"))

    assert container.appointment_repo.count() == 3


def test_create_rejects_reversed_interval(container, patient):
    with pytest.raises(ClinicError) as exc_info:
        container.appointments.create_appointment(_request(patient.id, "15:00", "14:00"))
    assert exc_info.value.kind == ErrorKind.INVALID_INTERVAL


def test_update_of_unrelated_fields_does_not_conflict_with_itself(container, patient):
    appt = container.appointments.create_appointment(_request(patient.id, "14:00", "15:00"))

    updated = container.appointments.update_appointment(
        appt.id, AppointmentUpdate(room="Box 2", status=AppointmentStatus.CONFIRMED)
    )

    assert updated.room == "Box 2"
    assert updated.status == AppointmentStatus.CONFIRMED
    assert updated.id == appt.id
    assert updated.start_time == time(14, 0)


def test_update_can_shift_over_its_own_previous_slot(container, patient):
    appt = container.appointments.create_appointment(_request(patient.id, "14:00", "15:00"))

    updated = container.appointments.update_appointment(
        appt.id, AppointmentUpdate(start_time="14:30", end_time="15:30")
    )

    assert (updated.start_time, updated.end_time) == (time(14, 30), time(15, 30))


def test_update_into_a_taken_slot_is_refused(container, patient):
    svc = container.appointments
    svc.create_appointment(_request(patient.id, "14:00", "15:00"))
    other = svc.create_appointment(_request(patient.id, "16:00", "17:00"))

    with pytest.raises(ClinicError) as exc_info:
        svc.update_appointment(other.id, AppointmentUpdate(start_time="14:30", end_time="15:30"))

    assert exc_info.value.kind == ErrorKind.SCHEDULING_CONFLICT
    assert container.appointment_repo.get(other.id).start_time == time(16, 0)


def test_update_with_reversed_interval_is_refused(container, patient):
    appt = container.appointments.create_appointment(_request(patient.id, "14:00", "15:00"))

    with pytest.raises(ClinicError) as exc_info:
        container.appointments.update_appointment(appt.id, AppointmentUpdate(end_time="13:00"))
    assert exc_info.value.kind == ErrorKind.INVALID_INTERVAL


def test_cancelling_frees_the_slot(container, patient):
    svc = container.appointments
    first = svc.create_appointment(_request(patient.id, "14:00", "15:00"))

    cancelled = svc.cancel_appointment(first.id, reason="Patient sick", cancelled_by="reception")
    second = svc.create_appointment(_request(patient.id, "14:00", "15:00"))

    assert cancelled.status == AppointmentStatus.CANCELLED
    assert cancelled.cancellation_reason == "Patient sick"
    assert cancelled.cancelled_by == "reception"
    assert cancelled.cancelled_at is not None
    assert second.status == AppointmentStatus.SCHEDULED


def test_cancel_twice_keeps_first_stamp(container, patient):
    svc = container.appointments
    appt = svc.create_appointment(_request(patient.id, "14:00", "15:00"))
    svc.cancel_appointment(appt.id, reason="first")

    again = svc.cancel_appointment(appt.id, reason="second")

    assert again.cancellation_reason == "first"


def test_status_update_to_cancelled_stamps_cancellation(container, patient):
    appt = container.appointments.create_appointment(_request(patient.id, "14:00", "15:00"))

    container.appointments.update_appointment(
        appt.id, AppointmentUpdate(status=AppointmentStatus.CANCELLED)
    )

    assert container.appointment_repo.get(appt.id).cancelled_at is not None


def test_reactivating_into_a_taken_slot_is_refused(container, patient):
    svc = container.appointments
    old = svc.create_appointment(_request(patient.id, "14:00", "15:00"))
    svc.cancel_appointment(old.id)
    svc.create_appointment(_request(patient.id, "14:00", "15:00"))

    with pytest.raises(ClinicError) as exc_info:
        svc.update_appointment(old.id, AppointmentUpdate(status=AppointmentStatus.SCHEDULED))
    assert exc_info.value.kind == ErrorKind.SCHEDULING_CONFLICT


def test_no_show_frees_the_slot(container, patient):
    svc = container.appointments
    appt = svc.create_appointment(_request(patient.id, "14:00", "15:00"))
    svc.update_appointment(appt.id, AppointmentUpdate(status=AppointmentStatus.NO_SHOW))

    assert container.detector.has_conflict("Dr. A", _DAY, "14:00", "15:00") is False


def test_practitioner_schedule_skips_inactive_and_sorts(container, patient):
    svc = container.appointments
    late = svc.create_appointment(_request(patient.id, "16:00", "17:00"))
    early = svc.create_appointment(_request(patient.id, "08:00", "09:00"))
    gone = svc.create_appointment(_request(patient.id, "10:00", "11:00"))
    svc.cancel_appointment(gone.id)

    schedule = svc.get_practitioner_schedule("Dr. A", _DAY)

    assert [a.id for a in schedule] == [early.id, late.id]


def test_list_filters_and_paginates(container, patient):
    svc = container.appointments
    for hour in range(8, 13):
        svc.create_appointment(_request(patient.id, f"{hour}:00", f"{hour}:30"))
    svc.create_appointment(_request(patient.id, "08:00", "08:30", practitioner="Dr. B"))

    page = svc.get_all_appointments(page=2, limit=2, filters={"practitioner": "Dr. A"})

    assert page.pagination.total == 5
    assert page.pagination.total_pages == 3
    assert page.pagination.has_next_page and page.pagination.has_prev_page
    assert [a.start_time for a in page.appointments] == [time(10, 0), time(11, 0)]


def test_patient_appointments_require_known_patient(container):
    with pytest.raises(ClinicError) as exc_info:
        container.appointments.get_patient_appointments("missing")
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


def test_mark_reminder_sent(container, patient):
    appt = container.appointments.create_appointment(_request(patient.id, "14:00", "15:00"))

    updated = container.appointments.mark_reminder_sent(appt.id)

    assert updated.reminder_sent is True
    assert updated.reminder_sent_at is not None


@pytest.mark.parametrize("field", ["practitioner", "status", "date"])
def test_update_with_null_required_field_is_rejected(container, patient, field):
    svc = container.appointments
    appt = svc.create_appointment(_request(patient.id, "14:00", "15:00"))

    with pytest.raises(ClinicError) as exc_info:
        svc.update_appointment(appt.id, AppointmentUpdate(**{field: None}))

    assert exc_info.value.kind == ErrorKind.INVALID_DOCUMENT
    assert field in exc_info.value.message
    stored = container.appointment_repo.get(appt.id)
    assert stored.practitioner == "Dr. A"
    assert stored.status == AppointmentStatus.SCHEDULED


def test_update_with_null_practitioner_never_reaches_the_detector(container, patient, monkeypatch):
    svc = container.appointments
    appt = svc.create_appointment(_request(patient.id, "14:00", "15:00"))
    calls: list[tuple] = []
    monkeypatch.setattr(
        svc.detector, "find_conflicts", lambda *args, **kwargs: calls.append(args) or []
    )

    with pytest.raises(ClinicError):
        svc.update_appointment(appt.id, AppointmentUpdate(practitioner=None))

    assert calls == []
