"""Domain events emitted during the appointment and visit lifecycle."""

from __future__ import annotations

from datetime import date, time

from pydantic import BaseModel


class AppointmentCreated(BaseModel):
    """Fired when a new appointment is persisted."""

    appointment_id: str


class AppointmentRescheduled(BaseModel):
    """Fired when an appointment's practitioner, day or slot changes."""

    appointment_id: str
    previous_practitioner: str
    previous_date: date
    previous_start_time: time
    previous_end_time: time


class AppointmentCancelled(BaseModel):
    """Fired when an appointment is cancelled."""

    appointment_id: str
    reason: str | None = None
    cancelled_by: str | None = None


class ClinicalRecordCreated(BaseModel):
    """Fired when a visit is documented."""

    clinical_record_id: str
    patient_id: str
    appointment_id: str | None = None
