"""Appointment scheduling.

Every write that gives an appointment a new or changed slot runs the
ConflictDetector first and refuses to persist on overlap.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any

from clinic.config import Settings
from clinic.domain.bus import EventBus
from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.events import AppointmentCancelled, AppointmentCreated, AppointmentRescheduled
from clinic.domain.models import (
    INACTIVE_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentPage,
    AppointmentStatus,
    AppointmentUpdate,
)
from clinic.repos.memory import AppointmentRepository, PatientRepository
from clinic.services.conflicts import ConflictDetector, to_interval
from clinic.services.pagination import build_pagination, normalize_page
from clinic.services.search import matches_filters
from clinic.services.updates import apply_changes

logger = logging.getLogger(__name__)

_SLOT_FIELDS = ("practitioner", "date", "start_time", "end_time")


class AppointmentService:
    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        patient_repo: PatientRepository,
        detector: ConflictDetector,
        bus: EventBus,
        settings: Settings,
    ) -> None:
        self.appointment_repo = appointment_repo
        self.patient_repo = patient_repo
        self.detector = detector
        self.bus = bus
        self.settings = settings

    def create_appointment(self, data: AppointmentCreate) -> Appointment:
        """Book a new slot with status Scheduled.

        Raises NOT_FOUND for an unknown patient, INVALID_INTERVAL for an empty
        or reversed slot and SCHEDULING_CONFLICT when the practitioner is busy.
        """
        if self.patient_repo.get(data.patient_id) is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Patient not found")

        self._ensure_free(data.practitioner, data.date, data.start_time, data.end_time)

        appointment = self.appointment_repo.add(
            Appointment(**data.model_dump(), status=AppointmentStatus.SCHEDULED)
        )
        self.bus.publish(AppointmentCreated(appointment_id=appointment.id))
        return appointment

    def get_appointment_by_id(self, appointment_id: str) -> Appointment:
        appointment = self.appointment_repo.get(appointment_id)
        if appointment is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Appointment not found")
        return appointment

    def get_all_appointments(
        self,
        page: int | str | None = 1,
        limit: int | str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> AppointmentPage:
        """List appointments in calendar order, optionally filtered by exact field values."""
        page, limit = normalize_page(
            page, limit, self.settings.default_page_size, self.settings.max_page_size
        )
        query = {k: v for k, v in (filters or {}).items() if v is not None}

        def predicate(a: Appointment) -> bool:
            return matches_filters(a, query)

        appointments = self.appointment_repo.find(
            predicate,
            sort_key=lambda a: (a.date, a.start_time),
            skip=(page - 1) * limit,
            limit=limit,
        )
        total = self.appointment_repo.count(predicate)
        return AppointmentPage(
            appointments=appointments, pagination=build_pagination(total, page, limit)
        )

    def get_patient_appointments(self, patient_id: str) -> list[Appointment]:
        if self.patient_repo.get(patient_id) is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Patient not found")
        return self.appointment_repo.list_for_patient(patient_id)

    def get_practitioner_schedule(self, practitioner: str, day: date | datetime) -> list[Appointment]:
        """Slot-holding appointments for one practitioner and day, by start time."""
        if isinstance(day, datetime):
            day = day.date()
        return self.appointment_repo.list_for_practitioner_on(
            practitioner, day, exclude_statuses=INACTIVE_STATUSES
        )

    def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> Appointment:
        current = self.get_appointment_by_id(appointment_id)
        changes = data.model_dump(exclude_unset=True)
        merged = {**current.model_dump(), **changes}

        slot_changed = any(
            field in changes and getattr(data, field) != getattr(current, field)
            for field in _SLOT_FIELDS
        )
        if slot_changed and None not in (merged["start_time"], merged["end_time"]):
            to_interval(merged["start_time"], merged["end_time"])

        candidate = apply_changes(Appointment, current.model_dump(), changes)
        reactivated = not current.holds_slot
        if candidate.holds_slot and (slot_changed or reactivated):
            # The stored version of this appointment must not count against itself.
            self._ensure_free(
                candidate.practitioner,
                candidate.date,
                candidate.start_time,
                candidate.end_time,
                exclude_id=appointment_id,
            )

        updated = self.appointment_repo.replace(candidate)
        if slot_changed:
            self.bus.publish(
                AppointmentRescheduled(
                    appointment_id=appointment_id,
                    previous_practitioner=current.practitioner,
                    previous_date=current.date,
                    previous_start_time=current.start_time,
                    previous_end_time=current.end_time,
                )
            )
        if (
            changes.get("status") == AppointmentStatus.CANCELLED
            and current.status != AppointmentStatus.CANCELLED
        ):
            self.bus.publish(AppointmentCancelled(appointment_id=appointment_id))
        logger.info("Updated appointment %s (%s)", appointment_id, ", ".join(sorted(changes)))
        return updated

    def cancel_appointment(
        self,
        appointment_id: str,
        reason: str | None = None,
        cancelled_by: str | None = None,
    ) -> Appointment:
        appointment = self.get_appointment_by_id(appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED:
            logger.info("Appointment %s already cancelled", appointment_id)
            return appointment

        appointment.status = AppointmentStatus.CANCELLED
        self.appointment_repo.replace(appointment)
        self.bus.publish(
            AppointmentCancelled(
                appointment_id=appointment_id, reason=reason, cancelled_by=cancelled_by
            )
        )
        return appointment

    def mark_reminder_sent(self, appointment_id: str) -> Appointment:
        appointment = self.get_appointment_by_id(appointment_id)
        appointment.reminder_sent = True
        appointment.reminder_sent_at = datetime.now(timezone.utc)
        return self.appointment_repo.replace(appointment)

    # ------------------------------------------------------------------

    def _ensure_free(
        self,
        practitioner: str,
        day: date | datetime,
        start_time: time | str,
        end_time: time | str,
        exclude_id: str | None = None,
    ) -> None:
        conflicts = self.detector.find_conflicts(
            practitioner, day, start_time, end_time, exclude_id=exclude_id
        )
        if conflicts:
            logger.warning(
                "Scheduling conflict for %s on %s: overlaps %s",
                practitioner,
                day,
                ", ".join(c.id for c in conflicts),
            )
            raise ClinicError(
                ErrorKind.SCHEDULING_CONFLICT,
                "The practitioner already has an appointment in this time slot",
            )
