"""Domain event handlers, wired up when the container is built."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from clinic.domain.bus import EventBus
from clinic.domain.events import (
    AppointmentCancelled,
    AppointmentCreated,
    AppointmentRescheduled,
    ClinicalRecordCreated,
)
from clinic.repos.memory import AppointmentRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the appointment store."""

    def __init__(
        self,
        bus: EventBus,
        appointment_repo: AppointmentRepository,
    ) -> None:
        self.bus = bus
        self.appointment_repo = appointment_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(AppointmentCreated, self.on_appointment_created)
        self.bus.subscribe(AppointmentRescheduled, self.on_appointment_rescheduled)
        self.bus.subscribe(AppointmentCancelled, self.on_appointment_cancelled)
        self.bus.subscribe(ClinicalRecordCreated, self.on_clinical_record_created)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_appointment_created(self, event: AppointmentCreated) -> None:
        stored = self.appointment_repo.get(event.appointment_id)
        if stored is None:
            return
        logger.info(
            "Booked %s with %s on %s %s-%s",
            stored.id,
            stored.practitioner,
            stored.date,
            stored.start_time.strftime("%H:%M"),
            stored.end_time.strftime("%H:%M"),
        )

    def on_appointment_rescheduled(self, event: AppointmentRescheduled) -> None:
        stored = self.appointment_repo.get(event.appointment_id)
        if stored is None:
            return
        logger.info(
            "Moved %s from %s %s %s to %s %s %s",
            stored.id,
            event.previous_practitioner,
            event.previous_date,
            event.previous_start_time.strftime("%H:%M"),
            stored.practitioner,
            stored.date,
            stored.start_time.strftime("%H:%M"),
        )

    def on_appointment_cancelled(self, event: AppointmentCancelled) -> None:
        stored = self.appointment_repo.get(event.appointment_id)
        if stored is None:
            return

        stored.cancelled_at = datetime.now(timezone.utc)
        stored.cancellation_reason = event.reason
        stored.cancelled_by = event.cancelled_by
        logger.info("Cancelled appointment %s", stored.id)

    def on_clinical_record_created(self, event: ClinicalRecordCreated) -> None:
        if event.appointment_id is None:
            return
        appointment = self.appointment_repo.get(event.appointment_id)
        if appointment is None:
            logger.warning(
                "Clinical record %s references missing appointment %s",
                event.clinical_record_id,
                event.appointment_id,
            )
            return

        # Link the visit back onto its appointment.
        appointment.clinical_record_id = event.clinical_record_id
        self.appointment_repo.replace(appointment)
