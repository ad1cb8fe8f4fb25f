"""Explicit wiring of repositories, bus, handlers and services."""

from __future__ import annotations

from clinic.config import Settings, load_settings
from clinic.domain.bus import EventBus
from clinic.domain.handlers import HandlerRegistry
from clinic.repos.memory import (
    AppointmentRepository,
    ClinicalRecordRepository,
    PatientRepository,
    ProfessionalRepository,
)
from clinic.services.appointments import AppointmentService
from clinic.services.clinical_records import ClinicalRecordService
from clinic.services.conflicts import ConflictDetector
from clinic.services.patients import PatientService
from clinic.services.professionals import ProfessionalService


class ClinicContainer:
    """Owns one document store and the services built on top of it.

    Pass a container to ``create_app`` (or use its services directly);
    nothing in the package keeps a module-level service instance.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or load_settings()

        self.bus = EventBus()
        self.patient_repo = PatientRepository()
        self.professional_repo = ProfessionalRepository()
        self.appointment_repo = AppointmentRepository()
        self.clinical_record_repo = ClinicalRecordRepository()

        self.handlers = HandlerRegistry(
            bus=self.bus,
            appointment_repo=self.appointment_repo,
        )
        self.detector = ConflictDetector(self.appointment_repo)

        self.patients = PatientService(self.patient_repo, self.settings)
        self.professionals = ProfessionalService(self.professional_repo, self.settings)
        self.appointments = AppointmentService(
            appointment_repo=self.appointment_repo,
            patient_repo=self.patient_repo,
            detector=self.detector,
            bus=self.bus,
            settings=self.settings,
        )
        self.clinical_records = ClinicalRecordService(
            clinical_record_repo=self.clinical_record_repo,
            patient_repo=self.patient_repo,
            appointment_repo=self.appointment_repo,
            bus=self.bus,
            settings=self.settings,
        )
