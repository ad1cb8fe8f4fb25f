"""Clinical visit documentation."""

from __future__ import annotations

import logging

from clinic.config import Settings
from clinic.domain.bus import EventBus
from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.events import ClinicalRecordCreated
from clinic.domain.models import (
    ClinicalRecord,
    ClinicalRecordCreate,
    ClinicalRecordPage,
    ClinicalRecordUpdate,
)
from clinic.repos.memory import (
    AppointmentRepository,
    ClinicalRecordRepository,
    PatientRepository,
)
from clinic.services.pagination import build_pagination, normalize_page
from clinic.services.updates import apply_changes

logger = logging.getLogger(__name__)


class ClinicalRecordService:
    def __init__(
        self,
        clinical_record_repo: ClinicalRecordRepository,
        patient_repo: PatientRepository,
        appointment_repo: AppointmentRepository,
        bus: EventBus,
        settings: Settings,
    ) -> None:
        self.clinical_record_repo = clinical_record_repo
        self.patient_repo = patient_repo
        self.appointment_repo = appointment_repo
        self.bus = bus
        self.settings = settings

    def create_clinical_record(self, data: ClinicalRecordCreate) -> ClinicalRecord:
        if self.patient_repo.get(data.patient_id) is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Patient not found")
        if data.appointment_id is not None:
            appointment = self.appointment_repo.get(data.appointment_id)
            if appointment is None:
                raise ClinicError(ErrorKind.NOT_FOUND, "Appointment not found")
            if appointment.patient_id != data.patient_id:
                raise ClinicError(
                    ErrorKind.NOT_FOUND, "Appointment not found for this patient"
                )

        record = self.clinical_record_repo.add(ClinicalRecord(**data.model_dump()))
        logger.info("Documented visit %s for patient %s", record.id, record.patient_id)
        self.bus.publish(
            ClinicalRecordCreated(
                clinical_record_id=record.id,
                patient_id=record.patient_id,
                appointment_id=record.appointment_id,
            )
        )
        return record

    def get_clinical_record_by_id(self, record_id: str) -> ClinicalRecord:
        record = self.clinical_record_repo.get(record_id)
        if record is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Clinical record not found")
        return record

    def get_patient_clinical_records(
        self,
        patient_id: str,
        page: int | str | None = 1,
        limit: int | str | None = None,
    ) -> ClinicalRecordPage:
        """A patient's visits, most recent first."""
        if self.patient_repo.get(patient_id) is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Patient not found")
        page, limit = normalize_page(
            page, limit, self.settings.default_page_size, self.settings.max_page_size
        )
        records = self.clinical_record_repo.list_for_patient(patient_id)
        skip = (page - 1) * limit
        return ClinicalRecordPage(
            clinical_records=records[skip : skip + limit],
            pagination=build_pagination(len(records), page, limit),
        )

    def update_clinical_record(self, record_id: str, data: ClinicalRecordUpdate) -> ClinicalRecord:
        record = self.get_clinical_record_by_id(record_id)
        changes = data.model_dump(exclude_unset=True)
        updated = self.clinical_record_repo.replace(
            apply_changes(ClinicalRecord, record.model_dump(), changes)
        )
        logger.info("Updated clinical record %s", record_id)
        return updated
