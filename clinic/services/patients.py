"""Patient record management: create, list, update, soft delete and search."""

from __future__ import annotations

import logging
from typing import Any

from clinic.config import Settings
from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.models import (
    DeactivationResult,
    Patient,
    PatientCreate,
    PatientPage,
    PatientSearch,
    PatientUpdate,
)
from clinic.repos.memory import PatientRepository
from clinic.services.pagination import build_pagination, normalize_page
from clinic.services.search import birth_date_bounds, born_within, contains_ci, matches_filters
from clinic.services.updates import apply_changes

logger = logging.getLogger(__name__)


class PatientService:
    """Business rules for patient records.

    ``id_number`` is unique across all patients, active or not. Deletion is
    soft: the record stays and ``is_active`` flips to False.
    """

    def __init__(self, patient_repo: PatientRepository, settings: Settings) -> None:
        self.patient_repo = patient_repo
        self.settings = settings

    def create_patient(self, data: PatientCreate) -> Patient:
        if self.patient_repo.get_by_id_number(data.id_number) is not None:
            logger.warning("Rejected duplicate patient id_number %s", data.id_number)
            raise ClinicError(
                ErrorKind.DUPLICATE, "Patient with this ID number already exists"
            )

        fields = data.model_dump()
        if "country" not in data.address.model_fields_set:
            fields["address"]["country"] = self.settings.default_country

        patient = self.patient_repo.add(Patient(**fields))
        logger.info("Created patient %s", patient.id)
        return patient

    def get_all_patients(
        self,
        page: int | str | None = 1,
        limit: int | str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> PatientPage:
        """List patients newest first. Only active ones unless ``is_active`` is filtered."""
        page, limit = normalize_page(
            page, limit, self.settings.default_page_size, self.settings.max_page_size
        )
        query = dict(filters or {})
        query.setdefault("is_active", True)

        def predicate(p: Patient) -> bool:
            return matches_filters(p, query)

        patients = self.patient_repo.find(
            predicate,
            sort_key=lambda p: p.created_at,
            reverse=True,
            skip=(page - 1) * limit,
            limit=limit,
        )
        total = self.patient_repo.count(predicate)
        return PatientPage(patients=patients, pagination=build_pagination(total, page, limit))

    def get_patient_by_id(self, patient_id: str) -> Patient:
        patient = self.patient_repo.get(patient_id)
        if patient is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Patient not found")
        return patient

    def update_patient(self, patient_id: str, data: PatientUpdate) -> Patient:
        patient = self.get_patient_by_id(patient_id)
        changes = data.model_dump(exclude_unset=True)

        new_id_number = changes.get("id_number")
        if new_id_number and new_id_number != patient.id_number:
            other = self.patient_repo.get_by_id_number(new_id_number)
            if other is not None and other.id != patient_id:
                raise ClinicError(
                    ErrorKind.DUPLICATE,
                    "Another patient with this ID number already exists",
                )

        if data.address is not None and "country" not in data.address.model_fields_set:
            changes["address"]["country"] = self.settings.default_country

        updated = self.patient_repo.replace(
            apply_changes(Patient, patient.model_dump(exclude={"full_name", "age"}), changes)
        )
        logger.info("Updated patient %s (%s)", patient_id, ", ".join(sorted(changes)))
        return updated

    def delete_patient(self, patient_id: str) -> DeactivationResult:
        patient = self.get_patient_by_id(patient_id)
        deactivated = self.patient_repo.replace(patient.model_copy(update={"is_active": False}))
        logger.info("Deactivated patient %s", patient_id)
        return DeactivationResult(
            success=True,
            message="Patient deactivated successfully",
            patient=deactivated,
        )

    def search_patients(
        self,
        params: PatientSearch,
        page: int | str | None = 1,
        limit: int | str | None = None,
    ) -> PatientPage:
        """Search active patients, ordered by last name then first name."""
        page, limit = normalize_page(
            page, limit, self.settings.default_page_size, self.settings.max_page_size
        )
        checks = [lambda p: p.is_active]

        if params.name:
            name_matches = contains_ci(params.name)
            checks.append(lambda p: name_matches(p.first_name) or name_matches(p.last_name))
        if params.id_number:
            checks.append(lambda p: p.id_number == params.id_number)
        if params.email:
            email_matches = contains_ci(params.email)
            checks.append(lambda p: email_matches(p.email))
        if params.phone:
            phone_matches = contains_ci(params.phone)
            checks.append(lambda p: phone_matches(p.phone))
        if params.gender:
            checks.append(lambda p: p.gender == params.gender)
        if params.min_age is not None or params.max_age is not None:
            in_range = born_within(*birth_date_bounds(params.min_age, params.max_age))
            checks.append(lambda p: in_range(p.date_of_birth))

        def predicate(p: Patient) -> bool:
            return all(check(p) for check in checks)

        patients = self.patient_repo.find(
            predicate,
            sort_key=lambda p: (p.last_name, p.first_name),
            skip=(page - 1) * limit,
            limit=limit,
        )
        total = self.patient_repo.count(predicate)
        return PatientPage(patients=patients, pagination=build_pagination(total, page, limit))
