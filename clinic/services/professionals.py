"""Practitioner (professional) records."""

from __future__ import annotations

import logging
from typing import Any

from clinic.config import Settings
from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.models import (
    DeactivationResult,
    Professional,
    ProfessionalCreate,
    ProfessionalPage,
    ProfessionalSearch,
    ProfessionalUpdate,
)
from clinic.repos.memory import ProfessionalRepository
from clinic.services.pagination import build_pagination, normalize_page
from clinic.services.search import contains_ci, matches_filters
from clinic.services.updates import apply_changes

logger = logging.getLogger(__name__)


class ProfessionalService:
    def __init__(self, professional_repo: ProfessionalRepository, settings: Settings) -> None:
        self.professional_repo = professional_repo
        self.settings = settings

    def create_professional(self, data: ProfessionalCreate) -> Professional:
        if self.professional_repo.get_by_id_number(data.id_number) is not None:
            logger.warning("Rejected duplicate professional id_number %s", data.id_number)
            raise ClinicError(
                ErrorKind.DUPLICATE, "Professional with this ID number already exists"
            )
        professional = self.professional_repo.add(Professional(**data.model_dump()))
        logger.info("Created professional %s", professional.id)
        return professional

    def get_all_professionals(
        self,
        page: int | str | None = 1,
        limit: int | str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> ProfessionalPage:
        page, limit = normalize_page(
            page, limit, self.settings.default_page_size, self.settings.max_page_size
        )
        query = dict(filters or {})
        query.setdefault("is_active", True)

        def predicate(p: Professional) -> bool:
            return matches_filters(p, query)

        professionals = self.professional_repo.find(
            predicate,
            sort_key=lambda p: p.created_at,
            reverse=True,
            skip=(page - 1) * limit,
            limit=limit,
        )
        total = self.professional_repo.count(predicate)
        return ProfessionalPage(
            professionals=professionals, pagination=build_pagination(total, page, limit)
        )

    def get_professional_by_id(self, professional_id: str) -> Professional:
        professional = self.professional_repo.get(professional_id)
        if professional is None:
            raise ClinicError(ErrorKind.NOT_FOUND, "Professional not found")
        return professional

    def update_professional(self, professional_id: str, data: ProfessionalUpdate) -> Professional:
        professional = self.get_professional_by_id(professional_id)
        changes = data.model_dump(exclude_unset=True)

        new_id_number = changes.get("id_number")
        if new_id_number and new_id_number != professional.id_number:
            other = self.professional_repo.get_by_id_number(new_id_number)
            if other is not None and other.id != professional_id:
                raise ClinicError(
                    ErrorKind.DUPLICATE,
                    "Another professional with this ID number already exists",
                )

        updated = self.professional_repo.replace(
            apply_changes(
                Professional, professional.model_dump(exclude={"full_name", "age"}), changes
            )
        )
        logger.info("Updated professional %s", professional_id)
        return updated

    def delete_professional(self, professional_id: str) -> DeactivationResult:
        professional = self.get_professional_by_id(professional_id)
        deactivated = self.professional_repo.replace(
            professional.model_copy(update={"is_active": False})
        )
        logger.info("Deactivated professional %s", professional_id)
        return DeactivationResult(
            success=True,
            message="Professional deactivated successfully",
            professional=deactivated,
        )

    def search_professionals(
        self,
        params: ProfessionalSearch,
        page: int | str | None = 1,
        limit: int | str | None = None,
    ) -> ProfessionalPage:
        page, limit = normalize_page(
            page, limit, self.settings.default_page_size, self.settings.max_page_size
        )
        checks = [lambda p: p.is_active]

        if params.name:
            name_matches = contains_ci(params.name)
            checks.append(lambda p: name_matches(p.first_name) or name_matches(p.last_name))
        if params.id_number:
            checks.append(lambda p: p.id_number == params.id_number)
        if params.specialty:
            specialty_matches = contains_ci(params.specialty)
            checks.append(lambda p: specialty_matches(p.specialty))
        if params.email:
            email_matches = contains_ci(params.email)
            checks.append(lambda p: email_matches(p.email))

        def predicate(p: Professional) -> bool:
            return all(check(p) for check in checks)

        professionals = self.professional_repo.find(
            predicate,
            sort_key=lambda p: (p.last_name, p.first_name),
            skip=(page - 1) * limit,
            limit=limit,
        )
        total = self.professional_repo.count(predicate)
        return ProfessionalPage(
            professionals=professionals, pagination=build_pagination(total, page, limit)
        )
