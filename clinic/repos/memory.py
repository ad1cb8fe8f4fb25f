"""In-memory document repositories for clinic records."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from typing import Any, Generic, TypeVar

from clinic.domain.models import (
    Appointment,
    AppointmentStatus,
    ClinicalRecord,
    Document,
    Patient,
    Professional,
)

D = TypeVar("D", bound=Document)


class DocumentRepository(Generic[D]):
    """Dict-backed store for one document kind, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, D] = {}

    def add(self, doc: D) -> D:
        self._store[doc.id] = doc
        return doc

    def get(self, doc_id: str) -> D | None:
        return self._store.get(doc_id)

    def list_all(self) -> list[D]:
        return list(self._store.values())

    def find(
        self,
        predicate: Callable[[D], bool] | None = None,
        sort_key: Callable[[D], Any] | None = None,
        reverse: bool = False,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[D]:
        """Filter, sort and slice documents."""
        docs = [d for d in self._store.values() if predicate is None or predicate(d)]
        if sort_key is not None:
            docs.sort(key=sort_key, reverse=reverse)
        end = None if limit is None else skip + limit
        return docs[skip:end]

    def count(self, predicate: Callable[[D], bool] | None = None) -> int:
        return sum(1 for d in self._store.values() if predicate is None or predicate(d))

    def find_one(self, predicate: Callable[[D], bool]) -> D | None:
        return next((d for d in self._store.values() if predicate(d)), None)

    def replace(self, doc: D) -> D:
        """Store *doc* over its previous version, refreshing ``updated_at``."""
        doc.updated_at = datetime.now(timezone.utc)
        self._store[doc.id] = doc
        return doc

    def clear(self) -> None:
        self._store.clear()


class PatientRepository(DocumentRepository[Patient]):
    def get_by_id_number(self, id_number: str) -> Patient | None:
        return self.find_one(lambda p: p.id_number == id_number)


class ProfessionalRepository(DocumentRepository[Professional]):
    def get_by_id_number(self, id_number: str) -> Professional | None:
        return self.find_one(lambda p: p.id_number == id_number)


class AppointmentRepository(DocumentRepository[Appointment]):
    def list_for_practitioner_on(
        self,
        practitioner: str,
        day: date,
        exclude_statuses: Iterable[AppointmentStatus] = (),
        exclude_id: str | None = None,
    ) -> list[Appointment]:
        """Return a practitioner's appointments on *day*, ordered by start time."""
        skipped = frozenset(exclude_statuses)
        return self.find(
            lambda a: a.practitioner == practitioner
            and a.date == day
            and a.status not in skipped
            and a.id != exclude_id,
            sort_key=lambda a: a.start_time,
        )

    def list_for_patient(self, patient_id: str) -> list[Appointment]:
        return self.find(
            lambda a: a.patient_id == patient_id,
            sort_key=lambda a: (a.date, a.start_time),
        )


class ClinicalRecordRepository(DocumentRepository[ClinicalRecord]):
    def list_for_patient(self, patient_id: str) -> list[ClinicalRecord]:
        return self.find(
            lambda r: r.patient_id == patient_id,
            sort_key=lambda r: r.visit_date,
            reverse=True,
        )
