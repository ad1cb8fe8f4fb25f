"""FastAPI application: entry point for the clinic practice service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from clinic.container import ClinicContainer
from clinic.domain.errors import ClinicError, ErrorKind
from clinic.domain.models import (
    Appointment,
    AppointmentCreate,
    AppointmentPage,
    AppointmentStatus,
    AppointmentUpdate,
    CancelAppointmentRequest,
    ClinicalRecord,
    ClinicalRecordCreate,
    ClinicalRecordPage,
    ClinicalRecordUpdate,
    ConflictCheckRequest,
    ConflictCheckResponse,
    DeactivationResult,
    Gender,
    Patient,
    PatientCreate,
    PatientPage,
    PatientSearch,
    PatientUpdate,
    Professional,
    ProfessionalCreate,
    ProfessionalPage,
    ProfessionalSearch,
    ProfessionalUpdate,
)
from clinic.services.appointments import AppointmentService
from clinic.services.clinical_records import ClinicalRecordService
from clinic.services.conflicts import ConflictDetector
from clinic.services.patients import PatientService
from clinic.services.professionals import ProfessionalService

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE: 400,
    ErrorKind.INVALID_INTERVAL: 400,
    ErrorKind.LOOKUP_FAILURE: 500,
    ErrorKind.SCHEDULING_CONFLICT: 409,
    ErrorKind.INVALID_DOCUMENT: 422,
}

router = APIRouter()


# ── Dependencies ──────────────────────────────────────────────────────


def get_container(request: Request) -> ClinicContainer:
    return request.app.state.container


def get_patient_service(container: ClinicContainer = Depends(get_container)) -> PatientService:
    return container.patients


def get_professional_service(
    container: ClinicContainer = Depends(get_container),
) -> ProfessionalService:
    return container.professionals


def get_appointment_service(
    container: ClinicContainer = Depends(get_container),
) -> AppointmentService:
    return container.appointments


def get_clinical_record_service(
    container: ClinicContainer = Depends(get_container),
) -> ClinicalRecordService:
    return container.clinical_records


def get_detector(container: ClinicContainer = Depends(get_container)) -> ConflictDetector:
    return container.detector


# ── Patients ──────────────────────────────────────────────────────────


@router.post("/patients", response_model=Patient, status_code=201)
def create_patient(
    payload: PatientCreate, service: PatientService = Depends(get_patient_service)
) -> Patient:
    return service.create_patient(payload)


@router.get("/patients", response_model=PatientPage)
def list_patients(
    page: int = 1,
    limit: int | None = None,
    gender: Gender | None = None,
    is_active: bool | None = None,
    service: PatientService = Depends(get_patient_service),
) -> PatientPage:
    filters: dict = {}
    if gender is not None:
        filters["gender"] = gender
    if is_active is not None:
        filters["is_active"] = is_active
    return service.get_all_patients(page=page, limit=limit, filters=filters)


@router.get("/patients/search", response_model=PatientPage)
def search_patients(
    name: str | None = None,
    id_number: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    gender: Gender | None = None,
    min_age: int | None = Query(default=None, ge=0),
    max_age: int | None = Query(default=None, ge=0),
    page: int = 1,
    limit: int | None = None,
    service: PatientService = Depends(get_patient_service),
) -> PatientPage:
    params = PatientSearch(
        name=name,
        id_number=id_number,
        email=email,
        phone=phone,
        gender=gender,
        min_age=min_age,
        max_age=max_age,
    )
    return service.search_patients(params, page=page, limit=limit)


@router.get("/patients/{patient_id}", response_model=Patient)
def get_patient(
    patient_id: str, service: PatientService = Depends(get_patient_service)
) -> Patient:
    return service.get_patient_by_id(patient_id)


@router.put("/patients/{patient_id}", response_model=Patient)
def update_patient(
    patient_id: str,
    payload: PatientUpdate,
    service: PatientService = Depends(get_patient_service),
) -> Patient:
    return service.update_patient(patient_id, payload)


@router.delete("/patients/{patient_id}", response_model=DeactivationResult)
def delete_patient(
    patient_id: str, service: PatientService = Depends(get_patient_service)
) -> DeactivationResult:
    """Soft delete: the patient is kept but marked inactive."""
    return service.delete_patient(patient_id)


@router.get("/patients/{patient_id}/appointments", response_model=list[Appointment])
def list_patient_appointments(
    patient_id: str, service: AppointmentService = Depends(get_appointment_service)
) -> list[Appointment]:
    return service.get_patient_appointments(patient_id)


@router.get("/patients/{patient_id}/clinical-records", response_model=ClinicalRecordPage)
def list_patient_clinical_records(
    patient_id: str,
    page: int = 1,
    limit: int | None = None,
    service: ClinicalRecordService = Depends(get_clinical_record_service),
) -> ClinicalRecordPage:
    return service.get_patient_clinical_records(patient_id, page=page, limit=limit)


# ── Professionals ─────────────────────────────────────────────────────


@router.post("/professionals", response_model=Professional, status_code=201)
def create_professional(
    payload: ProfessionalCreate,
    service: ProfessionalService = Depends(get_professional_service),
) -> Professional:
    return service.create_professional(payload)


@router.get("/professionals", response_model=ProfessionalPage)
def list_professionals(
    page: int = 1,
    limit: int | None = None,
    is_active: bool | None = None,
    service: ProfessionalService = Depends(get_professional_service),
) -> ProfessionalPage:
    filters = {"is_active": is_active} if is_active is not None else {}
    return service.get_all_professionals(page=page, limit=limit, filters=filters)


@router.get("/professionals/search", response_model=ProfessionalPage)
def search_professionals(
    name: str | None = None,
    id_number: str | None = None,
    specialty: str | None = None,
    email: str | None = None,
    page: int = 1,
    limit: int | None = None,
    service: ProfessionalService = Depends(get_professional_service),
) -> ProfessionalPage:
    params = ProfessionalSearch(
        name=name, id_number=id_number, specialty=specialty, email=email
    )
    return service.search_professionals(params, page=page, limit=limit)


@router.get("/professionals/{professional_id}", response_model=Professional)
def get_professional(
    professional_id: str,
    service: ProfessionalService = Depends(get_professional_service),
) -> Professional:
    return service.get_professional_by_id(professional_id)


@router.put("/professionals/{professional_id}", response_model=Professional)
def update_professional(
    professional_id: str,
    payload: ProfessionalUpdate,
    service: ProfessionalService = Depends(get_professional_service),
) -> Professional:
    return service.update_professional(professional_id, payload)


@router.delete("/professionals/{professional_id}", response_model=DeactivationResult)
def delete_professional(
    professional_id: str,
    service: ProfessionalService = Depends(get_professional_service),
) -> DeactivationResult:
    return service.delete_professional(professional_id)


# ── Appointments ──────────────────────────────────────────────────────


@router.post("/appointments", response_model=Appointment, status_code=201)
def create_appointment(
    payload: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    """Book an appointment; 409 when the practitioner is already busy."""
    return service.create_appointment(payload)


@router.post("/appointments/conflicts", response_model=ConflictCheckResponse)
def check_conflicts(
    payload: ConflictCheckRequest, detector: ConflictDetector = Depends(get_detector)
) -> ConflictCheckResponse:
    """Dry-run the double-booking check without persisting anything."""
    conflicts = detector.find_conflicts(
        payload.practitioner,
        payload.date,
        payload.start_time,
        payload.end_time,
        exclude_id=payload.exclude_id,
    )
    return ConflictCheckResponse(
        conflict=bool(conflicts), conflicting_appointment_ids=[c.id for c in conflicts]
    )


@router.get("/appointments", response_model=AppointmentPage)
def list_appointments(
    page: int = 1,
    limit: int | None = None,
    practitioner: str | None = None,
    patient_id: str | None = None,
    status: AppointmentStatus | None = None,
    day: date | None = Query(default=None, alias="date"),
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentPage:
    filters = {
        "practitioner": practitioner,
        "patient_id": patient_id,
        "status": status,
        "date": day,
    }
    return service.get_all_appointments(page=page, limit=limit, filters=filters)


@router.get("/appointments/{appointment_id}", response_model=Appointment)
def get_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return service.get_appointment_by_id(appointment_id)


@router.put("/appointments/{appointment_id}", response_model=Appointment)
def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return service.update_appointment(appointment_id, payload)


@router.post("/appointments/{appointment_id}/cancel", response_model=Appointment)
def cancel_appointment(
    appointment_id: str,
    body: CancelAppointmentRequest | None = None,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    body = body or CancelAppointmentRequest()
    return service.cancel_appointment(
        appointment_id, reason=body.reason, cancelled_by=body.cancelled_by
    )


@router.post("/appointments/{appointment_id}/reminder", response_model=Appointment)
def mark_reminder_sent(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return service.mark_reminder_sent(appointment_id)


# ── Clinical records ──────────────────────────────────────────────────


@router.post("/clinical-records", response_model=ClinicalRecord, status_code=201)
def create_clinical_record(
    payload: ClinicalRecordCreate,
    service: ClinicalRecordService = Depends(get_clinical_record_service),
) -> ClinicalRecord:
    return service.create_clinical_record(payload)


@router.get("/clinical-records/{record_id}", response_model=ClinicalRecord)
def get_clinical_record(
    record_id: str,
    service: ClinicalRecordService = Depends(get_clinical_record_service),
) -> ClinicalRecord:
    return service.get_clinical_record_by_id(record_id)


@router.put("/clinical-records/{record_id}", response_model=ClinicalRecord)
def update_clinical_record(
    record_id: str,
    payload: ClinicalRecordUpdate,
    service: ClinicalRecordService = Depends(get_clinical_record_service),
) -> ClinicalRecord:
    return service.update_clinical_record(record_id, payload)


# ── App factory ───────────────────────────────────────────────────────


async def _handle_clinic_error(request: Request, exc: ClinicError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def create_app(container: ClinicContainer | None = None) -> FastAPI:
    container = container or ClinicContainer()
    logging.basicConfig(
        level=container.settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    app = FastAPI(title=container.settings.app_title)
    app.state.container = container
    app.add_exception_handler(ClinicError, _handle_clinic_error)
    app.include_router(router)
    return app


# ASGI entry point (``uvicorn clinic.main:app``).
app = create_app()
