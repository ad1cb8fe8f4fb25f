"""Domain models for patients, professionals, appointments and clinical records."""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, time, timezone
from enum import StrEnum

from dateutil.relativedelta import relativedelta
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    field_validator,
    model_validator,
)

EMAIL_PATTERN = r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$"

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")

# ``date`` is also a field name on Appointment; annotate with an alias.
CalendarDate = date


class Gender(StrEnum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class BloodType(StrEnum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"
    UNKNOWN = "Unknown"


class AppointmentType(StrEnum):
    INITIAL_ASSESSMENT = "Initial Assessment"
    FOLLOW_UP = "Follow-up"
    TREATMENT_SESSION = "Treatment Session"
    PROGRESS_EVALUATION = "Progress Evaluation"
    DISCHARGE_ASSESSMENT = "Discharge Assessment"
    OTHER = "Other"


class AppointmentStatus(StrEnum):
    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No-Show"
    RESCHEDULED = "Rescheduled"


# Appointments in these states never hold their slot.
INACTIVE_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


class PaymentStatus(StrEnum):
    PENDING = "Pending"
    PAID = "Paid"
    PARTIALLY_PAID = "Partially Paid"
    INSURANCE_PENDING = "Insurance Pending"
    WAIVED = "Waived"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def parse_clock_time(value: object) -> time:
    """Coerce ``"H:MM"`` / ``"HH:MM"`` strings (or a ``time``) to a ``time``.

    Seconds and microseconds are dropped; clinic slots are minute-granular.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, str):
        match = _CLOCK_RE.match(value)
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour < 24 and minute < 60:
                return time(hour, minute)
    raise ValueError(f"invalid clock time {value!r}, expected HH:MM")


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


def age_on(date_of_birth: date, today: date | None = None) -> int:
    """Whole years elapsed between *date_of_birth* and *today*."""
    return relativedelta(today or date.today(), date_of_birth).years


# ---------------------------------------------------------------------------
# Shared bases
# ---------------------------------------------------------------------------


class _Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class Document(_Schema):
    id: str = Field(default_factory=_new_id)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class _PersonFields(_Schema):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    id_number: str = Field(min_length=1)
    date_of_birth: date
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str = Field(min_length=1)
    is_active: bool = True


class _Person(Document):
    @computed_field  # type: ignore[prop-decorator]
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def age(self) -> int:
        return age_on(self.date_of_birth)


# ---------------------------------------------------------------------------
# Patient
# ---------------------------------------------------------------------------


class Address(_Schema):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str = "Chile"


class EmergencyContact(_Schema):
    name: str | None = None
    relationship: str | None = None
    phone: str | None = None


class Medication(_Schema):
    name: str | None = None
    dosage: str | None = None
    frequency: str | None = None


class PatientFields(_PersonFields):
    gender: Gender
    address: Address = Field(default_factory=Address)
    emergency_contact: EmergencyContact = Field(default_factory=EmergencyContact)
    blood_type: BloodType = BloodType.UNKNOWN
    allergies: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)
    medications: list[Medication] = Field(default_factory=list)
    occupation: str | None = None
    referred_by: str | None = None
    notes: str | None = None


class PatientCreate(PatientFields):
    pass


class Patient(_Person, PatientFields):
    pass


class PatientUpdate(_Schema):
    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    id_number: str | None = Field(default=None, min_length=1)
    date_of_birth: date | None = None
    gender: Gender | None = None
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, min_length=1)
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    blood_type: BloodType | None = None
    allergies: list[str] | None = None
    medical_conditions: list[str] | None = None
    medications: list[Medication] | None = None
    occupation: str | None = None
    referred_by: str | None = None
    notes: str | None = None
    is_active: bool | None = None


class PatientSearch(_Schema):
    name: str | None = None
    id_number: str | None = None
    email: str | None = None
    phone: str | None = None
    gender: Gender | None = None
    min_age: int | None = Field(default=None, ge=0)
    max_age: int | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Professional
# ---------------------------------------------------------------------------


class ProfessionalFields(_PersonFields):
    specialty: str = Field(min_length=1)


class ProfessionalCreate(ProfessionalFields):
    pass


class Professional(_Person, ProfessionalFields):
    pass


class ProfessionalUpdate(_Schema):
    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    id_number: str | None = Field(default=None, min_length=1)
    date_of_birth: date | None = None
    specialty: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, min_length=1)
    is_active: bool | None = None


class ProfessionalSearch(_Schema):
    name: str | None = None
    id_number: str | None = None
    specialty: str | None = None
    email: str | None = None


# ---------------------------------------------------------------------------
# Appointment
# ---------------------------------------------------------------------------


class InsuranceDetails(_Schema):
    provider: str | None = None
    policy_number: str | None = None
    authorization_code: str | None = None


class _ClockFields(_Schema):
    """Mixin: accept ``H:MM`` clock strings and a date-or-datetime day."""

    @field_validator("start_time", "end_time", mode="before", check_fields=False)
    @classmethod
    def _parse_clock(cls, value: object) -> object:
        if value is None:
            return value
        return parse_clock_time(value)

    @field_validator("date", mode="before", check_fields=False)
    @classmethod
    def _strip_time_of_day(cls, value: object) -> object:
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_serializer("start_time", "end_time", check_fields=False)
    def _format_clock(self, value: time | None) -> str | None:
        return value.strftime("%H:%M") if value is not None else None


class AppointmentFields(_ClockFields):
    patient_id: str = Field(min_length=1)
    practitioner: str = Field(min_length=1)
    date: CalendarDate
    start_time: time
    end_time: time
    type: AppointmentType
    clinical_record_id: str | None = None
    room: str | None = None
    insurance_used: bool = False
    insurance_details: InsuranceDetails = Field(default_factory=InsuranceDetails)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    fee: float | None = Field(default=None, ge=0)
    appointment_notes: str | None = None
    follow_up_needed: bool = False


class AppointmentCreate(AppointmentFields):
    pass


class Appointment(Document, AppointmentFields):
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    reminder_sent: bool = False
    reminder_sent_at: datetime | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> Appointment:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def holds_slot(self) -> bool:
        return self.status not in INACTIVE_STATUSES


class AppointmentUpdate(_ClockFields):
    practitioner: str | None = Field(default=None, min_length=1)
    date: CalendarDate | None = None
    start_time: time | None = None
    end_time: time | None = None
    type: AppointmentType | None = None
    status: AppointmentStatus | None = None
    clinical_record_id: str | None = None
    room: str | None = None
    insurance_used: bool | None = None
    insurance_details: InsuranceDetails | None = None
    payment_status: PaymentStatus | None = None
    fee: float | None = Field(default=None, ge=0)
    appointment_notes: str | None = None
    follow_up_needed: bool | None = None


class CancelAppointmentRequest(_Schema):
    reason: str | None = None
    cancelled_by: str | None = None


class ConflictCheckRequest(_ClockFields):
    practitioner: str = Field(min_length=1)
    date: CalendarDate
    start_time: time
    end_time: time
    exclude_id: str | None = None


class ConflictCheckResponse(BaseModel):
    conflict: bool
    conflicting_appointment_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Clinical record
# ---------------------------------------------------------------------------


class PainAssessment(_Schema):
    location: str | None = None
    intensity: int | None = Field(default=None, ge=0, le=10)
    description: str | None = None


class PhysicalAssessment(_Schema):
    body_posture: str | None = None
    range_of_motion: str | None = None
    muscle_strength: str | None = None
    pain_assessment: PainAssessment = Field(default_factory=PainAssessment)
    functional_limitations: str | None = None


class TreatmentPlan(_Schema):
    short_term_goals: list[str] = Field(default_factory=list)
    long_term_goals: list[str] = Field(default_factory=list)
    recommended_treatments: list[str] = Field(default_factory=list)
    recommended_frequency: str | None = None
    estimated_duration: str | None = None


class Technique(_Schema):
    name: str | None = None
    description: str | None = None
    duration: int | None = Field(default=None, ge=0)


class HomeExercise(_Schema):
    name: str | None = None
    description: str | None = None
    frequency: str | None = None
    sets: int | None = None
    reps: int | None = None


class Attachment(_Schema):
    name: str | None = None
    file_url: str | None = None
    file_type: str | None = None
    upload_date: datetime = Field(default_factory=_utcnow)


class ClinicalRecordFields(_Schema):
    patient_id: str = Field(min_length=1)
    appointment_id: str | None = None
    visit_date: datetime = Field(default_factory=_utcnow)
    chief_complaint: str = Field(min_length=1)
    physical_assessment: PhysicalAssessment = Field(default_factory=PhysicalAssessment)
    diagnosis: str = Field(min_length=1)
    treatment_plan: TreatmentPlan = Field(default_factory=TreatmentPlan)
    treatment_provided: str = Field(min_length=1)
    techniques: list[Technique] = Field(default_factory=list)
    home_exercises: list[HomeExercise] = Field(default_factory=list)
    progress_notes: str | None = None
    pain_before_treatment: int | None = Field(default=None, ge=0, le=10)
    pain_after_treatment: int | None = Field(default=None, ge=0, le=10)
    functional_improvements: str | None = None
    practitioner: str = Field(min_length=1)
    next_visit_recommendation: datetime | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    notes: str | None = None


class ClinicalRecordCreate(ClinicalRecordFields):
    pass


class ClinicalRecord(Document, ClinicalRecordFields):
    pass


class ClinicalRecordUpdate(_Schema):
    visit_date: datetime | None = None
    chief_complaint: str | None = Field(default=None, min_length=1)
    physical_assessment: PhysicalAssessment | None = None
    diagnosis: str | None = Field(default=None, min_length=1)
    treatment_plan: TreatmentPlan | None = None
    treatment_provided: str | None = Field(default=None, min_length=1)
    techniques: list[Technique] | None = None
    home_exercises: list[HomeExercise] | None = None
    progress_notes: str | None = None
    pain_before_treatment: int | None = Field(default=None, ge=0, le=10)
    pain_after_treatment: int | None = Field(default=None, ge=0, le=10)
    functional_improvements: str | None = None
    practitioner: str | None = Field(default=None, min_length=1)
    next_visit_recommendation: datetime | None = None
    attachments: list[Attachment] | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class PatientPage(BaseModel):
    patients: list[Patient]
    pagination: Pagination


class ProfessionalPage(BaseModel):
    professionals: list[Professional]
    pagination: Pagination


class AppointmentPage(BaseModel):
    appointments: list[Appointment]
    pagination: Pagination


class ClinicalRecordPage(BaseModel):
    clinical_records: list[ClinicalRecord]
    pagination: Pagination


class DeactivationResult(BaseModel):
    success: bool
    message: str
    patient: Patient | None = None
    professional: Professional | None = None
