from __future__ import annotations
import enum
from datetime import datetime, timezone
from typing import Annotated, Literal, Union
from pydantic import AfterValidator, BaseModel, Field


class Status(str, enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CANCELED = "canceled"


class Action(str, enum.Enum):
    CREATE = "create"
    SCHEDULE = "schedule"
    CANCEL = "cancel"


def derive_status(action: Action) -> Status:
    """Status an appointment ends up in after ``action``."""
    match action:
        case Action.CREATE:
            return Status.PENDING
        case Action.SCHEDULE:
            return Status.SCHEDULED
        case Action.CANCEL:
            return Status.CANCELED
    raise ValueError(f"No status mapping for action {action!r}")


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class Patient(BaseModel):
    id: str = Field(alias="$id")
    user_id: str = Field(alias="userId")
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    birth_date: datetime | None = Field(default=None, alias="birthDate")
    gender: str | None = None
    address: str | None = None
    occupation: str | None = None
    emergency_contact_name: str | None = Field(default=None, alias="emergencyContactName")
    emergency_contact_number: str | None = Field(default=None, alias="emergencyContactNumber")
    primary_physician: str | None = Field(default=None, alias="primaryPhysician")
    insurance_provider: str | None = Field(default=None, alias="insuranceProvider")
    insurance_policy_number: str | None = Field(default=None, alias="insurancePolicyNumber")
    allergies: str | None = None
    current_medication: str | None = Field(default=None, alias="currentMedication")
    family_medical_history: str | None = Field(default=None, alias="familyMedicalHistory")
    past_medical_history: str | None = Field(default=None, alias="pastMedicalHistory")
    identification_type: str | None = Field(default=None, alias="identificationType")
    identification_number: str | None = Field(default=None, alias="identificationNumber")
    identification_document_id: str | None = Field(default=None, alias="identificationDocumentId")
    identification_document_url: str | None = Field(default=None, alias="identificationDocumentUrl")

    # Appwrite returns system attributes ($collectionId, $permissions, ...) and
    # whatever else the collection defines; keep them.
    model_config = {"populate_by_name": True, "extra": "allow"}


class Appointment(BaseModel):
    id: str = Field(alias="$id")
    created_at: datetime | None = Field(default=None, alias="$createdAt")
    user_id: str = Field(alias="userId")
    # Relationship attribute: an id on write, usually the expanded document on read
    patient: Union[str, Patient, None] = None
    primary_physician: str = Field(alias="primaryPhysician")
    schedule: UtcDatetime
    reason: str | None = None
    note: str | None = None
    status: Status
    cancellation_reason: str | None = Field(default=None, alias="cancellationReason")

    model_config = {"populate_by_name": True, "extra": "allow"}


class AppointmentCreate(BaseModel):
    """Write payload of a new appointment. New appointments are always pending."""
    user_id: str = Field(alias="userId")
    patient: str
    primary_physician: str = Field(alias="primaryPhysician")
    schedule: UtcDatetime
    reason: str
    status: Literal[Status.PENDING] = Status.PENDING
    note: str | None = None

    model_config = {"populate_by_name": True}


class AppointmentUpdate(BaseModel):
    """Partial write payload of a schedule or cancel action."""
    primary_physician: str | None = Field(default=None, alias="primaryPhysician")
    schedule: UtcDatetime | None = None
    status: Status
    cancellation_reason: str | None = Field(default=None, alias="cancellationReason")

    model_config = {"populate_by_name": True}


class AppointmentFormValues(BaseModel):
    primary_physician: str | None = Field(default=None, alias="primaryPhysician")
    schedule: UtcDatetime | None = None
    reason: str | None = None
    note: str | None = None
    cancellation_reason: str | None = Field(default=None, alias="cancellationReason")

    model_config = {"populate_by_name": True}

    def missing_fields(self, action: Action) -> list[str]:
        """Names of the fields ``action`` needs but the form left empty."""
        match action:
            case Action.CREATE:
                required = ["primary_physician", "schedule", "reason"]
            case Action.SCHEDULE:
                required = ["primary_physician", "schedule"]
            case Action.CANCEL:
                required = ["cancellation_reason"]
            case _:
                raise ValueError(f"Unknown action {action!r}")
        return [name for name in required if not getattr(self, name)]


class SubmitContext(BaseModel):
    user_id: str = Field(alias="userId")
    patient_id: str | None = Field(default=None, alias="patientId")
    appointment_id: str | None = Field(default=None, alias="appointmentId")
    time_zone: str = Field(default="UTC", alias="timeZone")

    model_config = {"populate_by_name": True}


class RecentAppointments(BaseModel):
    total_count: int = Field(alias="totalCount")
    scheduled_count: int = Field(default=0, alias="scheduledCount")
    pending_count: int = Field(default=0, alias="pendingCount")
    cancelled_count: int = Field(default=0, alias="cancelledCount")
    documents: list[Appointment] = []

    model_config = {"populate_by_name": True}


class User(BaseModel):
    id: str = Field(alias="$id")
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}


class CreateUserParams(BaseModel):
    name: str
    email: str
    phone: str


class RegisterPatientParams(BaseModel):
    """Patient attributes as submitted by the registration form."""
    user_id: str = Field(alias="userId")
    name: str
    email: str
    phone: str
    birth_date: datetime | None = Field(default=None, alias="birthDate")
    gender: str | None = None
    address: str | None = None
    occupation: str | None = None
    emergency_contact_name: str | None = Field(default=None, alias="emergencyContactName")
    emergency_contact_number: str | None = Field(default=None, alias="emergencyContactNumber")
    primary_physician: str | None = Field(default=None, alias="primaryPhysician")
    insurance_provider: str | None = Field(default=None, alias="insuranceProvider")
    insurance_policy_number: str | None = Field(default=None, alias="insurancePolicyNumber")
    allergies: str | None = None
    current_medication: str | None = Field(default=None, alias="currentMedication")
    family_medical_history: str | None = Field(default=None, alias="familyMedicalHistory")
    past_medical_history: str | None = Field(default=None, alias="pastMedicalHistory")
    identification_type: str | None = Field(default=None, alias="identificationType")
    identification_number: str | None = Field(default=None, alias="identificationNumber")
    treatment_consent: bool = Field(default=False, alias="treatmentConsent")
    disclosure_consent: bool = Field(default=False, alias="disclosureConsent")
    privacy_consent: bool = Field(default=False, alias="privacyConsent")

    model_config = {"populate_by_name": True}


class IdentificationDocument(BaseModel):
    file_name: str
    content: bytes


class SmsReceipt(BaseModel):
    id: str = Field(alias="$id")
    provider_type: str | None = Field(default=None, alias="providerType")
    status: str | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}
