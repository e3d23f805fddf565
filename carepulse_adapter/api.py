from contextlib import asynccontextmanager
from typing import Optional
from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel
from .appointments import AppointmentService
from .client import AppwriteClient
from .config import LOG_FORMAT, LOG_LEVEL
from .errors import AdapterError, PatientNotFound
from .logging_setup import setup_logging
from .models import (
    Action,
    Appointment,
    AppointmentFormValues,
    CreateUserParams,
    Patient,
    RecentAppointments,
    RegisterPatientParams,
    SubmitContext,
    User,
)
from .patients import PatientService


class SubmitRequest(BaseModel):
    action: Action = Action.CREATE
    context: SubmitContext
    values: AppointmentFormValues


class SubmitResponse(BaseModel):
    """``appointment`` is null whenever the action failed, whatever the reason."""
    appointment: Optional[Appointment] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    app.state.appwrite = AppwriteClient.from_env()
    yield


app = FastAPI(title="CarePulse Appointment Adapter", lifespan=lifespan)


def get_client(request: Request) -> AppwriteClient:
    return request.app.state.appwrite


def get_patient_service(client: AppwriteClient = Depends(get_client)) -> PatientService:
    return PatientService(client)


def get_appointment_service(
    client: AppwriteClient = Depends(get_client),
    patients: PatientService = Depends(get_patient_service),
) -> AppointmentService:
    return AppointmentService(client, patients=patients)


def _raise_for(error: AdapterError):
    if isinstance(error, PatientNotFound):
        raise HTTPException(status_code=404, detail="No patient found")
    raise HTTPException(status_code=502, detail="Something went wrong")


# Appointment endpoints -----------------------------------------------------

@app.post("/appointments/submit", response_model=SubmitResponse)
async def submit_appointment(req: SubmitRequest, service: AppointmentService = Depends(get_appointment_service)):
    """Create, schedule or cancel an appointment from the booking form."""
    result = await service.submit(req.action, req.context, req.values)
    return SubmitResponse(appointment=result.value)


@app.get("/appointments/recent", response_model=RecentAppointments)
async def recent_appointments(service: AppointmentService = Depends(get_appointment_service)):
    result = await service.get_recent_appointment_list()
    if not result.ok:
        _raise_for(result.error)
    return result.value


@app.get("/appointments/{appointment_id}", response_model=Appointment)
async def get_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    result = await service.get_appointment(appointment_id)
    if not result.ok:
        _raise_for(result.error)
    return result.value


# Patient and user endpoints ------------------------------------------------

@app.post("/users", response_model=User)
async def create_user(params: CreateUserParams, service: PatientService = Depends(get_patient_service)):
    """Create a user, or return the existing one registered with the same email."""
    result = await service.create_user(params)
    if not result.ok:
        _raise_for(result.error)
    return result.value


@app.get("/users/{user_id}", response_model=User)
async def get_user(user_id: str, service: PatientService = Depends(get_patient_service)):
    result = await service.get_user(user_id)
    if not result.ok:
        _raise_for(result.error)
    return result.value


@app.post("/patients", response_model=Patient)
async def register_patient(params: RegisterPatientParams, service: PatientService = Depends(get_patient_service)):
    result = await service.register_patient(params)
    if not result.ok:
        _raise_for(result.error)
    return result.value


@app.get("/patients/by-user/{user_id}", response_model=Patient)
async def get_patient_by_user(user_id: str, service: PatientService = Depends(get_patient_service)):
    """Return the patient record owned by a user (the new-appointment page's lookup)."""
    result = await service.get_patient_by_user_id(user_id)
    if not result.ok:
        _raise_for(result.error)
    return result.value


@app.get("/patients/{patient_id}", response_model=Patient)
async def get_patient(patient_id: str, service: PatientService = Depends(get_patient_service)):
    result = await service.get_patient(patient_id)
    if not result.ok:
        _raise_for(result.error)
    return result.value
