import pytest
from fastapi.testclient import TestClient
from carepulse_adapter.api import app, get_appointment_service, get_client, get_patient_service
from carepulse_adapter.client import AppwriteClient
from carepulse_adapter.errors import PatientNotFound, PersistenceFailure, PreconditionViolation, Result
from carepulse_adapter.models import Action, Appointment, Patient
from conftest import APPOINTMENTS, PATIENTS, SMS, load


class StubAppointments:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def submit(self, action, context, values):
        self.calls.append((action, context, values))
        return self.result

    async def get_appointment(self, appointment_id):
        return self.result

    async def get_recent_appointment_list(self):
        return self.result


class StubPatients:
    def __init__(self, result):
        self.result = result

    async def get_patient_by_user_id(self, user_id):
        return self.result

    async def get_patient(self, patient_id):
        return self.result


@pytest.fixture
def api():
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit_body(action="create", **context):
    return {
        "action": action,
        "context": {"userId": "U1", **context},
        "values": {"primaryPhysician": "John Green", "schedule": "2024-06-01T10:00:00Z", "reason": "Check-up"},
    }


def test_submit_returns_appointment(api):
    stub = StubAppointments(Result.success(Appointment.model_validate(load("appointment_document.json"))))
    app.dependency_overrides[get_appointment_service] = lambda: stub

    resp = api.post("/appointments/submit", json=_submit_body(patientId="P1"))

    assert resp.status_code == 200
    assert resp.json()["appointment"]["$id"] == "A1"
    action, context, values = stub.calls[0]
    assert action is Action.CREATE
    assert context.patient_id == "P1"
    assert values.primary_physician == "John Green"


@pytest.mark.parametrize(
    "error",
    [
        PatientNotFound("No patient found", user_id="U1"),
        PersistenceFailure("store down"),
        PreconditionViolation("No appointmentId provided for update"),
    ],
)
def test_submit_failures_collapse_to_null(api, error):
    app.dependency_overrides[get_appointment_service] = lambda: StubAppointments(Result.failure(error))

    resp = api.post("/appointments/submit", json=_submit_body("schedule"))

    assert resp.status_code == 200
    assert resp.json() == {"appointment": None}


def test_submit_rejects_unknown_action(api):
    app.dependency_overrides[get_appointment_service] = lambda: StubAppointments(Result.failure(PersistenceFailure("x")))

    resp = api.post("/appointments/submit", json=_submit_body("reschedule"))

    assert resp.status_code == 422


def test_get_appointment_failure(api):
    app.dependency_overrides[get_appointment_service] = lambda: StubAppointments(Result.failure(PersistenceFailure("x")))

    resp = api.get("/appointments/A1")

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Something went wrong"


def test_patient_by_user(api):
    patient = Patient.model_validate(load("patient_document.json"))
    app.dependency_overrides[get_patient_service] = lambda: StubPatients(Result.success(patient))

    resp = api.get("/patients/by-user/U1")

    assert resp.status_code == 200
    assert resp.json()["$id"] == "P1"


def test_patient_by_user_not_found(api):
    app.dependency_overrides[get_patient_service] = lambda: StubPatients(Result.failure(PatientNotFound("No patient found")))

    resp = api.get("/patients/by-user/U404")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "No patient found"


# Real services against a mocked Appwrite ----------------------------------

@pytest.fixture
def live_api(api, settings, appwrite):
    app.dependency_overrides[get_client] = lambda: AppwriteClient(settings)
    return api


@pytest.mark.parametrize(
    "patient_reply",
    [
        {"status_code": 200, "json": {"$id": "P1"}},
        {"status_code": 503, "json": {"message": "unavailable", "code": 503}},
        {"status_code": 200, "text": "<html>maintenance</html>"},
    ],
)
def test_submit_bad_store_reply_collapses_to_null(live_api, appwrite, patient_reply):
    appwrite.get(f"{PATIENTS}/P1").respond(**patient_reply)
    create = appwrite.post(APPOINTMENTS)

    resp = live_api.post("/appointments/submit", json=_submit_body(patientId="P1"))

    assert resp.status_code == 200
    assert resp.json() == {"appointment": None}
    assert not create.called


def test_submit_schedule_survives_sms_gateway_page(live_api, appwrite):
    doc = {**load("appointment_document.json"), "status": "scheduled"}
    appwrite.patch(f"{APPOINTMENTS}/A1").respond(200, json=doc)
    sms = appwrite.post(SMS).respond(201, text="<html>gateway</html>")

    resp = live_api.post("/appointments/submit", json=_submit_body("schedule", appointmentId="A1"))

    assert resp.status_code == 200
    assert resp.json()["appointment"]["status"] == "scheduled"
    assert sms.call_count == 1
