import json
import pathlib
import pytest
import respx
from carepulse_adapter.client import AppwriteClient
from carepulse_adapter.config import AppwriteSettings

FIX = pathlib.Path(__file__).parent / "fixtures"
BASE = "https://appwrite.test"

APPOINTMENTS = "/v1/databases/db/collections/appointments/documents"
PATIENTS = "/v1/databases/db/collections/patients/documents"
SMS = "/v1/messaging/messages/sms"


def load(name: str) -> dict:
    return json.loads((FIX / name).read_text())


@pytest.fixture
def settings():
    return AppwriteSettings(
        endpoint=f"{BASE}/v1",
        project_id="proj",
        api_key="secret",
        database_id="db",
        patient_collection_id="patients",
        doctor_collection_id="doctors",
        appointment_collection_id="appointments",
        bucket_id="bucket",
    )


@pytest.fixture
def client(settings):
    return AppwriteClient(settings)


@pytest.fixture
def appwrite():
    # routes for calls that must NOT happen are declared too, so don't require every route to be hit
    with respx.mock(base_url=BASE, assert_all_called=False) as m:
        yield m
