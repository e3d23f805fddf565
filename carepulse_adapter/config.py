"""Runtime configuration read from the environment (and a local .env file)."""
from __future__ import annotations
import os
from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class AppwriteSettings(BaseModel):
    endpoint: str = "https://cloud.appwrite.io/v1"
    project_id: str = ""
    api_key: str | None = None
    database_id: str = ""
    patient_collection_id: str = ""
    doctor_collection_id: str = ""
    appointment_collection_id: str = ""
    bucket_id: str = ""
    timeout: float = 15.0

    @classmethod
    def from_env(cls) -> "AppwriteSettings":
        return cls(
            endpoint=os.getenv("APPWRITE_ENDPOINT", "https://cloud.appwrite.io/v1"),
            project_id=os.getenv("APPWRITE_PROJECT_ID", ""),
            api_key=os.getenv("APPWRITE_API_KEY"),
            database_id=os.getenv("DATABASE_ID", ""),
            patient_collection_id=os.getenv("PATIENT_COLLECTION_ID", ""),
            doctor_collection_id=os.getenv("DOCTOR_COLLECTION_ID", ""),
            appointment_collection_id=os.getenv("APPOINTMENT_COLLECTION_ID", ""),
            bucket_id=os.getenv("BUCKET_ID", ""),
            timeout=float(os.getenv("APPWRITE_TIMEOUT", "15")),
        )


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
# "json" or "plain"
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
