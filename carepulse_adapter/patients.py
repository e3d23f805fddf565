"""Patient and user lookups, plus the registration flow that creates them."""
from __future__ import annotations
import logging
from pydantic import ValidationError
from .client import AppwriteClient, AppwriteError, Query, unique_id
from .errors import PatientNotFound, PersistenceFailure, Result
from .models import CreateUserParams, IdentificationDocument, Patient, RegisterPatientParams, User

logger = logging.getLogger(__name__)


class PatientService:
    def __init__(self, client: AppwriteClient):
        self.client = client

    @property
    def _collection(self) -> str:
        return self.client.settings.patient_collection_id

    # -------------------------------
    # Users
    # -------------------------------

    async def create_user(self, params: CreateUserParams) -> Result[User]:
        """Create the user; if the email is taken, return the user that owns it."""
        try:
            created = await self.client.create_user(
                unique_id(), email=params.email, phone=params.phone, name=params.name
            )
            return Result.success(User.model_validate(created))
        except ValidationError as e:
            logger.exception(f"[create_user] Malformed user for email={params.email}")
            return Result.failure(PersistenceFailure(str(e), operation="create_user", email=params.email))
        except AppwriteError as e:
            if not e.conflict:
                logger.exception(f"[create_user] Failed for email={params.email}: {e}")
                return Result.failure(PersistenceFailure(str(e), operation="create_user", email=params.email))

        try:
            existing = await self.client.list_users([Query.equal("email", [params.email])])
            users = existing.get("users", [])
            if not users:
                # 409 can also mean the phone number is taken
                logger.error(f"[create_user] Conflict but no user with email={params.email}")
                return Result.failure(
                    PersistenceFailure("user already exists", operation="create_user", email=params.email)
                )
            return Result.success(User.model_validate(users[0]))
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[create_user] Lookup of existing user failed for email={params.email}: {e}")
            return Result.failure(PersistenceFailure(str(e), operation="list_users", email=params.email))

    async def get_user(self, user_id: str) -> Result[User]:
        try:
            return Result.success(User.model_validate(await self.client.get_user(user_id)))
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[get_user] Failed for user_id={user_id}: {e}")
            return Result.failure(PersistenceFailure(str(e), operation="get_user", user_id=user_id))

    # -------------------------------
    # Patients
    # -------------------------------

    async def register_patient(
        self,
        params: RegisterPatientParams,
        identification_document: IdentificationDocument | None = None,
    ) -> Result[Patient]:
        """Store the patient, uploading the identification document first when given."""
        settings = self.client.settings
        data = params.model_dump(by_alias=True, mode="json")
        data["identificationDocumentId"] = None
        data["identificationDocumentUrl"] = None

        try:
            if identification_document is not None:
                file = await self.client.create_file(
                    settings.bucket_id,
                    unique_id(),
                    identification_document.file_name,
                    identification_document.content,
                )
                file_id = file.get("$id")
                if not file_id:
                    raise AppwriteError("file upload returned no $id")
                data["identificationDocumentId"] = file_id
                data["identificationDocumentUrl"] = self.client.file_view_url(settings.bucket_id, file_id)

            document = await self.client.create_document(self._collection, unique_id(), data)
            patient = Patient.model_validate(document)
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[register_patient] Failed for user_id={params.user_id}: {e}")
            return Result.failure(PersistenceFailure(str(e), operation="register_patient", user_id=params.user_id))

        logger.info(f"[register_patient] Created patient {patient.id} for user_id={params.user_id}")
        return Result.success(patient)

    async def get_patient_by_user_id(self, user_id: str) -> Result[Patient]:
        """The patient owned by ``user_id``. Never raises; no match (or several) is a ``PatientNotFound`` result."""
        try:
            patients = await self.client.list_documents(self._collection, [Query.equal("userId", [user_id])])
        except AppwriteError as e:
            logger.exception(f"[get_patient_by_user_id] Failed for user_id={user_id}: {e}")
            return Result.failure(PersistenceFailure(str(e), operation="list_patients", user_id=user_id))

        documents = patients.get("documents", [])
        if not documents:
            logger.warning(f"[get_patient_by_user_id] No patient found for user_id={user_id}")
            return Result.failure(PatientNotFound("No patient found", user_id=user_id))
        if len(documents) > 1:
            # a user owns at most one patient record
            logger.error(f"[get_patient_by_user_id] {len(documents)} patients for user_id={user_id}")
            return Result.failure(PatientNotFound("No patient found", user_id=user_id, matches=len(documents)))

        try:
            return Result.success(Patient.model_validate(documents[0]))
        except ValidationError as e:
            logger.exception(f"[get_patient_by_user_id] Malformed patient document for user_id={user_id}")
            return Result.failure(PersistenceFailure(str(e), operation="list_patients", user_id=user_id))

    async def get_patient(self, patient_id: str) -> Result[Patient]:
        try:
            document = await self.client.get_document(self._collection, patient_id)
            return Result.success(Patient.model_validate(document))
        except ValidationError as e:
            logger.exception(f"[get_patient] Malformed patient document for patient_id={patient_id}")
            return Result.failure(PersistenceFailure(str(e), operation="get_patient", patient_id=patient_id))
        except AppwriteError as e:
            if e.not_found:
                logger.warning(f"[get_patient] No patient found for patient_id={patient_id}")
                return Result.failure(PatientNotFound("No patient found", patient_id=patient_id))
            logger.exception(f"[get_patient] Failed for patient_id={patient_id}: {e}")
            return Result.failure(PersistenceFailure(str(e), operation="get_patient", patient_id=patient_id))
