"""Appointment workflow: create requests, schedule or cancel them, notify the patient.

An appointment starts ``pending`` and only an explicit schedule or cancel
moves it. Every public operation performs at most one write and returns a
``Result``; nothing is retried.
"""
from __future__ import annotations
import logging
from pydantic import ValidationError
from .client import AppwriteClient, AppwriteError, Query, unique_id
from .errors import PersistenceFailure, PreconditionViolation, Result
from .models import (
    Action,
    Appointment,
    AppointmentCreate,
    AppointmentFormValues,
    AppointmentUpdate,
    Patient,
    RecentAppointments,
    Status,
    SubmitContext,
    derive_status,
)
from .notifications import NotificationDispatcher
from .patients import PatientService

logger = logging.getLogger(__name__)


class AppointmentService:
    def __init__(
        self,
        client: AppwriteClient,
        patients: PatientService | None = None,
        notifier: NotificationDispatcher | None = None,
    ):
        self.client = client
        self.patients = patients or PatientService(client)
        self.notifier = notifier or NotificationDispatcher(client)

    @property
    def _collection(self) -> str:
        return self.client.settings.appointment_collection_id

    async def submit(
        self,
        action: Action,
        context: SubmitContext,
        values: AppointmentFormValues,
    ) -> Result[Appointment]:
        """Entry point of the booking form: persist ``action`` and return the resulting appointment."""
        missing = values.missing_fields(action)
        if missing:
            logger.error(f"[submit] {action.value} is missing {', '.join(missing)} for user_id={context.user_id}")
            return Result.failure(
                PreconditionViolation(f"missing {', '.join(missing)}", action=action.value, user_id=context.user_id)
            )

        status = derive_status(action)

        if action == Action.CREATE:
            resolved = await self._resolve_patient(context)
            if not resolved.ok:
                return Result.failure(resolved.error)

            return await self.create_appointment(
                AppointmentCreate(
                    user_id=context.user_id,
                    patient=resolved.value.id,
                    primary_physician=values.primary_physician,
                    schedule=values.schedule,
                    reason=values.reason,
                    note=values.note,
                )
            )

        if not context.appointment_id:
            logger.error(f"[submit] {action.value} without appointment_id for user_id={context.user_id}")
            return Result.failure(
                PreconditionViolation("No appointmentId provided for update", action=action.value, user_id=context.user_id)
            )

        update = AppointmentUpdate(
            primary_physician=values.primary_physician,
            schedule=values.schedule,
            status=status,
            cancellation_reason=values.cancellation_reason if action == Action.CANCEL else None,
        )
        return await self.update_appointment(
            context.appointment_id, context.user_id, context.time_zone, update, action
        )

    async def _resolve_patient(self, context: SubmitContext) -> Result[Patient]:
        if context.patient_id:
            return await self.patients.get_patient(context.patient_id)
        return await self.patients.get_patient_by_user_id(context.user_id)

    async def create_appointment(self, data: AppointmentCreate) -> Result[Appointment]:
        payload = data.model_dump(by_alias=True, exclude_none=True, mode="json")
        try:
            document = await self.client.create_document(self._collection, unique_id(), payload)
            appointment = Appointment.model_validate(document)
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[create_appointment] Failed for user_id={data.user_id}, patient={data.patient}: {e}")
            return Result.failure(
                PersistenceFailure(str(e), operation="create_appointment", user_id=data.user_id, patient_id=data.patient)
            )

        logger.info(f"[create_appointment] Created appointment {appointment.id} for user_id={data.user_id}")
        return Result.success(appointment)

    async def update_appointment(
        self,
        appointment_id: str,
        user_id: str,
        time_zone: str,
        update: AppointmentUpdate,
        action: Action,
    ) -> Result[Appointment]:
        """Write ``update``, then send the patient one SMS about it.

        The SMS is best effort: its failure is logged by the dispatcher and
        the update is still reported as successful.
        """
        if not appointment_id:
            logger.error(f"[update_appointment] No appointment_id for user_id={user_id}")
            return Result.failure(
                PreconditionViolation("No appointmentId provided for update", action=action.value, user_id=user_id)
            )

        payload = update.model_dump(by_alias=True, exclude_none=True, mode="json")
        try:
            document = await self.client.update_document(self._collection, appointment_id, payload)
            appointment = Appointment.model_validate(document)
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[update_appointment] Failed for appointment_id={appointment_id}, action={action.value}: {e}")
            return Result.failure(
                PersistenceFailure(
                    str(e), operation="update_appointment", appointment_id=appointment_id, action=action.value
                )
            )

        logger.info(f"[update_appointment] Appointment {appointment_id} is now {appointment.status.value}")

        sent = await self.notifier.notify_appointment_update(user_id, action, appointment, time_zone)
        if not sent.ok:
            logger.warning(f"[update_appointment] Patient not notified about appointment {appointment_id}")

        return Result.success(appointment)

    async def get_appointment(self, appointment_id: str) -> Result[Appointment]:
        try:
            document = await self.client.get_document(self._collection, appointment_id)
            return Result.success(Appointment.model_validate(document))
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[get_appointment] Failed for appointment_id={appointment_id}: {e}")
            return Result.failure(
                PersistenceFailure(str(e), operation="get_appointment", appointment_id=appointment_id)
            )

    async def get_recent_appointment_list(self) -> Result[RecentAppointments]:
        """Newest appointments first, with a count per status."""
        try:
            listing = await self.client.list_documents(self._collection, [Query.order_desc("$createdAt")])
            documents = [Appointment.model_validate(doc) for doc in listing.get("documents", [])]
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[get_recent_appointment_list] Failed: {e}")
            return Result.failure(PersistenceFailure(str(e), operation="list_appointments"))

        counts = {status: 0 for status in Status}
        for appointment in documents:
            counts[appointment.status] += 1

        return Result.success(
            RecentAppointments(
                total_count=listing.get("total", len(documents)),
                scheduled_count=counts[Status.SCHEDULED],
                pending_count=counts[Status.PENDING],
                cancelled_count=counts[Status.CANCELED],
                documents=documents,
            )
        )
