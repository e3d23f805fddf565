"""SMS sent to the patient after an appointment is scheduled or cancelled.

Sending is best effort: ``notify_appointment_update`` never raises, it hands
back a ``Result`` whose error has already been logged.
"""
from __future__ import annotations
import logging
import re
from datetime import datetime
from typing import NamedTuple
import pytz
from pydantic import ValidationError
from .client import AppwriteClient, AppwriteError, unique_id
from .errors import NotificationFailure, Result
from .models import Action, Appointment, SmsReceipt, as_utc

logger = logging.getLogger(__name__)

CLINIC_NAME = "CarePulse"


class FormattedDateTime(NamedTuple):
    date_time: str  # Jun 1, 2024, 10:00 AM
    date_day: str  # Sat, 06/01/2024
    date_only: str  # Jun 1, 2024
    time_only: str  # 10:00 AM


def format_date_time(value: datetime, time_zone: str = "UTC") -> FormattedDateTime:
    """Render ``value`` in ``time_zone``. Raises ``pytz.UnknownTimeZoneError`` for bad zones."""
    local = as_utc(value).astimezone(pytz.timezone(time_zone))

    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    time_only = f"{hour}:{local.minute:02d} {meridiem}"
    date_only = f"{local:%b} {local.day}, {local.year}"

    return FormattedDateTime(
        date_time=f"{date_only}, {time_only}",
        date_day=f"{local:%a}, {local:%m/%d/%Y}",
        date_only=date_only,
        time_only=time_only,
    )


def _physician_label(name: str | None) -> str:
    if name and re.match(r"dr[.\s]", name, re.IGNORECASE):
        return name
    return f"Dr. {name}"


def build_sms_message(
    action: Action,
    schedule: datetime,
    time_zone: str,
    physician: str | None = None,
    cancellation_reason: str | None = None,
) -> str:
    when = format_date_time(schedule, time_zone).date_time
    if action == Action.SCHEDULE:
        body = f"Your appointment is confirmed for {when} with {_physician_label(physician)}"
    else:
        body = f"We regret to inform that your appointment for {when} is cancelled. Reason: {cancellation_reason}"
    return f"Greetings from {CLINIC_NAME}. {body}."


class NotificationDispatcher:
    def __init__(self, client: AppwriteClient):
        self.client = client

    async def send_sms(self, user_id: str, content: str) -> Result[SmsReceipt]:
        """Send ``content`` to every SMS target registered for ``user_id``."""
        try:
            message = await self.client.create_sms(unique_id(), content, topics=[], users=[user_id])
            receipt = SmsReceipt.model_validate(message)
        except (AppwriteError, ValidationError) as e:
            logger.exception(f"[send_sms] Failed for user_id={user_id}: {e}")
            return Result.failure(NotificationFailure(str(e), operation="send_sms", user_id=user_id))

        logger.info(f"[send_sms] Queued message {receipt.id} for user_id={user_id}")
        return Result.success(receipt)

    async def notify_appointment_update(
        self,
        user_id: str,
        action: Action,
        appointment: Appointment,
        time_zone: str,
    ) -> Result[SmsReceipt]:
        """Compose the message for ``action`` from the updated appointment and send it."""
        if time_zone not in pytz.all_timezones_set:
            logger.warning(f"[notify_appointment_update] Unknown time zone {time_zone!r} for user_id={user_id}, using UTC")
            time_zone = "UTC"

        content = build_sms_message(
            action,
            appointment.schedule,
            time_zone,
            physician=appointment.primary_physician,
            cancellation_reason=appointment.cancellation_reason,
        )

        return await self.send_sms(user_id, content)
