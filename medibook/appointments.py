"""Confirmed-appointment lifecycles for patients and providers.

Status changes are optimistic:
1. apply the new status locally
2. issue the request
3. on success replace the entry with the server's appointment
4. on failure restore the previous entry and record the error

Cancelled and completed appointments are terminal; a further transition
is refused locally without a request.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from medibook.http_client import MedibookError
from medibook.logging_config import get_logger
from medibook.models import Appointment, AppointmentStatus

logger = get_logger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load appointments. Please try again."
CANCEL_ERROR_MESSAGE = "Failed to cancel appointment. Please try again."
COMPLETE_ERROR_MESSAGE = "Failed to complete appointment. Please try again."
NOT_FOUND_MESSAGE = "Appointment not found."


@dataclass
class TransitionResult:
    success: bool
    message: str = ""
    error: str = ""
    appointment: Optional[Appointment] = None


@dataclass
class Dashboard:
    """Provider dashboard figures derived from the appointment list."""
    earnings: float = 0.0
    appointments: int = 0
    patients: int = 0
    latest_appointments: List[Appointment] = field(default_factory=list)


class AppointmentList:
    """Shared list behaviour: loading, error and optimistic transitions."""

    def __init__(self, api):
        self.api = api
        self.items: List[Appointment] = []
        self.loading = False
        self.error = ""

    def _fetch(self) -> Dict:
        raise NotImplementedError

    def refresh(self) -> bool:
        """
        Reload the list from the server.

        Returns:
            True on success; on failure the previous list is kept and
            `error` is set
        """
        self.loading = True
        self.error = ""
        try:
            response = self._fetch()
            self.items = [Appointment(**apt) for apt in response.get("appointments") or []]
            return True
        except (MedibookError, ValidationError) as e:
            logger.warning("appointments_fetch_failed", kind=type(self).__name__, error=str(e))
            self.error = LOAD_ERROR_MESSAGE
            return False
        finally:
            self.loading = False

    def get(self, appointment_id: str) -> Optional[Appointment]:
        return next((apt for apt in self.items if apt.id == appointment_id), None)

    def clear(self):
        self.items = []
        self.error = ""
        self.loading = False

    def _replace(self, appointment_id: str, appointment: Appointment):
        self.items = [appointment if apt.id == appointment_id else apt for apt in self.items]

    def _transition(
        self,
        appointment_id: str,
        target: AppointmentStatus,
        call: Callable[[str], Dict],
        success_message: str,
        failure_message: str
    ) -> TransitionResult:
        previous = self.get(appointment_id)
        if previous is None:
            return TransitionResult(success=False, error=NOT_FOUND_MESSAGE)

        if previous.is_terminal:
            error = f"Appointment is already {previous.status.value}."
            return TransitionResult(success=False, error=error, appointment=previous)

        optimistic = previous.model_copy(update={"status": target})
        self._replace(appointment_id, optimistic)

        try:
            response = call(appointment_id)
        except MedibookError as e:
            logger.warning("appointment_transition_failed", appointment_id=appointment_id,
                           target=target.value, error=str(e))
            self._replace(appointment_id, previous)
            return TransitionResult(success=False, error=failure_message, appointment=previous)

        confirmed = optimistic
        payload = response.get("appointment") if isinstance(response, dict) else None
        if payload:
            try:
                confirmed = Appointment(**payload)
            except ValidationError as e:
                logger.warning("appointment_payload_invalid", appointment_id=appointment_id,
                               error=str(e))
        self._replace(appointment_id, confirmed)

        logger.info("appointment_transitioned", appointment_id=appointment_id,
                    status=confirmed.status.value)
        return TransitionResult(success=True, message=success_message, appointment=confirmed)


class PatientAppointments(AppointmentList):
    """The patient's "my appointments" view."""

    def _fetch(self) -> Dict:
        return self.api.my_appointments()

    def cancel(self, appointment_id: str) -> TransitionResult:
        return self._transition(
            appointment_id,
            AppointmentStatus.CANCELLED,
            self.api.cancel,
            "Appointment cancelled successfully",
            CANCEL_ERROR_MESSAGE,
        )

    def upcoming(self, now: Optional[datetime] = None) -> List[Appointment]:
        return [
            apt for apt in self.items
            if apt.status == AppointmentStatus.BOOKED and apt.is_upcoming(now)
        ]


class ProviderAppointments(AppointmentList):
    """The provider's appointment table and dashboard."""

    LATEST_COUNT = 5

    def _fetch(self) -> Dict:
        return self.api.doctor_appointments()

    def cancel(self, appointment_id: str) -> TransitionResult:
        return self._transition(
            appointment_id,
            AppointmentStatus.CANCELLED,
            self.api.cancel_by_doctor,
            "Appointment cancelled successfully",
            CANCEL_ERROR_MESSAGE,
        )

    def complete(self, appointment_id: str) -> TransitionResult:
        return self._transition(
            appointment_id,
            AppointmentStatus.COMPLETED,
            self.api.complete,
            "Appointment marked as completed",
            COMPLETE_ERROR_MESSAGE,
        )

    def dashboard(self) -> Dashboard:
        latest = sorted(
            self.items,
            key=lambda apt: apt.starts_at or datetime.min,
            reverse=True
        )[:self.LATEST_COUNT]

        return Dashboard(
            earnings=sum(
                apt.amount for apt in self.items if apt.status == AppointmentStatus.COMPLETED
            ),
            appointments=len(self.items),
            patients=len({apt.patient_id for apt in self.items if apt.patient_id}),
            latest_appointments=latest,
        )
