"""Booking state machine for one appointment draft.

Flow:
    idle -> day_selected -> time_selected -> submitting -> succeeded | failed

- failed keeps every selection and behaves like time_selected afterwards.
- succeeded clears the draft and behaves like idle afterwards.
- Demo providers short-circuit submitting to a synthetic success without
  any network call.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from medibook import config
from medibook.availability import Week
from medibook.http_client import ApiError, MedibookError
from medibook.logging_config import get_logger
from medibook.models import Provider, TimeSlot

logger = get_logger(__name__)

DEMO_SUCCESS_MESSAGE = (
    "Demo booking successful! This is a demo doctor. "
    "In real implementation, this would book an actual appointment."
)
SUCCESS_MESSAGE = "Appointment booked successfully!"
SELECT_SLOT_MESSAGE = "Please select a date and time slot"
SLOT_UNAVAILABLE_MESSAGE = "Selected time slot is not available"
ALREADY_SUBMITTING_MESSAGE = "A booking is already in progress"
GENERIC_BOOKING_ERROR = "Failed to book appointment. Please try again."

LOGIN_ROUTE = "/login"
CONFIRMED_APPOINTMENTS_ROUTE = "/my-appointments"


class BookingState(str, Enum):
    IDLE = "idle"
    DAY_SELECTED = "day_selected"
    TIME_SELECTED = "time_selected"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Pattern: Current state -> [allowed next states]
VALID_TRANSITIONS: Dict[BookingState, List[BookingState]] = {
    BookingState.IDLE: [
        BookingState.DAY_SELECTED,
    ],
    BookingState.DAY_SELECTED: [
        BookingState.DAY_SELECTED,  # Switch to another day
        BookingState.TIME_SELECTED,
    ],
    BookingState.TIME_SELECTED: [
        BookingState.DAY_SELECTED,  # Day change drops the time
        BookingState.TIME_SELECTED,
        BookingState.SUBMITTING,
    ],
    BookingState.SUBMITTING: [
        BookingState.SUCCEEDED,
        BookingState.FAILED,
    ],
    BookingState.SUCCEEDED: [
        BookingState.DAY_SELECTED,  # Same as idle
    ],
    BookingState.FAILED: [
        BookingState.DAY_SELECTED,  # Same as time_selected
        BookingState.TIME_SELECTED,
        BookingState.SUBMITTING,
    ],
}


def validate_transition(current: BookingState, intended: BookingState) -> bool:
    """
    Validate state transition.

    Example:
        >>> validate_transition(BookingState.IDLE, BookingState.SUBMITTING)
        False
    """
    return intended in VALID_TRANSITIONS.get(current, [])


class BookingErrorKind(str, Enum):
    SLOT_TAKEN = "slot_already_booked"
    PAST_SLOT = "cannot_book_past_slot"
    PROVIDER_NOT_FOUND = "provider_not_found"
    MISSING_FIELDS = "missing_required_fields"
    OTHER = "other"


BOOKING_ERROR_MESSAGES = {
    BookingErrorKind.SLOT_TAKEN: "This slot is already booked. Please select another time.",
    BookingErrorKind.PAST_SLOT: "Cannot book appointments in the past.",
    BookingErrorKind.PROVIDER_NOT_FOUND: "Doctor not found. Please try again.",
    BookingErrorKind.MISSING_FIELDS: "Please fill in all required fields.",
}


def classify_booking_error(error: MedibookError) -> Tuple[BookingErrorKind, str]:
    """
    Map a failed booking call to a kind and a user-facing message.

    Known server codes get fixed messages. Any other API rejection is
    surfaced verbatim; transport failures get the generic message.
    """
    if isinstance(error, ApiError):
        try:
            kind = BookingErrorKind(error.message)
        except ValueError:
            kind = BookingErrorKind.OTHER
        if kind is not BookingErrorKind.OTHER:
            return kind, BOOKING_ERROR_MESSAGES[kind]
        return kind, error.message or GENERIC_BOOKING_ERROR

    return BookingErrorKind.OTHER, GENERIC_BOOKING_ERROR


@dataclass
class AppointmentDraft:
    """The in-progress selection on the appointment page."""
    day_index: Optional[int] = None
    slot_time: str = ""
    reason: str = ""
    is_booking: bool = False
    error: str = ""
    error_kind: Optional[BookingErrorKind] = None
    message: str = ""

    def clear_selection(self):
        self.day_index = None
        self.slot_time = ""
        self.reason = ""


@dataclass
class BookingOutcome:
    """What the caller should show or do after submit().

    redirect_to/redirect_after tell the caller where to navigate and how
    long to wait first (so a success message stays visible).
    display_for is how long a message without a redirect stays on screen.
    """
    state: BookingState
    message: str = ""
    error: str = ""
    redirect_to: Optional[str] = None
    redirect_after: float = 0.0
    display_for: float = 0.0
    appointment: Optional[dict] = None


class BookingFlow:
    """
    Drives one provider's appointment page.

    Args:
        provider: Provider being booked
        week: Generated slots, one list per day (today first)
        api: ApiClient-like collaborator with book(payload)
        is_authenticated: Callable answering "is a token present?"
        slot_generator: Optional SlotGenerator used to refresh the week
                        after a real booking
    """

    def __init__(
        self,
        provider: Provider,
        week: Week,
        api,
        is_authenticated: Callable[[], bool],
        slot_generator=None
    ):
        self.provider = provider
        self.week = week
        self.api = api
        self.is_authenticated = is_authenticated
        self.slot_generator = slot_generator
        self.draft = AppointmentDraft()
        self.state = BookingState.IDLE
        self.load_error = ""

    def _transition(self, intended: BookingState):
        if not validate_transition(self.state, intended):
            raise RuntimeError(f"Invalid booking transition {self.state.value} -> {intended.value}")
        logger.debug("booking_transition", provider_id=self.provider.id,
                     from_state=self.state.value, to_state=intended.value)
        self.state = intended

    def day_has_slots(self, index: int) -> bool:
        return 0 <= index < len(self.week) and len(self.week[index]) > 0

    def selected_day_slots(self) -> List[TimeSlot]:
        if self.draft.day_index is None or not self.day_has_slots(self.draft.day_index):
            return []
        return self.week[self.draft.day_index]

    def select_day(self, index: int) -> bool:
        """
        Select a day of the week.

        Days without slots are disabled: selecting one changes nothing.
        Moving to a different day drops the selected time and any error.

        Returns:
            True if the selection was applied
        """
        if self.state == BookingState.SUBMITTING or not self.day_has_slots(index):
            return False

        if index != self.draft.day_index:
            self.draft.slot_time = ""
            self.draft.error = ""
            self.draft.error_kind = None
            self.draft.day_index = index
            self._transition(BookingState.DAY_SELECTED)
        return True

    def select_time(self, label: str) -> bool:
        """Select a time label from the selected day. Clears any error."""
        if self.state == BookingState.SUBMITTING:
            return False
        if not any(slot.time == label for slot in self.selected_day_slots()):
            return False

        self.draft.slot_time = label
        self.draft.error = ""
        self.draft.error_kind = None
        self._transition(BookingState.TIME_SELECTED)
        return True

    def set_reason(self, text: str):
        self.draft.reason = (text or "")[:config.REASON_MAX_LENGTH]

    @property
    def can_submit(self) -> bool:
        return (
            self.state != BookingState.SUBMITTING
            and bool(self.draft.slot_time)
            and bool(self.selected_day_slots())
        )

    def submit(self) -> BookingOutcome:
        """
        Submit the draft.

        Returns:
            BookingOutcome describing the resulting state, message/error and
            any navigation the caller should perform
        """
        if not self.is_authenticated():
            return BookingOutcome(state=self.state, redirect_to=LOGIN_ROUTE)

        if self.state == BookingState.SUBMITTING:
            return BookingOutcome(state=self.state, error=ALREADY_SUBMITTING_MESSAGE)

        if not self.can_submit:
            self.draft.error = SELECT_SLOT_MESSAGE
            return BookingOutcome(state=self.state, error=SELECT_SLOT_MESSAGE)

        slot = next(
            (s for s in self.selected_day_slots() if s.time == self.draft.slot_time),
            None
        )
        if slot is None:
            self.draft.error = SLOT_UNAVAILABLE_MESSAGE
            return BookingOutcome(state=self.state, error=SLOT_UNAVAILABLE_MESSAGE)

        self._transition(BookingState.SUBMITTING)
        self.draft.is_booking = True
        self.draft.error = ""
        self.draft.error_kind = None
        self.draft.message = ""

        try:
            if not self.provider.is_real:
                return self._succeed(DEMO_SUCCESS_MESSAGE,
                                     display_for=config.DEMO_MESSAGE_SECONDS)
            return self._book(slot)
        finally:
            self.draft.is_booking = False

    def _book(self, slot: TimeSlot) -> BookingOutcome:
        payload = {
            "providerId": self.provider.id,
            "slotDate": slot.date_token,
            "slotTime": self.draft.slot_time,
            "reason": self.draft.reason.strip() or None,
        }
        logger.info("booking_submitted", provider_id=self.provider.id,
                    slot_date=payload["slotDate"], slot_time=payload["slotTime"])

        try:
            response = self.api.book(payload)
        except MedibookError as e:
            kind, message = classify_booking_error(e)
            logger.warning("booking_failed", provider_id=self.provider.id,
                           kind=kind.value, error=str(e))
            self.draft.error = message
            self.draft.error_kind = kind
            self._transition(BookingState.FAILED)
            return BookingOutcome(state=self.state, error=message)

        outcome = self._succeed(
            SUCCESS_MESSAGE,
            redirect_to=CONFIRMED_APPOINTMENTS_ROUTE,
            redirect_after=config.BOOKING_REDIRECT_DELAY_SECONDS,
            appointment=response.get("appointment") if isinstance(response, dict) else None
        )
        self.refresh_slots()
        return outcome

    def _succeed(self, message: str, **outcome_fields) -> BookingOutcome:
        self.draft.clear_selection()
        self.draft.message = message
        self._transition(BookingState.SUCCEEDED)
        logger.info("booking_succeeded", provider_id=self.provider.id,
                    provenance=self.provider.provenance.value)
        return BookingOutcome(state=self.state, message=message, **outcome_fields)

    def refresh_slots(self):
        """Regenerate the week so just-booked slots disappear."""
        if self.slot_generator is None:
            return
        self.week = self.slot_generator.generate(self.provider).days
