"""Slot generation for the 7-day booking window.

Two paths, selected by provider provenance:
- DEMO providers: slots come from wall-clock rules only (no network).
- REAL providers: each day is fetched from the server; a failed day
  degrades to an empty list without affecting the other days.

Wall-clock rules (also used by the mock server):
- Days run 10:00 to 21:00 local time, one slot every 30 minutes.
- Today starts at the next half-hour boundary strictly after now,
  never before 10:00.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from pydantic import ValidationError

from medibook import config
from medibook.http_client import MedibookError
from medibook.logging_config import get_logger
from medibook.models import Provider, TimeSlot

logger = get_logger(__name__)

Week = List[List[TimeSlot]]


def _parse_hhmm(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


def format_slot_label(moment: datetime) -> str:
    """Display label for a slot start, e.g. '02:30 PM'."""
    return moment.strftime(config.SLOT_LABEL_FORMAT)


def next_half_hour(moment: datetime) -> datetime:
    """
    First :00 or :30 boundary strictly after moment.

    Example:
        >>> next_half_hour(datetime(2025, 1, 15, 14, 5))
        datetime.datetime(2025, 1, 15, 14, 30)
    """
    base = moment.replace(minute=0, second=0, microsecond=0)
    return base + timedelta(minutes=30 if moment.minute < 30 else 60)


def day_slots(day: date, now: datetime) -> List[TimeSlot]:
    """
    Wall-clock slots for one calendar day.

    Args:
        day: Calendar day to generate
        now: Lower bound; no slot at or before it is produced

    Returns:
        Ordered slots in [10:00, 21:00), spaced 30 minutes apart
    """
    step = timedelta(minutes=config.SLOT_HOURS["slot_duration_minutes"])
    current = datetime.combine(day, _parse_hhmm(config.SLOT_HOURS["start_time"]))
    end = datetime.combine(day, _parse_hhmm(config.SLOT_HOURS["end_time"]))

    if day == now.date():
        current = max(current, next_half_hour(now))

    slots = []
    while current < end:
        if current > now:
            slots.append(TimeSlot(starts_at=current, time=format_slot_label(current)))
        current += step

    return slots


def wall_clock_slots(now: Optional[datetime] = None, days: int = config.SLOT_WINDOW_DAYS) -> Week:
    """Slots for today and the following days, purely from local rules."""
    now = now or datetime.now()
    return [day_slots(now.date() + timedelta(days=offset), now) for offset in range(days)]


@dataclass
class GeneratedWeek:
    """Result of a generation run.

    `days` always holds exactly one (possibly empty) list per day.
    `failed_days` lists the offsets whose server call failed, so the caller
    can decide whether to show an error (e.g. when all of them failed).
    """
    days: Week
    failed_days: List[int] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return len(self.failed_days) == len(self.days)

    @property
    def has_slots(self) -> bool:
        return any(self.days)


class SlotGenerator:
    """Produces the bookable week for a provider."""

    def __init__(self, api, days: int = config.SLOT_WINDOW_DAYS):
        """
        Args:
            api: ApiClient-like collaborator with available_slots(id, date)
            days: Window length (default: 7)
        """
        self.api = api
        self.days = days

    def generate(self, provider: Provider, now: Optional[datetime] = None) -> GeneratedWeek:
        now = now or datetime.now()

        if not provider.is_real:
            return GeneratedWeek(days=wall_clock_slots(now, self.days))

        days: Week = []
        failed: List[int] = []
        for offset in range(self.days):
            day = now.date() + timedelta(days=offset)
            query_date = day.strftime(config.SLOT_QUERY_DATE_FORMAT)
            try:
                response = self.api.available_slots(provider.id, query_date)
                slots = [TimeSlot(**slot) for slot in response.get("availableSlots", [])]
            except (MedibookError, ValidationError, TypeError, AttributeError) as e:
                logger.warning("slot_fetch_failed", provider_id=provider.id,
                               date=query_date, error=str(e))
                failed.append(offset)
                slots = []
            days.append(slots)

        return GeneratedWeek(days=days, failed_days=failed)
