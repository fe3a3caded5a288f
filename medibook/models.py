"""Pydantic models for the booking API payloads and local records."""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from medibook import config

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class Role(str, Enum):
    """The two account kinds; each one gets its own UI mode."""
    PATIENT = "patient"
    PROVIDER = "provider"


class Speciality(str, Enum):
    GENERAL_PHYSICIAN = "General physician"
    GYNECOLOGIST = "Gynecologist"
    DERMATOLOGIST = "Dermatologist"
    PEDIATRICIANS = "Pediatricians"
    NEUROLOGIST = "Neurologist"
    GASTROENTEROLOGIST = "Gastroenterologist"


class Provenance(str, Enum):
    """Where a provider record came from.

    REAL providers are backed by the server and use server availability and
    booking. DEMO providers are client-side placeholders: their slots are
    synthesized locally and booking them never touches the network.
    """
    REAL = "real"
    DEMO = "demo"


class AppointmentStatus(str, Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self is not AppointmentStatus.BOOKED


class Provider(BaseModel):
    """A bookable doctor."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="Opaque provider id")
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    speciality: Speciality
    degree: str = "MBBS"
    experience: str = Field("", description="Years-of-experience label, e.g. '4 Years'")
    about: str = ""
    fees: float = Field(..., gt=0, description="Consultation fee")
    address: Dict[str, str] = Field(default_factory=lambda: dict(config.DEFAULT_ADDRESS))
    available: bool = True
    provenance: Provenance = Provenance.DEMO

    @property
    def is_real(self) -> bool:
        return self.provenance == Provenance.REAL

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Provider":
        """
        Build a provider from a /appointments/providers record.

        The server names the fee `appointmentFee` and the biography
        `description`; a missing biography gets a generated one.
        """
        name = payload["name"]
        speciality = payload.get("speciality")
        experience = payload.get("experience") or ""
        return cls(
            id=payload["id"],
            name=name,
            email=payload.get("email"),
            speciality=speciality,
            experience=experience,
            about=payload.get("description")
            or f"{name} specializes in {speciality} with {experience} of experience.",
            fees=payload.get("appointmentFee"),
            available=payload.get("available", True),
            provenance=Provenance.REAL,
        )

    @classmethod
    def from_demo(cls, payload: Dict[str, Any], index: int) -> "Provider":
        """Build a placeholder provider from the configured demo roster."""
        data = dict(payload)
        data["_id"] = data.get("_id") or f"dummy_{index}"
        data["provenance"] = Provenance.DEMO
        return cls(**data)


class TimeSlot(BaseModel):
    """One 30-minute bookable start time."""
    model_config = ConfigDict(populate_by_name=True)

    starts_at: datetime = Field(..., alias="datetime")
    time: str = Field(..., description="Display label, e.g. '02:30 PM'")

    @property
    def date_token(self) -> str:
        """Booking date in the server's D_M_YYYY form (no zero padding)."""
        d = self.starts_at
        return f"{d.day}_{d.month}_{d.year}"


class User(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    phone: Optional[str] = None


class Appointment(BaseModel):
    """A server-confirmed appointment as seen by either party."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    provider_id: str = Field(..., alias="providerId")
    provider_name: Optional[str] = Field(None, alias="providerName")
    patient_id: Optional[str] = Field(None, alias="patientId")
    patient_name: Optional[str] = Field(None, alias="patientName")
    patient_dob: Optional[date] = Field(None, alias="patientDob")
    slot_date: str = Field(..., alias="slotDate", description="D_M_YYYY")
    slot_time: str = Field(..., alias="slotTime")
    starts_at: Optional[datetime] = Field(None, alias="datetime")
    amount: float = Field(0, ge=0)
    status: AppointmentStatus = AppointmentStatus.BOOKED
    payment: bool = Field(False, description="True when paid online, False for cash")
    reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        if self.starts_at is None:
            return False
        return self.starts_at > (now or datetime.now())

    def patient_age(self, today: Optional[date] = None) -> Optional[int]:
        if self.patient_dob is None:
            return None
        return calculate_age(self.patient_dob, today)


class ProviderProfile(BaseModel):
    """The provider's own editable record."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    name: str = ""
    email: Optional[str] = None
    speciality: Optional[Speciality] = None
    degree: str = "MBBS"
    experience: str = ""
    about: str = ""
    fees: float = Field(0, ge=0)
    address: Dict[str, str] = Field(default_factory=lambda: dict(config.DEFAULT_ADDRESS))
    available: bool = True


class Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    file_name: str = Field(..., alias="fileName")
    content_type: str = Field(..., alias="contentType")
    size: int = Field(..., ge=0)
    status: str = "pending"


def format_slot_date(slot_date: str) -> str:
    """
    Render a D_M_YYYY token for display.

    Example:
        >>> format_slot_date("24_8_2025")
        '24 Aug 2025'
    """
    day, month, year = slot_date.split("_")
    return f"{day} {MONTHS[int(month) - 1]} {year}"


def calculate_age(dob: date, today: Optional[date] = None) -> int:
    """Whole years between dob and today."""
    today = today or date.today()
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age
