"""Configuration for the medibook client.

All business rules centralized here - modify as needed without touching code.
Environment variables (or a .env file) override the connection settings.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# API Configuration
API_BASE_URL = os.getenv("MEDIBOOK_API_BASE_URL", "http://localhost:3000")
MOCK_API_PORT = int(os.getenv("MOCK_API_PORT", "3000"))

# Retries are opt-in: every failure is surfaced once unless configured here
HTTP_MAX_RETRIES = int(os.getenv("MEDIBOOK_HTTP_MAX_RETRIES", "0"))
_timeout = os.getenv("MEDIBOOK_HTTP_TIMEOUT")
HTTP_TIMEOUT = float(_timeout) if _timeout else None  # None = network stack default

LOG_LEVEL = os.getenv("MEDIBOOK_LOG_LEVEL", "INFO")

# Persisted session
TOKEN_FILE = os.getenv(
    "MEDIBOOK_TOKEN_FILE",
    str(Path.home() / ".medibook" / "session.json")
)
TOKEN_KEY = "authToken"

# Slot generation
SLOT_WINDOW_DAYS = 7
SLOT_HOURS = {
    "start_time": "10:00",
    "end_time": "21:00",
    "slot_duration_minutes": 30,
}
SLOT_LABEL_FORMAT = "%I:%M %p"  # 02:30 PM
SLOT_QUERY_DATE_FORMAT = "%Y-%m-%d"

# Booking
REASON_MAX_LENGTH = 500
BOOKING_REDIRECT_DELAY_SECONDS = 2.0
DEMO_MESSAGE_SECONDS = 5.0

# Documents
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024
ALLOWED_DOCUMENT_TYPES = ("application/pdf",)

CURRENCY_SYMBOL = "$"

SPECIALITIES = [
    "General physician",
    "Gynecologist",
    "Dermatologist",
    "Pediatricians",
    "Neurologist",
    "Gastroenterologist",
]

DEFAULT_ADDRESS = {
    "line1": "123 Medical Center",
    "line2": "Healthcare District",
}

# Placeholder providers shown next to (or instead of) the real ones
DEMO_DOCTORS = [
    {
        "_id": "doc1",
        "name": "Dr. Richard James",
        "speciality": "General physician",
        "degree": "MBBS",
        "experience": "4 Years",
        "about": "Dr. James has a strong commitment to delivering comprehensive medical care, "
                 "focusing on preventive medicine, early diagnosis, and effective treatment strategies.",
        "fees": 50,
        "address": {"line1": "17th Cross, Richmond", "line2": "Circle, Ring Road, London"},
    },
    {
        "_id": "doc2",
        "name": "Dr. Emily Larson",
        "speciality": "Gynecologist",
        "degree": "MBBS",
        "experience": "3 Years",
        "about": "Dr. Larson provides women's health care with a focus on prevention and early diagnosis.",
        "fees": 60,
        "address": {"line1": "27th Cross, Richmond", "line2": "Circle, Ring Road, London"},
    },
    {
        "_id": "doc3",
        "name": "Dr. Sarah Patel",
        "speciality": "Dermatologist",
        "degree": "MBBS",
        "experience": "1 Years",
        "about": "Dr. Patel treats skin, hair and nail conditions for patients of all ages.",
        "fees": 30,
        "address": {"line1": "37th Cross, Richmond", "line2": "Circle, Ring Road, London"},
    },
    {
        "_id": "doc4",
        "name": "Dr. Christopher Lee",
        "speciality": "Pediatricians",
        "degree": "MBBS",
        "experience": "2 Years",
        "about": "Dr. Lee cares for infants, children and adolescents.",
        "fees": 40,
        "address": {"line1": "47th Cross, Richmond", "line2": "Circle, Ring Road, London"},
    },
    {
        "_id": "doc5",
        "name": "Dr. Jennifer Garcia",
        "speciality": "Neurologist",
        "degree": "MBBS",
        "experience": "4 Years",
        "about": "Dr. Garcia diagnoses and treats disorders of the nervous system.",
        "fees": 50,
        "address": {"line1": "57th Cross, Richmond", "line2": "Circle, Ring Road, London"},
    },
    {
        "_id": "doc6",
        "name": "Dr. Andrew Williams",
        "speciality": "Gastroenterologist",
        "degree": "MBBS",
        "experience": "4 Years",
        "about": "Dr. Williams specializes in digestive system disorders.",
        "fees": 50,
        "address": {"line1": "57th Cross, Richmond", "line2": "Circle, Ring Road, London"},
    },
]
