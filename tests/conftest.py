"""Shared test fixtures."""
from datetime import datetime
from unittest.mock import Mock

import pytest

from medibook.models import Provenance, Provider, Speciality
from medibook.token_store import TokenStore


@pytest.fixture
def token_store(tmp_path) -> TokenStore:
    """Token store backed by a temp file."""
    return TokenStore(str(tmp_path / "session.json"))


@pytest.fixture
def real_provider() -> Provider:
    return Provider(
        id="prov-1",
        name="Dr. Ada Real",
        email="ada@example.com",
        speciality=Speciality.NEUROLOGIST,
        experience="5 Years",
        fees=80,
        provenance=Provenance.REAL,
    )


@pytest.fixture
def demo_provider() -> Provider:
    return Provider(
        id="doc1",
        name="Dr. Richard James",
        speciality=Speciality.GENERAL_PHYSICIAN,
        experience="4 Years",
        fees=50,
        provenance=Provenance.DEMO,
    )


@pytest.fixture
def mock_api():
    """ApiClient stand-in; every endpoint method is a Mock."""
    return Mock()


@pytest.fixture
def appointment_payload():
    """Factory for server appointment records."""
    def _create(appointment_id: str = "APPT-1001", status: str = "booked", **overrides):
        payload = {
            "id": appointment_id,
            "providerId": "prov-1",
            "providerName": "Dr. Ada Real",
            "patientId": "usr-1",
            "patientName": "Pat Patient",
            "slotDate": "16_1_2025",
            "slotTime": "10:00 AM",
            "datetime": datetime(2025, 1, 16, 10, 0).isoformat(),
            "amount": 80,
            "status": status,
            "payment": False,
        }
        payload.update(overrides)
        return payload
    return _create
