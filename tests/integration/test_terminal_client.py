"""Tests for the terminal client commands against the mock API."""
from datetime import date

from medibook.booking import DEMO_SUCCESS_MESSAGE, SUCCESS_MESSAGE
from medibook.models import Appointment, calculate_age
from terminal_client import format_appointment, handle_command


def test_patient_session(make_state, tmp_path):
    state = make_state()
    state.directory.refresh()

    # Step 1: Anonymous visitors can browse but not book
    assert "Dr. Richard James" in handle_command(state, "doctors")
    assert handle_command(state, "doctors Astrologer") == "No doctors found."
    assert handle_command(state, "book doc1 1 '10:00 AM'") == "Please log in to book an appointment."

    # Step 2: Register and book a demo doctor
    assert handle_command(state, "register Pat pat@example.com pw") == (
        "Patient account created successfully!"
    )
    assert handle_command(state, "book doc1 1 '10:00 AM' checkup") == DEMO_SUCCESS_MESSAGE
    assert handle_command(state, "my") == "No appointments."

    # Step 3: Upload a document
    path = tmp_path / "scan.pdf"
    path.write_bytes(b"%PDF-1.4\n%%EOF\n")
    assert handle_command(state, f"upload {path}").startswith("Uploaded scan.pdf")
    assert handle_command(state, "upload notes.txt") == "Only PDF files are allowed."

    assert handle_command(state, "logout") == "Logged out successfully"
    assert handle_command(state, "my") == "Failed to load appointments. Please try again."


def test_provider_session(make_state):
    provider = make_state()
    assert handle_command(provider, "register Ada ada@example.com pw provider") == (
        "Doctor account created successfully!"
    )

    patient = make_state()
    handle_command(patient, "register Pat pat@example.com pw")
    patient.directory.refresh()
    provider_id = next(p.id for p in patient.directory.providers if p.is_real)
    assert handle_command(patient, f"book {provider_id} 1 '10:00 AM'") == SUCCESS_MESSAGE

    assert "Appointments: 1" in handle_command(provider, "dash")
    appointment_id = provider.mode.appointments.items[0].id
    assert handle_command(provider, f"complete {appointment_id}") == "Appointment marked as completed"
    assert "Earnings: $50" in handle_command(provider, "dash")
    assert handle_command(provider, f"cancel {appointment_id}") == "Appointment is already completed."
    assert handle_command(provider, "profile").startswith("Ada")


def test_bad_input(make_state):
    state = make_state()

    assert handle_command(state, "") == ""
    assert handle_command(state, "login only-email") == "Usage: login <email> <password>"
    assert handle_command(state, "book 'unterminated").startswith("Could not parse command")
    assert handle_command(state, "slots nobody") == "Doctor not found."


def test_provider_listing_shows_patient_age(appointment_payload):
    apt = Appointment.model_validate(appointment_payload(patientDob="1990-06-15"))
    age = calculate_age(date(1990, 6, 15))

    assert f"Pat Patient ({age})" in format_appointment(apt, for_provider=True)
    assert "Dr. Ada Real" in format_appointment(apt)
    assert "(" not in format_appointment(apt)


def test_listing_without_date_of_birth(appointment_payload):
    apt = Appointment.model_validate(appointment_payload())

    assert "Pat Patient  $80" in format_appointment(apt, for_provider=True)
