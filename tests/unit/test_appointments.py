"""Unit tests for appointment lists and optimistic transitions."""
from datetime import datetime

from medibook.appointments import (
    CANCEL_ERROR_MESSAGE,
    COMPLETE_ERROR_MESSAGE,
    LOAD_ERROR_MESSAGE,
    NOT_FOUND_MESSAGE,
    PatientAppointments,
    ProviderAppointments,
)
from medibook.http_client import ApiError, TransportError
from medibook.models import AppointmentStatus


class TestRefresh:
    """Loading the list."""

    def test_refresh_parses_appointments(self, mock_api, appointment_payload):
        mock_api.my_appointments.return_value = {
            "appointments": [appointment_payload("APPT-1"), appointment_payload("APPT-2")]
        }
        appointments = PatientAppointments(mock_api)

        assert appointments.refresh()
        assert [a.id for a in appointments.items] == ["APPT-1", "APPT-2"]
        assert appointments.items[0].provider_id == "prov-1"
        assert not appointments.loading
        assert appointments.error == ""

    def test_failed_refresh_keeps_previous_list(self, mock_api, appointment_payload):
        mock_api.my_appointments.side_effect = [
            {"appointments": [appointment_payload("APPT-1")]},
            TransportError("down"),
        ]
        appointments = PatientAppointments(mock_api)
        appointments.refresh()

        assert not appointments.refresh()
        assert appointments.error == LOAD_ERROR_MESSAGE
        assert [a.id for a in appointments.items] == ["APPT-1"]
        assert not appointments.loading

    def test_provider_list_uses_doctor_endpoint(self, mock_api):
        mock_api.doctor_appointments.return_value = {"appointments": []}
        appointments = ProviderAppointments(mock_api)

        assert appointments.refresh()
        mock_api.doctor_appointments.assert_called_once()
        mock_api.my_appointments.assert_not_called()

    def test_upcoming_filters_booked_future(self, mock_api, appointment_payload):
        mock_api.my_appointments.return_value = {"appointments": [
            appointment_payload("APPT-1"),
            appointment_payload("APPT-2", status="cancelled"),
            appointment_payload("APPT-3", datetime="2025-01-10T10:00:00"),
        ]}
        appointments = PatientAppointments(mock_api)
        appointments.refresh()

        upcoming = appointments.upcoming(datetime(2025, 1, 15, 9, 0))

        assert [a.id for a in upcoming] == ["APPT-1"]


class TestTransitions:
    """Optimistic cancel/complete with rollback."""

    def _loaded(self, cls, mock_api, payloads):
        mock_api.my_appointments.return_value = {"appointments": payloads}
        mock_api.doctor_appointments.return_value = {"appointments": payloads}
        appointments = cls(mock_api)
        appointments.refresh()
        return appointments

    def test_patient_cancel_replaces_with_server_record(self, mock_api, appointment_payload):
        appointments = self._loaded(PatientAppointments, mock_api, [appointment_payload()])
        mock_api.cancel.return_value = {
            "success": True,
            "appointment": appointment_payload(status="cancelled", reason="server copy"),
        }

        result = appointments.cancel("APPT-1001")

        assert result.success
        mock_api.cancel.assert_called_once_with("APPT-1001")
        assert appointments.get("APPT-1001").status == AppointmentStatus.CANCELLED
        assert appointments.get("APPT-1001").reason == "server copy"

    def test_status_is_applied_before_the_call(self, mock_api, appointment_payload):
        appointments = self._loaded(PatientAppointments, mock_api, [appointment_payload()])
        seen = []
        mock_api.cancel.side_effect = lambda _id: seen.append(appointments.get(_id).status) or {}

        appointments.cancel("APPT-1001")

        assert seen == [AppointmentStatus.CANCELLED]

    def test_failure_rolls_back(self, mock_api, appointment_payload):
        appointments = self._loaded(PatientAppointments, mock_api, [appointment_payload()])
        mock_api.cancel.side_effect = ApiError("appointment_not_found", 404)

        result = appointments.cancel("APPT-1001")

        assert not result.success
        assert result.error == CANCEL_ERROR_MESSAGE
        assert appointments.get("APPT-1001").status == AppointmentStatus.BOOKED

    def test_terminal_appointment_is_refused_locally(self, mock_api, appointment_payload):
        appointments = self._loaded(
            ProviderAppointments, mock_api, [appointment_payload(status="completed")]
        )

        result = appointments.cancel("APPT-1001")

        assert not result.success
        assert result.error == "Appointment is already completed."
        mock_api.cancel_by_doctor.assert_not_called()

    def test_unknown_id(self, mock_api):
        appointments = PatientAppointments(mock_api)

        result = appointments.cancel("nope")

        assert result.error == NOT_FOUND_MESSAGE
        mock_api.cancel.assert_not_called()

    def test_provider_complete(self, mock_api, appointment_payload):
        appointments = self._loaded(ProviderAppointments, mock_api, [appointment_payload()])
        mock_api.complete.return_value = {"success": True}

        result = appointments.complete("APPT-1001")

        assert result.success
        assert result.message == "Appointment marked as completed"
        assert appointments.get("APPT-1001").status == AppointmentStatus.COMPLETED

    def test_provider_complete_failure(self, mock_api, appointment_payload):
        appointments = self._loaded(ProviderAppointments, mock_api, [appointment_payload()])
        mock_api.complete.side_effect = TransportError("timeout")

        result = appointments.complete("APPT-1001")

        assert result.error == COMPLETE_ERROR_MESSAGE
        assert appointments.get("APPT-1001").status == AppointmentStatus.BOOKED

    def test_provider_cancel_uses_doctor_endpoint(self, mock_api, appointment_payload):
        appointments = self._loaded(ProviderAppointments, mock_api, [appointment_payload()])
        mock_api.cancel_by_doctor.return_value = {"success": True}

        appointments.cancel("APPT-1001")

        mock_api.cancel_by_doctor.assert_called_once_with("APPT-1001")
        mock_api.cancel.assert_not_called()


class TestDashboard:
    """Dashboard figures."""

    def test_dashboard_figures(self, mock_api, appointment_payload):
        payloads = [
            appointment_payload("APPT-1", status="completed", amount=80,
                                datetime="2025-01-10T10:00:00"),
            appointment_payload("APPT-2", status="completed", amount=50, patientId="usr-2",
                                datetime="2025-01-11T10:00:00"),
            appointment_payload("APPT-3", status="booked", amount=70,
                                datetime="2025-01-12T10:00:00"),
            appointment_payload("APPT-4", status="cancelled", amount=60, patientId="usr-3",
                                datetime="2025-01-13T10:00:00"),
        ]
        mock_api.doctor_appointments.return_value = {"appointments": payloads}
        appointments = ProviderAppointments(mock_api)
        appointments.refresh()

        dash = appointments.dashboard()

        assert dash.earnings == 130
        assert dash.appointments == 4
        assert dash.patients == 3
        assert [a.id for a in dash.latest_appointments] == ["APPT-4", "APPT-3", "APPT-2", "APPT-1"]

    def test_latest_is_capped(self, mock_api, appointment_payload):
        payloads = [
            appointment_payload(f"APPT-{i}", datetime=f"2025-01-{10 + i}T10:00:00")
            for i in range(8)
        ]
        mock_api.doctor_appointments.return_value = {"appointments": payloads}
        appointments = ProviderAppointments(mock_api)
        appointments.refresh()

        latest = appointments.dashboard().latest_appointments

        assert len(latest) == 5
        assert latest[0].id == "APPT-7"

    def test_empty_dashboard(self, mock_api):
        dash = ProviderAppointments(mock_api).dashboard()

        assert dash.earnings == 0
        assert dash.latest_appointments == []
