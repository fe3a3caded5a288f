"""Integration tests for registration, login and session restore."""
import mock_api

from medibook.models import Role
from medibook.session import GateStatus, PatientMode, ProviderMode, RouteAction


def test_register_patient_then_restore_session(make_state, tmp_path):
    token_file = tmp_path / "shared.json"

    # Step 1: Register (which logs straight in)
    state = make_state(token_file)
    result = state.register("Pat Patient", "pat@example.com", "pw-pat")
    assert result.success
    assert result.message == "Patient account created successfully!"
    assert state.status == GateStatus.AUTHENTICATED

    # Step 2: A new client reading the same token file restores the session
    restored = make_state(token_file)
    assert restored.is_loading
    assert restored.resolve_route("/my-appointments").action == RouteAction.WAIT

    assert restored.bootstrap() == GateStatus.AUTHENTICATED
    assert restored.user.email == "pat@example.com"
    assert isinstance(restored.mode, PatientMode)
    assert restored.resolve_route("/my-appointments").action == RouteAction.ALLOW


def test_bogus_token_is_forgotten(make_state, tmp_path):
    token_file = tmp_path / "bogus.json"
    state = make_state(token_file)
    state.token_store.set("tok_bogus")

    restored = make_state(token_file)
    assert restored.bootstrap() == GateStatus.ANONYMOUS

    assert restored.token_store.get() is None
    assert restored.resolve_route("/my-appointments").path == "/login"


def test_provider_registration(make_state):
    state = make_state()

    result = state.register("Ada Lovelace", "ada@example.com", "pw-ada", role=Role.PROVIDER)

    assert result.message == "Doctor account created successfully!"
    assert isinstance(state.mode, ProviderMode)
    assert state.mode.profile.name == "Ada Lovelace"
    assert state.mode.profile_error == ""
    # The directory was refreshed, so the new provider is listed first
    assert state.directory.providers[0].name == "Ada Lovelace"
    assert state.directory.providers[0].is_real
    assert state.resolve_route("/").path == "/dashboard"


def test_duplicate_email_is_rejected(make_state):
    make_state().register("Pat", "pat@example.com", "pw")

    result = make_state().register("Pat Again", "pat@example.com", "pw")

    assert not result.success
    assert result.error == "email_already_registered"


def test_wrong_password(make_state):
    make_state().register("Pat", "pat@example.com", "pw")
    state = make_state()

    result = state.login("pat@example.com", "nope")

    assert result.error == "invalid_credentials"
    assert state.status == GateStatus.ANONYMOUS


def test_login_and_logout(make_state):
    make_state().register("Ada", "ada@example.com", "pw", role=Role.PROVIDER)
    state = make_state()

    result = state.login("ada@example.com", "pw")
    assert result.message == "Welcome back, Dr. Ada!"
    assert state.mode.profile.fees > 0

    state.logout()

    assert state.token_store.get() is None
    assert isinstance(state.mode, PatientMode)
    assert state.resolve_route("/dashboard").path == "/login"


def test_provider_profile_update(provider_state):
    mode = provider_state.mode

    assert mode.update_profile({"fees": 120, "speciality": "Dermatologist"})
    assert mode.profile.fees == 120

    # Persisted server-side
    mode.profile = None
    mode.load_profile()
    assert mode.profile.speciality.value == "Dermatologist"

    assert not mode.update_profile({"fees": 0})
    assert mode.profile_error == "invalid_fees"


def test_revoked_token_ends_session(patient_state):
    # The server forgets every token, e.g. after a restart
    mock_api.tokens.clear()

    assert not patient_state.mode.appointments.refresh()

    assert patient_state.status == GateStatus.ANONYMOUS
    assert patient_state.token_store.get() is None
    assert patient_state.resolve_route("/my-appointments").path == "/login"


def test_failed_login_keeps_current_session(patient_state):
    token = patient_state.token_store.get()

    result = patient_state.login("pat@example.com", "wrong-password")

    assert result.error == "invalid_credentials"
    assert patient_state.status == GateStatus.AUTHENTICATED
    assert patient_state.token_store.get() == token
    assert patient_state.mode.appointments.refresh()
