"""Session/role gate and application state.

AppState is the single object callers pass around. It owns the session
(token + user), the active UI mode and the shared collaborators.

The UI mode is a tagged variant selected once per session:
- PatientMode: anonymous visitors and patients
- ProviderMode: doctors, with their profile and dashboard data

Route access:
- While the session is being verified every route answers WAIT.
- Protected routes redirect to /login without a session.
- A route of the other mode is remapped to the nearest route of the
  active mode instead of failing.

A 401 on any call that carried the token ends the session the same way
logout does.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union

from pydantic import ValidationError

from medibook.appointments import Dashboard, PatientAppointments, ProviderAppointments
from medibook.availability import SlotGenerator
from medibook.booking import BookingFlow
from medibook.documents import DocumentUploader
from medibook.http_client import ApiClient, MedibookError
from medibook.logging_config import get_logger
from medibook.models import ProviderProfile, Role, User
from medibook.providers import ProviderDirectory
from medibook.token_store import TokenStore

logger = get_logger(__name__)

LOGIN_ROUTE = "/login"

# Route pattern -> protected?
PATIENT_ROUTES: Dict[str, bool] = {
    "/": False,
    "/doctors": False,
    "/doctors/<speciality>": False,
    LOGIN_ROUTE: False,
    "/appointment/<doc_id>": True,
    "/my-appointments": True,
    "/my-profile": True,
}

PROVIDER_ROUTES: Dict[str, bool] = {
    "/dashboard": True,
    "/appointments": True,
    "/profile": True,
}

# Nearest equivalent route when visiting the other mode's pages
PATIENT_TO_PROVIDER = {
    "/my-appointments": "/appointments",
    "/my-profile": "/profile",
}
PROVIDER_TO_PATIENT = {
    "/appointments": "/my-appointments",
    "/profile": "/my-profile",
}


class GateStatus(str, Enum):
    LOADING = "loading"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class RouteAction(str, Enum):
    WAIT = "wait"
    ALLOW = "allow"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


@dataclass
class RouteDecision:
    action: RouteAction
    path: Optional[str] = None


@dataclass
class LoginResult:
    success: bool
    error: str = ""
    message: str = ""
    user: Optional[User] = None


def match_route(path: str, routes: Dict[str, bool]) -> Optional[str]:
    """
    Find the route pattern matching a concrete path.

    Example:
        >>> match_route("/doctors/Neurologist", PATIENT_ROUTES)
        '/doctors/<speciality>'
    """
    segments = [s for s in path.split("/") if s]
    for pattern in routes:
        pattern_segments = [s for s in pattern.split("/") if s]
        if len(pattern_segments) != len(segments):
            continue
        if all(
            p.startswith("<") or p == s
            for p, s in zip(pattern_segments, segments)
        ):
            return pattern
    return None


@dataclass
class PatientMode:
    """Patient-facing mode; user is None for anonymous visitors."""
    api: Any = field(repr=False)
    user: Optional[User] = None
    appointments: Optional[PatientAppointments] = None

    role: ClassVar[Role] = Role.PATIENT
    home: ClassVar[str] = "/"
    routes: ClassVar[Dict[str, bool]] = PATIENT_ROUTES
    foreign_routes: ClassVar[Dict[str, bool]] = PROVIDER_ROUTES
    remap: ClassVar[Dict[str, str]] = PROVIDER_TO_PATIENT

    def __post_init__(self):
        if self.appointments is None:
            self.appointments = PatientAppointments(self.api)


@dataclass
class ProviderMode:
    """Provider-facing mode: appointment table, dashboard and own profile."""
    api: Any = field(repr=False)
    user: User
    appointments: Optional[ProviderAppointments] = None
    profile: Optional[ProviderProfile] = None
    profile_loading: bool = False
    profile_error: str = ""

    role: ClassVar[Role] = Role.PROVIDER
    home: ClassVar[str] = "/dashboard"
    routes: ClassVar[Dict[str, bool]] = PROVIDER_ROUTES
    foreign_routes: ClassVar[Dict[str, bool]] = PATIENT_ROUTES
    remap: ClassVar[Dict[str, str]] = PATIENT_TO_PROVIDER

    def __post_init__(self):
        if self.appointments is None:
            self.appointments = ProviderAppointments(self.api)

    def load_profile(self) -> bool:
        """
        Fetch the provider's own profile.

        On failure the profile falls back to what the session user record
        knows (name, email) and `profile_error` is set.
        """
        self.profile_loading = True
        self.profile_error = ""
        try:
            response = self.api.provider_profile()
            self.profile = ProviderProfile(**response["profile"])
            return True
        except (MedibookError, ValidationError, KeyError, TypeError) as e:
            logger.warning("provider_profile_fetch_failed", user_id=self.user.id, error=str(e))
            self.profile_error = "Failed to load profile data"
            base = self.profile or ProviderProfile()
            self.profile = base.model_copy(update={"name": self.user.name, "email": self.user.email})
            return False
        finally:
            self.profile_loading = False

    def update_profile(self, changes: Dict[str, Any]) -> bool:
        """Send the edited profile; the server's answer replaces the local copy."""
        current = self.profile or ProviderProfile(name=self.user.name, email=self.user.email)
        payload = {**current.model_dump(mode="json", exclude_none=True), **changes}

        self.profile_loading = True
        self.profile_error = ""
        try:
            response = self.api.update_provider_profile(payload)
            self.profile = ProviderProfile(**response["profile"])
            logger.info("provider_profile_updated", user_id=self.user.id)
            return True
        except (MedibookError, ValidationError, KeyError, TypeError) as e:
            logger.warning("provider_profile_update_failed", user_id=self.user.id, error=str(e))
            self.profile_error = getattr(e, "message", None) or "Failed to update profile"
            return False
        finally:
            self.profile_loading = False

    def dashboard(self) -> Dashboard:
        return self.appointments.dashboard()

    def clear(self):
        self.appointments.clear()
        self.profile = None
        self.profile_error = ""


UIMode = Union[PatientMode, ProviderMode]


class AppState:
    """
    Explicit application state, created once and passed to every view.

    Args:
        api: ApiClient-like collaborator (default: ApiClient reading this
             state's token on every call)
        token_store: Where the bearer token is persisted
        base_url: API root for the default client
        http_session: requests.Session for the default client
    """

    def __init__(
        self,
        api=None,
        token_store: Optional[TokenStore] = None,
        base_url: Optional[str] = None,
        http_session=None
    ):
        self.token_store = token_store or TokenStore()
        self.token: Optional[str] = self.token_store.get()
        self.api = api or ApiClient(
            base_url=base_url,
            token_provider=lambda: self.token,
            session=http_session,
            on_unauthorized=self._token_rejected
        )
        self.user: Optional[User] = None
        self.status = GateStatus.LOADING if self.token else GateStatus.ANONYMOUS
        self.mode: UIMode = PatientMode(api=self.api)

        self.directory = ProviderDirectory(self.api)
        self.slot_generator = SlotGenerator(self.api)
        self.documents = DocumentUploader(self.api)

    @property
    def is_authenticated(self) -> bool:
        """A token string is present; validity is only learned on use."""
        return bool(self.token)

    @property
    def is_loading(self) -> bool:
        return self.status == GateStatus.LOADING

    def bootstrap(self) -> GateStatus:
        """
        Resolve the persisted session at start-up.

        Any failure (rejected or unreachable) degrades to anonymous and
        forgets the stored token.
        """
        if not self.token:
            self.status = GateStatus.ANONYMOUS
            return self.status

        self.status = GateStatus.LOADING
        try:
            payload = self.api.me()
            user = User(**payload.get("user", payload))
        except (MedibookError, ValidationError, AttributeError, TypeError) as e:
            logger.warning("session_bootstrap_failed", error=str(e))
            self._reset_session()
            return self.status

        self._establish(user)
        return self.status

    def _establish(self, user: User):
        self.user = user
        self.status = GateStatus.AUTHENTICATED

        if user.role == Role.PROVIDER:
            self.mode = ProviderMode(api=self.api, user=user)
            # Only now that the role is known
            self.mode.load_profile()
        else:
            self.mode = PatientMode(api=self.api, user=user)

        logger.info("session_established", user_id=user.id, role=user.role.value)

    def _token_rejected(self):
        """An authenticated call got a 401: the stored token is no longer valid."""
        logger.warning("session_token_rejected", user_id=self.user.id if self.user else None)
        self._reset_session()

    def _reset_session(self):
        self.token_store.clear()
        self.token = None
        self.user = None
        if isinstance(self.mode, ProviderMode):
            self.mode.clear()
        self.mode = PatientMode(api=self.api)
        self.status = GateStatus.ANONYMOUS

    def login(self, email: str, password: str) -> LoginResult:
        try:
            response = self.api.login(email, password)
            token = response["token"]
            user = User(**response["user"])
        except MedibookError as e:
            return LoginResult(success=False, error=str(e) or "Login failed")
        except (KeyError, TypeError, ValidationError) as e:
            logger.warning("login_response_invalid", error=str(e))
            return LoginResult(success=False, error="Login failed")

        self.token_store.set(token)
        self.token = token
        self._establish(user)

        if user.role == Role.PROVIDER:
            message = f"Welcome back, Dr. {user.name}!"
        else:
            message = f"Welcome back, {user.name}!"
        return LoginResult(success=True, message=message, user=user)

    def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
        role: Role = Role.PATIENT
    ) -> LoginResult:
        """Create an account, then log straight into it."""
        payload = {"name": name, "email": email, "password": password, "role": Role(role).value}
        if phone:
            payload["phone"] = phone

        try:
            self.api.register(payload)
        except MedibookError as e:
            return LoginResult(success=False, error=str(e) or "Registration failed")

        result = self.login(email, password)
        if not result.success:
            return result

        if Role(role) == Role.PROVIDER:
            result.message = "Doctor account created successfully!"
            # New provider should show up in the directory
            self.directory.refresh()
        else:
            result.message = "Patient account created successfully!"
        return result

    def logout(self) -> str:
        """Forget the session and every role-specific cache."""
        logger.info("session_logout", user_id=self.user.id if self.user else None)
        self._reset_session()
        return "Logged out successfully"

    def resolve_route(self, path: str) -> RouteDecision:
        """
        Decide what to show for a path in the current session.

        Returns:
            WAIT while the session is loading, otherwise ALLOW, REDIRECT (with
            the target path) or NOT_FOUND
        """
        if self.status == GateStatus.LOADING:
            return RouteDecision(RouteAction.WAIT)

        path = "/" + path.strip("/")
        authenticated = self.status == GateStatus.AUTHENTICATED
        mode = self.mode

        own = match_route(path, mode.routes)
        if own is not None:
            if mode.routes[own] and not authenticated:
                return RouteDecision(RouteAction.REDIRECT, LOGIN_ROUTE)
            if own == LOGIN_ROUTE and authenticated:
                return RouteDecision(RouteAction.REDIRECT, mode.home)
            return RouteDecision(RouteAction.ALLOW, path)

        foreign = match_route(path, mode.foreign_routes)
        if foreign is not None:
            if not authenticated:
                return RouteDecision(RouteAction.REDIRECT, LOGIN_ROUTE)
            return RouteDecision(RouteAction.REDIRECT, mode.remap.get(foreign, mode.home))

        return RouteDecision(RouteAction.NOT_FOUND)

    def begin_booking(self, provider_id: str, now: Optional[datetime] = None) -> Optional[BookingFlow]:
        """
        Open the appointment page for a provider.

        Returns:
            A BookingFlow over a freshly generated week, or None if the
            provider is unknown
        """
        provider = self.directory.get(provider_id)
        if provider is None:
            return None

        week = self.slot_generator.generate(provider, now)
        flow = BookingFlow(
            provider,
            week.days,
            self.api,
            is_authenticated=lambda: self.is_authenticated,
            slot_generator=self.slot_generator
        )
        if provider.is_real and week.all_failed:
            flow.load_error = "Failed to load available time slots"
        return flow
