"""HTTP client for the booking REST API.

Purpose: One place for transport configuration, bearer-token handling and
error decoding. Every endpoint the client uses has a method on ApiClient.

Pattern: requests.Session with connection pooling, wrapped in a tenacity
retry for connection-level failures. Retries are off by default
(config.HTTP_MAX_RETRIES = 0): a failed call is surfaced once and the user
re-triggers it.
"""
import logging
from typing import Any, Callable, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.util.retry import Retry

from medibook import config
from medibook.logging_config import generate_request_id, get_logger

logger = get_logger(__name__)
retry_logger = logging.getLogger(__name__)


class MedibookError(Exception):
    """Base class for every failure the client reports."""
    pass


class TransportError(MedibookError):
    """Raised when no response was received (connection refused, timeout...)."""
    pass


class ApiError(MedibookError):
    """Raised when the server answered with a non-2xx status.

    The message is the `error` string from the response body; the booking
    endpoint uses it as a machine-readable code (e.g. slot_already_booked).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


def create_http_session(
    max_retries: Optional[int] = None,
    backoff_factor: float = 1.0,
    timeout: Optional[float] = None
) -> requests.Session:
    """
    Create HTTP session with connection pooling and optional retries.

    Args:
        max_retries: Retry attempts after the first one (default: config, 0)
        backoff_factor: Backoff multiplier for urllib3 status retries
        timeout: Request timeout in seconds (default: config, None means
                 the network stack default)

    Returns:
        Configured requests.Session whose request() is tenacity-wrapped
    """
    if max_retries is None:
        max_retries = config.HTTP_MAX_RETRIES
    if timeout is None:
        timeout = config.HTTP_TIMEOUT

    session = requests.Session()

    # Status-level retries only for idempotent reads; the last response is
    # returned (not raised) once retries are exhausted
    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )

    adapter = HTTPAdapter(
        max_retries=retry_strategy,
        pool_connections=10,
        pool_maxsize=10,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    original_request = session.request

    @retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout,
        )),
        before_sleep=before_sleep_log(retry_logger, logging.WARNING),
        reraise=True
    )
    def request_with_retry(method, url, **kwargs):
        if timeout is not None:
            kwargs.setdefault('timeout', timeout)
        return original_request(method, url, **kwargs)

    session.request = request_with_retry

    return session


class ApiClient:
    """
    Thin wrapper over the booking REST API.

    Args:
        base_url: API root (default: config.API_BASE_URL)
        token_provider: Callable returning the current bearer token or None.
                        Read on every call, so a logout takes effect at once.
        session: Optional pre-built requests.Session
        on_unauthorized: Called when a request that carried a token gets a 401
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        session: Optional[requests.Session] = None,
        on_unauthorized: Optional[Callable[[], None]] = None
    ):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.token_provider = token_provider or (lambda: None)
        self.session = session or create_http_session()
        self.on_unauthorized = on_unauthorized

    def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        authenticated: bool = True
    ) -> Dict[str, Any]:
        """
        Issue one API call and decode the JSON body.

        Credential exchanges pass authenticated=False: they carry no bearer
        token, so their 401s never end the current session.

        Raises:
            TransportError: If no response was received
            ApiError: If the response status is not 2xx
        """
        url = f"{self.base_url}{endpoint}"
        request_id = generate_request_id()
        headers = {"Content-Type": "application/json", "X-Request-ID": request_id}

        token = self.token_provider() if authenticated else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.session.request(
                method, url, json=json, params=params, headers=headers
            )
        except requests.exceptions.RequestException as e:
            logger.error("api_transport_failed", method=method, endpoint=endpoint,
                         request_id=request_id, error=str(e))
            raise TransportError(str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning("api_request_rejected", method=method, endpoint=endpoint,
                           request_id=request_id, status=response.status_code,
                           error=message)
            api_error = ApiError(message or "Request failed", response.status_code)
            if api_error.is_unauthorized and token and self.on_unauthorized:
                self.on_unauthorized()
            raise api_error

        logger.debug("api_request_ok", method=method, endpoint=endpoint,
                     request_id=request_id, status=response.status_code)
        return data

    # Auth endpoints

    def register(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/auth/register", json=user_data, authenticated=False)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self.request("POST", "/auth/login", json={"email": email, "password": password},
                            authenticated=False)

    def me(self) -> Dict[str, Any]:
        return self.request("GET", "/auth/me")

    # Provider endpoints

    def providers(self) -> Dict[str, Any]:
        return self.request("GET", "/appointments/providers")

    def available_slots(self, provider_id: str, date: str) -> Dict[str, Any]:
        """GET available slots for one calendar day (date: YYYY-MM-DD)."""
        return self.request(
            "GET", f"/appointments/available-slots/{provider_id}", params={"date": date}
        )

    def provider_profile(self) -> Dict[str, Any]:
        return self.request("GET", "/appointments/provider-profile")

    def update_provider_profile(self, profile_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", "/appointments/provider-profile", json=profile_data)

    # Appointment endpoints

    def book(self, appointment_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/appointments/book", json=appointment_data)

    def my_appointments(self) -> Dict[str, Any]:
        return self.request("GET", "/appointments/my-appointments")

    def cancel(self, appointment_id: str) -> Dict[str, Any]:
        return self.request("PUT", f"/appointments/{appointment_id}/cancel")

    def doctor_appointments(self) -> Dict[str, Any]:
        return self.request("GET", "/appointments/doctor-appointments")

    def complete(self, appointment_id: str) -> Dict[str, Any]:
        return self.request("PUT", f"/appointments/{appointment_id}/complete")

    def cancel_by_doctor(self, appointment_id: str) -> Dict[str, Any]:
        return self.request("PUT", f"/appointments/{appointment_id}/cancel-by-doctor")

    # Document endpoints

    def request_upload(self, file_name: str, content_type: str, size: int) -> Dict[str, Any]:
        return self.request(
            "POST", "/documents/upload-request",
            json={"fileName": file_name, "contentType": content_type, "size": size}
        )

    def put_blob(self, upload_url: str, data: bytes, content_type: str) -> None:
        """
        Upload raw bytes straight to blob storage.

        The upload URL is pre-signed, so no bearer token is sent.

        Raises:
            TransportError: If no response was received
            ApiError: If storage rejected the upload
        """
        try:
            response = self.session.request(
                "PUT", upload_url, data=data, headers={"Content-Type": content_type}
            )
        except requests.exceptions.RequestException as e:
            logger.error("blob_upload_transport_failed", error=str(e))
            raise TransportError(str(e)) from e

        if not response.ok:
            logger.warning("blob_upload_rejected", status=response.status_code)
            raise ApiError("upload_failed", response.status_code)

    def confirm_upload(self, document_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/documents/{document_id}/confirm")
