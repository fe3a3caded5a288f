"""Fixtures running the client against the Flask mock API in-process.

Requests go through a requests transport adapter that hands them to the
Flask test client, so the full HTTP stack (headers, JSON bodies, status
codes) is exercised without opening a socket.
"""
from urllib.parse import urlsplit

import pytest
from requests import Response
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

import mock_api
from medibook.http_client import create_http_session
from medibook.session import AppState
from medibook.token_store import TokenStore

BASE_URL = "http://localhost"


class FlaskTestAdapter(BaseAdapter):
    """Transport adapter that serves requests from a Flask test client."""

    def __init__(self, app):
        super().__init__()
        self.client = app.test_client()

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        url = urlsplit(request.url)
        path = url.path + (f"?{url.query}" if url.query else "")
        headers = {
            k: v for k, v in request.headers.items()
            if k.lower() not in ("content-type", "content-length")
        }

        result = self.client.open(
            path,
            method=request.method,
            headers=headers,
            data=request.body,
            content_type=request.headers.get("Content-Type"),
        )

        response = Response()
        response.status_code = result.status_code
        response.reason = result.status
        response._content = result.get_data()
        response.headers = CaseInsensitiveDict(dict(result.headers.items()))
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        return response

    def close(self):
        pass


@pytest.fixture(autouse=True)
def clean_api():
    """Every test starts with an empty server."""
    mock_api.reset_state()
    yield
    mock_api.reset_state()


@pytest.fixture
def make_state(tmp_path):
    """Factory for independent clients (own token file, own HTTP session)."""
    counter = {"n": 0}

    def _create(token_file=None):
        counter["n"] += 1
        session = create_http_session()
        session.mount("http://", FlaskTestAdapter(mock_api.app))
        store = TokenStore(str(token_file or tmp_path / f"session-{counter['n']}.json"))
        return AppState(token_store=store, base_url=BASE_URL, http_session=session)

    return _create


@pytest.fixture
def provider_state(make_state):
    """A signed-in provider, registered through the API."""
    state = make_state()
    result = state.register("Ada Lovelace", "ada@example.com", "pw-ada", role="provider")
    assert result.success, result.error
    return state


@pytest.fixture
def patient_state(make_state):
    """A signed-in patient with the directory loaded."""
    state = make_state()
    result = state.register("Pat Patient", "pat@example.com", "pw-pat", phone="555-0100")
    assert result.success, result.error
    state.directory.refresh()
    return state
