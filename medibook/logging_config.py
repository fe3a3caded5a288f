"""Structured logging configuration.

JSON logs for the library and the mock API; the terminal client switches
to console rendering so warnings stay readable next to its own output.

Request IDs:
- ApiClient sends one X-Request-ID per call and logs it
- RequestIDMiddleware binds the incoming ID to the server's log context
  and echoes it back, so both sides log the same ID
"""
import logging
import sys
import uuid
from typing import Optional

import structlog

from medibook import config


def setup_structured_logging(log_level: Optional[str] = None, json_output: bool = True):
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Defaults to config.LOG_LEVEL.
        json_output: JSON lines if True, human-readable console output otherwise
    """
    level = getattr(logging, (log_level or config.LOG_LEVEL).upper())
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for a module (usually called with __name__)."""
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Unique request ID, e.g. 'req-1a2b3c4d5e6f'."""
    return f"req-{uuid.uuid4().hex[:12]}"


class RequestIDMiddleware:
    """WSGI middleware tagging each request and response with a request ID.

    Reuses the caller's X-Request-ID when present.
    """

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        request_id = environ.get("HTTP_X_REQUEST_ID") or generate_request_id()
        environ["REQUEST_ID"] = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        def start_response_with_id(status, headers, exc_info=None):
            headers.append(("X-Request-ID", request_id))
            return start_response(status, headers, exc_info)

        return self.app(environ, start_response_with_id)
