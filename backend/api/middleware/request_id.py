"""
Request ID middleware - X-Request-ID correlation for every response.

A client-supplied id is reused when it looks sane, so a refresh can be
traced from the browser through the job logs.
"""

import re
import uuid
from flask import Flask, request, g

REQUEST_ID_HEADER = 'X-Request-ID'

# Reject ids that would pollute log lines
_VALID_REQUEST_ID = re.compile(r'^[A-Za-z0-9._:-]{1,128}$')


def _incoming_request_id():
    candidate = request.headers.get(REQUEST_ID_HEADER, '').strip()
    if candidate and _VALID_REQUEST_ID.match(candidate):
        return candidate
    return str(uuid.uuid4())


def setup_request_id_middleware(app: Flask) -> None:
    """Set g.request_id before each request and echo it on the response."""

    @app.before_request
    def inject_request_id():
        g.request_id = _incoming_request_id()

    @app.after_request
    def add_request_id_header(response):
        if hasattr(g, 'request_id'):
            response.headers[REQUEST_ID_HEADER] = g.request_id
        return response


def get_request_id() -> str:
    """Current request id, or a fresh UUID outside a request."""
    if hasattr(g, 'request_id'):
        return g.request_id
    return str(uuid.uuid4())
