"""
Error envelope middleware - one error shape for every failure.

{
    "error": {
        "code": "SYSTEM_BUSY",
        "message": "The system is busy. Please try again later.",
        "requestId": "uuid"
    }
}

Service errors (services.errors.IngestionError) carry their own status and
code; admission rejections are expected traffic and are not logged as
incidents. Anything unhandled becomes INTERNAL_ERROR with the exception
logged against the request id.
"""

import logging
from flask import Flask, jsonify, g
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from services.errors import AdmissionRejected, IngestionError, SessionCooldownError


logger = logging.getLogger('api.middleware.error')


# Error codes reference
ERROR_CODES = {
    # Client errors (4xx)
    "BAD_REQUEST": 400,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "CONFLICT": 409,
    "TOO_MANY_REQUESTS": 429,
    "INVALID_PARAMS": 400,

    # Refresh admission
    "SESSION_COOLDOWN": 429,
    "SYSTEM_BUSY": 503,

    # Connector configuration
    "CONNECTOR_CONFIG_ERROR": 400,
    "CONNECTOR_NOT_FOUND": 404,
    "CONNECTOR_DISABLED": 409,

    # Server errors (5xx)
    "INTERNAL_ERROR": 500,
}


def make_error_response(
    code: str,
    message: str,
    status_code: int = None,
    details: dict = None,
):
    """
    Build a (response, status) tuple in the envelope shape.

    status_code defaults from ERROR_CODES.
    """
    request_id = getattr(g, 'request_id', None)

    if status_code is None:
        status_code = ERROR_CODES.get(code, 500)

    error = {
        "error": {
            "code": code,
            "message": message,
            "requestId": request_id,
        }
    }
    if details:
        error["error"]["details"] = details

    response = jsonify(error)
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code


def _validation_details(error: ValidationError):
    return [
        {
            "field": ".".join(str(part) for part in item.get("loc", ())),
            "message": item.get("msg"),
        }
        for item in error.errors()
    ]


def setup_error_handlers(app: Flask) -> None:
    """
    Register envelope handlers for service errors, validation errors,
    HTTP exceptions and unhandled exceptions.
    """

    @app.errorhandler(IngestionError)
    def handle_ingestion_error(error):
        if not isinstance(error, AdmissionRejected):
            logger.warning(
                "service_error code=%s message=%s request_id=%s",
                error.code, error.message, getattr(g, 'request_id', None),
            )
        response, status = make_error_response(error.code, error.message, error.status_code)
        if isinstance(error, SessionCooldownError):
            response.headers['Retry-After'] = str(error.retry_after_seconds)
        return response, status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return make_error_response(
            "INVALID_PARAMS",
            "Invalid request parameters",
            details=_validation_details(error),
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        # "Not Found" -> "NOT_FOUND"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        request_id = getattr(g, 'request_id', None)

        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": request_id,
                "error_type": type(error).__name__,
            }
        )

        return make_error_response(
            "INTERNAL_ERROR", "An unexpected error occurred", 500
        )
