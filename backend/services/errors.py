"""
Ingestion/refresh error taxonomy.

Each error carries the HTTP status and envelope code the routes map it to,
so handlers stay one-liners.
"""


class IngestionError(Exception):
    """Base class for errors raised by the ingestion services."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


# =============================================================================
# Admission rejections (expected, not incidents)
# =============================================================================

class AdmissionRejected(IngestionError):
    """A guest refresh request was not admitted. No job was created."""


class SystemBusyError(AdmissionRejected):
    """Global volume or concurrency ceiling reached."""

    status_code = 503
    code = "SYSTEM_BUSY"

    def __init__(self, message, rule):
        super().__init__(message)
        self.rule = rule  # 'volume' | 'concurrency'


class SessionCooldownError(AdmissionRejected):
    """The same guest session refreshed too recently."""

    status_code = 429
    code = "SESSION_COOLDOWN"

    def __init__(self, message, retry_after_seconds):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


# =============================================================================
# Configuration errors (terminal for a single run, never retried)
# =============================================================================

class ConnectorConfigError(IngestionError):
    """A connector cannot be run as configured."""

    status_code = 400
    code = "CONNECTOR_CONFIG_ERROR"


class ConnectorNotFoundError(ConnectorConfigError):
    status_code = 404
    code = "CONNECTOR_NOT_FOUND"


class ConnectorDisabledError(ConnectorConfigError):
    status_code = 409
    code = "CONNECTOR_DISABLED"


class UnknownParserError(ConnectorConfigError):
    """No adapter is registered for a connector's parser_key."""

    code = "UNKNOWN_PARSER"
