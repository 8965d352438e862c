"""Exception hierarchy for SecPulse."""


class SecPulseError(Exception):
    """Base exception for SecPulse."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(SecPulseError):
    """Request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(SecPulseError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class ConnectorError(SecPulseError):
    """A connector could not talk to its external system.

    Raised inside a sync run for fetch-level failures. The connector turns it
    into a failed SyncResult; it never leaves the connector manager.
    """

    def __init__(self, connector: str, message: str, details=None):
        self.connector = connector
        super().__init__("CONNECTOR_ERROR", message, details, status_code=502)


class ConnectorAuthError(ConnectorError):
    """The external system rejected our credentials (401/403)."""

    def __init__(self, connector: str, status: int):
        super().__init__(connector, f"{connector} rejected credentials (HTTP {status})")
        self.code = "CONNECTOR_AUTH_ERROR"


class SearchJobTimeoutError(ConnectorError):
    """An asynchronous search job did not finish within the polling budget."""

    def __init__(self, connector: str, job_id: str, attempts: int):
        super().__init__(
            connector,
            f"{connector} search timed out: job {job_id} not done after {attempts} polls",
            details={"job_id": job_id, "attempts": attempts},
        )
        self.code = "SEARCH_JOB_TIMEOUT"


class UnknownConnectorError(SecPulseError):
    """No connector implementation matches a configuration."""

    def __init__(self, connector_type: str, name: str):
        super().__init__(
            "UNKNOWN_CONNECTOR",
            f"Unknown connector type or name: {connector_type} - {name}",
            status_code=400,
        )
