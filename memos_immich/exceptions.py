# memos_immich/exceptions.py
"""
Defines custom, application-specific exceptions for clear error handling.

Request failures carry a `retryable` flag that is fixed when the exception is
constructed. The endpoint prober only ever looks at that flag, so callers never
need to inspect concrete exception types to decide whether another endpoint
shape is worth trying.
"""

# Upstream bodies are truncated to this many bytes before being attached to an error.
MAX_ERROR_BODY_BYTES = 1024


class ImmichBridgeError(Exception):
    """Base exception for all errors raised by the Immich bridge."""
    pass


class ConfigError(ImmichBridgeError):
    """Raised when the Immich connection settings are malformed."""
    pass


# --- Immich API Exceptions ---
class ImmichAPIError(ImmichBridgeError):
    """Base exception for failures when talking to the Immich REST API."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class TransportError(ImmichAPIError):
    """Raised for network or connectivity issues. Never retryable."""

    def __init__(self, message: str):
        super().__init__(message, retryable=False)


class UpstreamStatusError(ImmichAPIError):
    """
    Raised when Immich answers with a non-2xx status.

    Only 404 and 405 are retryable: they mean "this deployment does not expose
    this path or verb", not "the operation failed".
    """
    RETRYABLE_STATUSES = frozenset({404, 405})

    def __init__(self, status_code: int, body: str = "", method: str = "", path: str = ""):
        self.status_code = status_code
        self.body = (body or "").strip()[:MAX_ERROR_BODY_BYTES]
        self.method = method
        self.path = path
        if self.body:
            message = f"immich request failed: {self.body}"
        else:
            message = f"immich request failed: {status_code}"
        super().__init__(message, retryable=status_code in self.RETRYABLE_STATUSES)


class DecodeError(ImmichAPIError):
    """Raised when a successful response matches none of the known envelope shapes."""

    def __init__(self, message: str):
        super().__init__(message, retryable=False)


class ProbeCancelled(ImmichBridgeError):
    """Raised when the caller cancelled a logical operation between physical attempts."""
    pass


# --- Host-facing Service Exceptions ---
class ServiceError(ImmichBridgeError):
    """Errors surfaced to the host application, carrying the HTTP status to answer with."""
    http_status = 500


class UnauthorizedError(ServiceError):
    http_status = 401


class IntegrationDisabledError(ServiceError):
    """Raised when Immich is not configured for this process."""
    http_status = 400


class GatewayError(ServiceError):
    """Raised when Immich could not serve a read request; the UI offers a retry."""
    http_status = 502


class InvalidRequestError(ServiceError):
    """Raised for malformed parameters coming from the host request."""
    http_status = 400
