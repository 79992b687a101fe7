"""Custom exceptions for tunneldash."""


class TunnelDashError(Exception):
    """Base exception for all tunneldash errors."""
    pass


class ProcessError(TunnelDashError):
    """Raised when the agent subprocess cannot be spawned or exits with failure."""
    pass


class BinaryNotFoundError(TunnelDashError):
    """Raised when the agent binary cannot be located."""
    pass


class CloudAPIError(TunnelDashError):
    """Base exception for Cloudflare API failures."""
    pass


class TransportError(CloudAPIError):
    """Raised when the request never produced a response (DNS, TLS, refused)."""
    pass


class ResponseDecodeError(CloudAPIError):
    """Raised when a response body does not match the expected shape."""
    pass


class RemoteAPIError(CloudAPIError):
    """Raised when the API answers with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
