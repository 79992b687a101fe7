"""Common utilities and shared functionality."""

from .config import DEFAULT_AGENT_BINARY, DEFAULT_API_BASE_URL, DashSettings
from .exceptions import (
    BinaryNotFoundError,
    CloudAPIError,
    ProcessError,
    RemoteAPIError,
    ResponseDecodeError,
    TransportError,
    TunnelDashError,
)
from .logging import get_logger, setup_logging
from .utils import (
    MAX_PORT,
    MIN_PORT,
    mask_sensitive_data,
    sanitize_log_data,
    validate_non_empty_string,
    validate_port,
)

__all__ = [
    # Configuration
    "DashSettings",
    "DEFAULT_AGENT_BINARY",
    "DEFAULT_API_BASE_URL",
    # Exceptions
    "TunnelDashError",
    "ProcessError",
    "BinaryNotFoundError",
    "CloudAPIError",
    "TransportError",
    "ResponseDecodeError",
    "RemoteAPIError",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "validate_port",
    "validate_non_empty_string",
    "mask_sensitive_data",
    "sanitize_log_data",
    "MIN_PORT",
    "MAX_PORT",
]
