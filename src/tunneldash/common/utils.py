"""Validation and log-masking helpers."""

from typing import Any

MIN_PORT = 1
MAX_PORT = 65535

_SENSITIVE_KEYS = ("token", "secret", "password", "api_key", "authorization")


def validate_port(port: int, port_name: str = "Port") -> int:
    """Validate a TCP port number.

    Args:
        port: Port number to validate
        port_name: Name used in the error message

    Returns:
        The port, unchanged

    Raises:
        ValueError: If port is not an integer in 1-65535
    """
    # bool is an int subclass, but True is not a port
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")
    return port


def validate_non_empty_string(value: str, field_name: str) -> str:
    """Return ``value`` stripped, or raise ValueError when it is blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def mask_sensitive_data(
    value: str | None, mask_char: str = "*", show_chars: int = 4
) -> str:
    """Mask a secret for logging, keeping the last ``show_chars`` characters.

    Args:
        value: Sensitive string (API token, password)
        mask_char: Replacement character
        show_chars: Number of trailing characters left readable

    Returns:
        Masked string safe for logging
    """
    if not value:
        return "<None>"

    if len(value) <= show_chars:
        return mask_char * len(value)

    return mask_char * (len(value) - show_chars) + value[-show_chars:]


def sanitize_log_data(data: dict[str, Any]) -> dict[str, Any]:
    """Copy ``data`` with every secret-looking key masked."""
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if any(marker in key.lower() for marker in _SENSITIVE_KEYS):
            sanitized[key] = mask_sensitive_data(str(value) if value else None)
        else:
            sanitized[key] = value
    return sanitized
