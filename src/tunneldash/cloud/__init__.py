"""Cloudflare v4 API access."""

from .client import (
    DEFAULT_ERROR_MESSAGE,
    CloudflareClient,
    extract_error_message,
    unwrap_result,
)
from .models import (
    Account,
    AccountList,
    Connection,
    Envelope,
    ErrorDetail,
    Tunnel,
    TunnelConfig,
    TunnelList,
)

__all__ = [
    "CloudflareClient",
    "DEFAULT_ERROR_MESSAGE",
    "extract_error_message",
    "unwrap_result",
    # Models
    "Account",
    "AccountList",
    "Connection",
    "Envelope",
    "ErrorDetail",
    "Tunnel",
    "TunnelConfig",
    "TunnelList",
]
