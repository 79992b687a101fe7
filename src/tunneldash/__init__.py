"""tunneldash - local control layer for cloudflared access tunnels."""

from .agent import (
    AccessProtocol,
    ProcessTable,
    TunnelSupervisor,
    build_access_args,
    query_agent_version,
)
from .cloud import (
    Account,
    CloudflareClient,
    Connection,
    Envelope,
    Tunnel,
    TunnelConfig,
)
from .common.config import DashSettings
from .common.exceptions import (
    BinaryNotFoundError,
    CloudAPIError,
    ProcessError,
    RemoteAPIError,
    ResponseDecodeError,
    TransportError,
    TunnelDashError,
)
from .common.logging import get_logger, setup_logging
from .service import TunnelDash
from .summary import (
    ConfigInfo,
    ConnectTarget,
    TunnelSummary,
    ViewOptions,
    filter_and_sort,
)

# Setup logging on package initialization
setup_logging(level="INFO")

logger = get_logger(__name__)

__version__ = "0.1.0"


__all__ = [
    # Service
    "TunnelDash",
    "DashSettings",
    # Process supervision
    "AccessProtocol",
    "ProcessTable",
    "TunnelSupervisor",
    "build_access_args",
    "query_agent_version",
    # Cloudflare API
    "CloudflareClient",
    "Account",
    "Connection",
    "Envelope",
    "Tunnel",
    "TunnelConfig",
    # Summaries
    "ConfigInfo",
    "ConnectTarget",
    "TunnelSummary",
    "ViewOptions",
    "filter_and_sort",
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
]
