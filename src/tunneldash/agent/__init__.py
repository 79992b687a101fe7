"""Local cloudflared process supervision."""

from .binary import (
    UNKNOWN_VERSION,
    AccessProtocol,
    build_access_args,
    find_agent_binary,
    query_agent_version,
    resolve_agent_binary,
)
from .supervisor import ProcessTable, TunnelSupervisor

__all__ = [
    "AccessProtocol",
    "ProcessTable",
    "TunnelSupervisor",
    "UNKNOWN_VERSION",
    "build_access_args",
    "find_agent_binary",
    "query_agent_version",
    "resolve_agent_binary",
]
