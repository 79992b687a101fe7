"""Turn raw tunnel listings into connectable summaries.

A Cloudflare tunnel lists ingress rules in its remote configuration. Each rule
with a hostname and a non-catch-all service becomes a :class:`ConfigInfo`
that can be handed to ``start_tunnel``. Local ports come from the tunnel's
metadata, where the dashboard records them under ``tunneldashPort`` (either a
single port or a ``{host: port}`` map).
"""

import math
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from .cloud.models import Tunnel
from .common.logging import get_logger
from .common.utils import validate_port

logger = get_logger(__name__)

PORT_METADATA_KEYS = ("tunneldashPort", "tunnelPort", "port", "startPort")
DEFAULT_PORT_START = 50000
HIDDEN_HTTP_MESSAGE = (
    "This configuration is hidden by the HTTP/HTTPS filter. "
    "Disable the filter to connect."
)

_DEFAULT_PORTS = {"http": 80, "https": 443}


class PortMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    proto: str | None = None


class ConfigInfo(BaseModel):
    """One connectable service of a tunnel."""

    model_config = ConfigDict(frozen=True)

    service: str
    proto: str | None = None
    host: str | None = None
    hostname: str | None = None
    port: int | None = None


class TunnelSummary(BaseModel):
    """Flattened view of a tunnel, its connections and its configs."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: str | None = None
    created_at: str | None = None
    port: int | None = None
    metadata: dict[str, Any] | None = None
    port_map: list[PortMapping] | None = None
    connection_ip: str | None = None
    client_version: str | None = None
    connection_count: int = 0
    colo_names: list[str] = Field(default_factory=list)
    service: str | None = None
    services: list[str] | None = None
    configs: list[ConfigInfo] | None = None
    display_configs: list[ConfigInfo] | None = None
    hidden_http_count: int = 0
    connect_service: str | None = None
    connect_host: str | None = None

    @property
    def is_online(self) -> bool:
        if not self.status:
            return False
        status = self.status.lower()
        return "healthy" in status or "online" in status

    @property
    def is_offline(self) -> bool:
        if not self.status:
            return False
        status = self.status.lower()
        return "offline" in status or "down" in status


class ViewOptions(BaseModel):
    """Display filters and the fallback local port."""

    model_config = ConfigDict(validate_assignment=True)

    hide_http: bool = False
    hide_ip: bool = False
    hide_offline: bool = False
    port_start: int = Field(default=DEFAULT_PORT_START, ge=1024, le=65535)


class ConnectTarget(BaseModel):
    """Arguments for starting a local access tunnel."""

    model_config = ConfigDict(frozen=True)

    hostname: str
    local_port: int
    protocol: str


def _with_scheme(service: str) -> str:
    return service if "://" in service else f"ssh://{service}"


def parse_host(service: str | None) -> str | None:
    """Host (with port when not the scheme default) of a service URL.

    Bare ``host:port`` values are read as ``ssh://host:port``.
    """
    if not service:
        return None
    try:
        parts = urlsplit(_with_scheme(service))
        hostname = parts.hostname
        port = parts.port
    except ValueError as e:
        logger.warning("Could not parse service", service=service, error=str(e))
        return None
    if not hostname:
        return None
    if port is None or _DEFAULT_PORTS.get(parts.scheme) == port:
        return hostname
    return f"{hostname}:{port}"


def parse_protocol(service: str | None) -> str | None:
    """Scheme of a service URL, ``ssh`` for bare ``host:port`` values."""
    if not service:
        return None
    try:
        scheme = urlsplit(_with_scheme(service)).scheme
    except ValueError:
        scheme = ""
    if scheme:
        return scheme.lower()
    return service.split(":")[0] or None


def is_http_service(service: str) -> bool:
    return service.startswith(("http://", "https://"))


def _coerce_port(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        try:
            return _coerce_port(float(value.strip()))
        except ValueError:
            return None
    return None


def _port_from_metadata(meta: dict[str, Any]) -> int | None:
    for key in PORT_METADATA_KEYS:
        if meta.get(key) is not None:
            return _coerce_port(meta[key])
    return None


def _port_map_from_metadata(meta: dict[str, Any]) -> list[PortMapping]:
    raw = meta.get("tunneldashPort")
    if not isinstance(raw, dict):
        return []

    mappings = []
    for host, value in raw.items():
        port = _coerce_port(value)
        if port is None:
            continue
        proto = str(host).split("-")[0] or None
        mappings.append(PortMapping(host=str(host), port=port, proto=proto))
    return mappings


def to_tunnel_summary(tunnel: Tunnel) -> TunnelSummary:
    """Summarize a remote tunnel: ports from metadata, first connection details."""
    meta = tunnel.metadata if isinstance(tunnel.metadata, dict) else {}
    port_map = _port_map_from_metadata(meta)
    connections = tunnel.connections or []
    first = connections[0] if connections else None

    colo_names: list[str] = []
    for connection in connections:
        if connection.colo_name and connection.colo_name not in colo_names:
            colo_names.append(connection.colo_name)

    return TunnelSummary(
        id=tunnel.id,
        name=tunnel.name,
        status=tunnel.status,
        created_at=tunnel.created_at,
        port=_port_from_metadata(meta),
        metadata=meta or None,
        port_map=port_map or None,
        connection_ip=first.origin_ip if first else None,
        client_version=first.client_version if first else None,
        connection_count=len(connections),
        colo_names=colo_names,
    )


def pick_host_port(
    port_map: list[PortMapping] | None,
    proto: str | None = None,
    hostname: str | None = None,
) -> PortMapping | None:
    """Choose a port mapping: by hostname, then by protocol, then the first."""
    if not port_map:
        return None
    if hostname:
        for mapping in port_map:
            if mapping.host == hostname:
                return mapping
    if proto:
        for mapping in port_map:
            if mapping.proto == proto:
                return mapping
    return port_map[0]


def build_configs(
    summary: TunnelSummary, ingress: list[dict[str, Any]] | None
) -> list[ConfigInfo]:
    """Connectable configs from a tunnel's ingress rules.

    Rules without a hostname or service, and ``http_status:`` catch-alls,
    are skipped.
    """
    if not isinstance(ingress, list):
        return []

    configs = []
    for rule in ingress:
        service = rule.get("service")
        hostname = rule.get("hostname")
        if not isinstance(service, str) or not isinstance(hostname, str):
            continue
        if not service or not hostname or service.startswith("http_status:"):
            continue
        proto = parse_protocol(service)
        mapping = pick_host_port(summary.port_map, proto, hostname)
        configs.append(
            ConfigInfo(
                service=service,
                proto=proto,
                host=hostname,
                hostname=hostname,
                port=mapping.port if mapping else summary.port,
            )
        )
    return configs


def with_configs(summary: TunnelSummary, configs: list[ConfigInfo]) -> TunnelSummary:
    services = [config.service for config in configs]
    return summary.model_copy(
        update={
            "configs": configs,
            "services": services,
            "service": services[0] if services else None,
        }
    )


def filter_and_sort(
    summaries: list[TunnelSummary], options: ViewOptions
) -> list[TunnelSummary]:
    """Apply display filters and put healthy tunnels first.

    The ordering is stable, so tunnels keep their remote order within the
    online and not-online groups.
    """
    shown = []
    for summary in summaries:
        if options.hide_offline and summary.is_offline:
            continue

        if summary.configs is not None:
            configs = summary.configs
        elif summary.service:
            configs = [ConfigInfo(service=summary.service)]
        else:
            configs = []

        if options.hide_http:
            display = [c for c in configs if not is_http_service(c.service)]
        else:
            display = list(configs)

        connect = display[0] if display else (configs[0] if configs else None)
        connect_host = None
        if connect is not None:
            connect_host = connect.host or parse_host(connect.service)

        shown.append(
            summary.model_copy(
                update={
                    "configs": configs,
                    "display_configs": display,
                    "hidden_http_count": len(configs) - len(display),
                    "connect_service": connect.service if connect else None,
                    "connect_host": connect_host,
                    "connection_ip": None if options.hide_ip else summary.connection_ip,
                }
            )
        )

    return sorted(shown, key=lambda s: not s.is_online)


def resolve_connect_target(
    summary: TunnelSummary, config: ConfigInfo, options: ViewOptions
) -> ConnectTarget:
    """Work out hostname, local port and protocol for starting ``config``.

    Raises:
        ValueError: If the config is hidden by the HTTP filter or no valid
            local port can be determined
    """
    if options.hide_http and is_http_service(config.service):
        raise ValueError(HIDDEN_HTTP_MESSAGE)

    hostname = config.host or config.hostname or parse_host(config.service) or summary.id
    if config.port is not None:
        local_port = config.port
    elif summary.port is not None:
        local_port = summary.port
    else:
        local_port = options.port_start
    validate_port(local_port, "Local port")

    protocol = config.proto or parse_protocol(config.service) or "tcp"
    return ConnectTarget(hostname=hostname, local_port=local_port, protocol=protocol)
