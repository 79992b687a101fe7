"""Response models for the Cloudflare v4 API.

The remote schema is not contractually stable, so every optional field stays
optional and unknown fields are kept on the model rather than rejected. Keeping
extras matters for error handling: a body parsed as a narrow model must still
carry its ``errors`` list when dumped and re-read as an :class:`Envelope`.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class CloudModel(BaseModel):
    """Base for remote payloads: tolerant of missing and unknown fields."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ErrorDetail(CloudModel):
    """One entry of an envelope's ``errors`` list."""

    message: str | None = None


class Envelope(CloudModel, Generic[T]):
    """Generic success/errors/result wrapper used by every API response."""

    success: bool | None = None
    errors: list[ErrorDetail] | None = None
    result: T | None = None

    def first_error_message(self) -> str | None:
        """Message of the first reported error, if there is a non-empty one."""
        if not self.errors:
            return None
        return self.errors[0].message or None


class Account(CloudModel):
    id: str
    name: str


class Connection(CloudModel):
    """An active connection between a tunnel and a Cloudflare data center."""

    id: str | None = None
    uuid: str | None = None
    colo_name: str | None = None
    origin_ip: str | None = None
    client_version: str | None = None
    opened_at: str | None = None
    is_pending_reconnect: bool | None = None


class Tunnel(CloudModel):
    """A named Cloudflare tunnel (``cfd_tunnel``)."""

    id: str
    name: str
    status: str | None = None
    created_at: str | None = None
    metadata: Any = None
    connections: list[Connection] | None = Field(
        default=None, description="Active connections, for IP/version info"
    )


class TunnelConfig(CloudModel):
    """Remotely managed tunnel configuration; only ``result`` is typed."""

    result: Any = None

    def ingress(self) -> list[dict[str, Any]]:
        """Ingress rules under ``result.config.ingress``, or an empty list."""
        if not isinstance(self.result, dict):
            return []
        config = self.result.get("config")
        if not isinstance(config, dict):
            return []
        rules = config.get("ingress")
        if not isinstance(rules, list):
            return []
        return [rule for rule in rules if isinstance(rule, dict)]


AccountList = Envelope[list[Account]]
TunnelList = Envelope[list[Tunnel]]
