"""Long-lived service object exposing every tunneldash operation.

One :class:`TunnelDash` owns the process table and the API client for the
lifetime of the embedding application. All operations are coroutines so a
front end can run them as independent tasks; blocking process work is pushed
to a worker thread and only ever holds the table lock briefly.
"""

import asyncio
from types import TracebackType

from .agent.binary import AccessProtocol, query_agent_version
from .agent.supervisor import ProcessTable, TunnelSupervisor
from .cloud.client import CloudflareClient, unwrap_result
from .cloud.models import Account, Envelope, Tunnel, TunnelConfig
from .common.config import DashSettings
from .common.exceptions import CloudAPIError, TunnelDashError
from .common.logging import get_logger, setup_logging
from .summary import (
    ConfigInfo,
    TunnelSummary,
    ViewOptions,
    build_configs,
    resolve_connect_target,
    to_tunnel_summary,
    with_configs,
)

logger = get_logger(__name__)


class TunnelDash:
    """Facade over the tunnel supervisor and the Cloudflare API client."""

    def __init__(
        self,
        settings: DashSettings | None = None,
        *,
        client: CloudflareClient | None = None,
        table: ProcessTable | None = None,
    ):
        """Initialize the service and configure logging from its settings.

        Args:
            settings: Runtime settings; read from the environment if None
            client: API client to use instead of one built from settings
            table: Process table to share; a fresh one is created if None
        """
        self.settings = settings or DashSettings()
        setup_logging(
            level=self.settings.log_level, json_format=self.settings.json_logs
        )
        self.client = client or CloudflareClient(
            self.settings.api_base_url, timeout=self.settings.request_timeout
        )
        self.supervisor = TunnelSupervisor(
            agent_binary=self.settings.agent_binary,
            table=table,
            stop_wait_timeout=self.settings.stop_wait_timeout,
        )

    async def __aenter__(self) -> "TunnelDash":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop all tunnels and release the HTTP client."""
        await self.clear()
        await self.client.aclose()

    # Remote queries

    async def list_accounts(self, token: str) -> Envelope[list[Account]]:
        return await self.client.list_accounts(token)

    async def list_tunnels(self, token: str, account_id: str) -> Envelope[list[Tunnel]]:
        return await self.client.list_tunnels(token, account_id)

    async def get_tunnel_config(
        self, token: str, account_id: str, tunnel_id: str
    ) -> TunnelConfig:
        return await self.client.get_tunnel_config(token, account_id, tunnel_id)

    async def verify(self, token: str) -> Account:
        """Check a token and return the first account it can access.

        Raises:
            CloudAPIError: If the request fails
            TunnelDashError: If the token sees no accounts
        """
        accounts = unwrap_result(await self.client.list_accounts(token.strip()))
        if not accounts:
            raise TunnelDashError("No accounts returned")
        return accounts[0]

    async def load_tunnel_summaries(
        self, token: str, account_id: str
    ) -> list[TunnelSummary]:
        """List tunnels and attach the connectable configs of each one.

        Configurations are fetched concurrently. A tunnel whose configuration
        cannot be fetched is kept, without configs.
        """
        tunnels = unwrap_result(await self.client.list_tunnels(token, account_id))
        summaries = [to_tunnel_summary(tunnel) for tunnel in tunnels]
        return list(
            await asyncio.gather(
                *(self._attach_configs(token, account_id, s) for s in summaries)
            )
        )

    async def _attach_configs(
        self, token: str, account_id: str, summary: TunnelSummary
    ) -> TunnelSummary:
        try:
            config = await self.client.get_tunnel_config(token, account_id, summary.id)
        except (CloudAPIError, ValueError) as e:
            logger.warning("Config fetch failed", tunnel=summary.id, error=str(e))
            return summary
        return with_configs(summary, build_configs(summary, config.ingress()))

    # Local agent

    async def agent_version(self) -> str:
        return await asyncio.to_thread(query_agent_version, self.settings.agent_binary)

    async def start_tunnel(
        self,
        hostname: str,
        local_port: int,
        protocol: str | AccessProtocol | None = None,
    ) -> None:
        await asyncio.to_thread(self.supervisor.start, hostname, local_port, protocol)

    async def stop_tunnel(self, hostname: str) -> None:
        await asyncio.to_thread(self.supervisor.stop, hostname)

    async def toggle_tunnel(
        self,
        summary: TunnelSummary,
        config: ConfigInfo,
        options: ViewOptions | None = None,
    ) -> bool:
        """Start the tunnel for ``config`` or stop it if it is already running.

        Returns:
            True if the tunnel is running afterwards
        """
        target = resolve_connect_target(summary, config, options or ViewOptions())
        if self.supervisor.is_running(target.hostname):
            await self.stop_tunnel(target.hostname)
            return False
        await self.start_tunnel(target.hostname, target.local_port, target.protocol)
        return True

    def running_hostnames(self) -> list[str]:
        return self.supervisor.running_hostnames()

    async def reap(self) -> list[str]:
        """Forget tunnels whose agent process has exited."""
        return await asyncio.to_thread(self.supervisor.reap)

    async def clear(self) -> None:
        """Stop every running tunnel."""
        await asyncio.to_thread(self.supervisor.stop_all)
